"""
Tests for the coverage resolver.
"""

import pytest

from clearclaim.core.models import ItemCategory, PolicyData
from clearclaim.modules.coverage import CoverageResolver


@pytest.fixture
def resolver() -> CoverageResolver:
    return CoverageResolver()


@pytest.fixture
def consultation_only() -> PolicyData:
    return PolicyData.model_validate(
        {
            "policy_basic_info": {"insurer_name": "Consult Only"},
            "policy_coverage": {"covered_benefits": ["GP Consultation", "Teleconsultation"]},
        }
    )


class TestCoverageResolver:
    """Tests for the ordered coverage rules."""

    def test_prescribed_medicine_covered(
        self, resolver: CoverageResolver, niva_bupa: PolicyData
    ) -> None:
        """Test a plain prescribed medicine."""
        decision = resolver.resolve(niva_bupa, "Paracetamol 650", ItemCategory.MEDICINE, True)

        assert decision.covered is True
        assert decision.reason is None

    def test_prescription_gate(self, resolver: CoverageResolver, niva_bupa: PolicyData) -> None:
        """Test that unmatched medicines and lab tests are refused first."""
        medicine = resolver.resolve(niva_bupa, "Glucose", ItemCategory.MEDICINE, False)
        lab = resolver.resolve(niva_bupa, "HbA1c", ItemCategory.LAB, False)

        assert medicine.reason == 'Medicine "Glucose" is not prescribed in the prescription'
        assert lab.reason == 'Lab test "HbA1c" is not prescribed in the prescription'

    def test_other_items_skip_prescription_gate(
        self, resolver: CoverageResolver, niva_bupa: PolicyData
    ) -> None:
        """Test that services are not gated on the match flag."""
        decision = resolver.resolve(niva_bupa, "ECG", ItemCategory.OTHER, False)

        assert decision.covered is True

    def test_exclusion_overlap(self, resolver: CoverageResolver, niva_bupa: PolicyData) -> None:
        """Test exclusion matching by containment."""
        decision = resolver.resolve(niva_bupa, "Whey Protein", ItemCategory.MEDICINE, True)

        assert decision.covered is False
        assert decision.reason.startswith('Item "Whey Protein" is excluded under policy: "Food')

    def test_procedure_fee_wording(
        self, resolver: CoverageResolver, niva_bupa: PolicyData
    ) -> None:
        """Test the procedure fee reason for excluded services."""
        decision = resolver.resolve(niva_bupa, "procedure fees", ItemCategory.OTHER, True)

        assert decision.reason.startswith("Procedure fees are excluded under policy exclusions:")

    def test_otc_needs_exclusion_clause(
        self, resolver: CoverageResolver, consultation_only: PolicyData, niva_bupa: PolicyData
    ) -> None:
        """Test that OTC products are refused only when the policy excludes them."""
        refused = resolver.resolve(niva_bupa, "Multivitamin", ItemCategory.MEDICINE, True)
        no_clause = resolver.resolve(
            consultation_only, "Multivitamin", ItemCategory.MEDICINE, True
        )

        assert "OTC (over-the-counter)" in refused.reason
        assert "OTC" not in (no_clause.reason or "")

    def test_category_without_benefit(
        self, resolver: CoverageResolver, consultation_only: PolicyData
    ) -> None:
        """Test refusal when no benefit serves the category."""
        medicine = resolver.resolve(consultation_only, "Amoxicillin", ItemCategory.MEDICINE, True)
        lab = resolver.resolve(consultation_only, "CBC", ItemCategory.LAB, True)

        assert medicine.reason == (
            "Medicines are not covered under this policy. "
            "Available benefits: GP Consultation, Teleconsultation"
        )
        assert lab.reason.startswith("Lab tests/Diagnostics are not covered under this policy.")

    def test_category_benefits(self, resolver: CoverageResolver, niva_bupa: PolicyData) -> None:
        """Test benefit lookup by category keyword."""
        assert resolver.category_benefits(niva_bupa, ItemCategory.MEDICINE) == [
            "Prescribed pharmacy (Allopathic only)"
        ]
        assert resolver.category_benefits(niva_bupa, ItemCategory.LAB) == [
            "Prescribed diagnostics (Pathology & Radiology)"
        ]
        assert resolver.category_benefits(niva_bupa, ItemCategory.OTHER) == []
