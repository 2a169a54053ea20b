"""
Policy-level validity checks: the coverage window and the invoice's
reimbursement type.
"""

import logging
from datetime import date

from ..core.models import PolicyData, RejectionCode, RejectionReason

logger = logging.getLogger(__name__)


class PolicyValidityChecker:
    """
    Checks that a policy is in force on the adjudication date and that the
    invoice falls inside the policy window.
    """

    def check(
        self,
        policy: PolicyData,
        as_of: date,
        invoice_date: date | None = None,
        invoice_date_text: str | None = None,
    ) -> RejectionReason | None:
        """
        Validate the policy window.

        Args:
            policy: Policy terms
            as_of: Date the claim is adjudicated on
            invoice_date: Parsed invoice date, if the invoice carries one
            invoice_date_text: Invoice date as printed, used in the reason

        Returns:
            A single rejection reason, or None when the policy is valid
        """
        info = policy.policy_basic_info
        start = info.policy_start_date
        end = info.policy_end_date

        active_now = not (start and as_of < start) and not (end and as_of > end)
        invoice_in_window = True
        if invoice_date is not None:
            if start and invoice_date < start:
                invoice_in_window = False
            if end and invoice_date > end:
                invoice_in_window = False

        if active_now and invoice_in_window:
            return None

        if invoice_date is not None and start and invoice_date < start:
            return RejectionReason(
                value=RejectionCode.INVOICE_BEFORE_POLICY_DATE,
                title="Invoice date is before policy start date",
                reasoning=(
                    f"Invoice date ({invoice_date_text or invoice_date.isoformat()}) "
                    f"is before policy start date ({start.isoformat()})"
                ),
            )

        reasoning = (
            "Policy is not active for the invoice date"
            if invoice_date is not None
            else "Policy is not currently active"
        )
        return RejectionReason(
            value=RejectionCode.POLICY_NOT_ACTIVE,
            title="Policy is not active",
            reasoning=reasoning,
        )


class BenefitMapper:
    """Maps an invoice reimbursement type onto the policy's benefit names."""

    DEFAULT_MAPPING: dict[str, list[str]] = {
        "Prescribed Medicines": ["Prescribed pharmacy (Allopathic only)", "Prescribed Pharmacy"],
        "Prescribed Diagnostics": [
            "Prescribed diagnostics (Pathology & Radiology)",
            "Prescribed Diagnostics",
        ],
        "Consultation": [
            "Doctor consultations (General Physician, Specialist, Super Specialist - Allopathic)",
            "GP/Specialist Consultation",
        ],
        "Dental": ["Dental - except Cosmetic", "Dental Procedure"],
        "Vision": ["Vision including Prescription lens and Frames cover", "Vision Procedure"],
    }

    def __init__(self, mapping: dict[str, list[str]] | None = None) -> None:
        self.mapping = mapping if mapping is not None else dict(self.DEFAULT_MAPPING)

    def is_covered(self, policy: PolicyData, reimbursement_type: str) -> bool:
        """Unknown reimbursement types map to no benefit and are not covered."""
        candidates = self.mapping.get(reimbursement_type, [])
        return any(
            covered in benefit or benefit in covered
            for benefit in candidates
            for covered in policy.covered_benefits
        )

    def check(self, policy: PolicyData, reimbursement_type: str | None) -> RejectionReason | None:
        """Reject an uncovered reimbursement type; an absent type is not checked."""
        if not reimbursement_type or self.is_covered(policy, reimbursement_type):
            return None
        logger.info("Reimbursement type %r not covered by %s", reimbursement_type, policy.insurer_name)
        return RejectionReason(
            value=RejectionCode.BENEFIT_NOT_COVERED,
            title="Benefit is not covered in policy",
            reasoning=(
                f'Reimbursement type "{reimbursement_type}" is not covered under the policy. '
                f"Covered benefits: {', '.join(policy.covered_benefits)}"
            ),
        )
