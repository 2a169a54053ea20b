"""
Core data models for the ClearClaim engine.
Uses Pydantic for validation and serialization.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    """Timezone-aware current time."""
    return datetime.now(timezone.utc)


class ClaimStatus(str, Enum):
    """Lifecycle states of a claim, in processing order."""

    PENDING = "pending"
    DIGITIZING = "digitizing"
    ADJUDICATING = "adjudicating"
    ADJUDICATED = "adjudicated"
    SUBMITTED = "submitted"

    @property
    def rank(self) -> int:
        """Position of the status in the lifecycle."""
        return list(ClaimStatus).index(self)


class ItemCategory(str, Enum):
    """Invoice line-item categories."""

    MEDICINE = "medicine"
    LAB = "lab"
    OTHER = "other"


class RejectionCode(str, Enum):
    """Machine-readable rejection reason codes."""

    POLICY_NOT_FOUND = "policyNotFound"
    POLICY_NOT_ACTIVE = "policyNotActive"
    INVOICE_BEFORE_POLICY_DATE = "invoiceBeforePolicyDate"
    BENEFIT_NOT_COVERED = "benefitNotCovered"


# Codes that block approval regardless of item-level results
BLOCKING_CODES = frozenset(
    {
        RejectionCode.POLICY_NOT_FOUND,
        RejectionCode.POLICY_NOT_ACTIVE,
        RejectionCode.INVOICE_BEFORE_POLICY_DATE,
    }
)


class ItemStatus(str, Enum):
    """Outcome of adjudicating a single line item."""

    APPROVED = "approved"
    PARTIAL = "partial"
    REJECTED = "rejected"
    FINANCIAL = "financial"


# ---------------------------------------------------------------------------
# Claim intake
# ---------------------------------------------------------------------------


class DocumentRef(BaseModel):
    """Reference to a source document."""

    url: str = Field(min_length=1)
    document_id: str | int | None = None


class PatientDetails(BaseModel):
    """Patient identity as declared on intake."""

    name: str = ""


class PolicySelection(BaseModel):
    """Policy chosen by the claimant."""

    policy_name: str = ""


class ClaimInput(BaseModel):
    """Raw claim intake payload."""

    patient_details: PatientDetails = Field(default_factory=PatientDetails)
    prescription_urls: list[DocumentRef] = Field(default_factory=list)
    invoice_urls: list[DocumentRef] = Field(default_factory=list)
    support_document_urls: list[DocumentRef] = Field(default_factory=list)
    user_raised_amount: str = ""
    request_date: str = ""
    policy_documents: list[PolicySelection] = Field(default_factory=list)

    @property
    def policy_name(self) -> str:
        """Name of the first selected policy, stripped."""
        if not self.policy_documents:
            return ""
        return self.policy_documents[0].policy_name.strip()


# ---------------------------------------------------------------------------
# Policy reference data
# ---------------------------------------------------------------------------


class PolicyBasicInfo(BaseModel):
    """Identity and coverage window of a policy."""

    model_config = ConfigDict(frozen=True)

    policy_number: str = ""
    policy_type: str = ""
    policyholder_name: str = ""
    insurer_name: str
    policy_start_date: date | None = None
    policy_end_date: date | None = None
    sum_insured: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("policy_start_date", "policy_end_date", mode="before")
    @classmethod
    def _blank_date_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class CoverageLimit(BaseModel):
    """Cap on a single benefit. A limit of zero means unlimited."""

    model_config = ConfigDict(frozen=True)

    benefit_name: str
    limit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    limit_type: str = ""
    is_sub_limit: bool = False
    parent_benefit: str | None = None

    @property
    def is_unlimited(self) -> bool:
        return self.limit_amount == 0


class PolicyCoverage(BaseModel):
    """Covered benefits and their limits."""

    model_config = ConfigDict(frozen=True)

    covered_benefits: tuple[str, ...] = ()
    coverage_limits: tuple[CoverageLimit, ...] = ()


class WaitingPeriod(BaseModel):
    model_config = ConfigDict(frozen=True)

    condition: str
    waiting_period: str


class PolicyExclusions(BaseModel):
    """Free-text exclusion clauses."""

    model_config = ConfigDict(frozen=True)

    excluded_conditions: tuple[str, ...] = ()
    waiting_periods: tuple[WaitingPeriod, ...] = ()


class PolicyTerms(BaseModel):
    """Financial terms. Not used by the decision logic."""

    model_config = ConfigDict(frozen=True)

    deductible: Decimal = Decimal("0")
    co_payment: Decimal = Decimal("0")
    premium_amount: Decimal = Decimal("0")
    premium_frequency: str = ""


class PolicySynopsis(BaseModel):
    model_config = ConfigDict(frozen=True)

    key_points: tuple[str, ...] = ()
    important_notes: tuple[str, ...] = ()


class PolicyData(BaseModel):
    """Complete, immutable policy terms."""

    model_config = ConfigDict(frozen=True)

    policy_basic_info: PolicyBasicInfo
    policy_coverage: PolicyCoverage = Field(default_factory=PolicyCoverage)
    policy_exclusions: PolicyExclusions = Field(default_factory=PolicyExclusions)
    policy_terms: PolicyTerms = Field(default_factory=PolicyTerms)
    policy_synopsis: PolicySynopsis = Field(default_factory=PolicySynopsis)

    @property
    def insurer_name(self) -> str:
        return self.policy_basic_info.insurer_name

    @property
    def covered_benefits(self) -> tuple[str, ...]:
        return self.policy_coverage.covered_benefits

    @property
    def excluded_conditions(self) -> tuple[str, ...]:
        return self.policy_exclusions.excluded_conditions


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


class MatchResult(BaseModel):
    """
    Matching verdict for one invoice line item.

    Accepts the collaborator's camelCase keys as well as snake_case names.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    index: int | None = None
    name: str = ""
    is_prescription_match: bool = Field(default=False, alias="isPrescriptionMatch")
    matched_prescription_index: int | None = Field(
        default=None, alias="matchedPrescriptionIndex"
    )
    remark: str = ""
    reason: str = ""
    potential_ocr_error: bool | None = Field(default=None, alias="potentialOCRError")
    suggested_alternatives: list[str] = Field(
        default_factory=list, alias="suggestedAlternatives"
    )
    is_lab_report_present: bool | None = Field(default=None, alias="isLabReportPresent")
    requires_manual_review: bool | None = Field(
        default=None, alias="requiresManualReview"
    )
    adjudicated_amount: Decimal | None = Field(default=None, alias="adjudicatedAmount")

    @field_validator("name", "remark", "reason", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @classmethod
    def unmatched(cls, index: int, name: str, remark: str, reason: str) -> "MatchResult":
        """Build the degraded verdict used when matching is unavailable."""
        return cls(
            index=index,
            name=name,
            is_prescription_match=False,
            remark=remark,
            reason=reason,
        )


class MatchingResults(BaseModel):
    """Match results for the three line-item categories."""

    medicines: list[MatchResult] = Field(default_factory=list)
    lab_tests: list[MatchResult] = Field(default_factory=list)
    others: list[MatchResult] = Field(default_factory=list)

    def for_category(self, category: ItemCategory) -> list[MatchResult]:
        if category == ItemCategory.MEDICINE:
            return self.medicines
        if category == ItemCategory.LAB:
            return self.lab_tests
        return self.others


# ---------------------------------------------------------------------------
# Adjudication
# ---------------------------------------------------------------------------


class CoverageDecision(BaseModel):
    """Whether a policy covers a line item."""

    covered: bool
    reason: str | None = None


class LimitAllocation(BaseModel):
    """Reimbursable portion of an item after applying its category limit."""

    within_limit: bool
    reimbursable: Decimal
    reason: str | None = None
    limit_amount: Decimal | None = None
    used_before: Decimal = Decimal("0")
    remaining: Decimal | None = None


class RejectionReason(BaseModel):
    """A single reason a claim (or part of it) was not reimbursed."""

    value: RejectionCode
    title: str
    reasoning: str


class PolicyValidation(BaseModel):
    """Summary of the policy-level checks."""

    is_active: bool = False
    is_date_valid: bool = False
    benefit_coverage: bool = False
    coverage_limits: bool = False


class ItemAdjudication(BaseModel):
    """Ledger row for one adjudicated line item."""

    category: ItemCategory
    index: int
    name: str
    claimed: Decimal
    reimbursable: Decimal
    status: ItemStatus
    reason: str | None = None


class AdjudicationResult(BaseModel):
    """Terminal decision for a claim."""

    approved: bool
    rejection_reasons: list[RejectionReason] = Field(default_factory=list)
    notes: str | None = None
    total_claimed_amount: Decimal = Decimal("0")
    total_reimbursable_amount: Decimal = Decimal("0")
    explanation: str = ""
    insights: list[str] = Field(default_factory=list)
    items: list[ItemAdjudication] = Field(default_factory=list)
    processed_at: datetime = Field(default_factory=utc_now)
    matching_results: MatchingResults = Field(default_factory=MatchingResults)
    policy_validation: PolicyValidation = Field(default_factory=PolicyValidation)

    @property
    def is_partial(self) -> bool:
        """Approved for less than the claimed total."""
        return (
            self.approved
            and self.total_reimbursable_amount < self.total_claimed_amount
        )

    @property
    def approval_percentage(self) -> Decimal:
        """Reimbursable share of the claimed total, in percent."""
        if self.total_claimed_amount <= 0:
            return Decimal("0")
        pct = self.total_reimbursable_amount / self.total_claimed_amount * 100
        return pct.quantize(Decimal("0.1"))


# ---------------------------------------------------------------------------
# Claim record
# ---------------------------------------------------------------------------


class Claim(BaseModel):
    """A reimbursement claim moving through the lifecycle."""

    claim_id: str = Field(default_factory=lambda: uuid4().hex)
    patient_details: PatientDetails
    prescription_urls: list[DocumentRef]
    invoice_urls: list[DocumentRef]
    support_document_urls: list[DocumentRef] = Field(default_factory=list)
    user_raised_amount: str
    request_date: str
    policy_documents: list[PolicySelection]
    policy_name: str
    status: ClaimStatus = ClaimStatus.PENDING
    prescription_data: dict[str, Any] | None = None
    invoice_data: dict[str, Any] | None = None
    lab_report_data: dict[str, Any] | None = None
    medicine_matches: list[MatchResult] = Field(default_factory=list)
    lab_test_matches: list[MatchResult] = Field(default_factory=list)
    other_matches: list[MatchResult] = Field(default_factory=list)
    adjudication_result: AdjudicationResult | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_input(cls, claim_input: ClaimInput) -> "Claim":
        """Create a pending claim from a validated intake payload."""
        return cls(
            patient_details=claim_input.patient_details,
            prescription_urls=claim_input.prescription_urls,
            invoice_urls=claim_input.invoice_urls,
            support_document_urls=claim_input.support_document_urls,
            user_raised_amount=claim_input.user_raised_amount,
            request_date=claim_input.request_date,
            policy_documents=claim_input.policy_documents,
            policy_name=claim_input.policy_name,
        )

    @property
    def all_document_urls(self) -> list[str]:
        """Prescription, invoice and support document URLs, in that order."""
        return [
            doc.url
            for doc in (
                *self.prescription_urls,
                *self.invoice_urls,
                *self.support_document_urls,
            )
        ]


class ClaimPage(BaseModel):
    """One page of claims, newest first."""

    claims: list[Claim] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    total_pages: int = 0
