"""
ClearClaim reimbursement claim engine.

Moves insurance reimbursement claims through digitization, line-item
matching and policy adjudication, producing an approve, partial-approve or
reject decision with itemized reasons.
"""

from .core.models import (
    AdjudicationResult,
    Claim,
    ClaimInput,
    ClaimStatus,
    ItemCategory,
    MatchingResults,
    MatchResult,
    PolicyData,
    RejectionCode,
    RejectionReason,
)
from .engine import AdjudicationEngine, adjudicate_claim
from .exceptions import (
    ClaimNotFoundError,
    ClaimValidationError,
    ClearClaimError,
    ConfigurationError,
    DigitizationError,
    InvalidStatusTransitionError,
    MatchingError,
    PolicyNotFoundError,
)
from .lifecycle import ClaimLifecycleController
from .policies import PolicyCatalog, get_default_catalog
from .reporting import AdjudicationFormatter

__version__ = "0.1.0"

__all__ = [
    # Main Engine
    "AdjudicationEngine",
    "ClaimLifecycleController",
    "adjudicate_claim",
    # Models
    "AdjudicationResult",
    "Claim",
    "ClaimInput",
    "ClaimStatus",
    "ItemCategory",
    "MatchingResults",
    "MatchResult",
    "PolicyData",
    "RejectionCode",
    "RejectionReason",
    # Policies
    "PolicyCatalog",
    "get_default_catalog",
    # Reporting
    "AdjudicationFormatter",
    # Errors
    "ClaimNotFoundError",
    "ClaimValidationError",
    "ClearClaimError",
    "ConfigurationError",
    "DigitizationError",
    "InvalidStatusTransitionError",
    "MatchingError",
    "PolicyNotFoundError",
]
