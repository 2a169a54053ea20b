"""
Core components for the ClearClaim engine.
"""

from .line_items import (
    InvoiceLineItem,
    LineItemParser,
    PrescribedItem,
    get_parser,
)
from .models import (
    AdjudicationResult,
    Claim,
    ClaimInput,
    ClaimPage,
    ClaimStatus,
    CoverageDecision,
    DocumentRef,
    ItemAdjudication,
    ItemCategory,
    ItemStatus,
    LimitAllocation,
    MatchingResults,
    MatchResult,
    PatientDetails,
    PolicyData,
    PolicySelection,
    PolicyValidation,
    RejectionCode,
    RejectionReason,
)
from .text_rules import (
    KeywordRule,
    TextRuleBook,
    get_default_rulebook,
    is_financial_item,
)

__all__ = [
    # Models
    "AdjudicationResult",
    "Claim",
    "ClaimInput",
    "ClaimPage",
    "ClaimStatus",
    "CoverageDecision",
    "DocumentRef",
    "ItemAdjudication",
    "ItemCategory",
    "ItemStatus",
    "LimitAllocation",
    "MatchingResults",
    "MatchResult",
    "PatientDetails",
    "PolicyData",
    "PolicySelection",
    "PolicyValidation",
    "RejectionCode",
    "RejectionReason",
    # Text rules
    "KeywordRule",
    "TextRuleBook",
    "get_default_rulebook",
    "is_financial_item",
    # Line-item parser
    "InvoiceLineItem",
    "LineItemParser",
    "PrescribedItem",
    "get_parser",
]
