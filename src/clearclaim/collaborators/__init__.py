"""
External collaborators: document digitization and line-item matching.
"""

from .digitization import (
    DigitizationResponse,
    DigitizationService,
    DigitizedClaim,
    DigitizedDocument,
    Digitizer,
    HttpDigitizationClient,
)
from .matching import LineItemMatcher, MatchingClient, OpenAIMatchingClient, parse_match_response
from .schemas import (
    LAB_REPORT_EXTRACTION_FIELDS,
    PRESCRIPTION_EXTRACTION_FIELDS,
    invoice_extraction_fields,
)

__all__ = [
    # Digitization
    "DigitizationResponse",
    "DigitizationService",
    "DigitizedClaim",
    "DigitizedDocument",
    "Digitizer",
    "HttpDigitizationClient",
    # Matching
    "LineItemMatcher",
    "MatchingClient",
    "OpenAIMatchingClient",
    "parse_match_response",
    # Schemas
    "LAB_REPORT_EXTRACTION_FIELDS",
    "PRESCRIPTION_EXTRACTION_FIELDS",
    "invoice_extraction_fields",
]
