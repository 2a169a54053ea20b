"""
ClearClaim exception hierarchy.

Every error carries a machine-readable code (CC_*) for logging and for
whatever transport layer sits in front of the engine.
"""

from typing import Any


class ClearClaimError(Exception):
    """Base exception for all ClearClaim errors."""

    code = "CC_INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        claim_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.claim_id = claim_id

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging/API responses."""
        result: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            result["details"] = self.details
        if self.claim_id:
            result["claim_id"] = self.claim_id
        return result


class ConfigurationError(ClearClaimError):
    """Missing or invalid configuration."""

    code = "CC_CONFIG_INVALID"


class ClaimValidationError(ClearClaimError):
    """Claim intake payload failed validation."""

    code = "CC_CLAIM_INVALID"

    def __init__(self, message: str, field: str, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.field = field
        self.details.setdefault("field", field)


class PolicyNotFoundError(ClearClaimError):
    """Requested policy is not in the catalog."""

    code = "CC_POLICY_NOT_FOUND"


class ClaimNotFoundError(ClearClaimError):
    """No claim with the given id."""

    code = "CC_CLAIM_NOT_FOUND"


class InvalidStatusTransitionError(ClearClaimError):
    """A status change was requested from the wrong state."""

    code = "CC_INVALID_STATUS"

    def __init__(self, message: str, current: str, required: str, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.current = current
        self.required = required
        self.details.update({"current_status": current, "required_status": required})


class DigitizationError(ClearClaimError):
    """Document digitization failed or returned an unsuccessful response."""

    code = "CC_DIGITIZATION_FAILED"


class MatchingError(ClearClaimError):
    """The matching collaborator failed to produce a response."""

    code = "CC_MATCHING_FAILED"


class MatchingParseError(MatchingError):
    """The matching collaborator responded with unparseable output."""

    code = "CC_MATCHING_PARSE_FAILED"
