"""
Utility modules for the ClearClaim engine.
"""

from .logging import claim_context, clear_context, set_context, setup_logging

__all__ = [
    "claim_context",
    "clear_context",
    "set_context",
    "setup_logging",
]
