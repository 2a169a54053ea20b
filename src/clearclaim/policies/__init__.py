"""
Policy catalog for the ClearClaim engine.
"""

from .catalog import PolicyCatalog, get_default_catalog, normalize_policy_name

__all__ = [
    "PolicyCatalog",
    "get_default_catalog",
    "normalize_policy_name",
]
