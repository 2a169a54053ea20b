"""
Decision modules for the ClearClaim engine.
"""

from .coverage import CoverageResolver
from .limits import CategoryLedger, LimitAllocator
from .validity import BenefitMapper, PolicyValidityChecker

__all__ = [
    "BenefitMapper",
    "CategoryLedger",
    "CoverageResolver",
    "LimitAllocator",
    "PolicyValidityChecker",
]
