"""
Reporting modules for the ClearClaim engine.
"""

from .explanation import ExplanationBuilder
from .report import AdjudicationBuilder, AdjudicationFormatter

__all__ = [
    "AdjudicationBuilder",
    "AdjudicationFormatter",
    "ExplanationBuilder",
]
