"""Rewrite suggestions, required additions and compliance checklists."""

from .generator import RecommendationGenerator, fallback_recommendations
from .types import (
    AlternativeCopy,
    MarketingFix,
    Recommendations,
    RequiredAddition,
    RewriteComparison,
    ToneAdjustment,
)

__all__ = [
    "AlternativeCopy",
    "MarketingFix",
    "RecommendationGenerator",
    "Recommendations",
    "RequiredAddition",
    "RewriteComparison",
    "ToneAdjustment",
    "fallback_recommendations",
]
