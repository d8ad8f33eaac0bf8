"""Guideline corpus loading and rule lookups."""

from .models import (
    Citation,
    GuidelineMetadata,
    GuidelineSet,
    Rule,
    ScoringMethodology,
    Severity,
    ViolationPatterns,
)
from .repository import CitationCheck, GuidelineRepository

__all__ = [
    "Citation",
    "CitationCheck",
    "GuidelineMetadata",
    "GuidelineRepository",
    "GuidelineSet",
    "Rule",
    "ScoringMethodology",
    "Severity",
    "ViolationPatterns",
]
