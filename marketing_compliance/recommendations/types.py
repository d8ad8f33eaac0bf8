"""
Recommendation payload types.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from marketing_compliance.guidelines.models import Severity


@dataclass(frozen=True, slots=True)
class CitationReference:
    document: str
    section: str
    url: Optional[str] = None


@dataclass(frozen=True, slots=True)
class MarketingFix:
    original: str
    suggested: str
    reason: str
    reference: CitationReference
    priority: Severity
    difficulty: str  # easy | medium | complex
    impact: str  # minimal | moderate | significant


@dataclass(frozen=True, slots=True)
class RequiredAddition:
    element: str
    suggested_text: str
    placement: str  # beginning | end | prominent | footer
    requirement: str


@dataclass(frozen=True, slots=True)
class ToneAdjustment:
    issue: str
    suggestion: str
    example: str


@dataclass(frozen=True, slots=True)
class AlternativeCopy:
    version: str
    text: str
    marketing_strength: str
    risk_level: str


@dataclass(frozen=True, slots=True)
class RewriteComparison:
    """Before/after pair proposed by the model rewrite."""

    before: str
    after: str
    reason: str
    reference: str = ""


@dataclass(frozen=True, slots=True)
class Recommendations:
    """Everything the generator proposes for one piece of copy."""

    overall_approach: str
    fixes: Tuple[MarketingFix, ...] = ()
    additions: Tuple[RequiredAddition, ...] = ()
    tone_adjustments: Tuple[ToneAdjustment, ...] = ()
    alternatives: Tuple[AlternativeCopy, ...] = ()
    checklist: Tuple[str, ...] = ()
    comparisons: Tuple[RewriteComparison, ...] = ()
    additional_suggestions: Tuple[str, ...] = ()
    fallback_used: bool = False


__all__ = [
    "CitationReference",
    "MarketingFix",
    "RequiredAddition",
    "ToneAdjustment",
    "AlternativeCopy",
    "RewriteComparison",
    "Recommendations",
]
