"""
Result types produced by the violation detector and the scorer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from marketing_compliance.guidelines.models import Rule, Severity

COMPLIANT_THRESHOLD = 80
REVIEW_THRESHOLD = 50


class ViolationKind(str, Enum):
    KEYWORD_VIOLATION = "keyword_violation"
    PROHIBITED_CLAIM = "prohibited_claim"
    MISSING_REQUIRED_ELEMENT = "missing_required_element"


class ComplianceLevel(str, Enum):
    COMPLIANT = "compliant"
    NEEDS_REVIEW = "needs_review"
    NON_COMPLIANT = "non_compliant"

    @classmethod
    def coerce(cls, value: object) -> "ComplianceLevel":
        """Closed-set parse; anything unrecognised becomes needs_review."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.NEEDS_REVIEW


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK = {
    RiskLevel.LOW: 1,
    RiskLevel.MEDIUM: 2,
    RiskLevel.HIGH: 3,
    RiskLevel.CRITICAL: 4,
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(value: float, upper: float = 100) -> int:
    return max(0, min(int(upper), round_half_up(value)))


def compliance_level_for(score: float) -> ComplianceLevel:
    """Score band shared by the detector and the scorer."""
    if score >= COMPLIANT_THRESHOLD:
        return ComplianceLevel.COMPLIANT
    if score >= REVIEW_THRESHOLD:
        return ComplianceLevel.NEEDS_REVIEW
    return ComplianceLevel.NON_COMPLIANT


def color_for(score: float) -> str:
    if score >= COMPLIANT_THRESHOLD:
        return "green"
    if score >= REVIEW_THRESHOLD:
        return "yellow"
    return "red"


@dataclass(frozen=True, slots=True)
class ViolationMatch:
    """One occurrence of a rule phrase in the analysed text."""

    rule: Rule
    kind: ViolationKind
    text: str
    start: int
    end: int
    context: str
    confidence: float
    severity: Severity
    scoring_impact: float


@dataclass(frozen=True, slots=True)
class AnalysisMetadata:
    text_length: int
    rules_evaluated: int
    processing_ms: int
    risk_level: RiskLevel


@dataclass(frozen=True, slots=True)
class ComplianceAnalysis:
    """Raw rule-based findings for one text."""

    overall_score: int
    compliance_level: ComplianceLevel
    violations: Tuple[ViolationMatch, ...]
    missing_elements: Tuple[str, ...]
    missing_disclaimers: Tuple[str, ...]
    applied_rules: Tuple[Rule, ...]
    metadata: AnalysisMetadata


@dataclass(frozen=True, slots=True)
class CategoryScore:
    category: str
    score: int
    max_score: float
    violations: int = 0


@dataclass(frozen=True, slots=True)
class Deductions:
    critical: float = 0.0
    high: float = 0.0
    medium: float = 0.0
    low: float = 0.0
    missing_elements: float = 0.0
    prohibited_claims: float = 0.0


@dataclass(frozen=True, slots=True)
class RiskIndicators:
    level: RiskLevel
    factors: Tuple[str, ...] = ()
    immediate_actions: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    total_score: int
    base_score: float
    deductions: Deductions
    category_scores: Tuple[CategoryScore, ...]
    compliance_level: ComplianceLevel
    color_code: str
    risk_indicators: RiskIndicators


@dataclass(frozen=True, slots=True)
class CitationEntry:
    """One citation per violated rule, listing every matched text for it."""

    rule_id: str
    citation: str
    violations: str
    url: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ComplianceSummary:
    key_findings: Tuple[str, ...]
    risk_assessment: str
    next_steps: Tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ComplianceReport:
    score_breakdown: ScoreBreakdown
    violations: Tuple[ViolationMatch, ...]
    missing_elements: Tuple[str, ...]
    recommendations: Tuple[str, ...]
    citations: Tuple[CitationEntry, ...]
    summary: ComplianceSummary
    missing_disclaimers: Tuple[str, ...] = ()

    @property
    def total_score(self) -> int:
        return self.score_breakdown.total_score


__all__ = [
    "COMPLIANT_THRESHOLD",
    "REVIEW_THRESHOLD",
    "ViolationKind",
    "ComplianceLevel",
    "RiskLevel",
    "round_half_up",
    "clamp_score",
    "compliance_level_for",
    "color_for",
    "ViolationMatch",
    "AnalysisMetadata",
    "ComplianceAnalysis",
    "CategoryScore",
    "Deductions",
    "RiskIndicators",
    "ScoreBreakdown",
    "CitationEntry",
    "ComplianceSummary",
    "ComplianceReport",
]
