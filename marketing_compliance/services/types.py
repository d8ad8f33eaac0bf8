"""
Dataclasses describing model insights and pipeline results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from marketing_compliance.compliance.types import ComplianceLevel, ComplianceReport, RiskLevel
from marketing_compliance.guidelines.models import Severity
from marketing_compliance.recommendations.types import Recommendations, RewriteComparison

APPROPRIATENESS_VALUES = ("appropriate", "concerning", "inappropriate")


@dataclass(frozen=True, slots=True)
class ModelViolation:
    """Issue raised by the external model rather than the rule engine."""

    text: str
    category: str
    severity: Severity
    explanation: str
    suggested_fix: str
    confidence: float


@dataclass(frozen=True, slots=True)
class ToneAssessment:
    tone: str
    appropriateness: str
    suggestions: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ModelInsights:
    """Parsed model analysis; always populated, even when the call failed."""

    score: float
    status: ComplianceLevel
    violations: Tuple[ModelViolation, ...]
    insights: Tuple[str, ...]
    tone: ToneAssessment
    elapsed_ms: int = 0
    fallback_used: bool = False


@dataclass(frozen=True, slots=True)
class RewriteSuggestion:
    improved_copy: str
    comparisons: Tuple[RewriteComparison, ...] = ()
    additional_suggestions: Tuple[str, ...] = ()
    succeeded: bool = True


@dataclass(frozen=True, slots=True)
class ResultMetadata:
    """Bookkeeping attached to every full analysis result."""

    actor_id: str
    analysis_type: str
    processing_ms: int
    rules_applied: int
    cache_used: bool
    analysis_date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    document_id: Optional[str] = None
    stage_ms: Tuple[Tuple[str, int], ...] = ()


@dataclass(frozen=True, slots=True)
class AnalysisResult:
    report: ComplianceReport
    insights: ModelInsights
    recommendations: Recommendations
    metadata: ResultMetadata

    @property
    def score(self) -> int:
        return self.report.total_score


@dataclass(frozen=True, slots=True)
class QuickViolation:
    text: str
    rule: str
    severity: str


@dataclass(frozen=True, slots=True)
class QuickCheckResult:
    score: int
    risk_level: RiskLevel
    top_violations: Tuple[QuickViolation, ...]
    elapsed_ms: int


@dataclass(slots=True)
class BatchItem:
    id: str
    text: str
    context: Optional[str] = None


@dataclass(slots=True)
class BatchItemResult:
    id: str
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class SetupStatus:
    """Readiness report for the configured services."""

    ready: bool
    guideline_count: int
    guideline_version: str
    model_ready: bool
    issues: List[str] = field(default_factory=list)


__all__ = [
    "APPROPRIATENESS_VALUES",
    "ModelViolation",
    "ToneAssessment",
    "ModelInsights",
    "RewriteComparison",
    "RewriteSuggestion",
    "ResultMetadata",
    "AnalysisResult",
    "QuickViolation",
    "QuickCheckResult",
    "BatchItem",
    "BatchItemResult",
    "SetupStatus",
]
