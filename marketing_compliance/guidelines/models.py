"""
Guideline corpus types.

Two layers live here: pydantic models describing the on-disk JSON document
(validated once at load time) and the frozen dataclasses the rest of the
pipeline works with.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    """Rule severity with an explicit ordering (critical highest)."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def coerce(cls, value: object, default: Optional["Severity"] = None) -> "Severity":
        """Map arbitrary input onto a severity, using `default` (medium) when unknown."""
        fallback = default or cls.MEDIUM
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return fallback


_SEVERITY_RANK = {
    Severity.CRITICAL: 4,
    Severity.HIGH: 3,
    Severity.MEDIUM: 2,
    Severity.LOW: 1,
}


# ---------------------------------------------------------------------------
# Source document schema
# ---------------------------------------------------------------------------


class CitationSource(BaseModel):
    model_config = ConfigDict(extra="ignore")

    document: str
    title: str = ""
    date: str = ""
    section: str = ""
    url: Optional[str] = None


class RuleSource(BaseModel):
    model_config = ConfigDict(extra="ignore")

    rule_id: str
    category: Optional[str] = None
    title: str
    description: str = ""
    marketing_context: str = ""
    content: str = ""
    violation_keywords: List[str] = Field(default_factory=list)
    required_marketing_elements: List[str] = Field(default_factory=list)
    prohibited_marketing_claims: List[str] = Field(default_factory=list)
    severity: Literal["critical", "high", "medium", "low"]
    scoring_weight: float = 1.0
    effective_date: Optional[str] = None
    penalties: List[str] = Field(default_factory=list)
    citation: CitationSource


class MetadataSource(BaseModel):
    model_config = ConfigDict(extra="ignore")

    source: str = ""
    created_date: str = ""
    version: str
    purpose: str = ""
    scope: str = ""
    total_marketing_rules: int = 0
    citation_policy: str = ""


class ViolationPatternsSource(BaseModel):
    model_config = ConfigDict(extra="ignore")

    high_risk_phrases: List[str] = Field(default_factory=list)
    medium_risk_phrases: List[str] = Field(default_factory=list)
    required_disclaimers: List[str] = Field(default_factory=list)


class ScoringMethodologySource(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total_possible_score: float = 100
    critical_violations: float
    high_violations: float
    medium_violations: float
    low_violations: float = -3
    missing_required_elements: float = -5
    color_coding: Dict[str, str] = Field(default_factory=dict)
    category_weights: Dict[str, float] = Field(default_factory=dict)


class GuidelineDocument(BaseModel):
    """Top-level JSON layout of a guideline corpus."""

    model_config = ConfigDict(extra="ignore")

    metadata: MetadataSource
    marketing_compliance_rules: Dict[str, List[RuleSource]]
    marketing_violation_patterns: ViolationPatternsSource = Field(default_factory=ViolationPatternsSource)
    scoring_methodology: Optional[ScoringMethodologySource] = None


# ---------------------------------------------------------------------------
# Runtime types
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Citation:
    """Regulatory source backing a rule."""

    document: str
    title: str
    section: str
    date: str
    url: Optional[str] = None

    def format(self) -> str:
        return f"{self.document} - {self.title} ({self.date}) - Section: {self.section}"


@dataclass(frozen=True, slots=True)
class Rule:
    """Single regulatory requirement with matchable phrases."""

    rule_id: str
    category: str
    title: str
    description: str
    marketing_context: str
    violation_keywords: Tuple[str, ...]
    required_elements: Tuple[str, ...]
    prohibited_claims: Tuple[str, ...]
    severity: Severity
    scoring_weight: float
    citation: Citation
    content: str = ""
    effective_date: Optional[str] = None
    penalties: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ScoringMethodology:
    """Point deductions and weights used by the detector and scorer."""

    base_score: float
    critical_deduction: float
    high_deduction: float
    medium_deduction: float
    low_deduction: float
    missing_element_penalty: float
    category_weights: Tuple[Tuple[str, float], ...] = ()
    color_coding: Tuple[Tuple[str, str], ...] = ()

    def deduction_for(self, severity: Severity) -> float:
        return {
            Severity.CRITICAL: self.critical_deduction,
            Severity.HIGH: self.high_deduction,
            Severity.MEDIUM: self.medium_deduction,
            Severity.LOW: self.low_deduction,
        }[severity]


@dataclass(frozen=True, slots=True)
class ViolationPatterns:
    high_risk_phrases: Tuple[str, ...] = ()
    medium_risk_phrases: Tuple[str, ...] = ()
    required_disclaimers: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class GuidelineMetadata:
    version: str
    source: str = ""
    created_date: str = ""
    purpose: str = ""
    scope: str = ""
    total_rules: int = 0
    citation_policy: str = ""
    checksum: Optional[str] = None


@dataclass(frozen=True, slots=True)
class GuidelineSet:
    """Versioned corpus of rules grouped by category."""

    metadata: GuidelineMetadata
    rules_by_category: Dict[str, Tuple[Rule, ...]]
    patterns: ViolationPatterns
    scoring: Optional[ScoringMethodology]

    @property
    def rules(self) -> List[Rule]:
        return [rule for rules in self.rules_by_category.values() for rule in rules]


def build_guideline_set(document: GuidelineDocument, *, checksum: Optional[str] = None) -> GuidelineSet:
    """Convert a validated source document into runtime dataclasses."""

    grouped: Dict[str, Tuple[Rule, ...]] = {}
    for category, rule_sources in document.marketing_compliance_rules.items():
        grouped[category] = tuple(_build_rule(category, source) for source in rule_sources)

    meta = document.metadata
    patterns = document.marketing_violation_patterns
    scoring_source = document.scoring_methodology
    scoring: Optional[ScoringMethodology] = None
    if scoring_source is not None:
        scoring = ScoringMethodology(
            base_score=scoring_source.total_possible_score,
            critical_deduction=-abs(scoring_source.critical_violations),
            high_deduction=-abs(scoring_source.high_violations),
            medium_deduction=-abs(scoring_source.medium_violations),
            low_deduction=-abs(scoring_source.low_violations),
            missing_element_penalty=-abs(scoring_source.missing_required_elements),
            category_weights=tuple(scoring_source.category_weights.items()),
            color_coding=tuple(scoring_source.color_coding.items()),
        )

    return GuidelineSet(
        metadata=GuidelineMetadata(
            version=meta.version,
            source=meta.source,
            created_date=meta.created_date,
            purpose=meta.purpose,
            scope=meta.scope,
            total_rules=meta.total_marketing_rules,
            citation_policy=meta.citation_policy,
            checksum=checksum,
        ),
        rules_by_category=grouped,
        patterns=ViolationPatterns(
            high_risk_phrases=tuple(patterns.high_risk_phrases),
            medium_risk_phrases=tuple(patterns.medium_risk_phrases),
            required_disclaimers=tuple(patterns.required_disclaimers),
        ),
        scoring=scoring,
    )


def _build_rule(category: str, source: RuleSource) -> Rule:
    citation = source.citation
    return Rule(
        rule_id=source.rule_id,
        category=source.category or category,
        title=source.title,
        description=source.description,
        marketing_context=source.marketing_context,
        violation_keywords=tuple(source.violation_keywords),
        required_elements=tuple(source.required_marketing_elements),
        prohibited_claims=tuple(source.prohibited_marketing_claims),
        severity=Severity(source.severity),
        scoring_weight=source.scoring_weight,
        citation=Citation(
            document=citation.document,
            title=citation.title,
            section=citation.section,
            date=citation.date,
            url=citation.url,
        ),
        content=source.content,
        effective_date=source.effective_date,
        penalties=tuple(source.penalties),
    )


__all__ = [
    "Severity",
    "Citation",
    "Rule",
    "ScoringMethodology",
    "ViolationPatterns",
    "GuidelineMetadata",
    "GuidelineSet",
    "GuidelineDocument",
    "build_guideline_set",
]
