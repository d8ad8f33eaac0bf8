"""
Rule-based violation detector for marketing copy.
"""

from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional

from marketing_compliance.compliance.text import (
    context_window,
    extract_keywords,
    find_text_matches,
    is_element_present,
    match_confidence,
)
from marketing_compliance.compliance.types import (
    AnalysisMetadata,
    ComplianceAnalysis,
    RiskLevel,
    ViolationKind,
    ViolationMatch,
    clamp_score,
    compliance_level_for,
)
from marketing_compliance.errors import ScoringConfigurationError
from marketing_compliance.guidelines.models import Rule, ScoringMethodology, Severity
from marketing_compliance.guidelines.repository import GuidelineRepository

logger = logging.getLogger("marketing_compliance.detector")

PROHIBITED_CLAIM_MULTIPLIER = 1.5


def risk_level_for(violations: List[ViolationMatch]) -> RiskLevel:
    """Three-tier risk used on the detector path (critical never appears here)."""
    critical = sum(1 for v in violations if v.severity == Severity.CRITICAL)
    high = sum(1 for v in violations if v.severity == Severity.HIGH)
    if critical > 0 or high > 2:
        return RiskLevel.HIGH
    if high > 0 or len(violations) > 3:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class ViolationDetector:
    """Scans text against the applicable rules and scores the findings."""

    def __init__(self, repository: GuidelineRepository):
        self.repository = repository

    def analyze(self, text: str, context: Optional[str] = None) -> ComplianceAnalysis:
        started = time.perf_counter()
        methodology = self._methodology()

        rules = self.applicable_rules(text, context)
        violations = self.detect_violations(text, rules, methodology)
        missing_elements = self.missing_elements(text, rules)
        missing_disclaimers = self.missing_disclaimers(text)

        score = clamp_score(
            methodology.base_score
            + sum(v.scoring_impact for v in violations)
            + len(missing_elements) * methodology.missing_element_penalty
        )
        elapsed_ms = int((time.perf_counter() - started) * 1000)

        logger.info(
            "Rule analysis completed: score=%d violations=%d missing=%d elapsed_ms=%d",
            score,
            len(violations),
            len(missing_elements),
            elapsed_ms,
        )
        return ComplianceAnalysis(
            overall_score=score,
            compliance_level=compliance_level_for(score),
            violations=tuple(violations),
            missing_elements=tuple(missing_elements),
            missing_disclaimers=tuple(missing_disclaimers),
            applied_rules=tuple(rules),
            metadata=AnalysisMetadata(
                text_length=len(text),
                rules_evaluated=len(rules),
                processing_ms=elapsed_ms,
                risk_level=risk_level_for(violations),
            ),
        )

    def applicable_rules(self, text: str, context: Optional[str] = None) -> List[Rule]:
        rules = self.repository.cached_rules()
        if not context:
            return rules

        selected: Dict[str, Rule] = {}
        for rule in self.repository.rules_by_context(context):
            selected.setdefault(rule.rule_id, rule)
        for rule in self.repository.rules_by_keywords(extract_keywords(text)):
            selected.setdefault(rule.rule_id, rule)
        return list(selected.values())

    def detect_violations(
        self,
        text: str,
        rules: List[Rule],
        methodology: Optional[ScoringMethodology] = None,
    ) -> List[ViolationMatch]:
        methodology = methodology or self._methodology()
        normalized = text.lower()
        violations: List[ViolationMatch] = []

        for rule in rules:
            impact = methodology.deduction_for(rule.severity)
            phrases = [(ViolationKind.KEYWORD_VIOLATION, kw, impact) for kw in rule.violation_keywords]
            phrases += [
                (ViolationKind.PROHIBITED_CLAIM, claim, impact * PROHIBITED_CLAIM_MULTIPLIER)
                for claim in rule.prohibited_claims
            ]
            for kind, phrase, phrase_impact in phrases:
                for start, end in find_text_matches(normalized, phrase.lower()):
                    matched = text[start:end]
                    violations.append(
                        ViolationMatch(
                            rule=rule,
                            kind=kind,
                            text=matched,
                            start=start,
                            end=end,
                            context=context_window(text, start, end),
                            confidence=match_confidence(phrase, matched),
                            severity=rule.severity,
                            scoring_impact=phrase_impact,
                        )
                    )

        # sorted() is stable, so ties keep rule/phrase order
        return sorted(violations, key=lambda v: (-v.severity.rank, -v.confidence))

    def missing_elements(self, text: str, rules: List[Rule]) -> List[str]:
        normalized = text.lower()
        missing: List[str] = []
        for rule in rules:
            for element in rule.required_elements:
                if is_element_present(normalized, element):
                    continue
                entry = f"{element} (Required by: {rule.title})"
                if entry not in missing:
                    missing.append(entry)
        return missing

    def missing_disclaimers(self, text: str) -> List[str]:
        normalized = text.lower()
        return [
            disclaimer
            for disclaimer in self.repository.required_disclaimers()
            if not is_element_present(normalized, disclaimer)
        ]

    def _methodology(self) -> ScoringMethodology:
        methodology = self.repository.scoring_methodology()
        if methodology is None:
            raise ScoringConfigurationError("Scoring methodology not available")
        return methodology


__all__ = ["ViolationDetector", "risk_level_for", "PROHIBITED_CLAIM_MULTIPLIER"]
