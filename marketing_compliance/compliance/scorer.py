"""
Compliance scorer: turns detector findings into a scored, cited report.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Tuple

from marketing_compliance.compliance.types import (
    CategoryScore,
    CitationEntry,
    ComplianceAnalysis,
    ComplianceReport,
    ComplianceSummary,
    Deductions,
    RiskIndicators,
    RiskLevel,
    ScoreBreakdown,
    ViolationKind,
    ViolationMatch,
    clamp_score,
    color_for,
    compliance_level_for,
)
from marketing_compliance.errors import ScoringConfigurationError
from marketing_compliance.guidelines.models import ScoringMethodology, Severity
from marketing_compliance.guidelines.repository import GuidelineRepository

logger = logging.getLogger("marketing_compliance.scorer")

PROHIBITED_SURCHARGE = 0.5

CATEGORY_RECOMMENDATIONS: Dict[str, str] = {
    "mandatory_marketing_disclosure": (
        "URGENT: Add mandatory disclosures including APR, fees, and terms clearly in your marketing materials"
    ),
    "interest_rate_marketing": "Display complete APR instead of teaser rates in all interest rate advertisements",
    "payment_security_marketing": (
        "Remove absolute security claims and add appropriate disclaimers about digital payment risks"
    ),
    "aggregator_authorization_marketing": (
        "Verify and correctly display your RBI authorization status - avoid false approval claims"
    ),
    "microfinance_marketing": (
        "Emphasize responsible lending and add over-borrowing warnings to microfinance marketing"
    ),
}

CRITICAL_URGENCY = (
    "IMMEDIATE ACTION REQUIRED: Critical RBI violations detected that could result in penalties up to ₹1 crore"
)
HIGH_URGENCY = "HIGH PRIORITY: Multiple serious violations require immediate attention before publishing"
MEDIUM_URGENCY = "Review and address moderate-risk violations to improve compliance"


def _count(violations: Sequence[ViolationMatch], severity: Severity) -> int:
    return sum(1 for v in violations if v.severity == severity)


def urgency_tier(violations: Sequence[ViolationMatch]) -> RiskLevel:
    """Risk tier used to choose the urgency line of the recommendations."""
    if _count(violations, Severity.CRITICAL) > 0:
        return RiskLevel.CRITICAL
    high = _count(violations, Severity.HIGH)
    if high > 2:
        return RiskLevel.HIGH
    if high > 0 or len(violations) > 3:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class ComplianceScorer:
    """Builds ScoreBreakdown, citations, recommendations and a summary."""

    def __init__(self, repository: GuidelineRepository):
        self.repository = repository

    def generate_report(self, analysis: ComplianceAnalysis) -> ComplianceReport:
        methodology = self.repository.scoring_methodology()
        if methodology is None:
            raise ScoringConfigurationError("Scoring methodology not available")

        violations = list(analysis.violations)
        missing = list(analysis.missing_elements)
        breakdown = self.score_breakdown(violations, missing, methodology)
        citations = self.citations(violations)
        report = ComplianceReport(
            score_breakdown=breakdown,
            violations=tuple(violations),
            missing_elements=tuple(missing),
            recommendations=tuple(self.recommendations(violations, missing)),
            citations=tuple(citations),
            summary=self.summary(violations, missing, breakdown.total_score),
            missing_disclaimers=analysis.missing_disclaimers,
        )
        logger.info(
            "Compliance report generated: score=%d level=%s citations=%d",
            breakdown.total_score,
            breakdown.compliance_level.value,
            len(citations),
        )
        return report

    # ------------------------------------------------------------------ scoring

    def score_breakdown(
        self,
        violations: Sequence[ViolationMatch],
        missing_elements: Sequence[str],
        methodology: ScoringMethodology,
    ) -> ScoreBreakdown:
        buckets = {severity: 0.0 for severity in Severity}
        prohibited = 0.0
        total = methodology.base_score

        for violation in violations:
            deduction = abs(violation.scoring_impact)
            buckets[violation.severity] += deduction
            if violation.kind == ViolationKind.PROHIBITED_CLAIM:
                prohibited += deduction * PROHIBITED_SURCHARGE
            total += violation.scoring_impact

        missing_total = len(missing_elements) * abs(methodology.missing_element_penalty)
        total -= missing_total
        score = clamp_score(total)

        return ScoreBreakdown(
            total_score=score,
            base_score=methodology.base_score,
            deductions=Deductions(
                critical=buckets[Severity.CRITICAL],
                high=buckets[Severity.HIGH],
                medium=buckets[Severity.MEDIUM],
                low=buckets[Severity.LOW],
                missing_elements=missing_total,
                prohibited_claims=prohibited,
            ),
            category_scores=tuple(self.category_scores(violations, methodology)),
            compliance_level=compliance_level_for(score),
            color_code=color_for(score),
            risk_indicators=self.risk_indicators(violations, missing_elements),
        )

    def category_weights(self, methodology: ScoringMethodology) -> List[Tuple[str, float]]:
        if methodology.category_weights:
            return list(methodology.category_weights)
        categories = self.repository.categories()
        if not categories:
            return []
        share = 100 / len(categories)
        return [(category, share) for category in categories]

    def category_scores(
        self, violations: Sequence[ViolationMatch], methodology: ScoringMethodology
    ) -> List[CategoryScore]:
        grouped: Dict[str, List[ViolationMatch]] = {}
        for violation in violations:
            grouped.setdefault(violation.rule.category, []).append(violation)

        scores: List[CategoryScore] = []
        for category, weight in self.category_weights(methodology):
            hits = grouped.get(category, [])
            raw = weight + sum(v.scoring_impact * (weight / 100) for v in hits)
            scores.append(
                CategoryScore(
                    category=category,
                    score=clamp_score(raw, upper=weight),
                    max_score=weight,
                    violations=len(hits),
                )
            )
        return scores

    def risk_indicators(
        self, violations: Sequence[ViolationMatch], missing_elements: Sequence[str]
    ) -> RiskIndicators:
        critical = _count(violations, Severity.CRITICAL)
        high = _count(violations, Severity.HIGH)

        if critical > 0:
            return RiskIndicators(
                level=RiskLevel.CRITICAL,
                factors=(f"{critical} critical RBI violations",),
                immediate_actions=(
                    "Stop marketing campaign immediately",
                    "Legal review required",
                    "Remediate critical violations before proceeding",
                ),
            )
        if high > 2 or len(missing_elements) > 5:
            factors = [f"{high} high-priority violations"]
            if len(missing_elements) > 5:
                factors.append(f"{len(missing_elements)} missing disclosures")
            return RiskIndicators(
                level=RiskLevel.HIGH,
                factors=tuple(factors),
                immediate_actions=("Review before publication", "Address high-priority issues"),
            )
        if high > 0 or len(violations) > 3:
            return RiskIndicators(
                level=RiskLevel.MEDIUM,
                factors=("Multiple compliance issues detected",),
                immediate_actions=("Review and improve before publication",),
            )
        return RiskIndicators(level=RiskLevel.LOW)

    # ---------------------------------------------------------------- narrative

    def citations(self, violations: Sequence[ViolationMatch]) -> List[CitationEntry]:
        by_rule: Dict[str, List[ViolationMatch]] = {}
        for violation in violations:
            by_rule.setdefault(violation.rule.rule_id, []).append(violation)

        entries: List[CitationEntry] = []
        for rule_id, matches in by_rule.items():
            rule = matches[0].rule
            entries.append(
                CitationEntry(
                    rule_id=rule_id,
                    citation=rule.citation.format(),
                    violations=", ".join(f'"{m.text}"' for m in matches),
                    url=rule.citation.url,
                )
            )
        return entries

    def recommendations(self, violations: Sequence[ViolationMatch], missing_elements: Sequence[str]) -> List[str]:
        lines: List[str] = []
        for violation in violations:
            message = CATEGORY_RECOMMENDATIONS.get(violation.rule.category)
            if message:
                lines.append(message)

        if missing_elements:
            head = ", ".join(missing_elements[:3])
            suffix = "..." if len(missing_elements) > 3 else ""
            lines.append(f"Add missing required elements: {head}{suffix}")

        tier = urgency_tier(violations)
        if tier == RiskLevel.CRITICAL:
            lines.insert(0, CRITICAL_URGENCY)
        elif tier == RiskLevel.HIGH:
            lines.insert(0, HIGH_URGENCY)
        elif tier == RiskLevel.MEDIUM:
            lines.append(MEDIUM_URGENCY)

        return list(dict.fromkeys(lines))

    def summary(
        self, violations: Sequence[ViolationMatch], missing_elements: Sequence[str], score: int
    ) -> ComplianceSummary:
        findings = [f"Overall compliance score: {score}/100"]
        critical = _count(violations, Severity.CRITICAL)
        high = _count(violations, Severity.HIGH)
        if critical:
            findings.append(f"{critical} critical RBI violations detected")
        if high:
            findings.append(f"{high} high-priority violations found")
        if missing_elements:
            findings.append(f"{len(missing_elements)} required disclosures missing")

        if score < 50:
            assessment = "CRITICAL: High penalty risk - immediate remediation required"
        elif score < 80:
            assessment = "MODERATE: Review needed before publication"
        else:
            assessment = "Low compliance risk"

        if score < 80:
            next_steps: Tuple[str, ...] = (
                "Address all critical and high-priority violations",
                "Add missing required disclosures",
                "Review marketing claims for RBI compliance",
                "Consider legal review before publication",
            )
        else:
            next_steps = ("Minor improvements recommended", "Regular compliance monitoring advised")

        return ComplianceSummary(key_findings=tuple(findings), risk_assessment=assessment, next_steps=next_steps)


__all__ = ["ComplianceScorer", "CATEGORY_RECOMMENDATIONS", "urgency_tier"]
