"""
Recommendation generator: turns findings and model output into concrete fixes.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional, Sequence

from marketing_compliance.compliance.types import ViolationKind, ViolationMatch
from marketing_compliance.guidelines.models import Severity
from marketing_compliance.recommendations import heuristics as h
from marketing_compliance.recommendations.types import (
    AlternativeCopy,
    CitationReference,
    MarketingFix,
    Recommendations,
    RequiredAddition,
    ToneAdjustment,
)

if TYPE_CHECKING:
    from marketing_compliance.services.types import ModelInsights, RewriteSuggestion

logger = logging.getLogger("marketing_compliance.recommendations")

APPROACH_CRITICAL = (
    "IMMEDIATE ACTION REQUIRED: Critical RBI violations detected. Recommend complete content review and legal "
    "consultation before publication. Focus on transparency, proper disclosures, and removal of prohibited claims."
)
APPROACH_SIGNIFICANT = (
    "SIGNIFICANT REVISION NEEDED: Multiple high-priority violations require systematic content review. Recommend "
    "adopting a more conservative, disclosure-focused approach while maintaining marketing effectiveness through "
    "value proposition rather than claims."
)
APPROACH_MODERATE = (
    "MODERATE IMPROVEMENTS NEEDED: Address identified violations while maintaining marketing appeal. Focus on "
    "balanced messaging that combines marketing effectiveness with regulatory compliance through proper "
    "disclaimers and transparent communication."
)
APPROACH_MINOR = (
    "MINOR ENHANCEMENTS: Content is largely compliant. Consider adding proactive disclosures and refining language "
    "to meet best practices for RBI-compliant marketing communications."
)


def fallback_recommendations() -> Recommendations:
    """Fixed object returned when generation itself fails."""
    return Recommendations(
        overall_approach="Manual review required - automated recommendation generation failed",
        additions=(
            RequiredAddition(
                element="Terms and Conditions",
                suggested_text="Terms & Conditions Apply",
                placement="end",
                requirement="General compliance requirement",
            ),
        ),
        tone_adjustments=(
            ToneAdjustment(
                issue="Automated analysis unavailable",
                suggestion="Manual tone review recommended",
                example="Consult RBI guidelines directly",
            ),
        ),
        checklist=(
            "✓ Manual compliance review required",
            "✓ Consult RBI guidelines",
            "✓ Consider legal review",
        ),
        fallback_used=True,
    )


class RecommendationGenerator:
    """Builds fixes, additions, tone guidance, alternative copy and a checklist."""

    def generate(
        self,
        text: str,
        violations: Sequence[ViolationMatch],
        missing_elements: Sequence[str],
        insights: Optional["ModelInsights"] = None,
        rewrite: Optional["RewriteSuggestion"] = None,
    ) -> Recommendations:
        rewritten = rewrite is not None and rewrite.succeeded
        try:
            recommendations = Recommendations(
                overall_approach=self.overall_approach(violations),
                fixes=tuple(self.fixes(violations)),
                additions=tuple(h.addition_for(element) for element in missing_elements),
                tone_adjustments=tuple(self.tone_adjustments(text, insights)),
                alternatives=tuple(self.alternatives(text, violations, rewrite)),
                checklist=tuple(self.checklist(violations, missing_elements)),
                comparisons=tuple(rewrite.comparisons) if rewritten else (),
                additional_suggestions=tuple(rewrite.additional_suggestions) if rewritten else (),
            )
        except Exception as exc:
            logger.error("Recommendation generation failed: %s", exc)
            return fallback_recommendations()

        logger.info(
            "Recommendations generated: fixes=%d additions=%d alternatives=%d",
            len(recommendations.fixes),
            len(recommendations.additions),
            len(recommendations.alternatives),
        )
        return recommendations

    # -------------------------------------------------------------------- fixes

    def fixes(self, violations: Sequence[ViolationMatch]) -> List[MarketingFix]:
        fixes = [self.fix_for(violation) for violation in violations]
        return sorted(fixes, key=lambda fix: -fix.priority.rank)

    def fix_for(self, violation: ViolationMatch) -> MarketingFix:
        rule = violation.rule
        original = violation.text

        if violation.kind == ViolationKind.MISSING_REQUIRED_ELEMENT:
            suggested = f"{original}\n\n[Missing required disclosure: Please add {', '.join(rule.required_elements)}]"
            reason = f"Required disclosure missing according to {rule.title}"
            difficulty, impact = "medium", "minimal"
        else:
            if violation.kind == ViolationKind.PROHIBITED_CLAIM:
                tables = (h.CLAIM_HEURISTICS, h.KEYWORD_HEURISTICS)
            else:
                tables = (h.KEYWORD_HEURISTICS,)
            matched = h.first_match(original, tables)
            if matched is not None:
                heuristic, suggested = matched
                reason, difficulty, impact = heuristic.reason, heuristic.difficulty, heuristic.impact
            elif violation.kind == ViolationKind.PROHIBITED_CLAIM:
                suggested = original + h.CLAIM_SUFFIX
                reason = f"Claim requires qualification according to {rule.title}"
                difficulty, impact = "easy", "minimal"
            else:
                suggested = original + h.KEYWORD_SUFFIX
                reason = f"Contains prohibited language according to {rule.title}"
                difficulty, impact = "easy", "minimal"

        return MarketingFix(
            original=original,
            suggested=suggested,
            reason=reason,
            reference=CitationReference(
                document=rule.citation.document,
                section=rule.citation.section,
                url=rule.citation.url,
            ),
            priority=violation.severity,
            difficulty=difficulty,
            impact=impact,
        )

    # --------------------------------------------------------------------- tone

    def tone_adjustments(self, text: str, insights: Optional["ModelInsights"] = None) -> List[ToneAdjustment]:
        adjustments: List[ToneAdjustment] = []
        if "!" in text or h.SUPERLATIVE_RE.search(text):
            adjustments.append(
                ToneAdjustment(
                    issue="Overly aggressive or superlative language",
                    suggestion="Use balanced, informative tone appropriate for financial services",
                    example='Instead of "Best loan ever!" use "Competitive loan options available"',
                )
            )
        if h.URGENCY_RE.search(text):
            adjustments.append(
                ToneAdjustment(
                    issue="High-pressure urgency tactics",
                    suggestion="Replace urgency with information and transparency",
                    example='Instead of "Limited time offer!" use "Current rates and terms available"',
                )
            )
        if insights is not None and insights.tone.appropriateness != "appropriate":
            adjustments.append(
                ToneAdjustment(
                    issue="Marketing tone concerns identified by AI analysis",
                    suggestion="; ".join(insights.tone.suggestions),
                    example="See AI-generated specific recommendations",
                )
            )
        if h.EASY_MONEY_RE.search(text):
            adjustments.append(
                ToneAdjustment(
                    issue="Language suggesting easy money or quick cash",
                    suggestion="Emphasize responsible lending and proper financial planning",
                    example='Focus on "financial solutions" rather than "quick cash"',
                )
            )
        return adjustments

    # ------------------------------------------------------------- alternatives

    def alternatives(
        self,
        text: str,
        violations: Sequence[ViolationMatch],
        rewrite: Optional["RewriteSuggestion"] = None,
    ) -> List[AlternativeCopy]:
        conservative = text
        balanced = text
        for violation in violations:
            conservative = conservative.replace(
                violation.text,
                h.span_replacement(violation.text, h.CONSERVATIVE_REPLACEMENTS, h.CONSERVATIVE_DEFAULT),
                1,
            )
            balanced = balanced.replace(
                violation.text,
                h.span_replacement(violation.text, h.BALANCED_REPLACEMENTS, h.BALANCED_DEFAULT),
                1,
            )

        versions = [
            AlternativeCopy(
                version="Conservative Compliant",
                text=conservative + "\n\n*Terms and conditions apply. Subject to eligibility criteria.",
                marketing_strength="low",
                risk_level="low",
            ),
            AlternativeCopy(
                version="Balanced Marketing",
                text=balanced + "\n\nSubject to eligibility. T&C apply.",
                marketing_strength="medium",
                risk_level="low",
            ),
        ]
        if rewrite is not None and rewrite.succeeded and rewrite.improved_copy and rewrite.improved_copy != text:
            versions.append(
                AlternativeCopy(
                    version="AI-Enhanced Compliant",
                    text=rewrite.improved_copy,
                    marketing_strength="high",
                    risk_level="low",
                )
            )
        return versions

    # ---------------------------------------------------------------- checklist

    def checklist(self, violations: Sequence[ViolationMatch], missing_elements: Sequence[str]) -> List[str]:
        items = list(h.BASELINE_CHECKLIST)
        violated = {violation.rule.category for violation in violations}
        for category, item in h.CATEGORY_CHECKLIST.items():
            if category in violated:
                items.append(item)
        if missing_elements:
            items.append(f"✓ Add missing required elements: {', '.join(missing_elements[:3])}")
        items.extend(h.BEST_PRACTICE_CHECKLIST)
        return items

    @staticmethod
    def overall_approach(violations: Sequence[ViolationMatch]) -> str:
        if any(v.severity == Severity.CRITICAL for v in violations):
            return APPROACH_CRITICAL
        if sum(1 for v in violations if v.severity == Severity.HIGH) > 2:
            return APPROACH_SIGNIFICANT
        if violations:
            return APPROACH_MODERATE
        return APPROACH_MINOR


__all__ = ["RecommendationGenerator", "fallback_recommendations"]
