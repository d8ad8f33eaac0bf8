"""
Ordered phrase heuristics used to rewrite flagged marketing language.

Each table is evaluated top to bottom; the first entry whose pattern matches
the flagged text wins. Tables end without a catch-all, callers append the
generic qualifier themselves.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from marketing_compliance.recommendations.types import RequiredAddition


@dataclass(frozen=True, slots=True)
class PhraseHeuristic:
    pattern: re.Pattern[str]
    replacement: str
    reason: str
    difficulty: str = "easy"
    impact: str = "minimal"

    def apply(self, text: str) -> Optional[str]:
        if not self.pattern.search(text):
            return None
        return self.pattern.sub(self.replacement, text)


def _rx(expression: str) -> re.Pattern[str]:
    return re.compile(expression, re.IGNORECASE)


KEYWORD_HEURISTICS: Tuple[PhraseHeuristic, ...] = (
    PhraseHeuristic(
        pattern=_rx(r"guaranteed?"),
        replacement="subject to eligibility",
        reason="RBI prohibits guarantee claims in financial services marketing",
        impact="moderate",
    ),
    PhraseHeuristic(
        pattern=_rx(r"instant approval"),
        replacement="quick processing subject to verification",
        reason="Cannot promise instant approval as due diligence is required",
        impact="moderate",
    ),
    PhraseHeuristic(
        pattern=_rx(r"risk-free|no risk"),
        replacement="regulated financial service",
        reason="All financial services carry inherent risks that must be disclosed",
        impact="significant",
    ),
    PhraseHeuristic(
        pattern=_rx(r"100% (?:safe|secure)"),
        replacement="secure with industry-standard protection",
        reason="Cannot make absolute security claims in digital financial services",
    ),
    PhraseHeuristic(
        pattern=_rx(r"lowest rate"),
        replacement="competitive rates starting from",
        reason="Cannot claim to have the lowest rates without substantiation",
        impact="moderate",
    ),
)

CLAIM_HEURISTICS: Tuple[PhraseHeuristic, ...] = (
    PhraseHeuristic(
        pattern=_rx(r"guaranteed approval"),
        replacement="streamlined approval process subject to eligibility",
        reason="RBI prohibits guaranteed approval claims as lending decisions must be based on proper assessment",
        difficulty="medium",
        impact="significant",
    ),
    PhraseHeuristic(
        pattern=_rx(r"no documentation"),
        replacement="minimal documentation required",
        reason="Due diligence and documentation are mandatory for financial services",
        impact="moderate",
    ),
)

KEYWORD_SUFFIX = " (subject to terms and conditions)"
CLAIM_SUFFIX = " *Subject to eligibility criteria and regulatory compliance"


def first_match(text: str, tables: Sequence[Sequence[PhraseHeuristic]]) -> Optional[Tuple[PhraseHeuristic, str]]:
    for table in tables:
        for heuristic in table:
            rewritten = heuristic.apply(text)
            if rewritten is not None:
                return heuristic, rewritten
    return None


# (fragments, addition) pairs; the first entry with a fragment inside the element wins.
ADDITION_TEMPLATES: Tuple[Tuple[Tuple[str, ...], RequiredAddition], ...] = (
    (
        ("apr", "annual percentage rate"),
        RequiredAddition(
            element="Annual Percentage Rate (APR)",
            suggested_text="Interest Rate: Starting from X% APR (subject to eligibility and credit assessment)",
            placement="prominent",
            requirement="Digital Lending Guidelines - Mandatory APR disclosure",
        ),
    ),
    (
        ("processing fee",),
        RequiredAddition(
            element="Processing Fee",
            suggested_text="Processing Fee: Up to X% of loan amount or ₹X, whichever is lower",
            placement="prominent",
            requirement="Fee transparency requirements",
        ),
    ),
    (
        ("terms and conditions",),
        RequiredAddition(
            element="Terms and Conditions",
            suggested_text="Terms & Conditions Apply. For detailed terms, visit [website link]",
            placement="end",
            requirement="Mandatory terms accessibility",
        ),
    ),
    (
        ("grievance", "complaint"),
        RequiredAddition(
            element="Grievance Redressal",
            suggested_text="For complaints/grievances, contact: [email] or [phone]. RBI Complaint Portal: cms.rbi.org.in",
            placement="footer",
            requirement="Customer Protection - Grievance redressal disclosure",
        ),
    ),
    (
        ("penalty", "late"),
        RequiredAddition(
            element="Penalty Charges",
            suggested_text="Late payment charges: X% per month on overdue amount",
            placement="prominent",
            requirement="Penalty disclosure requirements",
        ),
    ),
)


def addition_for(element: str) -> RequiredAddition:
    lowered = element.lower()
    for fragments, addition in ADDITION_TEMPLATES:
        if any(fragment in lowered for fragment in fragments):
            return addition
    return RequiredAddition(
        element=element,
        suggested_text=f"Please include: {element}",
        placement="end",
        requirement="RBI compliance requirement",
    )


# Whole-span replacements for the alternative copy versions, keyed by fragment.
CONSERVATIVE_REPLACEMENTS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("guaranteed",), "subject to eligibility"),
    (("instant",), "quick processing"),
    (("risk-free",), "regulated service"),
    (("100%",), "high-level"),
    (("best", "lowest"), "competitive"),
)
CONSERVATIVE_DEFAULT = "available service"

BALANCED_REPLACEMENTS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("guaranteed",), "streamlined process"),
    (("instant",), "fast processing"),
    (("risk-free",), "secure and regulated"),
    (("100%",), "highly"),
    (("best", "lowest"), "highly competitive"),
)
BALANCED_DEFAULT = "quality service"


def span_replacement(text: str, table: Sequence[Tuple[Tuple[str, ...], str]], default: str) -> str:
    lowered = text.lower()
    for fragments, replacement in table:
        if any(fragment in lowered for fragment in fragments):
            return replacement
    return default


SUPERLATIVE_RE = _rx(
    r"\b(?:best|lowest|cheapest|fastest|quickest|easiest|safest|greatest|highest|biggest|most)\b"
)
URGENCY_RE = _rx(r"limited time|act now")
EASY_MONEY_RE = _rx(r"\b(?:easy|quick|fast|instant) (?:money|cash)\b")

CATEGORY_CHECKLIST: Dict[str, str] = {
    "mandatory_marketing_disclosure": "✓ Ensure all mandatory disclosures are prominent and clear",
    "interest_rate_marketing": "✓ Show all-inclusive APR, not just base rates",
    "payment_security_marketing": "✓ Qualify security claims with appropriate disclaimers",
}

BASELINE_CHECKLIST: Tuple[str, ...] = (
    "✓ Remove all guarantee/assured/100% claims",
    '✓ Add "Terms and Conditions Apply" disclaimer',
    "✓ Include grievance redressal contact information",
    "✓ Display APR prominently for interest rate advertisements",
    "✓ Avoid high-pressure or urgency-based marketing language",
)

BEST_PRACTICE_CHECKLIST: Tuple[str, ...] = (
    "✓ Ensure customer can easily access detailed terms",
    "✓ Use clear, jargon-free language",
    "✓ Maintain professional, trustworthy tone",
    "✓ Include RBI complaint portal reference if applicable",
)


__all__ = [
    "PhraseHeuristic",
    "KEYWORD_HEURISTICS",
    "CLAIM_HEURISTICS",
    "KEYWORD_SUFFIX",
    "CLAIM_SUFFIX",
    "first_match",
    "addition_for",
    "span_replacement",
    "CONSERVATIVE_REPLACEMENTS",
    "BALANCED_REPLACEMENTS",
    "CONSERVATIVE_DEFAULT",
    "BALANCED_DEFAULT",
    "SUPERLATIVE_RE",
    "URGENCY_RE",
    "EASY_MONEY_RE",
    "CATEGORY_CHECKLIST",
    "BASELINE_CHECKLIST",
    "BEST_PRACTICE_CHECKLIST",
]
