"""
External model augmentation: contextual analysis and compliant rewrites.

Both calls degrade to fixed fallbacks; nothing raised by the HTTP client or
the parser reaches the pipeline.
"""

from __future__ import annotations

import json
import logging
import os
import textwrap
import time
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

from marketing_compliance.compliance.types import ComplianceLevel, ViolationMatch
from marketing_compliance.config.settings import ModelConfig
from marketing_compliance.guidelines.models import Rule, Severity
from marketing_compliance.recommendations.types import RewriteComparison
from marketing_compliance.services.models import LLMClient
from marketing_compliance.services.types import (
    APPROPRIATENESS_VALUES,
    ModelInsights,
    ModelViolation,
    RewriteSuggestion,
    ToneAssessment,
)
from marketing_compliance.utils.json_extract import parse_json_object, safe_float

logger = logging.getLogger("marketing_compliance.insights")

FALLBACK_INSIGHTS = (
    "AI analysis unavailable - manual review required",
    "Consider consulting RBI guidelines directly",
    "Recommend legal compliance review",
)


def fallback_insights(elapsed_ms: int = 0) -> ModelInsights:
    """Conservative result used whenever the model call or parse fails."""
    return ModelInsights(
        score=50.0,
        status=ComplianceLevel.NEEDS_REVIEW,
        violations=(),
        insights=FALLBACK_INSIGHTS,
        tone=ToneAssessment(
            tone="unknown",
            appropriateness="concerning",
            suggestions=("Manual tone assessment needed",),
        ),
        elapsed_ms=elapsed_ms,
        fallback_used=True,
    )


def fallback_rewrite(text: str) -> RewriteSuggestion:
    return RewriteSuggestion(
        improved_copy=text,
        additional_suggestions=("AI recommendation generation failed - manual review required",),
        succeeded=False,
    )


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if str(item).strip()]


def parse_insights(payload: Dict[str, Any]) -> ModelInsights:
    """Validate each field independently, clamping or defaulting as needed."""
    score = safe_float(payload.get("complianceScore"))
    violations: List[ModelViolation] = []
    raw_violations = payload.get("aiViolations")
    for item in raw_violations if isinstance(raw_violations, list) else []:
        if not isinstance(item, dict):
            continue
        confidence = safe_float(item.get("confidenceScore"))
        violations.append(
            ModelViolation(
                text=str(item.get("text") or ""),
                category=str(item.get("ruleCategory") or "unknown"),
                severity=Severity.coerce(item.get("severity")),
                explanation=str(item.get("explanation") or ""),
                suggested_fix=str(item.get("suggestedFix") or ""),
                confidence=_clamp(confidence if confidence is not None else 0.5, 0.0, 1.0),
            )
        )

    tone_raw = payload.get("marketingToneAssessment")
    tone_raw = tone_raw if isinstance(tone_raw, dict) else {}
    appropriateness = str(tone_raw.get("appropriateness") or "").strip().lower()
    if appropriateness not in APPROPRIATENESS_VALUES:
        appropriateness = "concerning"

    return ModelInsights(
        score=_clamp(score if score is not None else 50.0, 0.0, 100.0),
        status=ComplianceLevel.coerce(payload.get("overallStatus")),
        violations=tuple(violations),
        insights=tuple(_string_list(payload.get("contextualInsights"))),
        tone=ToneAssessment(
            tone=str(tone_raw.get("tone") or "neutral"),
            appropriateness=appropriateness,
            suggestions=tuple(_string_list(tone_raw.get("suggestions"))),
        ),
    )


def parse_rewrite(payload: Dict[str, Any], original: str) -> RewriteSuggestion:
    comparisons: List[RewriteComparison] = []
    raw_comparisons = payload.get("beforeAfterComparisons")
    for item in raw_comparisons if isinstance(raw_comparisons, list) else []:
        if not isinstance(item, dict):
            continue
        before, after = str(item.get("before") or ""), str(item.get("after") or "")
        if not before and not after:
            continue
        comparisons.append(
            RewriteComparison(
                before=before,
                after=after,
                reason=str(item.get("reason") or ""),
                reference=str(item.get("rbiReference") or ""),
            )
        )
    improved = str(payload.get("improvedCopy") or "").strip()
    return RewriteSuggestion(
        improved_copy=improved or original,
        comparisons=tuple(comparisons),
        additional_suggestions=tuple(_string_list(payload.get("additionalSuggestions"))),
        succeeded=bool(improved),
    )


class ModelInsightsAdapter:
    """Sends findings to the configured model and parses its JSON replies."""

    def __init__(
        self,
        model: ModelConfig,
        *,
        client: Optional[LLMClient] = None,
        high_risk_phrases: Sequence[str] = (),
    ):
        self.model = model
        self.client = client or LLMClient(
            endpoint=model.endpoint,
            auth_token=os.getenv(model.auth_env_var) if model.auth_env_var else None,
            api_mode=model.api_mode,
        )
        self.high_risk_phrases = tuple(high_risk_phrases)

    def is_ready(self) -> bool:
        return self.client.is_configured()

    def analyze(self, text: str, rules: Sequence[Rule], violations: Sequence[ViolationMatch]) -> ModelInsights:
        started = time.perf_counter()
        try:
            reply = self._complete(self.analysis_prompt(text, rules, violations))
            payload = parse_json_object(reply)
            if payload is None:
                raise ValueError("No JSON object found in model response")
            insights = parse_insights(payload)
        except Exception as exc:
            elapsed = int((time.perf_counter() - started) * 1000)
            logger.error("Model analysis failed, using fallback: %s", exc)
            return fallback_insights(elapsed)

        elapsed = int((time.perf_counter() - started) * 1000)
        logger.info(
            "Model analysis completed: score=%.0f status=%s violations=%d elapsed_ms=%d",
            insights.score,
            insights.status.value,
            len(insights.violations),
            elapsed,
        )
        return replace(insights, elapsed_ms=elapsed)

    def rewrite(
        self, text: str, violations: Sequence[ViolationMatch], missing_elements: Sequence[str]
    ) -> RewriteSuggestion:
        try:
            reply = self._complete(self.rewrite_prompt(text, violations, missing_elements))
            payload = parse_json_object(reply)
            if payload is None:
                raise ValueError("No JSON object found in rewrite response")
            suggestion = parse_rewrite(payload, text)
        except Exception as exc:
            logger.error("Model rewrite failed, keeping original copy: %s", exc)
            return fallback_rewrite(text)
        if not suggestion.succeeded:
            logger.warning("Model rewrite returned no improved copy")
        return suggestion

    def _complete(self, prompt: str) -> str:
        response = self.client.call(
            self.model.name,
            prompt,
            temperature=self.model.temperature,
            num_ctx=self.model.num_ctx,
            num_predict=self.model.num_predict,
            timeout=self.model.timeout,
        )
        return response.text

    # ------------------------------------------------------------------ prompts

    def analysis_prompt(self, text: str, rules: Sequence[Rule], violations: Sequence[ViolationMatch]) -> str:
        rule_context = [
            {
                "id": rule.rule_id,
                "category": rule.category,
                "title": rule.title,
                "description": rule.description,
                "violations": list(rule.violation_keywords),
                "required": list(rule.required_elements),
                "prohibited": list(rule.prohibited_claims),
            }
            for rule in rules
        ]
        detected = [
            {"rule": v.rule.rule_id, "text": v.text, "type": v.kind.value, "severity": v.severity.value}
            for v in violations
        ]
        phrases = ", ".join(self.high_risk_phrases) or "none listed"
        prompt = textwrap.dedent(
            """
            You are an expert RBI (Reserve Bank of India) compliance analyst specialising in FinTech marketing.
            Analyse the marketing content below for compliance with RBI guidelines.

            MARKETING CONTENT:
            \"\"\"
            {text}
            \"\"\"

            APPLICABLE RBI RULES:
            {rules}

            RULE-BASED VIOLATIONS ALREADY DETECTED:
            {detected}

            KNOWN HIGH-RISK PHRASES: {phrases}

            Look beyond keyword matching: judge tone, implicit claims and how a customer could be misled.

            Respond with a single JSON object:
            {{
              "complianceScore": <number 0-100>,
              "overallStatus": "<compliant|needs_review|non_compliant>",
              "aiViolations": [
                {{"text": "...", "ruleCategory": "...", "severity": "<critical|high|medium|low>",
                  "explanation": "...", "suggestedFix": "...", "confidenceScore": <0-1>}}
              ],
              "contextualInsights": ["..."],
              "marketingToneAssessment": {{
                "tone": "...",
                "appropriateness": "<appropriate|concerning|inappropriate>",
                "suggestions": ["..."]
              }}
            }}
            """
        ).strip()
        return prompt.format(
            text=text,
            rules=json.dumps(rule_context, indent=2, ensure_ascii=False),
            detected=json.dumps(detected, indent=2, ensure_ascii=False),
            phrases=phrases,
        )

    def rewrite_prompt(
        self, text: str, violations: Sequence[ViolationMatch], missing_elements: Sequence[str]
    ) -> str:
        details = [
            {
                "text": v.text,
                "rule": v.rule.title,
                "reason": v.rule.description,
                "citation": v.rule.citation.format(),
            }
            for v in violations
        ]
        prompt = textwrap.dedent(
            """
            You are a copywriter specialising in RBI-compliant FinTech marketing.
            Rewrite the content below so it is fully compliant while keeping its marketing appeal.

            ORIGINAL CONTENT:
            \"\"\"
            {text}
            \"\"\"

            VIOLATIONS TO FIX:
            {violations}

            MISSING REQUIRED ELEMENTS:
            {missing}

            Respond with a single JSON object:
            {{
              "improvedCopy": "<complete rewritten content>",
              "beforeAfterComparisons": [
                {{"before": "...", "after": "...", "reason": "...", "rbiReference": "..."}}
              ],
              "additionalSuggestions": ["..."]
            }}
            """
        ).strip()
        return prompt.format(
            text=text,
            violations=json.dumps(details, indent=2, ensure_ascii=False),
            missing=json.dumps(list(missing_elements), ensure_ascii=False),
        )


__all__ = [
    "ModelInsightsAdapter",
    "fallback_insights",
    "fallback_rewrite",
    "parse_insights",
    "parse_rewrite",
]
