import json
from typing import Any, Dict, List, Optional

import pytest

from marketing_compliance.config.settings import ModelConfig
from marketing_compliance.guidelines.repository import GuidelineRepository
from marketing_compliance.services.insights import ModelInsightsAdapter
from marketing_compliance.services.models import LLMResponse
from marketing_compliance.services.pipeline import AnalysisPipeline


def _citation(section: str) -> Dict[str, Any]:
    return {
        "document": "RBI/2022-23/111",
        "title": "Guidelines on Digital Lending",
        "date": "2022-09-02",
        "section": section,
        "url": "https://www.rbi.org.in/Scripts/NotificationUser.aspx?Id=12382",
    }


def make_corpus(*, scoring: bool = True, weights: bool = True) -> Dict[str, Any]:
    corpus: Dict[str, Any] = {
        "metadata": {
            "source": "test corpus",
            "version": "1.0.0",
            "total_marketing_rules": 3,
        },
        "marketing_compliance_rules": {
            "digital_lending_marketing": [
                {
                    "rule_id": "DL-001",
                    "title": "No Guaranteed Approval Claims",
                    "description": "Lenders must not promise approval.",
                    "marketing_context": "digital lending loan app",
                    "violation_keywords": ["guaranteed"],
                    "required_marketing_elements": ["terms and conditions"],
                    "prohibited_marketing_claims": ["no documentation"],
                    "severity": "critical",
                    "citation": _citation("4.1"),
                },
                {
                    "rule_id": "DL-002",
                    "title": "APR Disclosure",
                    "description": "Interest advertisements must show APR.",
                    "marketing_context": "loan interest rate",
                    "violation_keywords": ["0% interest"],
                    "required_marketing_elements": ["apr"],
                    "severity": "high",
                    "citation": _citation("5.2"),
                },
            ],
            "payment_security_marketing": [
                {
                    "rule_id": "PS-001",
                    "title": "No Absolute Security Claims",
                    "description": "Payment products must not claim absolute safety.",
                    "marketing_context": "payment wallet upi",
                    "violation_keywords": ["100% safe"],
                    "prohibited_marketing_claims": ["risk-free"],
                    "severity": "medium",
                    "citation": {
                        "document": "RBI/2021-22/34",
                        "title": "Digital Payment Security Controls",
                        "date": "2021-02-18",
                        "section": "3",
                        "url": "https://www.rbi.org.in/Scripts/NotificationUser.aspx?Id=12032",
                    },
                }
            ],
        },
        "marketing_violation_patterns": {
            "high_risk_phrases": ["guaranteed"],
            "medium_risk_phrases": ["act now"],
            "required_disclaimers": ["terms and conditions apply"],
        },
    }
    if scoring:
        corpus["scoring_methodology"] = {
            "total_possible_score": 100,
            "critical_violations": -25,
            "high_violations": -15,
            "medium_violations": -10,
            "low_violations": -3,
            "missing_required_elements": -5,
        }
        if weights:
            corpus["scoring_methodology"]["category_weights"] = {
                "digital_lending_marketing": 60,
                "payment_security_marketing": 40,
            }
    return corpus


@pytest.fixture
def write_corpus(tmp_path):
    def _write(corpus: Optional[Dict[str, Any]] = None, name: str = "guidelines.json"):
        path = tmp_path / name
        path.write_text(json.dumps(corpus if corpus is not None else make_corpus()), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def corpus_path(write_corpus):
    return write_corpus()


@pytest.fixture
def repository(corpus_path):
    return GuidelineRepository(corpus_path)


ANALYSIS_REPLY = json.dumps(
    {
        "complianceScore": 35,
        "overallStatus": "non_compliant",
        "aiViolations": [
            {
                "text": "Guaranteed",
                "ruleCategory": "digital_lending_marketing",
                "severity": "critical",
                "explanation": "Implies approval regardless of assessment",
                "suggestedFix": "Subject to eligibility",
                "confidenceScore": 0.9,
            }
        ],
        "contextualInsights": ["Copy implies certainty of credit"],
        "marketingToneAssessment": {
            "tone": "aggressive",
            "appropriateness": "inappropriate",
            "suggestions": ["Use factual language"],
        },
    }
)

REWRITE_REPLY = json.dumps(
    {
        "improvedCopy": "Loans subject to eligibility. Minimal documentation. Terms and conditions apply.",
        "beforeAfterComparisons": [
            {"before": "Guaranteed", "after": "Subject to eligibility", "reason": "No guarantees", "rbiReference": "4.1"}
        ],
        "additionalSuggestions": ["Show APR"],
    }
)


class FakeLLMClient:
    """Stands in for LLMClient; replies are chosen by which prompt is being sent."""

    api_mode = "ollama"

    def __init__(
        self,
        analysis_reply: str = ANALYSIS_REPLY,
        rewrite_reply: str = REWRITE_REPLY,
        error: Optional[Exception] = None,
        configured: bool = True,
    ):
        self.analysis_reply = analysis_reply
        self.rewrite_reply = rewrite_reply
        self.error = error
        self.configured = configured
        self.prompts: List[str] = []

    def is_configured(self) -> bool:
        return self.configured

    def call(self, model: str, prompt: str, **kwargs: Any) -> LLMResponse:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        text = self.rewrite_reply if '"improvedCopy"' in prompt else self.analysis_reply
        return LLMResponse(
            text=text,
            model=model,
            prompt=prompt,
            temperature=kwargs.get("temperature", 0.2),
            num_ctx=kwargs.get("num_ctx", 8192),
            num_predict=kwargs.get("num_predict"),
        )


@pytest.fixture
def fake_client():
    return FakeLLMClient


@pytest.fixture
def build_pipeline(repository):
    def _build(client: Optional[FakeLLMClient] = None, repo: Optional[GuidelineRepository] = None, **kwargs):
        repo = repo or repository
        insights = ModelInsightsAdapter(
            ModelConfig(name="test-model"),
            client=client or FakeLLMClient(),
            high_risk_phrases=repo.high_risk_phrases(),
        )
        return AnalysisPipeline(repo, insights, **kwargs)

    return _build


@pytest.fixture
def corpus_data():
    return make_corpus
