"""
Service layer: model client, model augmentation and the analysis pipeline.

Classes are exposed through lazy imports so that importing
`marketing_compliance.services.types` from lower layers does not pull in the
pipeline (and its HTTP client) during test collection.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict

__all__ = [
    "AnalysisPipeline",
    "AnalysisResult",
    "BatchItem",
    "BatchItemResult",
    "LLMClient",
    "LLMResponse",
    "ModelInsights",
    "ModelInsightsAdapter",
    "QuickCheckResult",
    "RewriteSuggestion",
    "SetupStatus",
]

_MODULE_ATTRS: Dict[str, str] = {
    "AnalysisPipeline": "marketing_compliance.services.pipeline",
    "AnalysisResult": "marketing_compliance.services.types",
    "BatchItem": "marketing_compliance.services.types",
    "BatchItemResult": "marketing_compliance.services.types",
    "LLMClient": "marketing_compliance.services.models",
    "LLMResponse": "marketing_compliance.services.models",
    "ModelInsights": "marketing_compliance.services.types",
    "ModelInsightsAdapter": "marketing_compliance.services.insights",
    "QuickCheckResult": "marketing_compliance.services.types",
    "RewriteSuggestion": "marketing_compliance.services.types",
    "SetupStatus": "marketing_compliance.services.types",
}


def __getattr__(name: str) -> Any:
    module_path = _MODULE_ATTRS.get(name)
    if not module_path:
        raise AttributeError(f"module 'marketing_compliance.services' has no attribute '{name}'")  # pragma: no cover
    module = import_module(module_path)
    return getattr(module, name)


def __dir__() -> list[str]:  # pragma: no cover - convenience helper
    return sorted(__all__)
