"""
Runtime configuration for the compliance analyzer.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

DEFAULT_GUIDELINES_PATH = Path(__file__).resolve().parent.parent / "guidelines" / "data" / "marketing_guidelines.json"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        print(f"[config] Warning: invalid integer for {name!r}: {raw!r}. Using {default}.")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        print(f"[config] Warning: invalid number for {name!r}: {raw!r}. Using {default}.")
        return default


@dataclass(slots=True)
class ModelConfig:
    """External text-analysis model entry."""

    name: str
    api_mode: Optional[str] = None
    endpoint: Optional[str] = None
    auth_env_var: Optional[str] = None
    temperature: float = 0.2
    num_ctx: int = 8192
    num_predict: Optional[int] = None
    timeout: int = 60


@dataclass(slots=True)
class AnalyzerSettings:
    """Pipeline-level settings (rule source, cache lifetimes, batch sizing)."""

    guidelines_path: Path = DEFAULT_GUIDELINES_PATH
    rules_cache_ttl: int = 3600
    analysis_cache_ttl: int = 1800
    batch_workers: int = 1
    results_log_path: Optional[Path] = None
    model: ModelConfig = field(default_factory=lambda: ModelConfig(name="gemma3-4B-128k:latest"))


def load_model_config() -> ModelConfig:
    """Resolve the model entry from `MCA_MODEL_*` environment variables."""
    return ModelConfig(
        name=os.getenv("MCA_MODEL_NAME", "gemma3-4B-128k:latest"),
        api_mode=os.getenv("MCA_MODEL_API_MODE"),
        endpoint=os.getenv("MCA_MODEL_ENDPOINT"),
        auth_env_var=os.getenv("MCA_MODEL_AUTH_ENV_VAR"),
        temperature=_env_float("MCA_MODEL_TEMPERATURE", 0.2),
        num_ctx=_env_int("MCA_MODEL_NUM_CTX", 8192),
        timeout=_env_int("MCA_MODEL_TIMEOUT", 60),
    )


def load_settings() -> AnalyzerSettings:
    """Build settings from the environment, falling back to packaged defaults."""
    guidelines_env = os.getenv("MCA_GUIDELINES_PATH")
    results_env = os.getenv("MCA_RESULTS_LOG")
    return AnalyzerSettings(
        guidelines_path=Path(guidelines_env) if guidelines_env else DEFAULT_GUIDELINES_PATH,
        rules_cache_ttl=_env_int("MCA_RULES_CACHE_TTL", 3600),
        analysis_cache_ttl=_env_int("MCA_ANALYSIS_CACHE_TTL", 1800),
        batch_workers=max(1, _env_int("MCA_BATCH_WORKERS", 1)),
        results_log_path=Path(results_env) if results_env else None,
        model=load_model_config(),
    )


__all__ = ["ModelConfig", "AnalyzerSettings", "load_settings", "load_model_config", "DEFAULT_GUIDELINES_PATH"]
