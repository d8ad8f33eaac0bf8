"""Configuration objects resolved from the environment."""

from .settings import AnalyzerSettings, ModelConfig, load_model_config, load_settings

__all__ = ["AnalyzerSettings", "ModelConfig", "load_model_config", "load_settings"]
