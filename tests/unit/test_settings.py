from pathlib import Path

from marketing_compliance.config.settings import DEFAULT_GUIDELINES_PATH, load_settings

ENV_VARS = (
    "MCA_GUIDELINES_PATH",
    "MCA_RESULTS_LOG",
    "MCA_RULES_CACHE_TTL",
    "MCA_ANALYSIS_CACHE_TTL",
    "MCA_BATCH_WORKERS",
    "MCA_MODEL_NAME",
    "MCA_MODEL_API_MODE",
    "MCA_MODEL_TIMEOUT",
    "MCA_MODEL_TEMPERATURE",
)


def _clear(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    _clear(monkeypatch)
    settings = load_settings()
    assert settings.guidelines_path == DEFAULT_GUIDELINES_PATH
    assert DEFAULT_GUIDELINES_PATH.exists()
    assert settings.rules_cache_ttl == 3600
    assert settings.analysis_cache_ttl == 1800
    assert settings.batch_workers == 1
    assert settings.results_log_path is None
    assert settings.model.timeout == 60
    assert settings.model.api_mode is None


def test_environment_overrides(monkeypatch, tmp_path):
    _clear(monkeypatch)
    monkeypatch.setenv("MCA_GUIDELINES_PATH", str(tmp_path / "custom.json"))
    monkeypatch.setenv("MCA_RESULTS_LOG", str(tmp_path / "results.jsonl"))
    monkeypatch.setenv("MCA_ANALYSIS_CACHE_TTL", "60")
    monkeypatch.setenv("MCA_BATCH_WORKERS", "4")
    monkeypatch.setenv("MCA_MODEL_NAME", "gemini-2.0-flash")
    monkeypatch.setenv("MCA_MODEL_API_MODE", "gemini")
    monkeypatch.setenv("MCA_MODEL_TIMEOUT", "15")
    monkeypatch.setenv("MCA_MODEL_TEMPERATURE", "0.5")

    settings = load_settings()
    assert settings.guidelines_path == Path(tmp_path / "custom.json")
    assert settings.results_log_path == Path(tmp_path / "results.jsonl")
    assert settings.analysis_cache_ttl == 60
    assert settings.batch_workers == 4
    assert settings.model.name == "gemini-2.0-flash"
    assert settings.model.api_mode == "gemini"
    assert settings.model.timeout == 15
    assert settings.model.temperature == 0.5


def test_invalid_numbers_fall_back(monkeypatch, capsys):
    _clear(monkeypatch)
    monkeypatch.setenv("MCA_RULES_CACHE_TTL", "soon")
    monkeypatch.setenv("MCA_BATCH_WORKERS", "0")
    settings = load_settings()
    assert settings.rules_cache_ttl == 3600
    assert settings.batch_workers == 1
    assert "invalid integer" in capsys.readouterr().out
