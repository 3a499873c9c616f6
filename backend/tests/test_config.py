"""
Settings tests
"""

from pathlib import Path

from photo_repair.config import RepairSettings


def test_defaults(monkeypatch):
    for name in ("OPENROUTER_API_KEY", "ANALYSIS_MODE", "OPENROUTER_MODEL", "MAX_UPLOAD_MB",
                 "CORS_ORIGINS", "APP_ENV", "UPLOAD_DIR", "PROCESSED_DIR"):
        monkeypatch.delenv(name, raising=False)

    settings = RepairSettings.from_env()

    assert settings.api_key is None
    assert settings.analysis_mode == "describe"
    assert settings.resolved_model == "anthropic/claude-3-sonnet"
    assert settings.max_upload_bytes == 10 * 1024 * 1024
    assert settings.upload_dir == Path("./uploads")
    assert settings.artifact_dir == Path("./processed")
    assert not settings.is_production


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-test")
    monkeypatch.setenv("ANALYSIS_MODE", "EDIT")
    monkeypatch.setenv("OPENROUTER_MODEL", "google/gemini-2.5-flash-image")
    monkeypatch.setenv("MAX_UPLOAD_MB", "5")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "in"))
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example")
    monkeypatch.setenv("APP_ENV", "production")

    settings = RepairSettings.from_env()

    assert settings.api_key == "sk-or-test"
    assert settings.analysis_mode == "edit"
    assert settings.resolved_model == "google/gemini-2.5-flash-image"
    assert settings.max_upload_bytes == 5 * 1024 * 1024
    assert settings.upload_dir == tmp_path / "in"
    assert settings.cors_origins == ["https://a.example", "https://b.example"]
    assert settings.is_production
