"""Tests for environment settings."""
from __future__ import annotations

import pytest

from src.shared.config import QualityGatesSettings

_ENV_KEYS = ("QG_LOG_LEVEL", "QG_LOG_JSON", "QG_CONFIG_PATH", "QG_STORAGE_BACKEND")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestQualityGatesSettings:
    def test_default_values(self):
        settings = QualityGatesSettings()
        assert settings.log_level == "info"
        assert settings.log_json is False
        assert settings.config_path == ""
        assert settings.storage_backend == ""
        assert settings.model_fields_set == set()

    def test_env_override_log_level(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("QG_LOG_LEVEL", "debug")
        settings = QualityGatesSettings()
        assert settings.log_level == "debug"
        assert "log_level" in settings.model_fields_set

    def test_env_override_log_json(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("QG_LOG_JSON", "true")
        assert QualityGatesSettings().log_json is True

    def test_env_override_paths(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("QG_CONFIG_PATH", "/etc/qg.yml")
        monkeypatch.setenv("QG_STORAGE_BACKEND", "sqlite")
        settings = QualityGatesSettings()
        assert settings.config_path == "/etc/qg.yml"
        assert settings.storage_backend == "sqlite"

    def test_populate_by_name(self):
        settings = QualityGatesSettings(log_level="warning")
        assert settings.log_level == "warning"

    def test_unrelated_env_ignored(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("QG_UNKNOWN", "x")
        QualityGatesSettings()
