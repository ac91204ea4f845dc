"""Tests for serginho.config.settings — Pydantic configuration"""

from importlib import metadata as importlib_metadata
from unittest.mock import patch

import pytest
import yaml

from serginho.config.settings import (
    PLACEHOLDER_API_KEY,
    LoggingConfig,
    ProvidersConfig,
    Settings,
    _project_version,
    load_settings,
)
from serginho.core.exceptions import ConfigurationError


class TestHelpers:
    def test_project_version_returns_string(self):
        v = _project_version()
        assert isinstance(v, str)
        assert len(v) > 0

    @patch(
        "serginho.config.settings.metadata.version",
        side_effect=importlib_metadata.PackageNotFoundError,
    )
    def test_project_version_fallback(self, mock_meta):
        assert _project_version() == "0.0.0-dev"


class TestDefaults:
    def test_provider_defaults(self):
        cfg = ProvidersConfig()
        assert cfg.base_url == "https://api.groq.com/openai/v1"
        assert cfg.timeout_seconds == 8.0
        assert cfg.models["llama-8b"] == "llama-3.1-8b-instant"
        assert cfg.models["groq-fallback"] == "mixtral-8x7b-32768"

    def test_settings_defaults(self):
        settings = Settings()
        assert settings.environment == "test"
        assert settings.routing.circuit_breaker_enabled is True
        assert settings.routing.cancel_race_losers is True
        assert settings.sessions.max_sessions is None
        assert settings.web.port == 8081

    def test_timeout_is_bounded(self):
        with pytest.raises(ValueError):
            ProvidersConfig(timeout_seconds=0)


class TestLoggingConfig:
    def test_level_is_normalised(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_level(self):
        with pytest.raises(ValueError):
            LoggingConfig(level="LOUD")

    def test_invalid_format(self):
        with pytest.raises(ValueError):
            LoggingConfig(format="xml")


class TestApiKey:
    def test_placeholder_under_test_environment(self):
        assert Settings().require_api_key() == PLACEHOLDER_API_KEY

    def test_missing_key_outside_tests_raises(self, monkeypatch):
        monkeypatch.setenv("SERGINHO_ENVIRONMENT", "production")
        with pytest.raises(ConfigurationError) as exc_info:
            Settings().require_api_key()
        assert "GROQ_API_KEY" in exc_info.value.message

    def test_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("SERGINHO_ENVIRONMENT", "production")
        monkeypatch.setenv("GROQ_API_KEY", "gsk_live")
        settings = Settings()
        assert settings.require_api_key() == "gsk_live"
        assert "gsk_live" not in repr(settings)


class TestEnvironmentOverrides:
    def test_nested_delimiter(self, monkeypatch):
        monkeypatch.setenv("SERGINHO_PROVIDERS__TIMEOUT_SECONDS", "3.5")
        monkeypatch.setenv("SERGINHO_ROUTING__CIRCUIT_BREAKER_ENABLED", "false")
        monkeypatch.setenv("SERGINHO_SESSIONS__MAX_SESSIONS", "10")
        settings = Settings()
        assert settings.providers.timeout_seconds == 3.5
        assert settings.routing.circuit_breaker_enabled is False
        assert settings.sessions.max_sessions == 10


class TestFromYaml:
    def test_load(self, tmp_path):
        path = tmp_path / "serginho.yaml"
        path.write_text(yaml.safe_dump({
            "providers": {"timeout_seconds": 5},
            "routing": {"cancel_race_losers": False},
            "logging": {"level": "warning", "format": "text"},
        }))

        settings = load_settings(path)

        assert settings.providers.timeout_seconds == 5
        assert settings.routing.cancel_race_losers is False
        assert settings.logging.level == "WARNING"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Settings.from_yaml(tmp_path / "missing.yaml")

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert Settings.from_yaml(path).web.port == 8081
