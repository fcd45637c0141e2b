"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from waitspine.core.settings import WaitSettings, get_settings, reset_settings


class TestWaitSettings:
    """Tests for WaitSettings defaults and overrides."""

    def test_defaults(self, monkeypatch):
        for key in ("DEFAULT_DELAY", "TIMEOUT_GRACE", "LOG_LEVEL", "LOG_JSON"):
            monkeypatch.delenv(f"WAITSPINE_{key}", raising=False)
        settings = WaitSettings()
        assert settings.default_delay == 1000.0
        assert settings.timeout_grace == 10.0
        assert settings.log_level == "WARNING"
        assert settings.log_json is None

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("WAITSPINE_DEFAULT_DELAY", "250")
        monkeypatch.setenv("WAITSPINE_LOG_JSON", "true")
        settings = WaitSettings()
        assert settings.default_delay == 250.0
        assert settings.log_json is True

    def test_rejects_non_positive_delay(self, monkeypatch):
        monkeypatch.setenv("WAITSPINE_DEFAULT_DELAY", "0")
        with pytest.raises(ValidationError):
            WaitSettings()

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_reset_settings_rereads_env(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("WAITSPINE_TIMEOUT_GRACE", "25")
        reset_settings()
        second = get_settings()
        assert second is not first
        assert second.timeout_grace == 25.0
