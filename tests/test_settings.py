"""Tests for environment-driven configuration."""

import pytest

from onemind.config import AppSettings, GeminiSettings, RouterSettings, get_settings, validate_all_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestRouterSettings:
    """Router knobs and their defaults."""

    def test_defaults(self):
        settings = RouterSettings()
        assert settings.max_retries == 2
        assert settings.batch_max_retries == 1
        assert settings.backoff_seconds == 1.0
        assert settings.trust_threshold == 0.4
        assert settings.initial_temperature == 0.3
        assert settings.retry_temperature == 0.1
        assert settings.fallback_on_transport_failure is True

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("ROUTER_MAX_RETRIES", "4")
        monkeypatch.setenv("ROUTER_FALLBACK_ON_TRANSPORT_FAILURE", "false")
        settings = RouterSettings()
        assert settings.max_retries == 4
        assert settings.fallback_on_transport_failure is False

    def test_threshold_bounds(self):
        with pytest.raises(ValueError):
            RouterSettings(trust_threshold=1.5)


class TestGeminiSettings:

    def test_api_key_required(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(ValueError):
            GeminiSettings(_env_file=None)

    def test_defaults(self):
        settings = GeminiSettings(api_key="k")
        assert settings.model_name == "gemini-2.5-flash"
        assert settings.media_max_retries == 2


class TestAppSettings:

    def test_defaults(self):
        settings = AppSettings()
        assert settings.low_confidence_hint_threshold == 0.7
        assert settings.source_hint_length == 30

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("SOURCE_HINT_LENGTH", "12")
        assert AppSettings().source_hint_length == 12


class TestValidateAllSettings:

    def test_reports_missing_key(self, monkeypatch, tmp_path):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.chdir(tmp_path)
        results = validate_all_settings()
        assert results["gemini"] is False
        assert "gemini_error" in results
        assert results["router"] is True
        assert results["app"] is True

    def test_all_valid(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "k")
        results = validate_all_settings()
        assert results == {"gemini": True, "router": True, "app": True}
