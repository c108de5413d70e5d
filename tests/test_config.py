"""Tests for environment driven configuration."""

import logging

import pytest
from pydantic import ValidationError

from src.config import (
    DEFAULT_MODEL_PRIORITY,
    DEFAULT_REPORT_YEAR,
    ExtractionSettings,
    get_api_key,
    get_log_level,
    get_report_year,
    load_settings,
)

SETTINGS_ENV_VARS = (
    "GEMINI_MODELS",
    "GEMINI_MAX_ATTEMPTS",
    "GEMINI_BACKOFF_SECONDS",
    "GEMINI_MODEL_SWITCH_DELAY",
    "REPORT_YEAR",
    "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the picture
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestApiKey:

    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("API_KEY", raising=False)

    def test_primary_env_var_wins(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "primary")
        monkeypatch.setenv("API_KEY", "secondary")
        assert get_api_key({"GEMINI_API_KEY": "from-secrets"}) == "primary"

    def test_fallback_env_var(self, monkeypatch):
        monkeypatch.setenv("API_KEY", " secondary ")
        assert get_api_key() == "secondary"

    def test_secrets_fallback(self):
        assert get_api_key({"GEMINI_API_KEY": "from-secrets"}) == "from-secrets"

    def test_missing(self):
        assert get_api_key() is None
        assert get_api_key({}) is None

    def test_unreadable_secrets(self):
        class BrokenSecrets:
            def get(self, name):
                raise FileNotFoundError("No secrets files found")

        assert get_api_key(BrokenSecrets()) is None


class TestSettings:

    def test_defaults(self, clean_env):
        settings = load_settings()
        assert settings.model_priority == DEFAULT_MODEL_PRIORITY
        assert settings.model_priority[0] == "gemini-2.5-pro"
        assert settings.max_attempts == 3
        assert settings.backoff_seconds == 4.0
        assert settings.model_switch_delay == 1.0

    def test_overrides(self, clean_env):
        clean_env.setenv("GEMINI_MODELS", "gemini-2.0-flash, gemini-2.0-flash-lite ,")
        clean_env.setenv("GEMINI_MAX_ATTEMPTS", "5")
        clean_env.setenv("GEMINI_BACKOFF_SECONDS", "0.5")
        clean_env.setenv("GEMINI_MODEL_SWITCH_DELAY", "0")

        settings = load_settings()
        assert settings.model_priority == ("gemini-2.0-flash", "gemini-2.0-flash-lite")
        assert settings.max_attempts == 5
        assert settings.backoff_for(3) == 1.5
        assert settings.model_switch_delay == 0.0

    def test_empty_values_fall_back_to_defaults(self, clean_env):
        clean_env.setenv("GEMINI_MAX_ATTEMPTS", "")
        assert load_settings().max_attempts == 3

    @pytest.mark.parametrize("name,value", [
        ("GEMINI_MAX_ATTEMPTS", "three"),
        ("GEMINI_MAX_ATTEMPTS", "0"),
        ("GEMINI_BACKOFF_SECONDS", "-1"),
        ("GEMINI_MODEL_SWITCH_DELAY", "-0.5"),
        ("GEMINI_MODELS", " , "),
    ])
    def test_invalid_values(self, clean_env, name, value):
        clean_env.setenv(name, value)
        with pytest.raises(ValidationError):
            load_settings()

    def test_constructed_directly(self, clean_env):
        settings = ExtractionSettings(model_priority=("model-a",), max_attempts=2)
        assert settings.model_priority == ("model-a",)
        assert settings.max_attempts == 2

    def test_backoff_is_linear(self, clean_env):
        settings = ExtractionSettings(backoff_seconds=4.0)
        assert [settings.backoff_for(a) for a in (1, 2, 3)] == [4.0, 8.0, 12.0]


class TestMisc:

    def test_report_year(self, clean_env):
        assert get_report_year() == DEFAULT_REPORT_YEAR
        clean_env.setenv("REPORT_YEAR", "2026")
        assert get_report_year() == 2026

    @pytest.mark.parametrize("raw,expected", [
        ("", logging.INFO),
        ("debug", logging.DEBUG),
        ("WARNING", logging.WARNING),
        ("nonsense", logging.INFO),
    ])
    def test_log_level(self, clean_env, raw, expected):
        clean_env.setenv("LOG_LEVEL", raw)
        assert get_log_level() == expected
