"""
    00 config

config.py

Runtime configuration for the intake app: the Gemini credential lookup and the
extraction settings (model priority, retry bound, backoff schedule).
Settings are read from environment variables (or a local .env file) with
pydantic-settings so the policy can be tuned without touching code.
"""

import os
import logging
from typing import Annotated, Any, Mapping, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger("gemini_service.config")

# Checked in order; first non-empty value wins.
API_KEY_ENV_VARS = ("GEMINI_API_KEY", "API_KEY")
API_KEY_SECRET_NAME = "GEMINI_API_KEY"

DEFAULT_MODEL_PRIORITY = (
    "gemini-2.5-pro",
    "gemini-2.5-flash",
    "gemini-2.0-flash",
    "gemini-2.0-flash-lite",
)
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 4.0
DEFAULT_MODEL_SWITCH_DELAY = 1.0
DEFAULT_REPORT_YEAR = 2025


class ExtractionSettings(BaseSettings):
    """Model fallback policy, read from GEMINI_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        protected_namespaces=(),
    )

    # GEMINI_MODELS="gemini-2.0-flash,gemini-2.0-flash-lite"
    model_priority: Annotated[Tuple[str, ...], NoDecode] = Field(
        default=DEFAULT_MODEL_PRIORITY,
        validation_alias="GEMINI_MODELS",
    )
    max_attempts: int = Field(default=DEFAULT_MAX_ATTEMPTS, ge=1)
    backoff_seconds: float = Field(default=DEFAULT_BACKOFF_SECONDS, ge=0)
    model_switch_delay: float = Field(default=DEFAULT_MODEL_SWITCH_DELAY, ge=0)

    @field_validator("model_priority", mode="before")
    @classmethod
    def split_models(cls, value: Any) -> Any:
        if isinstance(value, str):
            models = tuple(m.strip() for m in value.split(",") if m.strip())
            if not models:
                raise ValueError("GEMINI_MODELS must list at least one model name")
            return models
        return value

    def backoff_for(self, attempt: int) -> float:
        """Linear backoff: attempt 1 waits 1x, attempt 2 waits 2x, ..."""
        return attempt * self.backoff_seconds


class AppSettings(BaseSettings):
    """Report year and log level (REPORT_YEAR, LOG_LEVEL)."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
    )

    report_year: int = Field(default=DEFAULT_REPORT_YEAR, ge=1)
    log_level: str = "INFO"


def get_api_key(secrets: Optional[Mapping[str, Any]] = None) -> Optional[str]:
    """
    Return the Gemini API key from the environment, falling back to Streamlit
    secrets when a secrets mapping is supplied. Returns None when no key is set;
    the extraction client rejects the call in that case.
    """
    for name in API_KEY_ENV_VARS:
        value = os.getenv(name, "").strip()
        if value:
            return value

    if secrets is None:
        return None

    try:
        value = secrets.get(API_KEY_SECRET_NAME)
    except Exception as e:
        # st.secrets raises when no secrets.toml exists
        logger.debug("No Streamlit secrets available: %s", e)
        return None
    return str(value).strip() if value else None


def load_settings() -> ExtractionSettings:
    """Build ExtractionSettings from the environment; invalid values raise ValidationError."""
    return ExtractionSettings()


def get_report_year() -> int:
    return AppSettings().report_year


def get_log_level() -> int:
    name = AppSettings().log_level.strip().upper() or "INFO"
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO
