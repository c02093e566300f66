"""Environment-driven configuration helpers for Commissioner."""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or .env files."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: AnyUrl | str = Field(default="sqlite:///./commissioner.db")

    openai_api_key: str = Field(default="", validation_alias="OPENAI_API_KEY")
    openai_vision_model: str = Field(default="gpt-4o-mini")
    extraction_attempts: int = Field(default=3, ge=1, le=10)

    scheduler_poll_seconds: float = Field(default=10.0, gt=0.0)
    webhook_timeout_seconds: float = Field(default=10.0, gt=0.0)

    default_lead_time_minutes: int = Field(default=15, ge=0)
    default_timezone: str = Field(default="America/New_York")
    default_bot_name: str = Field(default="The Commissioner")
    default_mention: str = Field(default="@Chefs Plays")
    default_odds: str = Field(default="-120")

    log_level: str = Field(default="INFO")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()  # type: ignore[call-arg]


def get_openai_api_key() -> str:
    """Return the OpenAI API key or raise a helpful error."""

    key = os.getenv("OPENAI_API_KEY") or get_settings().openai_api_key
    if not key:
        raise RuntimeError(
            "OPENAI_API_KEY is not configured. "
            "Set it in .env for local dev or in the app settings panel."
        )
    return key


def configure_logging(level: str | None = None) -> None:
    """Apply the configured log level to the root logger once."""

    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level or get_settings().log_level)
        return
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
