"""Pydantic schemas for user settings and vision extraction output."""

from __future__ import annotations

import re
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from commissioner.config import get_settings

ODDS_PATTERN = re.compile(r"^[+-]?\d+$")
LEAGUE_PREFIX = re.compile(r"^(International|[A-Z][A-Za-z .'-]*):\s+")


def _defaults():
    return get_settings()


class UserSettings(BaseModel):
    """Per-user scheduling, delivery and display preferences."""

    model_config = ConfigDict(validate_assignment=True)

    lead_time_minutes: int = Field(default_factory=lambda: _defaults().default_lead_time_minutes, ge=0)
    timezone: str = Field(default_factory=lambda: _defaults().default_timezone)
    webhook_url: str = ""
    recap_webhook_url: str = ""
    bot_name: str = Field(default_factory=lambda: _defaults().default_bot_name)
    bot_avatar_url: str = ""
    mention: str = Field(default_factory=lambda: _defaults().default_mention)
    default_odds: str = Field(default_factory=lambda: _defaults().default_odds)

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown timezone {value!r}") from exc
        return value

    @field_validator("default_odds")
    @classmethod
    def _signed_odds(cls, value: str) -> str:
        value = value.strip()
        if not ODDS_PATTERN.match(value):
            raise ValueError(f"odds must look like -120 or +150, got {value!r}")
        return value

    @field_validator("webhook_url", "recap_webhook_url", "bot_avatar_url", "mention", "bot_name")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()

    def recap_target(self, use_recap_webhook: bool) -> str:
        """Webhook for recaps; falls back to the main webhook when unset."""

        if use_recap_webhook and self.recap_webhook_url:
            return self.recap_webhook_url
        return self.webhook_url


class RawBetCandidate(BaseModel):
    """One row pulled off a slate image by the vision model."""

    league: str = "Unknown League"
    player_a: str = Field(validation_alias=AliasChoices("playerA", "player_a"))
    player_b: str = Field(validation_alias=AliasChoices("playerB", "player_b"))
    time: str = ""
    type: str = "OVER"
    units: float = 1.0

    @field_validator("league", mode="before")
    @classmethod
    def _clean_league(cls, value: str | None) -> str:
        if not value or not str(value).strip():
            return "Unknown League"
        return LEAGUE_PREFIX.sub("", str(value).strip(), count=1)

    @field_validator("time", mode="before")
    @classmethod
    def _blank_time(cls, value: str | None) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("type", mode="before")
    @classmethod
    def _default_type(cls, value: str | None) -> str:
        if not value or not str(value).strip():
            return "OVER"
        return str(value).strip().upper()

    @field_validator("units", mode="before")
    @classmethod
    def _default_units(cls, value: float | None) -> float:
        try:
            units = float(value)
        except (TypeError, ValueError):
            return 1.0
        return units if units > 0 else 1.0
