"""Shared fixtures."""

from __future__ import annotations

import pytest

from commissioner.bets.schemas import UserSettings
from commissioner.storage.database import build_engine, init_db, make_session_factory
from commissioner.storage.documents import DocumentStore


@pytest.fixture()
def documents() -> DocumentStore:
    engine = build_engine("sqlite://")
    init_db(engine)
    yield DocumentStore(make_session_factory(engine))
    engine.dispose()


@pytest.fixture()
def user_settings() -> UserSettings:
    return UserSettings(
        lead_time_minutes=15,
        timezone="America/New_York",
        webhook_url="https://hooks.example.test/bets",
        bot_name="The Commissioner",
        mention="@Chefs Plays",
        default_odds="-120",
    )
