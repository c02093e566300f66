"""Slate extraction and ingestion tests."""

from __future__ import annotations

import json
from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError

from commissioner.bets.schemas import RawBetCandidate
from commissioner.bets.store import BetStore
from commissioner.extraction import ingest, vision_client
from commissioner.extraction.vision_client import ExtractionError, VisionClient

ROWS = [
    {"league": "International: TT Elite Series", "playerA": "Kowalski", "playerB": "Novak", "time": "1:45 p.m.", "type": "UNDER 75.5", "units": 1.5},
    {"league": "Czech: Czech Liga Pro", "playerA": "Svoboda", "playerB": "Dvorak", "time": "2:10 p.m.", "type": "", "units": 2},
    {"league": "TT Cup", "playerA": "Horak", "playerB": "Marek", "time": "TBD", "type": "split", "units": None},
]


class StaticExtractor:
    def __init__(self, rows: list[dict] | None = None, error: Exception | None = None) -> None:
        self.rows = rows or []
        self.error = error

    def extract(self, image_b64: str, mime_type: str = "image/png") -> list[RawBetCandidate]:
        if self.error:
            raise self.error
        return [RawBetCandidate.model_validate(row) for row in self.rows]


def test_candidate_cleaning() -> None:
    first, second, third = (RawBetCandidate.model_validate(row) for row in ROWS)
    assert first.league == "TT Elite Series"
    assert second.league == "Czech Liga Pro"
    assert second.type == "OVER"
    assert third.type == "SPLIT"
    assert third.units == 1.0
    assert RawBetCandidate.model_validate({"playerA": "A", "playerB": "B"}).league == "Unknown League"


def test_parse_candidates_accepts_wrapped_or_bare_lists() -> None:
    wrapped = vision_client.parse_candidates(json.dumps({"bets": ROWS}))
    bare = vision_client.parse_candidates(json.dumps(ROWS))
    assert [c.player_a for c in wrapped] == [c.player_a for c in bare] == ["Kowalski", "Svoboda", "Horak"]
    assert vision_client.parse_candidates("") == []


@pytest.mark.parametrize("raw", ["not json", json.dumps({"bets": "nope"}), json.dumps([{"league": "x"}])])
def test_parse_candidates_rejects_garbage(raw: str) -> None:
    with pytest.raises(ExtractionError):
        vision_client.parse_candidates(raw)


def test_strip_data_uri() -> None:
    assert vision_client.strip_data_uri("data:image/jpeg;base64,AAAA") == "AAAA"
    assert vision_client.strip_data_uri("AAAA") == "AAAA"


class DummyCompletions:
    def __init__(self, replies: list) -> None:
        self.replies = replies
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        message = SimpleNamespace(content=reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _openai(replies: list) -> SimpleNamespace:
    completions = DummyCompletions(replies)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def test_vision_client_sends_image_and_parses() -> None:
    fake = _openai([json.dumps({"bets": ROWS})])
    candidates = VisionClient(client=fake, model="test-model").extract("data:image/png;base64,QUJD")
    assert len(candidates) == 3
    call = fake.chat.completions.calls[0]
    assert call["model"] == "test-model"
    image_part = call["messages"][1]["content"][1]
    assert image_part["image_url"]["url"] == "data:image/png;base64,QUJD"


def test_vision_client_retries_then_raises() -> None:
    request = httpx.Request("POST", "https://api.openai.test/v1/chat/completions")
    errors = [APIConnectionError(request=request) for _ in range(3)]
    fake = _openai(errors)
    client = VisionClient(client=fake, model="test-model")
    client.attempts = 3
    client.wait_seconds = 0
    with pytest.raises(ExtractionError):
        client.extract("QUJD")
    assert len(fake.chat.completions.calls) == 3


def test_ingest_resolves_times_and_prepends_batch(documents, user_settings) -> None:
    store = BetStore("alice", documents)
    existing = store.create(ingest.manual_bet("2024-05-01", user_settings))
    added = ingest.ingest_slate("QUJD", "2024-05-01", store, user_settings, StaticExtractor(ROWS))
    assert [bet.player_a for bet in store.list()] == ["Kowalski", "Svoboda", "Horak", "Player A"]
    assert store.list()[-1].id == existing.id
    assert added[0].match_instant is not None
    assert added[2].match_instant is None
    assert not any(bet.auto_post_enabled or bet.posted for bet in added)
    assert added[0].display_time == "1:45 p.m."


def test_ingest_is_all_or_nothing(documents, user_settings) -> None:
    store = BetStore("alice", documents)
    with pytest.raises(ExtractionError):
        ingest.ingest_slate("QUJD", "2024-05-01", store, user_settings, StaticExtractor(error=ExtractionError("down")))
    with pytest.raises(ExtractionError):
        ingest.ingest_slate("QUJD", "2024-05-01", store, user_settings, StaticExtractor(error=KeyError("units")))
    assert store.list() == []


def test_manual_bet_defaults(user_settings) -> None:
    bet = ingest.manual_bet("2024-05-01", user_settings)
    assert bet.league == "Manual Entry"
    assert bet.display_time == "12:00 PM"
    assert bet.match_instant is not None
    assert bet.auto_post_enabled is False
