"""Slate time resolution tests."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from commissioner.scheduling.timeparse import format_instant, local_to_instant, resolve_match_time

NY = "America/New_York"


def _local(instant: int, tz: str = NY) -> datetime:
    return datetime.fromtimestamp(instant / 1000, tz=ZoneInfo(tz))


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1:45 pm", "13:45"),
        ("1:45 p.m.", "13:45"),
        ("12:00 am", "00:00"),
        ("12:00 pm", "12:00"),
        ("  11:05AM ", "11:05"),
        ("Starts 9:30 P.M.", "21:30"),
    ],
)
def test_resolve_wall_clock(text: str, expected: str) -> None:
    instant = resolve_match_time(text, "2024-05-01", NY)
    assert instant is not None
    local = _local(instant)
    assert local.strftime("%H:%M") == expected
    assert local.date().isoformat() == "2024-05-01"


def test_missing_meridian_taken_as_written() -> None:
    instant = resolve_match_time("7:15", "2024-05-01", NY)
    assert _local(instant).strftime("%H:%M") == "07:15"


def test_timezone_is_explicit() -> None:
    ny = resolve_match_time("1:45 pm", "2024-05-01", NY)
    prague = resolve_match_time("1:45 pm", "2024-05-01", "Europe/Prague")
    assert ny - prague == 6 * 60 * 60 * 1000
    assert _local(prague, "Europe/Prague").strftime("%H:%M") == "13:45"


@pytest.mark.parametrize("text", ["TBD", "", "1345", "noon"])
def test_unparseable_text_returns_none(text: str) -> None:
    assert resolve_match_time(text, "2024-05-01", NY) is None


def test_construction_errors_return_none() -> None:
    assert resolve_match_time("25:00", "2024-05-01", NY) is None
    assert resolve_match_time("1:00 pm", "not-a-date", NY) is None
    assert resolve_match_time("1:00 pm", "2024-05-01", "Mars/Olympus") is None


def test_local_round_trip_helpers() -> None:
    instant = local_to_instant(datetime(2024, 5, 1, 13, 30), NY)
    assert format_instant(instant, NY, "%Y-%m-%d %H:%M") == "2024-05-01 13:30"
