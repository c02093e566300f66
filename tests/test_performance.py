"""Unit profit/loss statistics tests."""

from __future__ import annotations

import pytest

from commissioner.bets.types import BetRecord, BetResult
from commissioner.stats import performance


def _bet(league: str, result: BetResult, units: float = 1.0, odds: str | None = None) -> BetRecord:
    return BetRecord(
        league=league,
        player_a="A",
        player_b="B",
        display_time="1:00 pm",
        units=units,
        odds=odds,
        result=result,
    )


def test_win_profit_american_odds() -> None:
    assert performance.win_profit(1, "+150") == pytest.approx(1.5)
    assert performance.win_profit(1, "-120") == pytest.approx(100 / 120)
    assert performance.win_profit(2, None, "-200") == pytest.approx(1.0)
    assert performance.win_profit(1, "abc") == 0.0


def test_summarize_record_and_roi() -> None:
    bets = [
        _bet("TT Cup", BetResult.WIN, units=2, odds="+100"),
        _bet("TT Cup", BetResult.LOSS, units=1),
        _bet("Setka Cup", BetResult.PUSH),
        _bet("Setka Cup", BetResult.PENDING, units=5),
    ]
    summary = performance.summarize(bets)
    assert summary.record == "1-1-1"
    assert summary.graded == 3
    assert summary.net_units == pytest.approx(1.0)
    assert summary.units_risked == pytest.approx(4.0)
    assert summary.roi == pytest.approx(25.0)
    assert summary.formatted_net_units() == "+1.00u"
    assert summary.by_league == {"TT Cup": 1.0, "Setka Cup": 0.0}


def test_empty_summary() -> None:
    summary = performance.summarize([])
    assert summary.record == "0-0-0"
    assert summary.roi == 0.0
    assert summary.formatted_net_units() == "0.00u"


def test_league_frame() -> None:
    bets = [
        _bet("TT Cup", BetResult.WIN, odds="+150"),
        _bet("TT Cup", BetResult.WIN, odds="+150"),
        _bet("Liga Pro", BetResult.LOSS, units=2),
        _bet("Liga Pro", BetResult.PENDING),
    ]
    df = performance.league_frame(bets)
    assert list(df["league"]) == ["TT Cup", "Liga Pro"]
    tt = df.set_index("league").loc["TT Cup"]
    assert tt["wins"] == 2 and tt["bets"] == 2
    assert tt["net_units"] == pytest.approx(3.0)
    assert df.set_index("league").loc["Liga Pro", "net_units"] == pytest.approx(-2.0)
    assert performance.league_frame([]).empty
