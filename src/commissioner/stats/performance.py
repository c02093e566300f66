"""Unit-based profit/loss statistics for graded bets."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import pandas as pd

from commissioner.bets.types import BetRecord, BetResult


def parse_american_odds(odds: str | None, default_odds: str) -> int | None:
    for candidate in (odds, default_odds):
        if not candidate:
            continue
        try:
            return int(str(candidate).strip())
        except ValueError:
            return None
    return None


def win_profit(units: float, odds: str | None, default_odds: str = "-120") -> float:
    """Units won on a winning bet at American odds.

    +150 pays 1.5x the stake; -120 pays stake * 100/120. Unreadable odds pay 0.
    """

    price = parse_american_odds(odds, default_odds)
    if not price:
        return 0.0
    if price > 0:
        return units * (price / 100)
    return units * (100 / abs(price))


def bet_net_units(bet: BetRecord, default_odds: str = "-120") -> float:
    if bet.result is BetResult.WIN:
        return win_profit(bet.units, bet.odds, default_odds)
    if bet.result is BetResult.LOSS:
        return -bet.units
    return 0.0


@dataclass
class PerformanceSummary:
    wins: int = 0
    losses: int = 0
    pushes: int = 0
    units_won: float = 0.0
    units_lost: float = 0.0
    units_risked: float = 0.0
    by_league: dict[str, float] = field(default_factory=dict)

    @property
    def graded(self) -> int:
        return self.wins + self.losses + self.pushes

    @property
    def net_units(self) -> float:
        return self.units_won - self.units_lost

    @property
    def roi(self) -> float:
        """Net units over units risked on graded bets, as a percentage."""

        return (self.net_units / self.units_risked * 100) if self.units_risked else 0.0

    @property
    def record(self) -> str:
        return f"{self.wins}-{self.losses}-{self.pushes}"

    def formatted_net_units(self) -> str:
        sign = "+" if self.net_units > 0 else ""
        return f"{sign}{self.net_units:.2f}u"


def summarize(bets: Iterable[BetRecord], default_odds: str = "-120") -> PerformanceSummary:
    summary = PerformanceSummary()
    for bet in bets:
        if bet.result is BetResult.PENDING:
            continue
        summary.units_risked += bet.units
        net = bet_net_units(bet, default_odds)
        if bet.result is BetResult.WIN:
            summary.wins += 1
            summary.units_won += net
        elif bet.result is BetResult.LOSS:
            summary.losses += 1
            summary.units_lost += bet.units
        else:
            summary.pushes += 1
        summary.by_league[bet.league] = summary.by_league.get(bet.league, 0.0) + net
    summary.by_league = {league: round(units, 2) for league, units in summary.by_league.items()}
    return summary


def league_frame(bets: Iterable[BetRecord], default_odds: str = "-120") -> pd.DataFrame:
    """Per-league table of record and net units for charting."""

    rows = [
        {
            "league": bet.league,
            "result": bet.result.value,
            "units": bet.units,
            "net_units": bet_net_units(bet, default_odds),
        }
        for bet in bets
        if bet.result is not BetResult.PENDING
    ]
    if not rows:
        return pd.DataFrame(columns=["league", "bets", "wins", "losses", "pushes", "net_units"])
    df = pd.DataFrame(rows)
    grouped = df.groupby("league").agg(
        bets=("result", "size"),
        wins=("result", lambda s: int((s == BetResult.WIN.value).sum())),
        losses=("result", lambda s: int((s == BetResult.LOSS.value).sum())),
        pushes=("result", lambda s: int((s == BetResult.PUSH.value).sum())),
        net_units=("net_units", "sum"),
    )
    grouped["net_units"] = grouped["net_units"].round(2)
    return grouped.reset_index().sort_values("net_units", ascending=False, ignore_index=True)
