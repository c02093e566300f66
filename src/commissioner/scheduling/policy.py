"""When a bet should be sent."""

from __future__ import annotations

from enum import Enum
from typing import Protocol

from commissioner.bets.types import BetRecord

MINUTE_MS = 60_000


class LeadTimeConfig(Protocol):
    lead_time_minutes: int


class BetState(str, Enum):
    INELIGIBLE = "INELIGIBLE"
    PENDING_DUE = "PENDING_DUE"
    DUE = "DUE"
    IN_FLIGHT = "IN_FLIGHT"
    POSTED = "POSTED"


def compute_send_time(bet: BetRecord, config: LeadTimeConfig) -> int | None:
    """Override wins; otherwise lead time before the match; otherwise nothing."""

    if bet.schedule_override is not None:
        return bet.schedule_override
    if bet.match_instant is not None:
        return bet.match_instant - config.lead_time_minutes * MINUTE_MS
    return None


def describe_state(
    bet: BetRecord,
    config: LeadTimeConfig,
    now: int,
    in_flight: bool = False,
) -> BetState:
    if bet.posted:
        return BetState.POSTED
    if in_flight:
        return BetState.IN_FLIGHT
    send_time = compute_send_time(bet, config)
    if not bet.auto_post_enabled or send_time is None:
        return BetState.INELIGIBLE
    return BetState.DUE if send_time <= now else BetState.PENDING_DUE


def is_due(bet: BetRecord, config: LeadTimeConfig, now: int) -> bool:
    return describe_state(bet, config, now) is BetState.DUE
