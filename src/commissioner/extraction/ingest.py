"""Turn an uploaded slate into queued bets."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Protocol

from commissioner.bets.schemas import RawBetCandidate, UserSettings
from commissioner.bets.store import BetStore
from commissioner.bets.types import BetRecord
from commissioner.extraction.vision_client import ExtractionError
from commissioner.scheduling.timeparse import resolve_match_time

logger = logging.getLogger(__name__)

MANUAL_TIME = "12:00 PM"


class SlateExtractor(Protocol):
    def extract(self, image_b64: str, mime_type: str = ...) -> Sequence[RawBetCandidate]: ...


def candidate_to_bet(candidate: RawBetCandidate, slate_date: str, timezone: str) -> BetRecord:
    match_instant = resolve_match_time(candidate.time, slate_date, timezone)
    if match_instant is None:
        logger.info("Unparseable time %r for %s vs %s", candidate.time, candidate.player_a, candidate.player_b)
    return BetRecord(
        league=candidate.league,
        player_a=candidate.player_a,
        player_b=candidate.player_b,
        display_time=candidate.time,
        bet_type=candidate.type,
        units=candidate.units,
        match_instant=match_instant,
        auto_post_enabled=False,
        posted=False,
    )


def build_bets(candidates: Iterable[RawBetCandidate], slate_date: str, timezone: str) -> list[BetRecord]:
    return [candidate_to_bet(candidate, slate_date, timezone) for candidate in candidates]


def ingest_slate(
    image_b64: str,
    slate_date: str,
    store: BetStore,
    settings: UserSettings,
    extractor: SlateExtractor,
    mime_type: str = "image/png",
) -> list[BetRecord]:
    """Extract, resolve times, then commit the whole batch or nothing."""

    try:
        candidates = extractor.extract(image_b64, mime_type)
        bets = build_bets(candidates, slate_date, settings.timezone)
    except ExtractionError:
        raise
    except Exception as exc:
        raise ExtractionError(f"Failed to analyze image: {exc}") from exc
    return store.create_batch(bets)


def manual_bet(slate_date: str, settings: UserSettings) -> BetRecord:
    """Placeholder entry for the user to edit in place."""

    return BetRecord(
        league="Manual Entry",
        player_a="Player A",
        player_b="Player B",
        display_time=MANUAL_TIME,
        bet_type="OVER",
        units=1,
        match_instant=resolve_match_time(MANUAL_TIME, slate_date, settings.timezone),
    )
