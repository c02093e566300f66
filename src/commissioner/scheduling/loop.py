"""Polling loop that posts due bets exactly once."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from commissioner.bets.types import now_ms
from commissioner.config import get_settings
from commissioner.notifications.service import NotificationService
from commissioner.notifications.webhook_backend import DeliveryOutcome
from commissioner.scheduling.policy import BetState, compute_send_time, describe_state
from commissioner.stats.performance import summarize

if TYPE_CHECKING:
    from commissioner.session import SessionContext

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    skipped: bool = False
    due: list[str] = field(default_factory=list)
    posted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    recap_sent: bool = False


class SchedulerLoop:
    """Scan one session's queue and deliver bets whose send time has passed.

    Ticks never overlap: a tick that starts while another is still delivering
    is skipped. A bet is only marked posted after a successful delivery, so a
    failed or interrupted attempt is simply retried on a later tick.
    """

    def __init__(
        self,
        context: SessionContext,
        notifier: NotificationService | None = None,
        *,
        clock: Callable[[], int] | None = None,
        poll_seconds: float | None = None,
    ) -> None:
        self.context = context
        self._owns_notifier = notifier is None
        self.notifier = notifier or NotificationService()
        self._clock = clock or now_ms
        self.poll_seconds = poll_seconds if poll_seconds is not None else get_settings().scheduler_poll_seconds
        self._tick_lock = threading.Lock()
        self._in_flight: set[str] = set()
        self._flight_lock = threading.Lock()
        self.failures: dict[str, int] = {}
        self._scheduler: BackgroundScheduler | None = None

    def _claim(self, bet_id: str) -> bool:
        with self._flight_lock:
            if bet_id in self._in_flight:
                return False
            self._in_flight.add(bet_id)
            return True

    def state_of(self, bet_id: str, now: int | None = None) -> BetState | None:
        bet = self.context.store.get(bet_id)
        if bet is None:
            return None
        now = self._clock() if now is None else now
        return describe_state(bet, self.context.settings, now, in_flight=bet_id in self._in_flight)

    def tick(self, now: int | None = None) -> TickReport:
        if not self._tick_lock.acquire(blocking=False):
            logger.debug("Previous tick still running for %s; skipping", self.context.user_id)
            return TickReport(skipped=True)
        try:
            now = self._clock() if now is None else now
            report = TickReport()
            snapshot = self.context.store.list()
            for bet in snapshot:
                if describe_state(bet, self.context.settings, now) is not BetState.DUE:
                    continue
                report.due.append(bet.id)
                try:
                    posted = self._attempt(bet.id, now)
                except Exception:
                    logger.exception("Unexpected error while posting bet %s", bet.id)
                    posted = False
                if posted is True:
                    report.posted.append(bet.id)
                elif posted is False:
                    report.failed.append(bet.id)
            report.recap_sent = self._maybe_send_recap(now)
            return report
        finally:
            self._tick_lock.release()

    def _attempt(self, bet_id: str, now: int) -> bool | None:
        """Deliver one bet; ``None`` means it was no longer due on re-check."""

        store = self.context.store
        settings = self.context.settings
        if not self._claim(bet_id):
            return None
        try:
            live = store.get(bet_id)
            send_time = compute_send_time(live, settings) if live else None
            if live is None or not live.auto_post_active or send_time is None or send_time > now:
                return None
            outcome = self.notifier.deliver(live, settings)
            if outcome.ok:
                store.mark_posted(bet_id)
        finally:
            with self._flight_lock:
                self._in_flight.discard(bet_id)

        if not outcome.ok:
            self.failures[bet_id] = self.failures.get(bet_id, 0) + 1
            logger.warning(
                "Auto-post failed for bet %s (attempt %d): %s",
                bet_id,
                self.failures[bet_id],
                outcome.reason,
            )
            return False
        self.failures.pop(bet_id, None)
        logger.info("Auto-posted %s vs %s", live.player_a, live.player_b)
        return True

    def post_now(self, bet_id: str) -> DeliveryOutcome:
        """Manual send that ignores the schedule but shares the in-flight guard."""

        store = self.context.store
        if not self._claim(bet_id):
            return DeliveryOutcome.failure("Bet is already being posted.")
        try:
            live = store.get(bet_id)
            if live is None:
                return DeliveryOutcome.failure("Bet not found.")
            if live.posted:
                return DeliveryOutcome.failure("Bet was already posted.")
            outcome = self.notifier.deliver(live, self.context.settings)
            if outcome.ok:
                store.mark_posted(bet_id)
        finally:
            with self._flight_lock:
                self._in_flight.discard(bet_id)
        if outcome.ok:
            self.failures.pop(bet_id, None)
        return outcome

    def _maybe_send_recap(self, now: int) -> bool:
        recap = self.context.recap
        settings = self.context.settings
        if recap is None or not recap.is_due(now, settings.timezone):
            return False
        summary = summarize(self.context.store.list(), settings.default_odds)
        outcome = self.notifier.send_recap(summary, settings, use_recap_webhook=recap.use_recap_webhook)
        if not outcome.ok:
            logger.warning("Scheduled recap failed: %s", outcome.reason)
            return False
        recap.mark_sent(now, settings.timezone)
        return True

    @property
    def job_id(self) -> str:
        return f"scheduler-{self.context.user_id}"

    def start(self) -> BackgroundScheduler:
        """Poll every ``poll_seconds`` on a background scheduler until :meth:`stop`."""

        if self._scheduler is None or not self._scheduler.running:
            self._scheduler = BackgroundScheduler(daemon=True)
            self._scheduler.add_job(
                self.tick,
                trigger=IntervalTrigger(seconds=self.poll_seconds),
                id=self.job_id,
                name=f"Bet scheduler ({self.context.user_id})",
                max_instances=1,
                coalesce=True,
                replace_existing=True,
            )
            self._scheduler.start()
            logger.info("Scheduler started for %s every %.0fs", self.context.user_id, self.poll_seconds)
        return self._scheduler

    def stop(self, wait: bool = True) -> None:
        if self._scheduler is not None:
            if self._scheduler.running:
                self._scheduler.shutdown(wait=wait)
            self._scheduler = None
            logger.info("Scheduler stopped for %s", self.context.user_id)
        if self._owns_notifier:
            self.notifier.close()

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running
