"""Notification formatting and dispatch."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from commissioner.bets.schemas import UserSettings
from commissioner.bets.types import BetRecord
from commissioner.notifications.webhook_backend import DeliveryOutcome, WebhookBackend
from commissioner.scheduling.timeparse import timezone_abbreviation
from commissioner.stats.performance import PerformanceSummary

logger = logging.getLogger(__name__)

ALERT_TITLE = "📢 Bet Alert"
ALERT_COLOR = 16731469
RECAP_WIN_COLOR = 5763719
RECAP_LOSS_COLOR = 15548997
FALLBACK_BOT_NAME = "The Commissioner"


class NotificationService:
    """Build webhook payloads for bet alerts and recaps and send them."""

    def __init__(self, backend: WebhookBackend | None = None) -> None:
        self._owns_backend = backend is None
        self.backend = backend or WebhookBackend()

    def close(self) -> None:
        if self._owns_backend:
            self.backend.close()

    @staticmethod
    def _sender(settings: UserSettings) -> dict[str, Any]:
        sender: dict[str, Any] = {"username": settings.bot_name or FALLBACK_BOT_NAME}
        if settings.bot_avatar_url:
            sender["avatar_url"] = settings.bot_avatar_url
        return sender

    @classmethod
    def format_bet_alert(cls, bet: BetRecord, settings: UserSettings) -> dict[str, Any]:
        odds = bet.odds or settings.default_odds
        tz_label = timezone_abbreviation(settings.timezone, bet.match_instant)
        return {
            **cls._sender(settings),
            "content": settings.mention or "",
            "allowed_mentions": {"parse": ["users", "roles"]},
            "embeds": [
                {
                    "title": ALERT_TITLE,
                    "color": ALERT_COLOR,
                    "fields": [
                        {"name": "Match", "value": bet.matchup, "inline": False},
                        {"name": "Type", "value": bet.bet_type, "inline": True},
                        {"name": "Units", "value": f"{bet.units:g}u ({odds})", "inline": True},
                        {"name": "League", "value": bet.league, "inline": True},
                        {"name": "Start Time", "value": f"{bet.display_time} {tz_label}", "inline": False},
                    ],
                }
            ],
        }

    @classmethod
    def format_recap(
        cls,
        summary: PerformanceSummary,
        settings: UserSettings,
        recap_date: date | None = None,
    ) -> dict[str, Any]:
        recap_date = recap_date or datetime.now(ZoneInfo(settings.timezone)).date()
        bot_name = settings.bot_name or FALLBACK_BOT_NAME
        return {
            **cls._sender(settings),
            "embeds": [
                {
                    "title": f"📅 Daily Recap - {recap_date.strftime('%m/%d/%Y')}",
                    "color": RECAP_WIN_COLOR if summary.net_units >= 0 else RECAP_LOSS_COLOR,
                    "fields": [
                        {"name": "Record", "value": summary.record, "inline": True},
                        {"name": "Net Units", "value": summary.formatted_net_units(), "inline": True},
                        {"name": "Total ROI", "value": f"{summary.roi:.1f}%", "inline": True},
                    ],
                    "footer": {"text": f"{bot_name} • Auto-Generated"},
                }
            ],
        }

    def deliver(self, bet: BetRecord, settings: UserSettings) -> DeliveryOutcome:
        """Send one bet alert. Failures are returned, not raised."""

        try:
            payload = self.format_bet_alert(bet, settings)
        except Exception as exc:
            logger.error("Could not format alert for bet %s: %s", bet.id, exc)
            return DeliveryOutcome.failure(f"Could not format alert: {exc}")
        outcome = self.backend.post(settings.webhook_url, payload)
        if outcome.ok:
            logger.info("Posted bet %s (%s)", bet.id, bet.matchup)
        return outcome

    def send_recap(
        self,
        summary: PerformanceSummary,
        settings: UserSettings,
        use_recap_webhook: bool = True,
        recap_date: date | None = None,
    ) -> DeliveryOutcome:
        payload = self.format_recap(summary, settings, recap_date)
        outcome = self.backend.post(settings.recap_target(use_recap_webhook), payload)
        if outcome.ok:
            logger.info("Posted recap %s (%s)", summary.record, summary.formatted_net_units())
        return outcome
