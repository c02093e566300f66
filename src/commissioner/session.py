"""Session ownership: who is logged in, their queue, settings and scheduler."""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from commissioner.bets.schemas import UserSettings
from commissioner.bets.store import BetStore
from commissioner.bets.types import BetRecord, now_ms
from commissioner.extraction.ingest import SlateExtractor, ingest_slate, manual_bet
from commissioner.notifications.service import NotificationService
from commissioner.notifications.webhook_backend import DeliveryOutcome
from commissioner.scheduling.loop import SchedulerLoop
from commissioner.scheduling.recap import RecapSchedule
from commissioner.stats.performance import PerformanceSummary, summarize
from commissioner.storage.documents import ACCOUNT, SETTINGS, DocumentStore

logger = logging.getLogger(__name__)


class AuthError(ValueError):
    """Registration or login was rejected; the message is shown inline."""


@dataclass
class SessionContext:
    """Everything scoped to the logged-in user, swapped as one value."""

    user_id: str
    store: BetStore
    settings: UserSettings
    recap: RecapSchedule | None = None


def hash_password(password: str, salt: str | None = None) -> dict[str, str]:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), bytes.fromhex(salt), 100_000)
    return {"salt": salt, "password_hash": digest.hex()}


def verify_password(password: str, account: dict[str, str]) -> bool:
    expected = hash_password(password, account["salt"])["password_hash"]
    return hmac.compare_digest(expected, account["password_hash"])


class SessionController:
    """Top-level application controller.

    Holds at most one :class:`SessionContext`. Logging in as someone else
    stops the running scheduler, builds the new context, and replaces the old
    one in a single assignment, so two users' bets are never mixed.
    """

    def __init__(
        self,
        documents: DocumentStore,
        notifier: NotificationService | None = None,
        extractor: SlateExtractor | None = None,
        *,
        clock: Callable[[], int] | None = None,
        autostart: bool = True,
        poll_seconds: float | None = None,
    ) -> None:
        self.documents = documents
        self._owns_notifier = notifier is None
        self.notifier = notifier or NotificationService()
        self.extractor = extractor
        self._clock = clock or now_ms
        self.autostart = autostart
        self.poll_seconds = poll_seconds
        self._lock = threading.RLock()
        self._context: SessionContext | None = None
        self._scheduler: SchedulerLoop | None = None

    @property
    def context(self) -> SessionContext | None:
        return self._context

    @property
    def scheduler(self) -> SchedulerLoop | None:
        return self._scheduler

    def require_context(self) -> SessionContext:
        context = self._context
        if context is None:
            raise RuntimeError("No user is logged in.")
        return context

    # ----- Authentication ---------------------------------------------------

    @staticmethod
    def _check_credentials(username: str, password: str) -> str:
        username = (username or "").strip()
        if not username or not password:
            raise AuthError("Username and password required")
        return username

    def register(self, username: str, password: str) -> SessionContext:
        username = self._check_credentials(username, password)
        if self.documents.get(username, ACCOUNT) is not None:
            raise AuthError("Username already exists")
        self.documents.set(username, ACCOUNT, hash_password(password))
        logger.info("Registered user %s", username)
        return self._activate(username)

    def login(self, username: str, password: str) -> SessionContext:
        username = self._check_credentials(username, password)
        account = self.documents.get(username, ACCOUNT)
        if account is None:
            raise AuthError("User not found")
        if not verify_password(password, account):
            raise AuthError("Invalid password")
        return self._activate(username)

    def restore(self) -> SessionContext | None:
        """Resume the last session user, if one was left logged in."""

        user_id = self.documents.get_session_user()
        if not user_id:
            return None
        if self.documents.get(user_id, ACCOUNT) is None:
            self.documents.set_session_user(None)
            return None
        return self._activate(user_id)

    def logout(self) -> None:
        with self._lock:
            self._stop_scheduler()
            previous = self._context
            self._context = None
            self.documents.set_session_user(None)
        if self._owns_notifier:
            self.notifier.close()
        if previous:
            logger.info("Logged out %s", previous.user_id)

    def _load_settings(self, user_id: str) -> UserSettings:
        payload = self.documents.get(user_id, SETTINGS)
        return UserSettings.model_validate(payload) if payload else UserSettings()

    def _activate(self, user_id: str) -> SessionContext:
        context = SessionContext(
            user_id=user_id,
            store=BetStore.load(user_id, self.documents),
            settings=self._load_settings(user_id),
        )
        with self._lock:
            self._stop_scheduler()
            self._context = context
            self._scheduler = SchedulerLoop(
                context,
                self.notifier,
                clock=self._clock,
                poll_seconds=self.poll_seconds,
            )
            self.documents.set_session_user(user_id)
            if self.autostart:
                self._scheduler.start()
        logger.info("Session active for %s", user_id)
        return context

    def _stop_scheduler(self) -> None:
        if self._scheduler is not None:
            self._scheduler.stop()
            self._scheduler = None

    # ----- Settings ---------------------------------------------------------

    def update_settings(self, **changes: Any) -> UserSettings:
        context = self.require_context()
        updated = UserSettings.model_validate({**context.settings.model_dump(), **changes})
        self.documents.set(context.user_id, SETTINGS, updated.model_dump())
        context.settings = updated
        logger.info("Updated settings for %s: %s", context.user_id, sorted(changes))
        return updated

    # ----- Queue actions ----------------------------------------------------

    def upload_slate(self, image_b64: str, slate_date: str, mime_type: str = "image/png") -> list[BetRecord]:
        context = self.require_context()
        if self.extractor is None:
            from commissioner.extraction.vision_client import VisionClient

            self.extractor = VisionClient()
        return ingest_slate(image_b64, slate_date, context.store, context.settings, self.extractor, mime_type)

    def add_manual_bet(self, slate_date: str) -> BetRecord:
        context = self.require_context()
        return context.store.create(manual_bet(slate_date, context.settings))

    def schedule_all(self) -> int:
        return self.require_context().store.schedule_all(self._clock())

    def post_now(self, bet_id: str) -> DeliveryOutcome:
        self.require_context()
        scheduler = self._scheduler
        if scheduler is None:
            return DeliveryOutcome.failure("Scheduler is not running.")
        return scheduler.post_now(bet_id)

    # ----- Stats and recaps -------------------------------------------------

    def summary(self) -> PerformanceSummary:
        context = self.require_context()
        return summarize(context.store.list(), context.settings.default_odds)

    def send_recap(self, use_recap_webhook: bool = False) -> DeliveryOutcome:
        context = self.require_context()
        return self.notifier.send_recap(self.summary(), context.settings, use_recap_webhook=use_recap_webhook)

    def schedule_recap(self, at: str, use_recap_webhook: bool = False) -> RecapSchedule:
        context = self.require_context()
        context.recap = RecapSchedule.from_string(at, self._clock(), use_recap_webhook)
        logger.info("Recap scheduled for %s at %s", context.user_id, at)
        return context.recap

    def cancel_recap(self) -> None:
        self.require_context().recap = None
