"""Authoritative in-memory bet queue for one user, persisted on every change."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence

from commissioner.bets.types import BetPatch, BetRecord, BetResult
from commissioner.storage.documents import BETS, DocumentStore

logger = logging.getLogger(__name__)


class BetStore:
    """Ordered bet list (most recent first) behind a single mutation lock.

    Every mutating call writes the whole collection to the document store
    before returning, so a restart resumes with exactly the state callers last
    observed.
    """

    def __init__(self, user_id: str, documents: DocumentStore, bets: Sequence[BetRecord] | None = None) -> None:
        self.user_id = user_id
        self._documents = documents
        self._lock = threading.RLock()
        self._bets: list[BetRecord] = list(bets or [])

    @classmethod
    def load(cls, user_id: str, documents: DocumentStore) -> BetStore:
        payload = documents.get(user_id, BETS) or []
        bets = [BetRecord.from_dict(item) for item in payload]
        logger.info("Loaded %d bets for %s", len(bets), user_id)
        return cls(user_id, documents, bets)

    def _persist(self, bets: Sequence[BetRecord]) -> None:
        self._documents.set(self.user_id, BETS, [bet.to_dict() for bet in bets])

    def _commit(self, bets: list[BetRecord], *, keep_on_failure: bool = False) -> None:
        """Write ``bets`` and only then make them the live list.

        With ``keep_on_failure`` the new list is kept in memory even if the write
        raises; the error still propagates.
        """

        if not keep_on_failure:
            self._persist(bets)
            self._bets = bets
            return
        self._bets = bets
        self._persist(bets)

    def _index(self, bet_id: str) -> int | None:
        for idx, bet in enumerate(self._bets):
            if bet.id == bet_id:
                return idx
        return None

    def list(self) -> list[BetRecord]:
        with self._lock:
            return list(self._bets)

    def get(self, bet_id: str) -> BetRecord | None:
        with self._lock:
            idx = self._index(bet_id)
            return self._bets[idx] if idx is not None else None

    def create(self, bet: BetRecord) -> BetRecord:
        return self.create_batch([bet])[0]

    def create_batch(self, bets: Iterable[BetRecord]) -> list[BetRecord]:
        """Prepend ``bets`` as a group, keeping their relative order."""

        batch = list(bets)
        with self._lock:
            existing = {bet.id for bet in self._bets}
            seen: set[str] = set()
            for bet in batch:
                if bet.id in existing or bet.id in seen:
                    raise ValueError(f"duplicate bet id {bet.id}")
                seen.add(bet.id)
            if not batch:
                return []
            self._commit(batch + self._bets)
        logger.info("Queued %d bet(s) for %s", len(batch), self.user_id)
        return batch

    def update(self, bet_id: str, patch: BetPatch, *, keep_on_failure: bool = False) -> BetRecord | None:
        """Merge ``patch`` into the bet with ``bet_id``; no-op when absent."""

        with self._lock:
            idx = self._index(bet_id)
            if idx is None:
                return None
            if not patch:
                return self._bets[idx]
            updated = patch.apply(self._bets[idx])
            bets = list(self._bets)
            bets[idx] = updated
            self._commit(bets, keep_on_failure=keep_on_failure)
            return updated

    def delete(self, bet_id: str) -> bool:
        with self._lock:
            idx = self._index(bet_id)
            if idx is None:
                return False
            self._commit(self._bets[:idx] + self._bets[idx + 1 :])
            return True

    def clear(self) -> None:
        with self._lock:
            self._commit([])
        logger.info("Cleared all bets for %s", self.user_id)

    def mark_posted(self, bet_id: str) -> BetRecord | None:
        # The webhook already accepted this bet: a failed write must not let a
        # later tick send it again.
        return self.update(bet_id, BetPatch(posted=True, auto_post_enabled=False), keep_on_failure=True)

    def grade(self, bet_id: str, result: BetResult | str) -> BetRecord | None:
        with self._lock:
            current = self.get(bet_id)
            if current is None or current.result == BetResult(result):
                return current
            return self.update(bet_id, BetPatch(result=BetResult(result)))

    def set_auto_post(self, bet_id: str, enabled: bool) -> BetRecord | None:
        with self._lock:
            current = self.get(bet_id)
            if current is None or current.posted:
                return current
            return self.update(bet_id, BetPatch(auto_post_enabled=enabled))

    def set_override(self, bet_id: str, instant: int | None) -> BetRecord | None:
        """Pin (or with ``None`` unpin) the send time; pinning also arms auto-post."""

        with self._lock:
            current = self.get(bet_id)
            if current is None or current.posted:
                return current
            if instant is None:
                return self.update(bet_id, BetPatch(schedule_override=None))
            return self.update(bet_id, BetPatch(schedule_override=instant, auto_post_enabled=True))

    def schedule_all(self, now: int) -> int:
        """Arm auto-post for every unposted bet whose match is still ahead."""

        with self._lock:
            armed = 0
            bets = list(self._bets)
            for idx, bet in enumerate(bets):
                if bet.posted or bet.auto_post_enabled:
                    continue
                if bet.match_instant is not None and bet.match_instant > now:
                    bets[idx] = BetPatch(auto_post_enabled=True).apply(bet)
                    armed += 1
            if armed:
                self._commit(bets)
        logger.info("Scheduled %d bet(s) for %s", armed, self.user_id)
        return armed

    def queue(self) -> list[BetRecord]:
        return [bet for bet in self.list() if not bet.posted]

    def history(self) -> list[BetRecord]:
        return [bet for bet in self.list() if bet.posted]
