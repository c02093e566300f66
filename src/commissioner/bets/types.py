"""Dataclasses for bet records and their editable fields."""

from __future__ import annotations

import time
import uuid
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Any


class BetResult(str, Enum):
    PENDING = "PENDING"
    WIN = "WIN"
    LOSS = "LOSS"
    PUSH = "PUSH"


def now_ms() -> int:
    """Current wall-clock instant in epoch milliseconds."""

    return int(time.time() * 1000)


def new_bet_id() -> str:
    return str(uuid.uuid4())


@dataclass
class BetRecord:
    """One wagering proposition as it sits in a user's queue.

    Instants (``created_at``, ``match_instant``, ``schedule_override``) are
    epoch milliseconds so the persisted JSON matches what the UI reads back.
    """

    league: str
    player_a: str
    player_b: str
    display_time: str
    bet_type: str = "OVER"
    units: float = 1.0
    odds: str | None = None
    notes: str | None = None
    result: BetResult = BetResult.PENDING
    match_instant: int | None = None
    schedule_override: int | None = None
    auto_post_enabled: bool = False
    posted: bool = False
    id: str = field(default_factory=new_bet_id)
    created_at: int = field(default_factory=now_ms)

    def __post_init__(self) -> None:
        if self.units <= 0:
            raise ValueError(f"units must be positive, got {self.units}")
        self.result = BetResult(self.result)

    @property
    def matchup(self) -> str:
        return f"{self.player_a} vs {self.player_b}"

    @property
    def auto_post_active(self) -> bool:
        """Auto-posting only counts for bets that have not been posted yet."""

        return self.auto_post_enabled and not self.posted

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["result"] = self.result.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BetRecord:
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})


class _Unset:
    """Marker for patch fields the caller did not touch."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


@dataclass(frozen=True)
class BetPatch:
    """Partial update for a :class:`BetRecord`.

    Only fields listed here can change after creation; ``id`` and
    ``created_at`` are deliberately absent. ``UNSET`` leaves a field alone,
    ``None`` clears an optional one.
    """

    league: Any = UNSET
    player_a: Any = UNSET
    player_b: Any = UNSET
    display_time: Any = UNSET
    bet_type: Any = UNSET
    units: Any = UNSET
    odds: Any = UNSET
    notes: Any = UNSET
    result: Any = UNSET
    match_instant: Any = UNSET
    schedule_override: Any = UNSET
    auto_post_enabled: Any = UNSET
    posted: Any = UNSET

    def changes(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not UNSET}

    def apply(self, bet: BetRecord) -> BetRecord:
        """Return a copy of ``bet`` with this patch merged in."""

        updated = replace(bet, **self.changes())
        if updated.posted:
            updated.auto_post_enabled = False
        return updated

    def __bool__(self) -> bool:
        return bool(self.changes())
