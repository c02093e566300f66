"""Once-a-day recap trigger at a local wall-clock time."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo


def parse_clock(value: str) -> time:
    hours, minutes = (int(part) for part in value.strip().split(":", 1))
    return time(hour=hours, minute=minutes)


@dataclass
class RecapSchedule:
    """Fires at the first occurrence of ``at`` after it was armed, then disarms.

    Arming at 13:45 for 13:00 waits for 13:00 the following day rather than
    firing straight away.
    """

    at: time
    armed_at: int
    use_recap_webhook: bool = False
    armed: bool = True
    last_sent_on: date | None = None

    @classmethod
    def from_string(cls, value: str, armed_at: int, use_recap_webhook: bool = False) -> RecapSchedule:
        return cls(at=parse_clock(value), armed_at=armed_at, use_recap_webhook=use_recap_webhook)

    def local_now(self, now: int, timezone: str) -> datetime:
        return datetime.fromtimestamp(now / 1000, tz=ZoneInfo(timezone))

    def next_fire(self, timezone: str) -> datetime:
        armed_local = self.local_now(self.armed_at, timezone)
        target = datetime.combine(armed_local.date(), self.at, tzinfo=armed_local.tzinfo)
        if target <= armed_local:
            target = datetime.combine(armed_local.date() + timedelta(days=1), self.at, tzinfo=armed_local.tzinfo)
        return target

    def is_due(self, now: int, timezone: str) -> bool:
        if not self.armed:
            return False
        return self.local_now(now, timezone) >= self.next_fire(timezone)

    def mark_sent(self, now: int, timezone: str) -> None:
        self.last_sent_on = self.local_now(now, timezone).date()
        self.armed = False
