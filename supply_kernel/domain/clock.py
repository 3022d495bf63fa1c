"""
Clock -- injectable time source.

Responsibility:
    Services ask a Clock for the current time instead of calling
    ``datetime.now()``.  Lot creation times decide FEFO order and history
    timestamps decide the newest-first listing, so tests pin both.

Architecture position:
    Kernel > Domain.  SystemClock is the only place the ledger reads the
    wall clock.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

EPOCH = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    ``now()`` keeps returning the same instant until ``advance()``; every
    lot created in between therefore shares one ``created_at``.
    """

    def __init__(self, start: datetime = EPOCH):
        self._now = start

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: int = 1) -> datetime:
        self._now += timedelta(seconds=seconds)
        return self._now


def utc_from_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
