"""Clock abstraction for time-relative analytics.

WallClock: real wall-clock time (service)
FixedClock: pinned time (tests, reproducible reports)

Leaderboard windows never call datetime.now() directly — they take a clock.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol

from .ids import ensure_utc


class IClock(Protocol):
    """Clock interface used by all time-dependent code."""

    def now(self) -> datetime:
        """Current time as timezone-aware UTC datetime."""
        ...


class WallClock:
    """Real wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Clock pinned to an explicit instant.

    Time moves only when :meth:`set_time` or :meth:`advance` is called.
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._time = ensure_utc(start or datetime(2024, 1, 1, tzinfo=timezone.utc))

    def now(self) -> datetime:
        return self._time

    def set_time(self, t: datetime) -> None:
        self._time = ensure_utc(t)

    def advance(self, seconds: float) -> None:
        self._time = self._time + timedelta(seconds=seconds)
