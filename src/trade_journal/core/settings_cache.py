"""Explicitly owned TTL cache for settings.

Replaces a process-wide settings global: the owner constructs the cache,
injects it where needed, and calls :meth:`TTLCache.invalidate` after a
settings change.  Values are loaded lazily and reloaded once the TTL
elapses.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Generic, TypeVar

from .clock import IClock, WallClock
from .config import Settings, load_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TTLCache(Generic[T]):
    """Single-value cache with a time-to-live.

    Parameters
    ----------
    loader : Callable[[], T]
        Produces a fresh value on a miss.
    ttl_seconds : float
        Lifetime of a loaded value.  ``0`` reloads on every read.
    clock : IClock | None
        Time source; defaults to the wall clock.
    """

    def __init__(
        self,
        loader: Callable[[], T],
        *,
        ttl_seconds: float,
        clock: IClock | None = None,
    ) -> None:
        if ttl_seconds < 0:
            raise ValueError(f"ttl_seconds must be >= 0, got {ttl_seconds}")
        self._loader = loader
        self._ttl = ttl_seconds
        self._clock = clock or WallClock()
        self._lock = threading.RLock()
        self._value: T | None = None
        self._loaded_at: datetime | None = None

    @property
    def loaded_at(self) -> datetime | None:
        return self._loaded_at

    def _expired(self) -> bool:
        if self._loaded_at is None:
            return True
        age = (self._clock.now() - self._loaded_at).total_seconds()
        return age >= self._ttl

    def get(self) -> T:
        with self._lock:
            if self._expired():
                self._value = self._loader()
                self._loaded_at = self._clock.now()
                logger.debug("Cache reloaded at %s", self._loaded_at.isoformat())
            return self._value  # type: ignore[return-value]

    def invalidate(self) -> None:
        """Drop the cached value; the next read reloads."""
        with self._lock:
            self._value = None
            self._loaded_at = None


class SettingsCache(TTLCache[Settings]):
    """TTL cache of :class:`Settings`, loaded with :func:`load_settings`."""

    def __init__(
        self,
        loader: Callable[[], Settings] | None = None,
        *,
        ttl_seconds: float = 60.0,
        clock: IClock | None = None,
    ) -> None:
        super().__init__(loader or load_settings, ttl_seconds=ttl_seconds, clock=clock)

    @classmethod
    def fixed(cls, settings: Settings) -> SettingsCache:
        """A cache that always serves *settings*."""
        return cls(lambda: settings, ttl_seconds=settings.cache.settings_ttl_seconds)
