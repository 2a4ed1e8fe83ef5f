"""Tests for the TTL settings cache."""

import pytest

from trade_journal.core.clock import FixedClock
from trade_journal.core.config import Settings
from trade_journal.core.settings_cache import SettingsCache, TTLCache


class _CountingLoader:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return Settings(analytics={"min_sample_size": self.calls})


@pytest.fixture
def loader():
    return _CountingLoader()


class TestTTLCache:
    def test_lazy_load(self, loader, clock):
        cache = SettingsCache(loader, ttl_seconds=60, clock=clock)
        assert loader.calls == 0
        assert cache.loaded_at is None
        cache.get()
        assert loader.calls == 1
        assert cache.loaded_at == clock.now()

    def test_served_within_ttl(self, loader, clock):
        cache = SettingsCache(loader, ttl_seconds=60, clock=clock)
        first = cache.get()
        clock.advance(59)
        assert cache.get() is first
        assert loader.calls == 1

    def test_reloaded_after_ttl(self, loader, clock):
        cache = SettingsCache(loader, ttl_seconds=60, clock=clock)
        cache.get()
        clock.advance(60)
        assert cache.get().analytics.min_sample_size == 2

    def test_invalidate(self, loader, clock):
        cache = SettingsCache(loader, ttl_seconds=3600, clock=clock)
        cache.get()
        cache.invalidate()
        assert cache.loaded_at is None
        assert cache.get().analytics.min_sample_size == 2

    def test_zero_ttl_always_reloads(self, loader, clock):
        cache = TTLCache(loader, ttl_seconds=0, clock=clock)
        cache.get()
        cache.get()
        assert loader.calls == 2

    def test_negative_ttl_rejected(self, loader):
        with pytest.raises(ValueError):
            TTLCache(loader, ttl_seconds=-1)

    def test_fixed(self, clock):
        settings = Settings()
        cache = SettingsCache.fixed(settings)
        assert cache.get() is settings
