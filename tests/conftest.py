"""Shared fixtures for the trade-journal test suite."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from trade_journal.core.clock import FixedClock
from trade_journal.core.config import Settings
from trade_journal.core.settings_cache import SettingsCache
from trade_journal.journal.service import InMemoryTradeStore, TradeService


@pytest.fixture
def base_time() -> datetime:
    return datetime(2024, 1, 2, 14, 30, tzinfo=timezone.utc)


@pytest.fixture
def clock(base_time) -> FixedClock:
    return FixedClock(base_time)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def store() -> InMemoryTradeStore:
    return InMemoryTradeStore()


@pytest.fixture
def service(store, settings, clock) -> TradeService:
    return TradeService(store, settings=SettingsCache.fixed(settings), clock=clock)
