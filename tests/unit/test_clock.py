"""Tests for clocks and timestamp helpers."""

from datetime import datetime, timedelta, timezone

from trade_journal.core.clock import FixedClock, WallClock
from trade_journal.core.ids import ensure_utc, new_id


class TestClocks:
    def test_wall_clock_is_aware(self):
        assert WallClock().now().tzinfo is not None

    def test_fixed_clock_moves_only_when_told(self, base_time):
        clock = FixedClock(base_time)
        assert clock.now() == base_time
        clock.advance(90)
        assert clock.now() == base_time + timedelta(seconds=90)
        clock.set_time(datetime(2025, 1, 1))
        assert clock.now() == datetime(2025, 1, 1, tzinfo=timezone.utc)


class TestIds:
    def test_unique(self):
        assert new_id() != new_id()

    def test_naive_is_utc(self):
        assert ensure_utc(datetime(2024, 1, 1)).tzinfo is timezone.utc

    def test_offset_converted(self):
        plus_two = timezone(timedelta(hours=2))
        value = ensure_utc(datetime(2024, 1, 1, 12, tzinfo=plus_two))
        assert value == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)
        assert value.tzinfo is timezone.utc
