"""
Tests for the clock abstraction.
"""

from datetime import date, datetime, timedelta, timezone

from core.clock import (
    ClockFactory,
    MockClock,
    SystemClock,
    from_iso8601,
    now_utc,
    start_of_day,
    to_iso8601,
)


class TestMockClock:
    """Tests for MockClock."""

    def test_naive_initial_time_is_utc(self):
        clock = MockClock(datetime(2024, 1, 1, 12, 0))
        assert clock.now().tzinfo == timezone.utc

    def test_advance(self):
        clock = MockClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
        clock.advance(hours=26)
        assert clock.now() == datetime(2024, 1, 2, 2, 0, tzinfo=timezone.utc)
        assert clock.today() == date(2024, 1, 2)

    def test_set_time_converts_to_utc(self):
        clock = MockClock()
        plus_two = timezone(timedelta(hours=2))
        clock.set_time(datetime(2024, 1, 1, 1, 0, tzinfo=plus_two))
        assert clock.now() == datetime(2023, 12, 31, 23, 0, tzinfo=timezone.utc)


class TestClockFactory:
    """Tests for the process-wide clock."""

    def test_default_is_system_clock(self):
        ClockFactory.reset()
        assert isinstance(ClockFactory.get_clock(), SystemClock)

    def test_use_mock_restores_previous_clock(self):
        ClockFactory.reset()
        original = ClockFactory.get_clock()
        fixed = datetime(2024, 3, 1, tzinfo=timezone.utc)

        with ClockFactory.use_mock(fixed) as mock:
            assert now_utc() == fixed
            mock.advance(seconds=5)
            assert now_utc() == fixed + timedelta(seconds=5)

        assert ClockFactory.get_clock() is original


class TestTimestampUtilities:
    """Tests for ISO-8601 helpers."""

    def test_zulu_suffix(self):
        parsed = from_iso8601("2024-01-01T08:00:00.000Z")
        assert parsed == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)

    def test_to_iso8601_is_utc(self):
        plus_one = timezone(timedelta(hours=1))
        assert to_iso8601(datetime(2024, 1, 1, 1, 0, tzinfo=plus_one)) == "2024-01-01T00:00:00+00:00"

    def test_start_of_day(self):
        assert start_of_day(date(2024, 2, 29)) == datetime(2024, 2, 29, tzinfo=timezone.utc)
