"""
Core Module - Clock.

============================================================
RESPONSIBILITY
============================================================
Single source of "now" for the export pipeline.

The export window, the exportedAt stamp and the scheduler's
next fire time are all derived from the injected clock, so
a run can be replayed for any day by fixing the clock.

All datetimes leaving this module are timezone-aware UTC.

============================================================
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime, timedelta, timezone
from typing import Iterator, Optional


def as_utc(moment: datetime) -> datetime:
    """Attach UTC to a naive datetime, or convert an aware one."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def start_of_day(day: date) -> datetime:
    """00:00:00 UTC on the given calendar day."""
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def to_iso8601(moment: datetime) -> str:
    return as_utc(moment).isoformat()


def from_iso8601(value: str) -> datetime:
    """Parse an ISO-8601 string; a trailing Z means UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(value))


# ============================================================
# CLOCKS
# ============================================================

class ClockProtocol(ABC):
    """Where the pipeline reads the current time from."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        """Current UTC calendar day."""
        return self.now().date()


class SystemClock(ClockProtocol):
    """Wall clock."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class MockClock(ClockProtocol):
    """
    Fixed clock for tests and backfills.

    Time only moves when set_time() or advance() is called.
    """

    def __init__(self, initial_time: Optional[datetime] = None):
        self._time = as_utc(initial_time) if initial_time else datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self._time

    def set_time(self, new_time: datetime) -> None:
        self._time = as_utc(new_time)

    def advance(self, seconds: float = 0, **kwargs) -> None:
        """Move forward; kwargs go to timedelta (minutes, hours, days)."""
        self._time += timedelta(seconds=seconds, **kwargs)


# ============================================================
# PROCESS DEFAULT
# ============================================================

class ClockFactory:
    """Holds the clock used when a component is not given one."""

    _instance: Optional[ClockProtocol] = None

    @classmethod
    def get_clock(cls) -> ClockProtocol:
        if cls._instance is None:
            cls._instance = SystemClock()
        return cls._instance

    @classmethod
    def set_clock(cls, clock: ClockProtocol) -> None:
        cls._instance = clock

    @classmethod
    def reset(cls) -> None:
        cls._instance = SystemClock()

    @classmethod
    @contextmanager
    def use_mock(cls, initial_time: Optional[datetime] = None) -> Iterator[MockClock]:
        """Install a MockClock for the duration of the block."""
        previous = cls._instance
        mock = MockClock(initial_time)
        cls._instance = mock
        try:
            yield mock
        finally:
            cls._instance = previous


def now_utc() -> datetime:
    return ClockFactory.get_clock().now()


__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "ClockFactory",
    "as_utc",
    "start_of_day",
    "to_iso8601",
    "from_iso8601",
    "now_utc",
]
