"""
Record Store - Models.

============================================================
RESPONSIBILITY
============================================================
Defines the shapes shared by the record store and the pipeline.

- Health categories and their collection/table names
- Export window: half-open UTC interval of one export run
- Record batch: category -> list of raw records

============================================================
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Union

from core.clock import as_utc, start_of_day
from core.constants import ARCHIVE_FILE_TEMPLATE, EVENT_TIME_FIELD, SLEEP_TIME_FIELD
from core.exceptions import InvalidWindowError


# ============================================================
# HEALTH CATEGORIES
# ============================================================

class HealthCategory(str, Enum):
    """Logged health event categories."""

    FOOD = "food"
    EXERCISE = "exercise"
    WATER = "water"
    SLEEP = "sleep"
    MOOD = "mood"

    @property
    def table_name(self) -> str:
        """Collection name in the record store and table name in the warehouse."""
        return f"{self.value}_entries"

    @property
    def time_field(self) -> str:
        """Field the record store windows and orders this category on."""
        if self is HealthCategory.SLEEP:
            return SLEEP_TIME_FIELD
        return EVENT_TIME_FIELD

    @classmethod
    def from_table_name(cls, table_name: str) -> "HealthCategory":
        for category in cls:
            if category.table_name == table_name:
                return category
        raise ValueError(f"Unknown table: {table_name}")


HealthRecord = Dict[str, Any]
RecordBatch = Dict[HealthCategory, List[HealthRecord]]


def empty_batch() -> RecordBatch:
    """Batch with every category present and no records."""
    return {category: [] for category in HealthCategory}


def with_event_time(record: HealthRecord, category: HealthCategory) -> HealthRecord:
    """
    Fill the timestamp field from the category's time field when absent.

    Every warehouse table is partitioned on timestamp.
    """
    if category.time_field != EVENT_TIME_FIELD and record.get(EVENT_TIME_FIELD) is None:
        if record.get(category.time_field) is not None:
            record[EVENT_TIME_FIELD] = record[category.time_field]
    return record


# ============================================================
# EXPORT WINDOW
# ============================================================

@dataclass(frozen=True)
class ExportWindow:
    """
    Half-open interval [start, end) in UTC.

    The daily job covers exactly one calendar day: start is midnight
    of day D-1 and end is midnight of day D, so the last instant
    included is D-1 23:59:59.999.
    """

    start: datetime
    end: datetime

    def __post_init__(self):
        for name in ("start", "end"):
            value = getattr(self, name)
            if not isinstance(value, datetime):
                raise InvalidWindowError(f"Window {name} must be a datetime, got {type(value).__name__}")
            object.__setattr__(self, name, as_utc(value))

        if self.start >= self.end:
            raise InvalidWindowError(
                f"Window start {self.start.isoformat()} must be before end {self.end.isoformat()}"
            )

    @classmethod
    def for_day(cls, day: date) -> "ExportWindow":
        """Window covering the given UTC calendar day."""
        start = start_of_day(day)
        return cls(start=start, end=start + timedelta(days=1))

    @classmethod
    def daily(cls, reference: Union[date, datetime]) -> "ExportWindow":
        """
        Window of the daily job triggered on `reference`: the day before it.

        A datetime is taken in UTC; only its date matters.
        """
        if isinstance(reference, datetime):
            reference = as_utc(reference).date()
        return cls.for_day(reference - timedelta(days=1))

    @property
    def inclusive_end(self) -> datetime:
        """Last millisecond inside the window."""
        return self.end - timedelta(milliseconds=1)

    @property
    def export_date(self) -> date:
        return self.start.date()

    @property
    def file_name(self) -> str:
        """Archive file name, derived from the start date."""
        return ARCHIVE_FILE_TEMPLATE.format(date=self.export_date.isoformat())

    def contains(self, moment: datetime) -> bool:
        return self.start <= as_utc(moment) < self.end

    def overlaps(self, other: "ExportWindow") -> bool:
        return self.start < other.end and other.start < self.end

    def __str__(self) -> str:
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"
