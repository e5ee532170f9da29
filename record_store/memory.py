"""
Record Store - In-Memory Implementation.

For tests and local dry runs.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from core.clock import as_utc, from_iso8601

from .base import RecordStore
from .models import HealthCategory, HealthRecord, RecordBatch, empty_batch, with_event_time


def _event_time(record: HealthRecord, time_field: str) -> Optional[datetime]:
    value = record.get(time_field)
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str):
        return from_iso8601(value)
    return None


class InMemoryRecordStore(RecordStore):
    """Record store holding records in process memory."""

    def __init__(self):
        self._records: Dict[HealthCategory, List[HealthRecord]] = empty_batch()
        self.read_calls: List[Dict[str, Any]] = []

    def add(self, category: HealthCategory, *records: HealthRecord) -> None:
        self._records[HealthCategory(category)].extend(records)

    def add_many(self, category: HealthCategory, records: Iterable[HealthRecord]) -> None:
        self.add(category, *records)

    async def get_records_for_export(
        self,
        start_inclusive: datetime,
        end_exclusive: datetime,
    ) -> RecordBatch:
        self.read_calls.append({"start": start_inclusive, "end": end_exclusive})

        batch = empty_batch()
        for category, records in self._records.items():
            field = category.time_field
            selected = []
            for record in records:
                moment = _event_time(record, field)
                if moment is not None and start_inclusive <= moment < end_exclusive:
                    selected.append(with_event_time(dict(record), category))
            selected.sort(key=lambda r: _event_time(r, field))
            batch[category] = selected
        return batch
