"""
Record Store - Interface.

The pipeline only needs one capability from the primary store:
bulk-read every category for a time window.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from .models import RecordBatch


class RecordStore(ABC):
    """Read access to per-category health records."""

    @abstractmethod
    async def get_records_for_export(
        self,
        start_inclusive: datetime,
        end_exclusive: datetime,
    ) -> RecordBatch:
        """
        Read all records whose event timestamp falls in [start, end).

        Returns a mapping with every HealthCategory present, each an
        ordered list of raw records.

        Raises:
            TransientIOError: retryable failure talking to the store
            StoreError: permanent failure
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release client resources."""
        return None
