"""
Record Store - Firestore Client.

============================================================
RESPONSIBILITY
============================================================
Reads health records for an export window from Firestore.

- One collection per category (food_entries, exercise_entries, ...)
- Range query on each category's time field, ordered ascending
  (timestamp; date for sleep entries)
- Categories read concurrently, returned together
- Read-only: the pipeline never writes to the record store

============================================================
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from google.api_core.exceptions import GoogleAPIError
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2 import service_account

from storage.errors import translate_error

from .base import RecordStore
from .models import HealthCategory, HealthRecord, RecordBatch, with_event_time


logger = logging.getLogger(__name__)


class FirestoreRecordStore(RecordStore):
    """Firestore-backed record store."""

    def __init__(
        self,
        client: firestore.AsyncClient,
        collections: Optional[Mapping[HealthCategory, str]] = None,
        time_fields: Optional[Mapping[HealthCategory, str]] = None,
    ):
        self._client = client
        self._collections = dict(collections or {
            category: category.table_name for category in HealthCategory
        })
        self._time_fields = dict(time_fields or {
            category: category.time_field for category in HealthCategory
        })

    @classmethod
    def from_service_account(
        cls,
        credentials_info: Dict[str, Any],
        project_id: str,
    ) -> "FirestoreRecordStore":
        """Build the store from service account JSON."""
        credentials = service_account.Credentials.from_service_account_info(credentials_info)
        client = firestore.AsyncClient(project=project_id, credentials=credentials)
        logger.info(f"Firestore client initialized for project: {project_id}")
        return cls(client)

    async def get_records_for_export(
        self,
        start_inclusive: datetime,
        end_exclusive: datetime,
    ) -> RecordBatch:
        categories = list(HealthCategory)
        results = await asyncio.gather(*(
            self._read_collection(category, start_inclusive, end_exclusive)
            for category in categories
        ))

        batch = dict(zip(categories, results))
        logger.info(
            "Read records for export: "
            + ", ".join(f"{c.value}={len(batch[c])}" for c in categories)
        )
        return batch

    async def close(self) -> None:
        # AsyncClient has no close(); the gRPC channel belongs to its GAPIC transport
        await self._client._firestore_api.transport.close()
        logger.info("Firestore client closed")

    async def _read_collection(
        self,
        category: HealthCategory,
        start_inclusive: datetime,
        end_exclusive: datetime,
    ) -> List[HealthRecord]:
        collection = self._collections[category]
        time_field = self._time_fields[category]
        query = (
            self._client.collection(collection)
            .where(filter=FieldFilter(time_field, ">=", start_inclusive))
            .where(filter=FieldFilter(time_field, "<", end_exclusive))
            .order_by(time_field)
        )

        records: List[HealthRecord] = []
        try:
            async for doc in query.stream():
                records.append(with_event_time({"id": doc.id, **(doc.to_dict() or {})}, category))
        except (GoogleAPIError, ConnectionError, TimeoutError) as e:
            raise translate_error(e, "firestore", "query", collection)

        return records
