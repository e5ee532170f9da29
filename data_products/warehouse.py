"""
Data Products - Warehouse Loader.

============================================================
RESPONSIBILITY
============================================================
Lands anonymized records in the analytical warehouse.

- Ensures the dataset and the five category tables exist
- One batch insert per category with rows, with insert ids
  derived from the source documents so a retried insert is
  de-duplicated by the warehouse
- Zero-row categories are skipped
- A failing category never stops the others

============================================================
INITIALIZATION
============================================================
ensure_initialized() is idempotent and guarded by a lock:
concurrent callers wait for the first, later callers return
immediately. "Already exists" from the warehouse is success.

============================================================
"""

import asyncio
import hashlib
import json
import logging
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, TypeVar

from core.exceptions import CategoryLoadError, ExportException, SchemaConflictError
from core.retry import retry_async
from record_store.models import HealthCategory
from storage.warehouse import Row, Warehouse

from .models import AnonymizationResult, AnonymizedRecord, CategoryResult
from .schemas import TABLE_SCHEMAS, TableSchema


logger = logging.getLogger(__name__)

T = TypeVar("T")


def shape_row(record: AnonymizedRecord, schema: TableSchema) -> Row:
    """Project a record onto the table's columns."""
    row: Row = {}
    for name in schema.field_names:
        if name not in record:
            continue
        value = record[name]
        if name in schema.repeated_fields:
            if value is None:
                value = []
            elif not isinstance(value, list):
                value = [value]
        row[name] = value
    return row


def insert_id(record: AnonymizedRecord, table_name: str, position: int) -> str:
    """
    Streaming insert id of a record, stable across retries of a batch.

    Keyed on the source document id; records without one fall back to
    their content and position in the batch.
    """
    source_id = record.get("id")
    if source_id:
        key = f"{table_name}/{source_id}"
    else:
        key = f"{table_name}/#{position}/{json.dumps(record, sort_keys=True, default=str)}"
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


class WarehouseLoader:
    """Creates warehouse tables and loads anonymized rows."""

    def __init__(
        self,
        warehouse: Warehouse,
        schemas: Optional[Mapping[HealthCategory, TableSchema]] = None,
        max_retries: int = 3,
        retry_backoff_seconds: float = 1.0,
    ):
        self._warehouse = warehouse
        self._schemas = dict(schemas or TABLE_SCHEMAS)
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff_seconds
        self._init_lock = asyncio.Lock()
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def _io(self, description: str, operation: Callable[[], Awaitable[T]]) -> T:
        return await retry_async(
            operation,
            attempts=self._max_retries,
            backoff_base=self._retry_backoff,
            description=description,
        )

    # --------------------------------------------------------
    # Initialization
    # --------------------------------------------------------

    async def ensure_initialized(self) -> List[str]:
        """
        Create the dataset and any missing tables.

        Returns:
            Names of the tables created by this call
        """
        async with self._init_lock:
            if self._initialized:
                return []

            await self._ensure_dataset()

            created = []
            for category in HealthCategory:
                if await self._ensure_table(self._schemas[category]):
                    created.append(self._schemas[category].table_name)

            self._initialized = True
            logger.info(
                f"Warehouse initialized: {len(created)} tables created"
                + (f" ({', '.join(created)})" if created else "")
            )
            return created

    async def _ensure_dataset(self) -> None:
        if await self._io("warehouse.dataset_exists", self._warehouse.dataset_exists):
            logger.info("Warehouse dataset already exists")
            return

        try:
            await self._io("warehouse.create_dataset", self._warehouse.create_dataset)
        except SchemaConflictError:
            logger.info("Warehouse dataset created concurrently")

    async def _ensure_table(self, schema: TableSchema) -> bool:
        name = schema.table_name
        if await self._io(f"warehouse.table_exists[{name}]", lambda: self._warehouse.table_exists(name)):
            logger.info(f"Warehouse table {name} already exists")
            return False

        try:
            await self._io(f"warehouse.create_table[{name}]", lambda: self._warehouse.create_table(schema))
        except SchemaConflictError:
            logger.info(f"Warehouse table {name} already exists")
            return False

        return True

    # --------------------------------------------------------
    # Load
    # --------------------------------------------------------

    async def load(
        self,
        export: Mapping[HealthCategory, AnonymizationResult],
    ) -> Dict[str, CategoryResult]:
        """
        Insert every non-empty category.

        Returns:
            Per-table result; failures are reported, not raised
        """
        if not self._initialized:
            await self.ensure_initialized()

        results: Dict[str, CategoryResult] = {}

        for category in HealthCategory:
            batch = export.get(category) or AnonymizationResult()
            schema = self._schemas[category]
            results[schema.table_name] = await self._load_category(schema, batch)

        return results

    async def _load_category(
        self,
        schema: TableSchema,
        batch: AnonymizationResult,
    ) -> CategoryResult:
        name = schema.table_name

        if not batch.records:
            return CategoryResult.succeeded(0, dropped=batch.dropped)

        row_ids = [insert_id(record, name, i) for i, record in enumerate(batch.records)]
        rows = [shape_row(record, schema) for record in batch.records]

        try:
            await self._io(
                f"warehouse.insert_rows[{name}]",
                lambda: self._warehouse.insert_rows(name, rows, row_ids=row_ids),
            )
        except Exception as e:
            known = isinstance(e, ExportException)
            reason = e.message if known else (str(e) or type(e).__name__)
            error = CategoryLoadError(name, reason, cause=e)
            logger.error(f"{error.message} ({len(rows)} records)", exc_info=not known)
            return CategoryResult.failed(reason, count=batch.count, dropped=batch.dropped)

        logger.info(f"Loaded {len(rows)} records into warehouse table: {name}")
        return CategoryResult.succeeded(batch.count, dropped=batch.dropped)
