"""
Storage - Columnar Warehouse.

============================================================
RESPONSIBILITY
============================================================
Analytical store receiving anonymized rows.

- Warehouse: interface the loader and query layer depend on
- BigQueryWarehouse: Google BigQuery implementation
- InMemoryWarehouse: for tests

Creating a dataset or table that already exists raises
SchemaConflictError; callers decide whether that is an error.

============================================================
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set

from google.api_core.exceptions import GoogleAPIError, NotFound
from google.cloud import bigquery
from google.oauth2 import service_account

from core.constants import DATASET_DESCRIPTION, DEFAULT_LOCATION
from core.exceptions import SchemaConflictError, StoreError
from data_products.schemas import TableSchema

from .errors import translate_error


logger = logging.getLogger(__name__)

Row = Dict[str, Any]


# ============================================================
# INTERFACE
# ============================================================

class Warehouse:
    """Abstract warehouse interface."""

    async def dataset_exists(self) -> bool:
        raise NotImplementedError

    async def create_dataset(self) -> None:
        raise NotImplementedError

    async def table_exists(self, table_name: str) -> bool:
        raise NotImplementedError

    async def create_table(self, schema: TableSchema) -> None:
        """Create a table, day-partitioned and clustered per schema."""
        raise NotImplementedError

    async def insert_rows(
        self,
        table_name: str,
        rows: Sequence[Row],
        row_ids: Optional[Sequence[str]] = None,
    ) -> None:
        """
        Batch-insert rows in a single call.

        row_ids, when given, are per-row insert ids: a row whose id was
        already accepted is not inserted again.
        """
        raise NotImplementedError

    async def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[Row]:
        """Run a read-only parameterized query."""
        raise NotImplementedError


# ============================================================
# BIGQUERY
# ============================================================

def _query_parameter(name: str, value: Any) -> bigquery.ScalarQueryParameter:
    if isinstance(value, bool):
        return bigquery.ScalarQueryParameter(name, "BOOL", value)
    if isinstance(value, int):
        return bigquery.ScalarQueryParameter(name, "INT64", value)
    if isinstance(value, float):
        return bigquery.ScalarQueryParameter(name, "FLOAT64", value)
    return bigquery.ScalarQueryParameter(name, "STRING", str(value))


class BigQueryWarehouse(Warehouse):
    """Warehouse backed by a BigQuery dataset."""

    SERVICE = "bigquery"

    def __init__(
        self,
        client: bigquery.Client,
        project_id: str,
        dataset_id: str,
        location: str = DEFAULT_LOCATION,
    ):
        self._client = client
        self._project_id = project_id
        self._dataset_id = dataset_id
        self._location = location

    @classmethod
    def from_service_account(
        cls,
        credentials_info: Dict[str, Any],
        project_id: str,
        dataset_id: str,
        location: str = DEFAULT_LOCATION,
    ) -> "BigQueryWarehouse":
        credentials = service_account.Credentials.from_service_account_info(credentials_info)
        client = bigquery.Client(project=project_id, credentials=credentials)
        return cls(client, project_id, dataset_id, location)

    @property
    def dataset_ref(self) -> str:
        return f"{self._project_id}.{self._dataset_id}"

    def table_ref(self, table_name: str) -> str:
        return f"{self.dataset_ref}.{table_name}"

    async def _call(self, operation: str, resource: str, func, *args, **kwargs):
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except (GoogleAPIError, ConnectionError, TimeoutError) as e:
            raise translate_error(e, self.SERVICE, operation, resource)

    async def _exists(self, operation: str, resource: str, getter) -> bool:
        try:
            await self._call(operation, resource, getter, resource)
            return True
        except StoreError as e:
            if isinstance(e.cause, NotFound):
                return False
            raise

    async def dataset_exists(self) -> bool:
        return await self._exists("get_dataset", self.dataset_ref, self._client.get_dataset)

    async def create_dataset(self) -> None:
        dataset = bigquery.Dataset(self.dataset_ref)
        dataset.location = self._location
        dataset.description = DATASET_DESCRIPTION
        await self._call("create_dataset", self.dataset_ref, self._client.create_dataset, dataset)
        logger.info(f"Created BigQuery dataset: {self._dataset_id}")

    async def table_exists(self, table_name: str) -> bool:
        return await self._exists("get_table", self.table_ref(table_name), self._client.get_table)

    async def create_table(self, schema: TableSchema) -> None:
        table = bigquery.Table(
            self.table_ref(schema.table_name),
            schema=[
                bigquery.SchemaField(f.name, f.field_type, mode=f.mode)
                for f in schema.fields
            ],
        )
        table.time_partitioning = bigquery.TimePartitioning(
            type_=bigquery.TimePartitioningType.DAY,
            field=schema.partition_field,
        )
        table.clustering_fields = list(schema.cluster_fields)

        await self._call("create_table", self.table_ref(schema.table_name), self._client.create_table, table)
        logger.info(f"Created BigQuery table: {schema.table_name}")

    async def insert_rows(
        self,
        table_name: str,
        rows: Sequence[Row],
        row_ids: Optional[Sequence[str]] = None,
    ) -> None:
        table_ref = self.table_ref(table_name)
        kwargs = {} if row_ids is None else {"row_ids": list(row_ids)}
        errors = await self._call(
            "insert_rows", table_ref, self._client.insert_rows_json, table_ref, list(rows), **kwargs,
        )
        if errors:
            raise StoreError(
                f"{len(errors)} rows rejected by {table_name}: {errors[0]}",
                service=self.SERVICE,
                operation="insert_rows",
                context={"rejected_rows": len(errors)},
            )

    async def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[Row]:
        job_config = bigquery.QueryJobConfig(
            query_parameters=[_query_parameter(k, v) for k, v in (params or {}).items()]
        )
        return await self._call("query", self.dataset_ref, self._query_sync, sql, job_config)

    def _query_sync(self, sql: str, job_config: bigquery.QueryJobConfig) -> List[Row]:
        job = self._client.query(sql, job_config=job_config, location=self._location)
        return [dict(row.items()) for row in job.result()]


# ============================================================
# IN-MEMORY (TESTING)
# ============================================================

class InMemoryWarehouse(Warehouse):
    """
    In-memory warehouse for testing.

    race_tables: tables that look absent but already exist when
    created, as when another process initialized them first.
    accepted_ids: insert ids seen per table; a repeated id is skipped.
    """

    def __init__(self):
        self.dataset_created = False
        self.tables: Dict[str, TableSchema] = {}
        self.rows: Dict[str, List[Row]] = {}
        self.insert_calls: List[str] = []
        self.accepted_ids: Dict[str, Set[str]] = {}
        self.create_table_calls: List[str] = []
        self.queries: List[Dict[str, Any]] = []
        self.query_rows: List[Row] = []
        self.insert_failures: Dict[str, Exception] = {}
        self.query_failure: Optional[Exception] = None
        self.race_tables: Set[str] = set()

    async def dataset_exists(self) -> bool:
        return self.dataset_created

    async def create_dataset(self) -> None:
        if self.dataset_created:
            raise SchemaConflictError("dataset")
        self.dataset_created = True

    async def table_exists(self, table_name: str) -> bool:
        return table_name in self.tables and table_name not in self.race_tables

    async def create_table(self, schema: TableSchema) -> None:
        self.create_table_calls.append(schema.table_name)
        if schema.table_name in self.tables:
            raise SchemaConflictError(schema.table_name)
        self.tables[schema.table_name] = schema
        self.rows.setdefault(schema.table_name, [])

    async def insert_rows(
        self,
        table_name: str,
        rows: Sequence[Row],
        row_ids: Optional[Sequence[str]] = None,
    ) -> None:
        self.insert_calls.append(table_name)
        failure = self.insert_failures.get(table_name)
        if failure is not None:
            raise failure
        if table_name not in self.tables:
            raise StoreError(f"Table not found: {table_name}", service="memory", operation="insert_rows")

        accepted = self.accepted_ids.setdefault(table_name, set())
        for i, row in enumerate(rows):
            row_id = row_ids[i] if row_ids is not None else None
            if row_id is not None:
                if row_id in accepted:
                    continue
                accepted.add(row_id)
            self.rows[table_name].append(dict(row))

    async def query(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> List[Row]:
        self.queries.append({"sql": sql, "params": dict(params or {})})
        if self.query_failure is not None:
            raise self.query_failure
        return list(self.query_rows)
