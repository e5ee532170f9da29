"""
Orchestrator - Runtime Wiring.

Builds the export pipeline from configuration. All cloud clients are
constructed here, once per process, and injected into the components
that use them.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from core.clock import ClockFactory, ClockProtocol
from core.config import ExportConfig
from data_products.analytics import AnalyticsQueryService
from data_products.anonymization import Anonymizer
from data_products.archive import ArchiveWriter
from data_products.export_service import ExportService
from data_products.warehouse import WarehouseLoader
from record_store.base import RecordStore
from record_store.firestore import FirestoreRecordStore
from storage.object_store import GCSObjectStore, ObjectStore
from storage.warehouse import BigQueryWarehouse, Warehouse

from .scheduler import DailyExportScheduler


logger = logging.getLogger(__name__)


@dataclass
class ExportRuntime:
    """Fully wired pipeline components for one process."""
    config: ExportConfig
    record_store: RecordStore
    object_store: ObjectStore
    warehouse: Warehouse
    service: ExportService
    scheduler: DailyExportScheduler
    analytics: AnalyticsQueryService

    async def close(self) -> None:
        await self.record_store.close()


def assemble_runtime(
    config: ExportConfig,
    record_store: RecordStore,
    object_store: ObjectStore,
    warehouse: Warehouse,
    clock: Optional[ClockProtocol] = None,
) -> ExportRuntime:
    """Wire the pipeline around already-constructed backends."""
    clock = clock or ClockFactory.get_clock()

    loader = WarehouseLoader(
        warehouse,
        max_retries=config.max_retries,
        retry_backoff_seconds=config.retry_backoff_seconds,
    )
    service = ExportService(
        record_store=record_store,
        archive_writer=ArchiveWriter(object_store),
        warehouse_loader=loader,
        anonymizer=Anonymizer(),
        clock=clock,
        max_retries=config.max_retries,
        retry_backoff_seconds=config.retry_backoff_seconds,
    )
    scheduler = DailyExportScheduler(
        service,
        clock=clock,
        hour=config.schedule_hour,
        minute=config.schedule_minute,
    )
    analytics = AnalyticsQueryService(warehouse, config.project_id, config.dataset_id)

    return ExportRuntime(
        config=config,
        record_store=record_store,
        object_store=object_store,
        warehouse=warehouse,
        service=service,
        scheduler=scheduler,
        analytics=analytics,
    )


def build_runtime(config: ExportConfig, clock: Optional[ClockProtocol] = None) -> ExportRuntime:
    """Build Firestore, Cloud Storage and BigQuery clients from the service account."""
    record_store = FirestoreRecordStore.from_service_account(
        config.credentials_info,
        config.project_id,
    )
    object_store = GCSObjectStore.from_service_account(
        config.credentials_info,
        config.project_id,
        config.bucket_name,
        config.location,
    )
    warehouse = BigQueryWarehouse.from_service_account(
        config.credentials_info,
        config.project_id,
        config.dataset_id,
        config.location,
    )

    logger.info(
        f"Runtime built | project={config.project_id} bucket={config.bucket_name} "
        f"dataset={config.dataset_id} location={config.location}"
    )
    return assemble_runtime(config, record_store, object_store, warehouse, clock)
