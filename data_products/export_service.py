"""
Data Products - Export Service.

============================================================
RESPONSIBILITY
============================================================
Runs one anonymized analytics export for a time window.

    record store (read window)
        -> anonymizer
        -> archive writer      (one JSON object per day)
        -> warehouse loader    (one insert per category)
        -> ExportManifest

============================================================
DESIGN PRINCIPLES
============================================================
- Steps are sequential within a run
- Read and archive failures fail the run
- Warehouse failures are per category, reported in the manifest
- Runs for overlapping windows never execute concurrently
- Safely re-runnable for the same day

============================================================
"""

import asyncio
import logging
from datetime import date, datetime
from typing import List, Optional, Union

from core.clock import ClockFactory, ClockProtocol
from core.exceptions import ExportInProgressError
from core.retry import retry_async
from record_store.base import RecordStore
from record_store.models import ExportWindow, HealthCategory

from .anonymization import Anonymizer
from .archive import ArchiveWriter
from .models import ExportManifest
from .warehouse import WarehouseLoader


logger = logging.getLogger(__name__)


class ExportService:
    """The export routine shared by the scheduler and manual triggers."""

    def __init__(
        self,
        record_store: RecordStore,
        archive_writer: ArchiveWriter,
        warehouse_loader: WarehouseLoader,
        anonymizer: Optional[Anonymizer] = None,
        clock: Optional[ClockProtocol] = None,
        max_retries: int = 3,
        retry_backoff_seconds: float = 1.0,
    ):
        self._record_store = record_store
        self._archive_writer = archive_writer
        self._warehouse_loader = warehouse_loader
        self._anonymizer = anonymizer or Anonymizer()
        self._clock = clock or ClockFactory.get_clock()
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff_seconds

        self._guard = asyncio.Lock()
        self._running: List[ExportWindow] = []
        self._init_lock = asyncio.Lock()
        self._initialized = False

    @property
    def clock(self) -> ClockProtocol:
        return self._clock

    @property
    def running_windows(self) -> List[ExportWindow]:
        return list(self._running)

    async def ensure_initialized(self) -> List[str]:
        """
        Provision archive bucket and warehouse tables, once per process.

        Returns:
            Names of warehouse tables created by this call
        """
        async with self._init_lock:
            if self._initialized:
                return []

            await retry_async(
                self._archive_writer.ensure_bucket,
                attempts=self._max_retries,
                backoff_base=self._retry_backoff,
                description="object_store.ensure_bucket",
            )
            created = await self._warehouse_loader.ensure_initialized()
            self._initialized = True
            return created

    # --------------------------------------------------------
    # Entry points
    # --------------------------------------------------------

    async def export_daily(
        self,
        reference: Optional[Union[date, datetime]] = None,
    ) -> ExportManifest:
        """Export the day before `reference` (default: now)."""
        return await self.run_export(ExportWindow.daily(reference or self._clock.now()))

    async def run_export(self, window: ExportWindow) -> ExportManifest:
        """
        Export every category for the window.

        Raises:
            ExportInProgressError: an overlapping export is running
            TransientIOError / StoreError: record read or archive upload failed
        """
        await self._acquire(window)
        try:
            return await self._run(window)
        finally:
            await self._release(window)

    # --------------------------------------------------------
    # Re-entrancy guard
    # --------------------------------------------------------

    async def _acquire(self, window: ExportWindow) -> None:
        async with self._guard:
            for running in self._running:
                if running.overlaps(window):
                    raise ExportInProgressError(str(window), str(running))
            self._running.append(window)

    async def _release(self, window: ExportWindow) -> None:
        async with self._guard:
            self._running.remove(window)

    # --------------------------------------------------------
    # Run
    # --------------------------------------------------------

    async def _run(self, window: ExportWindow) -> ExportManifest:
        await self.ensure_initialized()

        exported_at = self._clock.now()
        logger.info(f"Starting data export for {window.export_date.isoformat()} {window}")

        batch = await retry_async(
            lambda: self._record_store.get_records_for_export(window.start, window.end),
            attempts=self._max_retries,
            backoff_base=self._retry_backoff,
            description="record_store.read",
        )

        anonymized = self._anonymizer.anonymize_export(batch, exported_at)

        path = await retry_async(
            lambda: self._archive_writer.write(anonymized, window, exported_at),
            attempts=self._max_retries,
            backoff_base=self._retry_backoff,
            description="archive.write",
        )

        categories = await self._warehouse_loader.load(anonymized)

        manifest = ExportManifest(
            window=window,
            file_name=window.file_name,
            archive_path=path,
            exported_at=exported_at,
            categories=categories,
        )

        counts = ", ".join(
            f"{category.table_name}={anonymized[category].count}"
            for category in HealthCategory
        )
        if manifest.succeeded:
            logger.info(f"Data export completed for {window.export_date.isoformat()}: {counts}")
        else:
            logger.error(
                f"Data export for {window.export_date.isoformat()} completed with failed categories: "
                f"{', '.join(manifest.failed_categories)} ({counts})"
            )

        return manifest
