"""
Orchestrator - Daily Export Scheduler.

============================================================
RESPONSIBILITY
============================================================
Fires the export once per calendar day at a fixed UTC time.

- Scheduled cycle: window = the day before the fire time
- Manual trigger: same routine, same window for a given day
- A failed cycle is logged; the loop waits for the next day

============================================================
CONCURRENCY
============================================================
A request whose window overlaps a running export is rejected
with ExportInProgressError. Other requests queue on one lock,
so at most one export executes at a time in this process.

============================================================
"""

import asyncio
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

from core.clock import ClockFactory, ClockProtocol, as_utc
from core.constants import DEFAULT_SCHEDULE_HOUR, DEFAULT_SCHEDULE_MINUTE
from core.exceptions import ExportInProgressError
from data_products.export_service import ExportService
from data_products.models import ExportManifest
from record_store.models import ExportWindow


logger = logging.getLogger(__name__)


class DailyExportScheduler:
    """Runs ExportService once a day at hour:minute UTC."""

    def __init__(
        self,
        service: ExportService,
        clock: Optional[ClockProtocol] = None,
        hour: int = DEFAULT_SCHEDULE_HOUR,
        minute: int = DEFAULT_SCHEDULE_MINUTE,
    ):
        if not 0 <= hour <= 23:
            raise ValueError(f"hour must be in 0..23, got {hour}")
        if not 0 <= minute <= 59:
            raise ValueError(f"minute must be in 0..59, got {minute}")

        self._service = service
        self._clock = clock or ClockFactory.get_clock()
        self._hour = hour
        self._minute = minute

        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._last_run_date: Optional[date] = None
        self._last_manifest: Optional[ExportManifest] = None
        self._last_error: Optional[str] = None

    # --------------------------------------------------------
    # Properties
    # --------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    @property
    def last_manifest(self) -> Optional[ExportManifest]:
        return self._last_manifest

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    @property
    def schedule(self) -> str:
        return f"{self._hour:02d}:{self._minute:02d} UTC"

    def next_run_after(self, moment: datetime) -> datetime:
        """Next fire time strictly after `moment`."""
        moment = as_utc(moment)

        candidate = datetime.combine(
            moment.date(),
            time(self._hour, self._minute),
            tzinfo=timezone.utc,
        )
        if candidate <= moment:
            candidate += timedelta(days=1)
        return candidate

    # --------------------------------------------------------
    # Loop
    # --------------------------------------------------------

    async def run_forever(self) -> None:
        """Run scheduled cycles until stop() is called."""
        self._stop_event.clear()
        fire_time = self.next_run_after(self._clock.now())
        logger.info(f"Export scheduler started | schedule={self.schedule} next={fire_time.isoformat()}")

        try:
            while not self._stop_event.is_set():
                if await self._wait_until(fire_time):
                    break

                if self._last_run_date != fire_time.date():
                    await self._run_scheduled(fire_time)

                fire_time = self.next_run_after(fire_time)
                logger.info(f"Next export scheduled at {fire_time.isoformat()}")
        except asyncio.CancelledError:
            logger.info("Export scheduler cancelled")
            raise
        finally:
            logger.info("Export scheduler stopped")

    def stop(self) -> None:
        self._stop_event.set()

    async def _wait_until(self, fire_time: datetime) -> bool:
        """Sleep until fire_time. Returns True if stopped meanwhile."""
        wait_seconds = (fire_time - self._clock.now()).total_seconds()
        if wait_seconds <= 0:
            return self._stop_event.is_set()

        logger.debug(f"Waiting {wait_seconds:.1f}s until next export")
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=wait_seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def _run_scheduled(self, fire_time: datetime) -> None:
        window = ExportWindow.daily(fire_time)
        try:
            await self._run(window)
        except Exception as e:
            logger.error(f"Scheduled export for {window.export_date.isoformat()} failed: {e}", exc_info=True)
        finally:
            self._last_run_date = fire_time.date()

    # --------------------------------------------------------
    # Manual trigger
    # --------------------------------------------------------

    async def trigger_manual(
        self,
        reference_date: Optional[Union[date, datetime]] = None,
    ) -> ExportManifest:
        """
        Run the export the scheduled job would run on reference_date.

        Raises:
            ExportInProgressError: an overlapping export is running
            ExportException: the run failed
        """
        window = ExportWindow.daily(reference_date or self._clock.now())
        logger.info(f"Manual export triggered for {window.export_date.isoformat()}")
        return await self._run(window)

    async def _run(self, window: ExportWindow) -> ExportManifest:
        for running in self._service.running_windows:
            if running.overlaps(window):
                raise ExportInProgressError(str(window), str(running))

        async with self._lock:
            try:
                manifest = await self._service.run_export(window)
            except Exception as e:
                self._last_error = str(e)
                raise

            self._last_manifest = manifest
            self._last_error = None if manifest.succeeded else ", ".join(manifest.failed_categories)
            return manifest

    def get_status(self) -> dict:
        return {
            "schedule": self.schedule,
            "running": self.is_running,
            "next_run": self.next_run_after(self._clock.now()).isoformat(),
            "last_export_date": self._last_manifest.export_date.isoformat() if self._last_manifest else None,
            "last_error": self._last_error,
        }
