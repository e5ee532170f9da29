"""
Orchestrator Package - Export Coordination Layer.

============================================================
PACKAGE OVERVIEW
============================================================
Controls when the export runs and wires its components.

    +-----------------------------------------------------+
    |                     Orchestrator                    |
    |-----------------------------------------------------|
    |  DailyExportScheduler | daily 02:00 UTC trigger     |
    |  build_runtime        | client and service wiring   |
    |  CLI                  | manual trigger              |
    +-----------------------------------------------------+

============================================================
QUICK START
============================================================
Command line usage::

    # Export yesterday
    python -m orchestrator.cli

    # Backfill the day before 2025-03-02
    python -m orchestrator.cli --date 2025-03-02

    # Run the daily scheduler
    python app.py

Programmatic usage::

    import asyncio
    from core.config import ExportConfig
    from orchestrator import build_runtime

    async def main():
        runtime = build_runtime(ExportConfig.from_env())
        await runtime.service.ensure_initialized()
        manifest = await runtime.scheduler.trigger_manual()
        print(manifest.to_dict())

    asyncio.run(main())

============================================================
"""

from orchestrator.scheduler import DailyExportScheduler
from orchestrator.runtime import ExportRuntime, assemble_runtime, build_runtime

__version__ = "1.0.0"

__all__ = [
    "DailyExportScheduler",
    "ExportRuntime",
    "assemble_runtime",
    "build_runtime",
]
