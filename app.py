#!/usr/bin/env python3
"""
Health Analytics Export - Main Application Entry Point.

============================================================
SINGLE ENTRYPOINT
============================================================
Long-running process that exports anonymized health data
once a day and serves the Operations API.

- Loads configuration from the environment (.env supported)
- Provisions bucket, dataset and tables at startup
- Runs the daily scheduler inside the API process, so the
  API reports on and guards the same scheduler
- Stops on SIGINT/SIGTERM (handled by uvicorn)
- Compatible with PM2 / systemd process management

============================================================
USAGE
============================================================
Direct execution:
    python app.py

With PM2:
    pm2 start app.py --interpreter python --name health-export

Manual one-off export:
    python -m orchestrator.cli

============================================================
"""

import asyncio
import logging
import sys
from pathlib import Path

import uvicorn

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.absolute()
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from core.config import ExportConfig
from core.constants import SYSTEM_NAME, SYSTEM_VERSION
from core.exceptions import ConfigurationError, ExportException
from core.log_setup import new_correlation_id, setup_logging
from dashboard.main import create_app
from orchestrator.runtime import ExportRuntime, build_runtime


logger = logging.getLogger(__name__)


# ============================================================
# APPLICATION
# ============================================================

def build_server(runtime: ExportRuntime, config: ExportConfig) -> uvicorn.Server:
    """API server whose lifespan runs the runtime's scheduler."""
    app = create_app(runtime, run_scheduler=True)
    return uvicorn.Server(uvicorn.Config(
        app,
        host=config.api_host,
        port=config.api_port,
        log_config=None,
    ))


async def run_application(runtime: ExportRuntime, config: ExportConfig) -> int:
    """
    Provision storage once, then serve the API with the scheduler running.

    Returns:
        Exit code
    """
    try:
        try:
            created = await runtime.service.ensure_initialized()
            if created:
                logger.info(f"Created warehouse tables: {', '.join(created)}")
        except ExportException as e:
            logger.error(f"Startup initialization failed: {e.to_dict()}")
            return 1

        logger.info(
            f"Scheduler running at {runtime.scheduler.schedule}, "
            f"API on {config.api_host}:{config.api_port} (Ctrl+C to stop)"
        )
        await build_server(runtime, config).serve()
        return 0
    finally:
        await runtime.close()


async def _serve(config: ExportConfig) -> int:
    return await run_application(build_runtime(config), config)


def main() -> int:
    """Main entry point."""
    try:
        config = ExportConfig.from_env()
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return 1

    setup_logging(
        level=config.log_level,
        log_format=config.log_format,
        correlation_id=new_correlation_id(),
    )
    logger.info(f"Starting {SYSTEM_NAME} {SYSTEM_VERSION}")

    try:
        return asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


# ============================================================
# ENTRY POINT
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
