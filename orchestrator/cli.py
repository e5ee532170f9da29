"""
Orchestrator - CLI.

============================================================
RESPONSIBILITY
============================================================
Manual trigger for the daily analytics export.

- Exports "yesterday" by default, or the day before --date
- Prints the export summary and sample trend query sizes
- Exit code 0 on success, 1 on any failure

============================================================
USAGE
============================================================
python -m orchestrator.cli
python -m orchestrator.cli --date 2025-03-02
health-export --log-level DEBUG

============================================================
"""

import argparse
import asyncio
import logging
import sys
from datetime import date
from typing import List, Optional

from core.config import ExportConfig
from core.constants import SAMPLE_QUERY_LOOKBACK_DAYS, SYSTEM_VERSION
from core.exceptions import ExportException
from core.log_setup import new_correlation_id, setup_logging
from data_products.models import ExportManifest

from .runtime import ExportRuntime, build_runtime


logger = logging.getLogger(__name__)


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="health-export",
        description="Run the anonymized health analytics export once",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                       # Export yesterday
  %(prog)s --date 2025-03-02     # Export 2025-03-01 (backfill)
        """
    )

    parser.add_argument(
        "--date",
        type=_parse_date,
        metavar="YYYY-MM-DD",
        help="Reference date; the day before it is exported (default: today)",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Logging level (default: LOG_LEVEL or INFO)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"%(prog)s {SYSTEM_VERSION}",
    )

    return parser


# ============================================================
# OUTPUT
# ============================================================

def print_summary(manifest: ExportManifest) -> None:
    """Print the export summary."""
    print()
    if manifest.succeeded:
        print("Export completed successfully!")
    else:
        print("Export completed with failed categories")
    print("Export summary:")
    print(f"   Date: {manifest.export_date.isoformat()}")
    print(f"   File: {manifest.file_name}")
    print("   Record counts:")
    for table_name, count in manifest.record_counts.items():
        dropped = manifest.dropped_counts.get(table_name, 0)
        suffix = f" ({dropped} dropped)" if dropped else ""
        print(f"     {table_name}: {count} records{suffix}")

    failed = manifest.failed_categories
    if failed:
        print("   Failed categories:")
        for table_name, reason in failed.items():
            print(f"     {table_name}: {reason}")


async def run_sample_queries(runtime: ExportRuntime) -> None:
    """Print row counts of the trend queries over the last week."""
    days = SAMPLE_QUERY_LOOKBACK_DAYS
    print()
    print("Running sample analytics queries...")
    try:
        nutrition = await runtime.analytics.population_health_trends(days)
        print(f"   Nutrition trends ({days} days): {len(nutrition)} data points")

        exercise = await runtime.analytics.exercise_trends(days)
        print(f"   Exercise trends ({days} days): {len(exercise)} data points")

        sleep = await runtime.analytics.sleep_quality_trends(days)
        print(f"   Sleep trends ({days} days): {len(sleep)} data points")
    except Exception as e:
        logger.warning(f"Sample analytics queries failed: {e}")
        print("   Analytics queries skipped (no data yet)")


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def async_main(args: argparse.Namespace, runtime: ExportRuntime) -> int:
    """
    Run one export with a built runtime.

    Returns:
        Exit code
    """
    print("Starting manual analytics export...")

    try:
        await runtime.service.ensure_initialized()
        manifest = await runtime.scheduler.trigger_manual(args.date)
    except ExportException as e:
        logger.error(f"Manual export failed: {e.to_dict()}")
        print(f"Export failed: {e.message}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.error(f"Manual export failed: {e}", exc_info=True)
        print(f"Export failed: {e}", file=sys.stderr)
        return 1

    print_summary(manifest)
    await run_sample_queries(runtime)

    return 0 if manifest.succeeded else 1


async def _run(args: argparse.Namespace, config: ExportConfig) -> int:
    runtime = build_runtime(config)
    try:
        return await async_main(args, runtime)
    finally:
        await runtime.close()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = ExportConfig.from_env()
    except ExportException as e:
        print(f"Export failed: {e.message}", file=sys.stderr)
        return 1

    setup_logging(
        level=args.log_level or config.log_level,
        log_format=config.log_format,
        correlation_id=new_correlation_id("manual"),
    )

    try:
        return asyncio.run(_run(args, config))
    except KeyboardInterrupt:
        print("Export failed: interrupted", file=sys.stderr)
        return 130
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        print(f"Export failed: {e}", file=sys.stderr)
        return 1


# ============================================================
# MODULE EXECUTION
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
