"""
GCP Resource Setup Script.

============================================================
PROVISION ANALYTICS STORAGE
============================================================

This script:
1. Loads configuration from the environment
2. Creates the archive bucket if absent
3. Creates the warehouse dataset and category tables if absent

Safe to run repeatedly: existing resources are left untouched.

EXIT CODES:
- 0: All resources present
- 1: Configuration invalid
- 2: Provisioning failed

============================================================
"""

import asyncio
import logging
import sys

from core.config import ExportConfig
from core.exceptions import ConfigurationError, ExportException
from core.log_setup import setup_logging
from data_products.warehouse import WarehouseLoader
from storage.object_store import GCSObjectStore, ObjectStore
from storage.warehouse import BigQueryWarehouse


logger = logging.getLogger("setup_gcp")


async def provision(config: ExportConfig, object_store: ObjectStore, loader: WarehouseLoader) -> int:
    """Create bucket, dataset and tables. Returns the exit code."""
    print(f"\n[1/2] Setting up Cloud Storage bucket {config.bucket_name}...")
    try:
        if await object_store.ensure_bucket():
            print(f"  ✓ Created bucket: {config.bucket_name}")
        else:
            print(f"  ✓ Bucket already exists: {config.bucket_name}")
    except ExportException as e:
        print(f"  ✗ Error setting up Cloud Storage: {e.message}")
        return 2

    print(f"\n[2/2] Setting up BigQuery dataset {config.dataset_id}...")
    try:
        created = await loader.ensure_initialized()
    except ExportException as e:
        print(f"  ✗ Error setting up BigQuery: {e.message}")
        return 2

    if created:
        for table_name in created:
            print(f"  ✓ Created table: {table_name}")
    else:
        print("  ✓ All tables already exist")

    print("\n" + "=" * 70)
    print("✓ GCP SETUP COMPLETED")
    print("=" * 70)
    return 0


def main() -> int:
    print("\n" + "=" * 70)
    print("SETTING UP GOOGLE CLOUD RESOURCES")
    print("=" * 70)

    try:
        config = ExportConfig.from_env()
    except ConfigurationError as e:
        print(f"  ✗ {e.message}")
        print("  Run: python -m scripts.verify_gcp")
        return 1

    setup_logging(config.log_level, config.log_format)
    print(f"\nUsing Project ID: {config.project_id}")

    object_store = GCSObjectStore.from_service_account(
        config.credentials_info, config.project_id, config.bucket_name, config.location,
    )
    warehouse = BigQueryWarehouse.from_service_account(
        config.credentials_info, config.project_id, config.dataset_id, config.location,
    )
    loader = WarehouseLoader(
        warehouse,
        max_retries=config.max_retries,
        retry_backoff_seconds=config.retry_backoff_seconds,
    )

    return asyncio.run(provision(config, object_store, loader))


if __name__ == "__main__":
    sys.exit(main())
