"""
Shared fixtures.

In-memory backends stand in for Firestore, Cloud Storage and BigQuery.
"""

from datetime import datetime, timezone

import pytest

from core.clock import MockClock
from core.config import ExportConfig
from data_products.anonymization import Anonymizer
from data_products.archive import ArchiveWriter
from data_products.export_service import ExportService
from data_products.warehouse import WarehouseLoader
from orchestrator.runtime import assemble_runtime
from record_store.memory import InMemoryRecordStore
from record_store.models import HealthCategory
from storage.object_store import InMemoryObjectStore
from storage.warehouse import InMemoryWarehouse


EXPORT_DAY_START = datetime(2024, 1, 1, tzinfo=timezone.utc)
FIRE_TIME = datetime(2024, 1, 2, 2, 0, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0, day: int = 1) -> datetime:
    """A moment on January `day`, 2024 (UTC)."""
    return datetime(2024, 1, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return MockClock(FIRE_TIME)


@pytest.fixture
def record_store():
    return InMemoryRecordStore()


@pytest.fixture
def object_store():
    return InMemoryObjectStore()


@pytest.fixture
def warehouse():
    return InMemoryWarehouse()


@pytest.fixture
def loader(warehouse):
    return WarehouseLoader(warehouse, max_retries=2, retry_backoff_seconds=0)


@pytest.fixture
def service(record_store, object_store, loader, clock):
    return ExportService(
        record_store=record_store,
        archive_writer=ArchiveWriter(object_store),
        warehouse_loader=loader,
        anonymizer=Anonymizer(),
        clock=clock,
        max_retries=2,
        retry_backoff_seconds=0,
    )


@pytest.fixture
def config():
    return ExportConfig(
        project_id="cht-test",
        credentials_info={"project_id": "cht-test"},
        max_retries=2,
        retry_backoff_seconds=0,
    )


@pytest.fixture
def runtime(config, record_store, object_store, warehouse, clock):
    return assemble_runtime(config, record_store, object_store, warehouse, clock)


@pytest.fixture
def new_year_records(record_store):
    """3 food, 2 exercise, 0 water, 1 sleep, 0 mood entries on 2024-01-01."""
    record_store.add(
        HealthCategory.FOOD,
        {"id": "f1", "userId": "alice", "name": "Oatmeal", "calories": 150.0, "protein": 5.0,
         "carbs": 27.0, "fat": 3.0, "meal": "breakfast", "timestamp": at(8),
         "createdAt": at(8, 1), "email": "alice@example.com"},
        {"id": "f2", "userId": "bob", "name": "Salad", "calories": 220.0, "meal": "lunch",
         "timestamp": at(12, 30), "createdAt": at(12, 31)},
        {"id": "f3", "userId": "alice", "name": "Pasta", "calories": 600.0, "meal": "dinner",
         "timestamp": at(19), "createdAt": at(19, 2), "fullName": "Alice Doe"},
    )
    record_store.add(
        HealthCategory.EXERCISE,
        {"id": "e1", "userId": "alice", "name": "Run", "type": "cardio", "duration": 30,
         "calories": 300.0, "intensity": "high", "timestamp": at(7), "createdAt": at(7, 40)},
        {"id": "e2", "userId": "carol", "name": "Yoga", "type": "flexibility", "duration": 45,
         "calories": 120.0, "intensity": "low", "timestamp": at(18), "createdAt": at(18, 50)},
    )
    record_store.add(
        HealthCategory.SLEEP,
        {"id": "s1", "userId": "bob", "duration": 7.5, "quality": 4, "bedtime": "23:00",
         "wakeTime": "06:30", "date": at(6, 30), "createdAt": at(6, 35)},
    )
    # Outside the window
    record_store.add(
        HealthCategory.WATER,
        {"id": "w1", "userId": "alice", "amount": 500.0, "timestamp": at(0, 0, day=2)},
    )
    return record_store
