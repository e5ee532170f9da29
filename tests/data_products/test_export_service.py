"""
Tests for the export routine, end to end against in-memory backends.
"""

import asyncio
import json
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock

import pytest

from core.exceptions import ExportInProgressError, StoreError, TransientIOError
from record_store.models import ExportWindow, HealthCategory

from tests.conftest import at


NEW_YEAR = ExportWindow.for_day(date(2024, 1, 1))


class TestRunExport:
    """End-to-end export scenarios."""

    @pytest.mark.asyncio
    async def test_new_year_scenario(self, service, new_year_records, object_store, warehouse):
        manifest = await service.run_export(NEW_YEAR)

        assert manifest.file_name == "daily-export-2024-01-01.json"
        assert manifest.archive_path == "daily-exports/daily-export-2024-01-01.json"
        assert manifest.record_counts == {
            "food_entries": 3,
            "exercise_entries": 2,
            "water_entries": 0,
            "sleep_entries": 1,
            "mood_entries": 0,
        }
        assert manifest.succeeded

        body = json.loads(object_store.get(manifest.archive_path).body)
        assert {name: len(items) for name, items in body.items()} == manifest.record_counts

        assert warehouse.insert_calls == ["food_entries", "exercise_entries", "sleep_entries"]
        assert len(warehouse.rows["food_entries"]) == 3
        assert len(warehouse.rows["exercise_entries"]) == 2
        assert len(warehouse.rows["sleep_entries"]) == 1

    @pytest.mark.asyncio
    async def test_no_identifiers_leave_the_store(self, service, new_year_records, object_store, warehouse):
        manifest = await service.run_export(NEW_YEAR)

        archived = object_store.get(manifest.archive_path).body.decode("utf-8")
        for needle in ('"userId"', '"email"', '"fullName"', "alice@example.com", "Alice Doe"):
            assert needle not in archived
        for table_rows in warehouse.rows.values():
            for row in table_rows:
                assert "userId" not in row
                assert len(row["anonymousUserId"]) == 64

    @pytest.mark.asyncio
    async def test_same_user_same_pseudonym_across_categories(self, service, new_year_records, warehouse):
        await service.run_export(NEW_YEAR)

        food_users = {row["anonymousUserId"] for row in warehouse.rows["food_entries"]}
        exercise_users = {row["anonymousUserId"] for row in warehouse.rows["exercise_entries"]}
        assert len(food_users) == 2
        assert len(food_users & exercise_users) == 1

    @pytest.mark.asyncio
    async def test_records_without_user_id_dropped(self, service, record_store):
        record_store.add_many(HealthCategory.FOOD, [
            {"userId": f"user_{i}", "calories": 100.0, "timestamp": at(10, i)} for i in range(8)
        ])
        record_store.add(
            HealthCategory.FOOD,
            {"calories": 1.0, "timestamp": at(11)},
            {"userId": "", "calories": 2.0, "timestamp": at(12)},
        )

        manifest = await service.run_export(NEW_YEAR)

        assert manifest.record_counts["food_entries"] == 8
        assert manifest.dropped_counts["food_entries"] == 2
        assert manifest.succeeded

    @pytest.mark.asyncio
    async def test_rerun_is_idempotent(self, service, new_year_records, object_store, warehouse):
        first = await service.run_export(NEW_YEAR)
        first_body = json.loads(object_store.get(first.archive_path).body)

        second = await service.run_export(NEW_YEAR)
        second_body = json.loads(object_store.get(second.archive_path).body)

        assert list(object_store.objects) == [first.archive_path]
        assert second.record_counts == first.record_counts
        assert {k: len(v) for k, v in second_body.items()} == {k: len(v) for k, v in first_body.items()}
        assert len(warehouse.create_table_calls) == 5

    @pytest.mark.asyncio
    async def test_exported_at_from_clock(self, service, new_year_records, warehouse, clock):
        clock.set_time(datetime(2024, 1, 2, 2, 0, 5, tzinfo=timezone.utc))

        manifest = await service.run_export(NEW_YEAR)

        assert manifest.exported_at == clock.now()
        assert warehouse.rows["sleep_entries"][0]["exportedAt"] == "2024-01-02T02:00:05+00:00"

    @pytest.mark.asyncio
    async def test_category_failure_in_manifest(self, service, new_year_records, warehouse):
        warehouse.insert_failures["exercise_entries"] = StoreError("quota exceeded")

        manifest = await service.run_export(NEW_YEAR)

        assert not manifest.succeeded
        assert list(manifest.failed_categories) == ["exercise_entries"]
        assert len(warehouse.rows["sleep_entries"]) == 1

        as_dict = manifest.to_dict()
        assert as_dict["success"] is False
        assert as_dict["categories"]["exercise_entries"]["status"] == "failed"


class TestFailures:
    """Failures that abort the run."""

    @pytest.mark.asyncio
    async def test_read_failure_propagates_after_retries(self, service, record_store, object_store, warehouse):
        record_store.get_records_for_export = AsyncMock(side_effect=TransientIOError("firestore unavailable"))

        with pytest.raises(TransientIOError):
            await service.run_export(NEW_YEAR)

        assert record_store.get_records_for_export.await_count == 2
        assert object_store.objects == {}
        assert warehouse.insert_calls == []

    @pytest.mark.asyncio
    async def test_archive_failure_skips_warehouse(self, service, new_year_records, object_store, warehouse):
        object_store.put = AsyncMock(side_effect=StoreError("bucket deleted"))

        with pytest.raises(StoreError):
            await service.run_export(NEW_YEAR)

        assert warehouse.insert_calls == []
        assert service.running_windows == []


class TestReentrancy:
    """Overlapping runs are rejected."""

    @pytest.mark.asyncio
    async def test_overlapping_window_rejected(self, service, record_store):
        release = asyncio.Event()
        original = record_store.get_records_for_export

        async def slow_read(start, end):
            await release.wait()
            return await original(start, end)

        record_store.get_records_for_export = slow_read

        first = asyncio.create_task(service.run_export(NEW_YEAR))
        await asyncio.sleep(0)

        overlapping = ExportWindow(start=at(12), end=at(12, day=2))
        with pytest.raises(ExportInProgressError):
            await service.run_export(overlapping)

        release.set()
        manifest = await first
        assert manifest.succeeded

    @pytest.mark.asyncio
    async def test_adjacent_windows_allowed(self, service, record_store):
        release = asyncio.Event()
        original = record_store.get_records_for_export

        async def slow_read(start, end):
            if start == NEW_YEAR.start:
                await release.wait()
            return await original(start, end)

        record_store.get_records_for_export = slow_read

        first = asyncio.create_task(service.run_export(NEW_YEAR))
        await asyncio.sleep(0)

        second = await service.run_export(ExportWindow.for_day(date(2024, 1, 2)))
        release.set()
        await first

        assert second.file_name == "daily-export-2024-01-02.json"


class TestEntryPoints:
    """Tests for export_daily and ensure_initialized."""

    @pytest.mark.asyncio
    async def test_export_daily_defaults_to_yesterday(self, service, new_year_records):
        manifest = await service.export_daily()
        assert manifest.export_date == date(2024, 1, 1)

    @pytest.mark.asyncio
    async def test_ensure_initialized_once(self, service, object_store, warehouse):
        created = await service.ensure_initialized()

        assert len(created) == 5
        assert object_store.bucket_created
        assert await service.ensure_initialized() == []
