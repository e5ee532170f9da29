"""
Tests for runtime wiring.
"""

from unittest.mock import AsyncMock

import pytest

from app import build_server, run_application
from core.exceptions import StoreError
from data_products.analytics import AnalyticsQueryService
from orchestrator.runtime import assemble_runtime


class TestAssembleRuntime:
    def test_shares_components(self, runtime, record_store, object_store, warehouse, clock):
        assert runtime.record_store is record_store
        assert runtime.object_store is object_store
        assert runtime.warehouse is warehouse
        assert runtime.service.clock is clock
        assert isinstance(runtime.analytics, AnalyticsQueryService)

    def test_schedule_from_config(self, config, record_store, object_store, warehouse, clock):
        config.schedule_hour = 5
        config.schedule_minute = 30

        runtime = assemble_runtime(config, record_store, object_store, warehouse, clock)

        assert runtime.scheduler.schedule == "05:30 UTC"

    @pytest.mark.asyncio
    async def test_manual_run_uses_wired_backends(self, runtime, new_year_records, object_store, warehouse):
        manifest = await runtime.scheduler.trigger_manual()

        assert manifest.succeeded
        assert manifest.archive_path in object_store.objects
        assert len(warehouse.rows["food_entries"]) == 3


class TestApplication:
    """Tests for the app.py process entry point."""

    def test_server_hosts_scheduler_with_runtime(self, runtime, config):
        config.api_port = 9090

        server = build_server(runtime, config)

        assert server.config.port == 9090
        assert server.config.app.state.runtime is runtime

    @pytest.mark.asyncio
    async def test_failed_provisioning_exits_without_serving(self, runtime, config):
        runtime.service.ensure_initialized = AsyncMock(side_effect=StoreError("permission denied"))
        runtime.record_store.close = AsyncMock()

        assert await run_application(runtime, config) == 1
        runtime.record_store.close.assert_awaited_once()
