"""
Tests for the analytics query layer.
"""

import pytest

from core.exceptions import StoreError
from data_products.analytics import AnalyticsQueryService, parse_timeframe


@pytest.fixture
def analytics(warehouse):
    return AnalyticsQueryService(warehouse, "cht-prod", "cht_analytics")


class TestParseTimeframe:
    """Tests for parse_timeframe."""

    @pytest.mark.parametrize("value,expected", [(30, 30), ("7d", 7), ("14", 14), (" 90D ", 90)])
    def test_valid(self, value, expected):
        assert parse_timeframe(value) == expected

    @pytest.mark.parametrize("value", [0, -3, "d", "week", True])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_timeframe(value)


class TestAnalyticsQueries:
    """Tests for the trend queries."""

    @pytest.mark.asyncio
    async def test_population_health_trends(self, analytics, warehouse):
        warehouse.query_rows = [{"date": "2024-01-02", "active_users": 10}, {"date": "2024-01-01", "active_users": 8}]

        rows = await analytics.population_health_trends(7)

        assert rows == warehouse.query_rows
        (query,) = warehouse.queries
        assert query["params"] == {"days": 7}
        assert "`cht-prod.cht_analytics.food_entries`" in query["sql"]
        assert "INTERVAL @days DAY" in query["sql"]
        assert "COUNT(DISTINCT anonymousUserId) AS active_users" in query["sql"]
        assert "ORDER BY date DESC" in query["sql"]

    @pytest.mark.asyncio
    async def test_exercise_trends_grouped_by_type(self, analytics, warehouse):
        await analytics.exercise_trends("30d")

        sql = warehouse.queries[0]["sql"]
        assert "`cht-prod.cht_analytics.exercise_entries`" in sql
        assert "GROUP BY DATE(timestamp), type" in sql
        assert "ORDER BY date DESC, session_count DESC" in sql
        assert warehouse.queries[0]["params"] == {"days": 30}

    @pytest.mark.asyncio
    async def test_sleep_quality_trends_default_window(self, analytics, warehouse):
        await analytics.sleep_quality_trends()

        sql = warehouse.queries[0]["sql"]
        assert "`cht-prod.cht_analytics.sleep_entries`" in sql
        assert "AVG(quality) AS avg_sleep_quality" in sql
        assert warehouse.queries[0]["params"] == {"days": 30}

    @pytest.mark.asyncio
    async def test_days_never_interpolated(self, analytics, warehouse):
        await analytics.population_health_trends(12345)
        assert "12345" not in warehouse.queries[0]["sql"]

    @pytest.mark.asyncio
    async def test_engine_errors_propagate(self, analytics, warehouse):
        warehouse.query_failure = StoreError("Table not found: food_entries")

        with pytest.raises(StoreError, match="Table not found"):
            await analytics.population_health_trends()

    @pytest.mark.asyncio
    async def test_no_caching(self, analytics, warehouse):
        await analytics.sleep_quality_trends(7)
        await analytics.sleep_quality_trends(7)
        assert len(warehouse.queries) == 2
