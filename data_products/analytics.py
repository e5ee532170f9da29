"""
Data Products - Analytics Queries.

============================================================
RESPONSIBILITY
============================================================
Canned aggregate queries over the anonymized warehouse tables.

- Population nutrition trends
- Exercise trends by type
- Sleep quality trends

============================================================
DESIGN PRINCIPLES
============================================================
- Read-only
- Look-back days bound as a query parameter, never interpolated
- No caching
- Warehouse errors propagate unchanged

============================================================
"""

import logging
from typing import List, Union

from storage.warehouse import Row, Warehouse


logger = logging.getLogger(__name__)


DEFAULT_DAYS = 30


def parse_timeframe(timeframe: Union[int, str]) -> int:
    """
    Look-back window in days from an int or a string like "30d".

    Raises:
        ValueError: not a positive number of days
    """
    if isinstance(timeframe, bool):
        raise ValueError(f"Invalid timeframe: {timeframe!r}")

    if isinstance(timeframe, int):
        days = timeframe
    else:
        text = str(timeframe).strip().lower()
        if text.endswith("d"):
            text = text[:-1]
        try:
            days = int(text)
        except ValueError:
            raise ValueError(f"Invalid timeframe: {timeframe!r}")

    if days <= 0:
        raise ValueError(f"Timeframe must be a positive number of days, got {days}")
    return days


class AnalyticsQueryService:
    """Runs the trend queries against the warehouse dataset."""

    def __init__(self, warehouse: Warehouse, project_id: str, dataset_id: str):
        self._warehouse = warehouse
        self._project_id = project_id
        self._dataset_id = dataset_id

    def _table(self, table_name: str) -> str:
        return f"`{self._project_id}.{self._dataset_id}.{table_name}`"

    async def _run(self, name: str, sql: str, days: Union[int, str]) -> List[Row]:
        lookback = parse_timeframe(days)
        rows = await self._warehouse.query(sql, {"days": lookback})
        logger.info(f"Analytics query {name} ({lookback}d) returned {len(rows)} rows")
        return rows

    async def population_health_trends(self, days: Union[int, str] = DEFAULT_DAYS) -> List[Row]:
        """Daily active users and average macros from food entries."""
        sql = f"""
            SELECT
              DATE(timestamp) AS date,
              COUNT(DISTINCT anonymousUserId) AS active_users,
              AVG(calories) AS avg_calories,
              AVG(protein) AS avg_protein,
              AVG(carbs) AS avg_carbs,
              AVG(fat) AS avg_fat
            FROM {self._table("food_entries")}
            WHERE timestamp >= TIMESTAMP_SUB(CURRENT_TIMESTAMP(), INTERVAL @days DAY)
            GROUP BY DATE(timestamp)
            ORDER BY date DESC
        """
        return await self._run("population_health_trends", sql, days)

    async def exercise_trends(self, days: Union[int, str] = DEFAULT_DAYS) -> List[Row]:
        """Daily session count, average duration and calories per exercise type."""
        sql = f"""
            SELECT
              DATE(timestamp) AS date,
              type AS exercise_type,
              COUNT(*) AS session_count,
              AVG(duration) AS avg_duration,
              AVG(calories) AS avg_calories_burned
            FROM {self._table("exercise_entries")}
            WHERE timestamp >= TIMESTAMP_SUB(CURRENT_TIMESTAMP(), INTERVAL @days DAY)
            GROUP BY DATE(timestamp), type
            ORDER BY date DESC, session_count DESC
        """
        return await self._run("exercise_trends", sql, days)

    async def sleep_quality_trends(self, days: Union[int, str] = DEFAULT_DAYS) -> List[Row]:
        sql = f"""
            SELECT
              DATE(timestamp) AS date,
              AVG(duration) AS avg_sleep_duration,
              AVG(quality) AS avg_sleep_quality,
              COUNT(DISTINCT anonymousUserId) AS users_tracked
            FROM {self._table("sleep_entries")}
            WHERE timestamp >= TIMESTAMP_SUB(CURRENT_TIMESTAMP(), INTERVAL @days DAY)
            GROUP BY DATE(timestamp)
            ORDER BY date DESC
        """
        return await self._run("sleep_quality_trends", sql, days)
