import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from core.exceptions import ExportException
from dashboard.dependencies import get_runtime
from dashboard.schemas import AnalyticsResponse
from data_products.analytics import DEFAULT_DAYS
from orchestrator.runtime import ExportRuntime

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics", tags=["Analytics"])

DaysQuery = Query(DEFAULT_DAYS, ge=1, le=3650, description="Look-back window in days")


async def _respond(query, days: int) -> AnalyticsResponse:
    try:
        rows = await query(days)
    except ExportException as e:
        logger.error(f"Analytics query failed: {e.to_dict()}")
        raise HTTPException(status_code=502, detail=e.message)
    return AnalyticsResponse(success=True, days=days, data=rows)

@router.get("/nutrition", response_model=AnalyticsResponse)
async def get_nutrition_trends(days: int = DaysQuery, runtime: ExportRuntime = Depends(get_runtime)):
    """
    Daily active users and average macros.
    """
    return await _respond(runtime.analytics.population_health_trends, days)

@router.get("/exercise", response_model=AnalyticsResponse)
async def get_exercise_trends(days: int = DaysQuery, runtime: ExportRuntime = Depends(get_runtime)):
    return await _respond(runtime.analytics.exercise_trends, days)

@router.get("/sleep", response_model=AnalyticsResponse)
async def get_sleep_trends(days: int = DaysQuery, runtime: ExportRuntime = Depends(get_runtime)):
    return await _respond(runtime.analytics.sleep_quality_trends, days)
