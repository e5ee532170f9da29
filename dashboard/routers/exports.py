import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from core.constants import SYSTEM_NAME, SYSTEM_VERSION
from core.exceptions import ExportException, ExportInProgressError
from dashboard.dependencies import get_runtime
from dashboard.schemas import ExportRequest, ExportResponse, ManifestDetail, SchedulerStatus, StatusResponse
from orchestrator.runtime import ExportRuntime

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/exports", tags=["Exports"])

@router.get("/status", response_model=StatusResponse)
def get_export_status(runtime: ExportRuntime = Depends(get_runtime)):
    """
    Scheduler state and the outcome of the last run.
    """
    return StatusResponse(
        success=True,
        service=SYSTEM_NAME,
        version=SYSTEM_VERSION,
        data=SchedulerStatus(**runtime.scheduler.get_status()),
    )

@router.post("/run", response_model=ExportResponse)
async def run_export(
    request: Optional[ExportRequest] = None,
    runtime: ExportRuntime = Depends(get_runtime),
):
    """
    Run the export the daily job would run on reference_date.
    """
    reference_date = request.reference_date if request else None
    try:
        manifest = await runtime.scheduler.trigger_manual(reference_date)
    except ExportInProgressError as e:
        raise HTTPException(status_code=409, detail=e.message)
    except ExportException as e:
        logger.error(f"Manual export failed: {e.to_dict()}")
        raise HTTPException(status_code=502, detail=e.message)

    return ExportResponse(
        success=manifest.succeeded,
        message=None if manifest.succeeded else f"Failed categories: {', '.join(manifest.failed_categories)}",
        data=ManifestDetail.from_manifest(manifest),
    )
