"""
Pydantic schemas for the Operations API.
"""
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from data_products.models import ExportManifest

# =======================
# COMMON
# =======================

class BaseResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

# =======================
# 1. STATUS
# =======================

class SchedulerStatus(BaseModel):
    schedule: str
    running: bool
    next_run: datetime
    last_export_date: Optional[date] = None
    last_error: Optional[str] = None

class StatusResponse(BaseResponse):
    service: str
    version: str
    data: SchedulerStatus

# =======================
# 2. EXPORTS
# =======================

class ExportRequest(BaseModel):
    reference_date: Optional[date] = None  # default: today; the day before is exported

class CategoryResultModel(BaseModel):
    status: str  # succeeded / failed
    count: int
    dropped: int = 0
    reason: Optional[str] = None

class ManifestDetail(BaseModel):
    export_date: date
    window_start: datetime
    window_end: datetime
    file_name: str
    archive_path: str
    exported_at: datetime
    record_counts: Dict[str, int]
    categories: Dict[str, CategoryResultModel]

    @classmethod
    def from_manifest(cls, manifest: ExportManifest) -> "ManifestDetail":
        return cls(
            export_date=manifest.export_date,
            window_start=manifest.window.start,
            window_end=manifest.window.end,
            file_name=manifest.file_name,
            archive_path=manifest.archive_path,
            exported_at=manifest.exported_at,
            record_counts=manifest.record_counts,
            categories={
                name: CategoryResultModel(**result.to_dict())
                for name, result in manifest.categories.items()
            },
        )

class ExportResponse(BaseResponse):
    data: ManifestDetail

# =======================
# 3. ANALYTICS
# =======================

class AnalyticsResponse(BaseResponse):
    days: int
    data: List[Dict[str, Any]]
