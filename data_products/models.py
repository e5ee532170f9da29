"""
Data Products - Models.

============================================================
RESPONSIBILITY
============================================================
Result types of one export run.

- AnonymizationResult: de-identified records plus drop count
- CategoryResult: tagged per-category outcome (succeeded / failed)
- ExportManifest: what one run covered, wrote and loaded

Nothing here is persisted; a manifest lives as long as its caller
keeps it.

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from record_store.models import ExportWindow


AnonymizedRecord = Dict[str, Any]


@dataclass
class AnonymizationResult:
    """Anonymized records of one category."""
    records: List[AnonymizedRecord] = field(default_factory=list)
    dropped: int = 0

    @property
    def count(self) -> int:
        return len(self.records)


class CategoryStatus(Enum):
    """Outcome of one category within a run."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class CategoryResult:
    """
    Tagged result per category.

    count is the number of anonymized records exported for the
    category; dropped is the number of source records excluded
    for lacking a subject identifier.
    """
    status: CategoryStatus
    count: int = 0
    dropped: int = 0
    reason: Optional[str] = None

    @classmethod
    def succeeded(cls, count: int, dropped: int = 0) -> "CategoryResult":
        return cls(status=CategoryStatus.SUCCEEDED, count=count, dropped=dropped)

    @classmethod
    def failed(cls, reason: str, count: int = 0, dropped: int = 0) -> "CategoryResult":
        return cls(status=CategoryStatus.FAILED, count=count, dropped=dropped, reason=reason)

    @property
    def is_success(self) -> bool:
        return self.status == CategoryStatus.SUCCEEDED

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "status": self.status.value,
            "count": self.count,
            "dropped": self.dropped,
        }
        if self.reason:
            result["reason"] = self.reason
        return result


@dataclass
class ExportManifest:
    """Summary of one export run."""
    window: ExportWindow
    file_name: str
    archive_path: str
    exported_at: datetime
    categories: Dict[str, CategoryResult] = field(default_factory=dict)

    @property
    def export_date(self):
        return self.window.export_date

    @property
    def record_counts(self) -> Dict[str, int]:
        return {name: result.count for name, result in self.categories.items()}

    @property
    def dropped_counts(self) -> Dict[str, int]:
        return {name: result.dropped for name, result in self.categories.items()}

    @property
    def failed_categories(self) -> Dict[str, str]:
        return {
            name: result.reason or "unknown error"
            for name, result in self.categories.items()
            if not result.is_success
        }

    @property
    def succeeded(self) -> bool:
        """True when every category loaded."""
        return all(result.is_success for result in self.categories.values())

    @property
    def total_records(self) -> int:
        return sum(self.record_counts.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.succeeded,
            "export_date": self.export_date.isoformat(),
            "window_start": self.window.start.isoformat(),
            "window_end": self.window.end.isoformat(),
            "file_name": self.file_name,
            "archive_path": self.archive_path,
            "exported_at": self.exported_at.isoformat(),
            "record_counts": self.record_counts,
            "categories": {
                name: result.to_dict() for name, result in self.categories.items()
            },
        }
