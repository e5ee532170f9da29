"""
Data Products - Durable Archive Writer.

Writes one immutable JSON object per export date:

    daily-exports/daily-export-YYYY-MM-DD.json

Re-running an export for the same date overwrites the same object.
"""

import json
import logging
from datetime import datetime
from typing import Dict, List, Mapping

from core.clock import to_iso8601
from core.constants import (
    ARCHIVE_CONTENT_TYPE,
    ARCHIVE_PREFIX,
    DATA_CLASSIFICATION,
    EXPORT_PURPOSE,
)
from record_store.models import ExportWindow, HealthCategory
from storage.object_store import ObjectStore

from .models import AnonymizationResult, AnonymizedRecord


logger = logging.getLogger(__name__)


def archive_path(file_name: str) -> str:
    return f"{ARCHIVE_PREFIX}{file_name}"


def build_archive_document(
    export: Mapping[HealthCategory, AnonymizationResult],
) -> Dict[str, List[AnonymizedRecord]]:
    """Archive body: every category table name, in fixed order, even when empty."""
    return {
        category.table_name: list(export[category].records) if category in export else []
        for category in HealthCategory
    }


class ArchiveWriter:
    """Writes the daily anonymized export to durable object storage."""

    def __init__(self, object_store: ObjectStore):
        self._object_store = object_store

    async def ensure_bucket(self) -> bool:
        return await self._object_store.ensure_bucket()

    def metadata(self, exported_at: datetime) -> Dict[str, str]:
        return {
            "exportedAt": to_iso8601(exported_at),
            "dataClassification": DATA_CLASSIFICATION,
            "purpose": EXPORT_PURPOSE,
        }

    async def write(
        self,
        export: Mapping[HealthCategory, AnonymizationResult],
        window: ExportWindow,
        exported_at: datetime,
    ) -> str:
        """
        Upload the export for the window. Returns the object path.

        Raises:
            TransientIOError / StoreError: upload failed
        """
        path = archive_path(window.file_name)
        body = json.dumps(build_archive_document(export), indent=2, default=str).encode("utf-8")

        await self._object_store.put(
            path,
            body,
            content_type=ARCHIVE_CONTENT_TYPE,
            metadata=self.metadata(exported_at),
        )

        logger.info(f"Uploaded {window.file_name} to object storage ({len(body)} bytes)")
        return path
