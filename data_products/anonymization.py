"""
Data Products - Anonymization.

============================================================
RESPONSIBILITY
============================================================
De-identifies health records before they leave the record store.

- Removes direct identifiers (fixed deny-list)
- Replaces userId with a one-way pseudonym
- Canonicalizes every timestamp to an ISO-8601 string, and
  other store-native values (bytes, geo points, references)
  to JSON types
- Stamps the run's export time

============================================================
DESIGN PRINCIPLES
============================================================
- Pure transform, no side effects
- Deterministic: same userId, same pseudonym, across
  categories and across days
- Malformed records are dropped and counted, never fatal

============================================================
PSEUDONYM
============================================================
anonymousUserId = hex(SHA-256(userId)), unkeyed and unsalted.
Enumerable identifier spaces make this open to dictionary
attacks; switching to a keyed hash changes every pseudonym
already in the warehouse.

============================================================
"""

import base64
import hashlib
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from google.cloud.firestore_v1 import GeoPoint
from google.cloud.firestore_v1.base_document import BaseDocumentReference

from core.clock import to_iso8601
from core.constants import (
    ANONYMOUS_USER_ID_FIELD,
    DENY_LIST,
    EXPORTED_AT_FIELD,
    USER_ID_FIELD,
)
from core.exceptions import MalformedRecordError
from record_store.models import HealthCategory, HealthRecord, RecordBatch

from .models import AnonymizationResult, AnonymizedRecord


logger = logging.getLogger(__name__)


def _timestamp_from_mapping(value: Mapping[str, Any]) -> Optional[datetime]:
    """Serialized Firestore timestamps: {_seconds, _nanoseconds} or {seconds, nanos}."""
    for seconds_key, nanos_key in (("_seconds", "_nanoseconds"), ("seconds", "nanos")):
        if seconds_key in value and set(value) <= {seconds_key, nanos_key}:
            seconds = value[seconds_key]
            nanos = value.get(nanos_key, 0) or 0
            if isinstance(seconds, (int, float)) and isinstance(nanos, (int, float)):
                return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
    return None


def canonicalize(value: Any) -> Any:
    """Convert store-native values (recursively) to JSON-serializable ones."""
    if isinstance(value, datetime):
        return to_iso8601(value)

    if isinstance(value, date):
        return value.isoformat()

    if isinstance(value, Mapping):
        as_timestamp = _timestamp_from_mapping(value)
        if as_timestamp is not None:
            return to_iso8601(as_timestamp)
        return {key: canonicalize(item) for key, item in value.items()}

    if isinstance(value, (list, tuple)):
        return [canonicalize(item) for item in value]

    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(value).decode("ascii")

    if isinstance(value, GeoPoint):
        return {"latitude": value.latitude, "longitude": value.longitude}

    if isinstance(value, BaseDocumentReference):
        return value.path

    return value


class Anonymizer:
    """Turns raw health records into anonymized records."""

    def __init__(self, deny_list: Iterable[str] = DENY_LIST):
        self._deny_list: FrozenSet[str] = frozenset(deny_list) | {USER_ID_FIELD}

    @property
    def deny_list(self) -> FrozenSet[str]:
        return self._deny_list

    @staticmethod
    def pseudonymize(user_id: str) -> str:
        """One-way pseudonym of a user identifier."""
        return hashlib.sha256(user_id.encode("utf-8")).hexdigest()

    def anonymize(self, record: HealthRecord, exported_at: datetime) -> AnonymizedRecord:
        """
        Anonymize one record.

        Raises:
            MalformedRecordError: if the record has no usable userId
        """
        user_id = record.get(USER_ID_FIELD)
        if not isinstance(user_id, str) or not user_id.strip():
            raise MalformedRecordError("Record has no userId", field=USER_ID_FIELD)

        result: AnonymizedRecord = {ANONYMOUS_USER_ID_FIELD: self.pseudonymize(user_id)}

        for key, value in record.items():
            if key in self._deny_list or key == ANONYMOUS_USER_ID_FIELD:
                continue
            result[key] = canonicalize(value)

        result[EXPORTED_AT_FIELD] = to_iso8601(exported_at)
        return result

    def anonymize_batch(
        self,
        records: Iterable[HealthRecord],
        exported_at: datetime,
    ) -> AnonymizationResult:
        """Anonymize a batch, dropping and counting malformed records."""
        result = AnonymizationResult()

        for record in records:
            try:
                result.records.append(self.anonymize(record, exported_at))
            except MalformedRecordError:
                result.dropped += 1

        return result

    def anonymize_export(
        self,
        batch: RecordBatch,
        exported_at: datetime,
    ) -> Dict[HealthCategory, AnonymizationResult]:
        """Anonymize every category of a record batch."""
        results: Dict[HealthCategory, AnonymizationResult] = {}

        for category in HealthCategory:
            results[category] = self.anonymize_batch(batch.get(category, []), exported_at)

            if results[category].dropped:
                logger.warning(
                    f"Dropped {results[category].dropped} {category.table_name} "
                    f"records without {USER_ID_FIELD}"
                )

        return results
