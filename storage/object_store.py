"""
Storage - Object Store.

============================================================
RESPONSIBILITY
============================================================
Durable blob storage for the daily archive.

- ObjectStore: interface the archive writer depends on
- GCSObjectStore: Google Cloud Storage implementation
- InMemoryObjectStore: for tests

A put is a single object write: readers see either the previous
object or the complete new one, never a partial upload.

============================================================
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from google.api_core.exceptions import GoogleAPIError
from google.cloud import storage as gcs
from google.oauth2 import service_account

from core.constants import DEFAULT_LOCATION
from core.exceptions import SchemaConflictError
from .errors import translate_error


logger = logging.getLogger(__name__)


# ============================================================
# INTERFACE
# ============================================================

class ObjectStore:
    """
    Abstract object store interface.

    Implementations handle actual storage operations.
    """

    async def ensure_bucket(self) -> bool:
        """Create the bucket if absent. Returns True when created."""
        raise NotImplementedError

    async def put(
        self,
        path: str,
        body: bytes,
        content_type: str,
        metadata: Mapping[str, str],
    ) -> None:
        """Write one object, replacing any object at the same path."""
        raise NotImplementedError


# ============================================================
# GOOGLE CLOUD STORAGE
# ============================================================

class GCSObjectStore(ObjectStore):
    """Object store backed by a Cloud Storage bucket."""

    def __init__(
        self,
        client: gcs.Client,
        bucket_name: str,
        location: str = DEFAULT_LOCATION,
    ):
        self._client = client
        self._bucket_name = bucket_name
        self._location = location

    @classmethod
    def from_service_account(
        cls,
        credentials_info: Dict[str, Any],
        project_id: str,
        bucket_name: str,
        location: str = DEFAULT_LOCATION,
    ) -> "GCSObjectStore":
        credentials = service_account.Credentials.from_service_account_info(credentials_info)
        client = gcs.Client(project=project_id, credentials=credentials)
        return cls(client, bucket_name, location)

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    async def ensure_bucket(self) -> bool:
        return await asyncio.to_thread(self._ensure_bucket_sync)

    def _ensure_bucket_sync(self) -> bool:
        try:
            if self._client.lookup_bucket(self._bucket_name) is not None:
                logger.info(f"Bucket {self._bucket_name} already exists")
                return False

            bucket = self._client.bucket(self._bucket_name)
            bucket.storage_class = "STANDARD"
            bucket.iam_configuration.uniform_bucket_level_access_enabled = True
            self._client.create_bucket(bucket, location=self._location)
            logger.info(f"Bucket {self._bucket_name} created")
            return True
        except (GoogleAPIError, ConnectionError, TimeoutError) as e:
            error = translate_error(e, "cloud_storage", "create_bucket", self._bucket_name)
            if isinstance(error, SchemaConflictError):
                logger.info(f"Bucket {self._bucket_name} created concurrently")
                return False
            raise error

    async def put(
        self,
        path: str,
        body: bytes,
        content_type: str,
        metadata: Mapping[str, str],
    ) -> None:
        await asyncio.to_thread(self._put_sync, path, body, content_type, dict(metadata))

    def _put_sync(
        self,
        path: str,
        body: bytes,
        content_type: str,
        metadata: Dict[str, str],
    ) -> None:
        blob = self._client.bucket(self._bucket_name).blob(path)
        blob.metadata = metadata
        try:
            blob.upload_from_string(body, content_type=content_type)
        except (GoogleAPIError, ConnectionError, TimeoutError) as e:
            raise translate_error(e, "cloud_storage", "upload", path)


# ============================================================
# IN-MEMORY (TESTING)
# ============================================================

@dataclass
class StoredObject:
    body: bytes
    content_type: str
    metadata: Dict[str, str] = field(default_factory=dict)


class InMemoryObjectStore(ObjectStore):
    """In-memory object store for testing."""

    def __init__(self):
        self.objects: Dict[str, StoredObject] = {}
        self.put_calls: List[str] = []
        self.bucket_created = False

    async def ensure_bucket(self) -> bool:
        if self.bucket_created:
            return False
        self.bucket_created = True
        return True

    async def put(
        self,
        path: str,
        body: bytes,
        content_type: str,
        metadata: Mapping[str, str],
    ) -> None:
        self.put_calls.append(path)
        self.objects[path] = StoredObject(body, content_type, dict(metadata))

    def get(self, path: str) -> Optional[StoredObject]:
        return self.objects.get(path)
