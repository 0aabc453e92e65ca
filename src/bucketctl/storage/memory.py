"""In-memory object store for bucketctl.

Implements the ObjectStore protocol with Python dictionaries. Used by the
test suite and for offline dry runs. Listings are paginated with a small
configurable page size so cursor handling is exercised the same way as
against a real endpoint.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone

from bucketctl.errors import StoreError
from bucketctl.models import ListPage, ObjectEntry
from bucketctl.storage.files import atomic_output

logger = logging.getLogger(__name__)

# Matches the S3 bulk-delete limit
MAX_DELETE_KEYS = 1000


@dataclass
class StoredObject:
    """An object held by the memory store."""

    data: bytes
    last_modified: datetime
    content_type: str = "application/octet-stream"


class MemoryObjectStore:
    """Object store that keeps buckets and objects in memory.

    Attributes:
        page_size: Maximum objects returned per ``list_page`` call.
        region: Location constraint reported for every bucket.
        calls: Names of the mutating and listing calls made, in order.
    """

    def __init__(self, page_size: int = 1000, region: str = "") -> None:
        """Initialize the memory store.

        Args:
            page_size: Objects per listing page.
            region: Location constraint reported by ``get_bucket_region``.
        """
        self.page_size = page_size
        self.region = region
        self.calls: list[str] = []
        # bucket -> (creation date, key -> object)
        self._buckets: dict[str, tuple[datetime, dict[str, StoredObject]]] = {}

    async def init(self) -> None:
        """No-op for the memory store."""

    async def close(self) -> None:
        """No-op for the memory store."""

    # -- Test and seeding helpers --------------------------------------------

    def create_bucket(self, bucket: str, created_at: datetime | None = None) -> None:
        """Create an empty bucket (no-op if it exists)."""
        if bucket not in self._buckets:
            self._buckets[bucket] = (created_at or datetime.now(timezone.utc), {})

    def put_object(
        self,
        bucket: str,
        key: str,
        data: bytes,
        last_modified: datetime | None = None,
        content_type: str = "application/octet-stream",
    ) -> None:
        """Store an object directly, creating the bucket if needed."""
        self.create_bucket(bucket)
        self._buckets[bucket][1][key] = StoredObject(
            data=data,
            last_modified=last_modified or datetime.now(timezone.utc),
            content_type=content_type,
        )

    def get_object(self, bucket: str, key: str) -> StoredObject:
        """Return a stored object.

        Raises:
            StoreError: If the bucket or key does not exist.
        """
        objects = self._objects(bucket)
        if key not in objects:
            raise StoreError(f"object not found: {bucket}/{key}", provider_code="NoSuchKey")
        return objects[key]

    def keys(self, bucket: str) -> list[str]:
        """Return all keys in a bucket, sorted."""
        return sorted(self._objects(bucket))

    def _objects(self, bucket: str) -> dict[str, StoredObject]:
        if bucket not in self._buckets:
            raise StoreError(f"bucket not found: {bucket}", provider_code="NoSuchBucket")
        return self._buckets[bucket][1]

    # -- ObjectStore protocol ------------------------------------------------

    async def list_page(
        self, bucket: str, prefix: str, continuation_token: str | None = None
    ) -> ListPage:
        """Return one page of keys in lexicographic order.

        The continuation token is the last key of the previous page.
        """
        self.calls.append("list_page")
        objects = self._objects(bucket)
        keys = sorted(k for k in objects if k.startswith(prefix))
        if continuation_token:
            keys = [k for k in keys if k > continuation_token]
        page_keys = keys[: self.page_size]
        entries = [
            ObjectEntry(key=k, size=len(objects[k].data), last_modified=objects[k].last_modified)
            for k in page_keys
        ]
        next_token = page_keys[-1] if len(keys) > self.page_size else None
        return ListPage(objects=entries, next_token=next_token)

    async def delete_batch(self, bucket: str, keys: list[str]) -> None:
        """Delete keys; missing keys are ignored, like S3."""
        self.calls.append("delete_batch")
        if len(keys) > MAX_DELETE_KEYS:
            raise StoreError(
                f"delete objects in {bucket}: {len(keys)} keys exceeds {MAX_DELETE_KEYS}",
                provider_code="MalformedXML",
            )
        objects = self._objects(bucket)
        for key in keys:
            objects.pop(key, None)

    async def upload_file(
        self, bucket: str, key: str, path: str, content_type: str = "application/octet-stream"
    ) -> int:
        """Read a local file into the bucket."""
        self.calls.append("upload_file")
        self._objects(bucket)
        with open(path, "rb") as fh:
            data = fh.read()
        self.put_object(bucket, key, data, content_type=content_type)
        return len(data)

    async def download_file(self, bucket: str, key: str, path: str) -> int:
        """Write a stored object to a local file."""
        self.calls.append("download_file")
        obj = self.get_object(bucket, key)
        with atomic_output(path) as fh:
            fh.write(obj.data)
        logger.debug("Wrote %d bytes to %s", len(obj.data), os.path.abspath(path))
        return len(obj.data)

    async def get_bucket_region(self, bucket: str) -> str:
        """Return the configured region for an existing bucket."""
        self._objects(bucket)
        return self.region

    async def get_bucket_creation_date(self, bucket: str) -> datetime | None:
        """Return the bucket's creation date, or None if unknown."""
        if bucket not in self._buckets:
            return None
        return self._buckets[bucket][0]
