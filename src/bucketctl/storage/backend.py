"""Object store protocol for bucketctl."""

from datetime import datetime
from typing import Protocol

from bucketctl.models import ListPage


class ObjectStore(Protocol):
    """Protocol defining the storage transfer primitive.

    Implementations talk to one S3-compatible endpoint. Every method
    raises ``StoreError`` when the provider rejects the request or the
    transport fails; callers translate that into operation-level errors.
    """

    async def init(self) -> None:
        """Open connections or sessions."""
        ...

    async def close(self) -> None:
        """Release resources held by the store."""
        ...

    async def list_page(
        self, bucket: str, prefix: str, continuation_token: str | None = None
    ) -> ListPage:
        """Fetch one page of objects under a prefix.

        Args:
            bucket: The bucket name.
            prefix: Key prefix to filter by ("" for the whole bucket).
            continuation_token: Cursor from the previous page, or None for
                the first page.

        Returns:
            The page; ``next_token`` is None on the last page.
        """
        ...

    async def delete_batch(self, bucket: str, keys: list[str]) -> None:
        """Delete up to 1000 objects in a single bulk-delete call.

        Args:
            bucket: The bucket name.
            keys: Keys to delete.

        Raises:
            StoreError: If the call fails or reports any per-key error.
        """
        ...

    async def upload_file(
        self, bucket: str, key: str, path: str, content_type: str = "application/octet-stream"
    ) -> int:
        """Upload a local file, using multipart transfer for large files.

        Args:
            bucket: The bucket name.
            key: Destination object key.
            path: Local file to read.
            content_type: MIME type stored with the object.

        Returns:
            Number of bytes uploaded.
        """
        ...

    async def download_file(self, bucket: str, key: str, path: str) -> int:
        """Write an object's bytes to a local file, replacing it.

        Args:
            bucket: The bucket name.
            key: The object key.
            path: Local file to write.

        Returns:
            Number of bytes written.
        """
        ...

    async def get_bucket_region(self, bucket: str) -> str:
        """Return the bucket's location constraint ("" when unset)."""
        ...

    async def get_bucket_creation_date(self, bucket: str) -> datetime | None:
        """Return the bucket's creation date from the account's bucket list."""
        ...
