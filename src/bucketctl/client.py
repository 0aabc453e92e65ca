"""The bucketctl client: one object store, four operations.

A Client is built from one immutable StorageCredentials value and owns the
object store for its lifetime::

    async with Client(credentials) as client:
        result = await client.delete_old_files("logs", days_old=30, dry_run=True)

Every operation accepts an optional ``bucket`` override and a ``timeout``
in seconds. When the timeout expires the in-flight request is cancelled,
scoped cleanup (temporary archives, partial downloads) still runs, and
``OperationTimeout`` is raised.
"""

import asyncio
import logging
from collections.abc import Awaitable
from datetime import timedelta
from typing import TypeVar

from bucketctl.config import StorageCredentials
from bucketctl.deleter import BatchDeleter
from bucketctl.download import DownloadSelector
from bucketctl.errors import (
    BucketLookupFailed,
    ConfigurationInvalid,
    InvalidArgument,
    OperationTimeout,
    StoreError,
)
from bucketctl.formatting import format_bytes, utcnow
from bucketctl.listing import ObjectLister
from bucketctl.models import BucketInfo, DeleteResult, DownloadResult, UploadResult
from bucketctl.remote import folder_prefix
from bucketctl.storage import ObjectStore, create_object_store
from bucketctl.upload import UploadOrchestrator

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Client:
    """Entry point for bucket operations.

    Attributes:
        credentials: Endpoint, keys and default bucket.
        store: The object store used for all requests.
    """

    def __init__(self, credentials: StorageCredentials, store: ObjectStore | None = None) -> None:
        """Create a client.

        Args:
            credentials: Storage configuration; must name keys and a bucket.
            store: Object store to use instead of an S3 client built from
                the credentials. An injected store is not opened or closed
                by the client.

        Raises:
            ConfigurationInvalid: If required credentials are missing.
        """
        if store is None:
            credentials.require_complete()
        self.credentials = credentials
        self._owns_store = store is None
        self.store: ObjectStore = store if store is not None else create_object_store(credentials)

    async def __aenter__(self) -> "Client":
        if self._owns_store:
            await self.store.init()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_store:
            await self.store.close()

    def _bucket(self, bucket: str | None) -> str:
        name = self.credentials.with_bucket(bucket).bucket_name
        if not name:
            raise ConfigurationInvalid("missing configuration: bucket_name")
        return name

    async def _run(self, operation: str, coro: Awaitable[T], timeout: float | None) -> T:
        """Await ``coro`` under an optional deadline."""
        if timeout is None:
            return await coro
        try:
            return await asyncio.wait_for(coro, timeout)
        except asyncio.TimeoutError as exc:
            logger.error("%s timed out after %gs", operation, timeout, extra={"operation": operation})
            raise OperationTimeout(operation, timeout) from exc

    # -- Operations ------------------------------------------------------------

    async def get_bucket_info(
        self, bucket: str | None = None, timeout: float | None = None
    ) -> BucketInfo:
        """Collect region, creation date and object statistics for a bucket.

        Raises:
            BucketLookupFailed: If the location or bucket list cannot be read.
            ListingFailed: If listing the bucket fails.
            OperationTimeout: If ``timeout`` expires.
        """
        return await self._run("bucket-info", self._bucket_info(self._bucket(bucket)), timeout)

    async def _bucket_info(self, bucket: str) -> BucketInfo:
        try:
            region = await self.store.get_bucket_region(bucket)
        except StoreError as exc:
            raise BucketLookupFailed(bucket, exc.message) from exc

        lister = ObjectLister(self.store, bucket)
        async for _obj in lister:
            pass

        try:
            creation_date = await self.store.get_bucket_creation_date(bucket)
        except StoreError as exc:
            raise BucketLookupFailed(bucket, exc.message) from exc

        return BucketInfo(
            bucket_name=bucket,
            region=region or self.credentials.region,
            creation_date=creation_date,
            object_count=lister.count,
            total_size_bytes=lister.total_size,
            total_size_human=format_bytes(lister.total_size),
            last_modified=lister.last_modified,
            api_endpoint=self.credentials.endpoint_url,
        )

    async def delete_old_files(
        self,
        folder: str,
        days_old: int,
        dry_run: bool = False,
        bucket: str | None = None,
        timeout: float | None = None,
    ) -> DeleteResult:
        """Delete objects under ``folder`` last modified more than ``days_old`` days ago.

        Raises:
            InvalidArgument: If ``days_old`` is not positive.
            ListingFailed: If listing fails.
            BatchDeleteFailed: If a bulk-delete call fails; earlier batches
                stay deleted.
            OperationTimeout: If ``timeout`` expires.
        """
        if days_old <= 0:
            raise InvalidArgument("days must be greater than 0")
        return await self._run(
            "delete-old",
            self._delete_old(self._bucket(bucket), folder, days_old, dry_run),
            timeout,
        )

    async def _delete_old(self, bucket: str, folder: str, days_old: int, dry_run: bool) -> DeleteResult:
        cutoff = utcnow() - timedelta(days=days_old)
        outcome = await BatchDeleter(self.store, bucket).delete_older_than(
            folder_prefix(folder), cutoff, dry_run=dry_run
        )
        return DeleteResult(
            bucket_name=bucket,
            folder=folder,
            days_old=days_old,
            deleted_files=outcome.keys,
            deleted_count=outcome.deleted_count,
            total_size_bytes=outcome.total_size,
            total_size_human=format_bytes(outcome.total_size),
            operation_time=utcnow(),
            cutoff_date=cutoff,
            dry_run=dry_run,
        )

    async def upload_files(
        self,
        paths: list[str],
        destination: str = "",
        should_archive: bool = True,
        exclude_patterns: list[str] | None = None,
        archive_name: str | None = None,
        dry_run: bool = False,
        bucket: str | None = None,
        timeout: float | None = None,
    ) -> UploadResult:
        """Upload local files and folders, archived into one zip by default.

        Raises:
            PathNotFound: If an input path does not exist.
            ArchiveCreationFailed: If the archive cannot be built.
            UploadFailed: If a transfer fails.
            OperationTimeout: If ``timeout`` expires.
        """
        orchestrator = UploadOrchestrator(self.store, self._bucket(bucket))
        run = orchestrator.plan if dry_run else orchestrator.upload
        return await self._run(
            "upload",
            run(paths, destination, should_archive, exclude_patterns, archive_name),
            timeout,
        )

    async def download_latest_file(
        self,
        folder: str,
        destination: str = ".",
        bucket: str | None = None,
        timeout: float | None = None,
    ) -> DownloadResult:
        """Download the newest object under ``folder`` into ``destination``.

        Raises:
            ListingFailed: If listing fails.
            NoObjectsFound: If the folder is empty.
            DirectoryCreationFailed: If ``destination`` cannot be created.
            DownloadFailed: If the transfer fails.
            OperationTimeout: If ``timeout`` expires.
        """
        selector = DownloadSelector(self.store, self._bucket(bucket))
        return await self._run(
            "download", selector.download_latest(folder, destination or "."), timeout
        )
