"""Retrieval of the most recently modified object under a prefix."""

import logging
import os
import posixpath
import time

from bucketctl.errors import DirectoryCreationFailed, DownloadFailed, NoObjectsFound, StoreError
from bucketctl.formatting import format_bytes, format_duration, utcnow
from bucketctl.listing import ObjectLister
from bucketctl.models import DownloadItem, DownloadResult, ObjectEntry
from bucketctl.remote import folder_prefix
from bucketctl.storage.backend import ObjectStore

logger = logging.getLogger(__name__)


def select_latest(objects: list[ObjectEntry]) -> ObjectEntry | None:
    """Return the object with the newest ``last_modified``.

    Ties go to the object listed first.
    """
    latest: ObjectEntry | None = None
    for obj in objects:
        if latest is None or obj.last_modified > latest.last_modified:
            latest = obj
    return latest


class DownloadSelector:
    """Downloads the newest object under a prefix into a local directory."""

    def __init__(self, store: ObjectStore, bucket: str) -> None:
        self.store = store
        self.bucket = bucket

    async def download_latest(self, source: str, destination_dir: str = ".") -> DownloadResult:
        """Find and download the newest object under ``source``.

        The file is written to ``destination_dir/<base name of the key>``,
        replacing any existing file with that name. A folder-marker key such
        as ``logs/sub/`` is saved as a file named ``sub``. The destination
        directory is created if needed.

        Raises:
            ListingFailed: If listing the prefix fails.
            NoObjectsFound: If the prefix is empty.
            DirectoryCreationFailed: If the destination cannot be created.
            DownloadFailed: If the transfer or the local write fails.
        """
        started = time.monotonic()
        operation_time = utcnow()

        objects = await ObjectLister(self.store, self.bucket, folder_prefix(source)).collect()
        latest = select_latest(objects)
        if latest is None:
            raise NoObjectsFound(source)
        logger.info(
            "Latest of %d objects under %s is %s (%s)",
            len(objects),
            source,
            latest.key,
            latest.last_modified.isoformat(),
        )

        try:
            os.makedirs(destination_dir, exist_ok=True)
        except OSError as exc:
            raise DirectoryCreationFailed(destination_dir, str(exc)) from exc

        local_path = os.path.join(destination_dir, posixpath.basename(latest.key.rstrip("/")))
        try:
            await self.store.download_file(self.bucket, latest.key, local_path)
        except (StoreError, OSError) as exc:
            raise DownloadFailed(latest.key, getattr(exc, "message", None) or str(exc)) from exc

        item = DownloadItem(
            remote_path=latest.key,
            local_path=local_path,
            size=latest.size,
            last_modified=latest.last_modified,
        )
        return DownloadResult(
            bucket_name=self.bucket,
            source_path=source,
            items=[item],
            total_files=1,
            total_size_bytes=item.size,
            total_size_human=format_bytes(item.size),
            operation_time=operation_time,
            download_duration=format_duration(time.monotonic() - started),
        )
