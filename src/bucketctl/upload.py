"""Upload of local files and folders, optionally packed into one archive.

With archiving, every input goes into a single temporary zip that is
uploaded under the destination prefix and then removed. Without it, each
file is uploaded individually; a directory ``data`` becomes keys
``<destination>/data/<relative path>``.
"""

import logging
import os
import time
from collections.abc import Iterator
from datetime import datetime

from bucketctl.archive import archive_filename, temporary_archive
from bucketctl.errors import StoreError, UploadFailed
from bucketctl.formatting import format_bytes, format_duration, utcnow
from bucketctl.models import UploadItem, UploadResult
from bucketctl.paths import normalize_path, validate_paths, walk_path
from bucketctl.remote import resolve_remote_key
from bucketctl.storage.backend import ObjectStore

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    ".txt": "text/plain",
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".csv": "text/csv",
    ".md": "text/markdown",
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".bz2": "application/x-bzip2",
    ".xz": "application/x-xz",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".webp": "image/webp",
    ".mp3": "audio/mpeg",
    ".mp4": "video/mp4",
    ".avi": "video/x-msvideo",
    ".mov": "video/quicktime",
}


def detect_content_type(path: str) -> str:
    """Pick a MIME type from the file extension."""
    _root, ext = os.path.splitext(path)
    return CONTENT_TYPES.get(ext.lower(), "application/octet-stream")


class UploadOrchestrator:
    """Turns local paths into uploaded objects and an UploadResult.

    Transfers run strictly one file at a time, in input order and, within a
    directory, in walk order. The first failed transfer aborts the whole
    upload.
    """

    def __init__(self, store: ObjectStore, bucket: str, temp_dir: str | None = None) -> None:
        self.store = store
        self.bucket = bucket
        self.temp_dir = temp_dir

    async def upload(
        self,
        paths: list[str],
        destination: str = "",
        should_archive: bool = True,
        exclude_patterns: list[str] | None = None,
        archive_name: str | None = None,
    ) -> UploadResult:
        """Upload ``paths`` under ``destination``.

        Args:
            paths: Local files and directories, in order.
            destination: Remote prefix ("" for the bucket root).
            should_archive: Pack all inputs into one zip before uploading.
            exclude_patterns: Glob patterns for base names to leave out.
            archive_name: Archive filename to use instead of the generated one.

        Raises:
            PathNotFound: If an input path does not exist.
            InvalidArgument: If ``archive_name`` is a path.
            ArchiveCreationFailed: If the archive cannot be built.
            UploadFailed: If any transfer fails.
        """
        started = time.monotonic()
        operation_time = utcnow()
        validate_paths(paths)

        archive_path = ""
        if should_archive:
            with temporary_archive(paths, exclude_patterns, archive_name, self.temp_dir) as info:
                archive_path = info.archive_path
                remote_key = resolve_remote_key(destination, os.path.basename(archive_path))
                await self._transfer(archive_path, remote_key)
                items = [
                    UploadItem(
                        local_path=", ".join(paths),
                        remote_path=remote_key,
                        size=info.compressed_size,
                        is_archived=True,
                    )
                ]
        else:
            items = []
            for path in paths:
                try:
                    for local_path, remote_key, size in self._file_targets(path, destination, exclude_patterns):
                        await self._transfer(local_path, remote_key)
                        items.append(UploadItem(local_path=local_path, remote_path=remote_key, size=size))
                except OSError as exc:
                    raise UploadFailed(path, str(exc)) from exc

        return self._result(
            items,
            destination,
            operation_time,
            archive_created=should_archive,
            archive_path=archive_path,
            elapsed=time.monotonic() - started,
        )

    async def plan(
        self,
        paths: list[str],
        destination: str = "",
        should_archive: bool = True,
        exclude_patterns: list[str] | None = None,
        archive_name: str | None = None,
    ) -> UploadResult:
        """Describe what ``upload`` would do without transferring anything.

        The archive is not built, so an archived plan reports size 0.
        """
        started = time.monotonic()
        operation_time = utcnow()
        validate_paths(paths)

        if should_archive:
            remote_key = resolve_remote_key(destination, archive_filename(paths, archive_name))
            items = [
                UploadItem(local_path=", ".join(paths), remote_path=remote_key, size=0, is_archived=True)
            ]
        else:
            items = [
                UploadItem(local_path=local_path, remote_path=remote_key, size=size)
                for path in paths
                for local_path, remote_key, size in self._file_targets(path, destination, exclude_patterns)
            ]

        return self._result(
            items,
            destination,
            operation_time,
            archive_created=should_archive,
            elapsed=time.monotonic() - started,
            dry_run=True,
        )

    def _file_targets(
        self, path: str, destination: str, exclude_patterns: list[str] | None
    ) -> Iterator[tuple[str, str, int]]:
        """Yield ``(local_path, remote_key, size)`` for each file under ``path``."""
        root = normalize_path(path)
        base = os.path.basename(os.path.abspath(root))
        if not os.path.isdir(root):
            yield path, resolve_remote_key(destination, base), os.path.getsize(root)
            return
        for entry in walk_path(root, exclude_patterns):
            if entry.is_dir:
                continue
            rel = os.path.relpath(entry.path, root).replace(os.sep, "/")
            yield entry.path, resolve_remote_key(destination, f"{base}/{rel}"), entry.size

    async def _transfer(self, local_path: str, remote_key: str) -> None:
        logger.info(
            "Uploading %s to %s/%s",
            local_path,
            self.bucket,
            remote_key,
            extra={"operation": "upload", "bucket": self.bucket, "key": remote_key, "path": local_path},
        )
        try:
            await self.store.upload_file(
                self.bucket, remote_key, local_path, detect_content_type(local_path)
            )
        except (StoreError, OSError) as exc:
            raise UploadFailed(local_path, getattr(exc, "message", None) or str(exc)) from exc

    def _result(
        self,
        items: list[UploadItem],
        destination: str,
        operation_time: datetime,
        archive_created: bool,
        elapsed: float,
        archive_path: str = "",
        dry_run: bool = False,
    ) -> UploadResult:
        total = sum(item.size for item in items)
        return UploadResult(
            bucket_name=self.bucket,
            destination_path=destination,
            items=items,
            total_files=len(items),
            total_size_bytes=total,
            total_size_human=format_bytes(total),
            operation_time=operation_time,
            archive_created=archive_created,
            archive_path=archive_path,
            upload_duration=format_duration(elapsed),
            dry_run=dry_run,
        )
