"""Data model types for bucketctl.

These dataclasses are the listed-object records exchanged with the object
store and the result containers returned by each client operation. Every
result type exposes ``to_dict()`` for JSON rendering; datetimes become
RFC 3339 strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any

from bucketctl.formatting import format_time


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return format_time(value)
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return value


class _Serializable:
    """Mixin providing ``to_dict()`` for dataclasses."""

    _omit_when_empty: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if f.name in self._omit_when_empty and not value:
                continue
            result[f.name] = _jsonable(value)
        return result


# -- Listing -------------------------------------------------------------------


@dataclass
class ObjectEntry(_Serializable):
    """A single object returned by a listing.

    Attributes:
        key: The object key.
        size: Size in bytes.
        last_modified: Aware last-modified timestamp.
    """

    key: str
    size: int
    last_modified: datetime


@dataclass
class ListPage:
    """One page of a cursor-paginated listing.

    Attributes:
        objects: Objects on this page, in provider order.
        next_token: Continuation token for the next page, or None when done.
    """

    objects: list[ObjectEntry] = field(default_factory=list)
    next_token: str | None = None


# -- Upload --------------------------------------------------------------------


@dataclass
class UploadItem(_Serializable):
    """One uploaded unit: an archive or an individual file."""

    local_path: str
    remote_path: str
    size: int
    is_archived: bool = False


@dataclass
class UploadResult(_Serializable):
    """Outcome of an upload operation.

    Attributes:
        bucket_name: Target bucket.
        destination_path: Destination prefix as given by the caller.
        items: Uploaded units in upload order.
        total_files: Number of items.
        total_size_bytes: Sum of item sizes.
        total_size_human: ``total_size_bytes`` in binary units.
        operation_time: When the operation started.
        archive_created: Whether the inputs were packed into one archive.
        archive_path: Local path of the (already removed) temporary archive.
        upload_duration: Wall-clock duration of the operation.
        dry_run: True when nothing was transferred.
    """

    _omit_when_empty = ("archive_path",)

    bucket_name: str
    destination_path: str
    items: list[UploadItem]
    total_files: int
    total_size_bytes: int
    total_size_human: str
    operation_time: datetime
    archive_created: bool = False
    archive_path: str = ""
    upload_duration: str = ""
    dry_run: bool = False


# -- Download ------------------------------------------------------------------


@dataclass
class DownloadItem(_Serializable):
    """The single object retrieved by a download."""

    remote_path: str
    local_path: str
    size: int
    last_modified: datetime


@dataclass
class DownloadResult(_Serializable):
    """Outcome of a download-latest operation."""

    bucket_name: str
    source_path: str
    items: list[DownloadItem]
    total_files: int
    total_size_bytes: int
    total_size_human: str
    operation_time: datetime
    download_duration: str = ""


# -- Delete --------------------------------------------------------------------


@dataclass
class DeleteResult(_Serializable):
    """Outcome of a delete-old operation.

    ``deleted_files`` always lists every candidate older than the cutoff;
    ``deleted_count`` is 0 for a dry run and equals ``len(deleted_files)``
    after a completed real run.
    """

    bucket_name: str
    folder: str
    days_old: int
    deleted_files: list[str]
    deleted_count: int
    total_size_bytes: int
    total_size_human: str
    operation_time: datetime
    cutoff_date: datetime
    dry_run: bool = False


# -- Bucket --------------------------------------------------------------------


@dataclass
class BucketInfo(_Serializable):
    """Aggregate statistics for a bucket."""

    _omit_when_empty = ("api_endpoint",)

    bucket_name: str
    region: str
    creation_date: datetime | None
    object_count: int
    total_size_bytes: int
    total_size_human: str
    last_modified: datetime | None
    api_endpoint: str = ""


# -- Archive -------------------------------------------------------------------


@dataclass
class ArchiveInfo(_Serializable):
    """Describes a freshly built zip archive.

    Attributes:
        archive_path: Where the archive was written.
        original_paths: Source paths, in input order.
        compressed_size: Size of the archive file on disk.
        original_size: Sum of the included files' uncompressed sizes.
        compression_ratio: compressed_size / original_size (0.0 if empty).
        created_at: When archiving started.
        file_count: Number of file entries written.
    """

    archive_path: str
    original_paths: list[str]
    compressed_size: int
    original_size: int
    compression_ratio: float
    created_at: datetime
    file_count: int = 0


# -- Errors --------------------------------------------------------------------


@dataclass
class ErrorResponse(_Serializable):
    """Structured error rendered by the CLI."""

    error: str
    code: str
    timestamp: datetime
    command: str
