"""Zip archive creation for archived uploads.

Archives are temporary: ``temporary_archive`` builds one in the temp
directory and removes it when the block exits, whatever the outcome.
"""

import logging
import os
import tempfile
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from bucketctl.errors import ArchiveCreationFailed, InvalidArgument, PathNotFound
from bucketctl.formatting import utcnow
from bucketctl.models import ArchiveInfo
from bucketctl.paths import normalize_path, validate_paths, walk_path

logger = logging.getLogger(__name__)

ARCHIVE_EXTENSION = ".zip"

# Deflate level 6 matches zlib's default speed/ratio tradeoff
_COMPRESS_LEVEL = 6
_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def generate_archive_name(
    paths: list[str], extension: str = ARCHIVE_EXTENSION, now: datetime | None = None
) -> str:
    """Build a default archive filename.

    A single source yields ``<stem>_<timestamp><ext>``; several sources
    yield ``archive_<timestamp><ext>``. The timestamp is ``YYYYMMDD_HHMMSS``
    in local time.

    Args:
        paths: Source paths being archived.
        extension: File extension, with or without the leading dot.
        now: Timestamp to use instead of the current time.
    """
    if extension and not extension.startswith("."):
        extension = "." + extension
    stamp = (now or datetime.now()).strftime(_TIMESTAMP_FORMAT)
    if len(paths) == 1:
        base = os.path.basename(os.path.abspath(paths[0]))
        stem, _ext = os.path.splitext(base)
        return f"{stem or base}_{stamp}{extension}"
    return f"archive_{stamp}{extension}"


def archive_filename(paths: list[str], archive_name: str | None = None) -> str:
    """Return the archive filename: ``archive_name`` with ``.zip`` ensured, or a generated one.

    Raises:
        InvalidArgument: If ``archive_name`` is a path rather than a bare
            file name.
    """
    if not archive_name:
        return generate_archive_name(paths)
    separators = [sep for sep in (os.sep, os.altsep, "/") if sep]
    if archive_name in (".", "..") or any(sep in archive_name for sep in separators):
        raise InvalidArgument(f"archive name must be a file name, not a path: {archive_name}")
    if archive_name.endswith(ARCHIVE_EXTENSION):
        return archive_name
    return archive_name + ARCHIVE_EXTENSION


def _entry_name(source: str, source_is_dir: bool, path: str) -> str:
    """Name of ``path`` inside the archive when walking ``source``."""
    if not source_is_dir:
        return os.path.basename(source)
    parent = os.path.dirname(os.path.abspath(source))
    rel = os.path.relpath(os.path.abspath(path), parent)
    return rel.replace(os.sep, "/")


def create_archive(
    paths: list[str], output_path: str, exclude_patterns: list[str] | None = None
) -> ArchiveInfo:
    """Pack files and directory trees into a deflate-compressed zip.

    A file source is stored under its base name. Entries of a directory
    source are stored relative to the directory's parent, so the top-level
    directory name is kept. Only files become entries.

    Args:
        paths: Source files and directories, in order.
        output_path: Where to write the archive.
        exclude_patterns: Glob patterns matched against each entry's base name.

    Returns:
        ArchiveInfo describing the written archive.

    Raises:
        ArchiveCreationFailed: If a source is missing or unreadable, or the
            archive cannot be written. A partial file may remain at
            ``output_path``.
    """
    created_at = utcnow()
    original_size = 0
    file_count = 0

    try:
        validate_paths(paths)
    except PathNotFound as exc:
        raise ArchiveCreationFailed(str(exc)) from exc

    try:
        with zipfile.ZipFile(
            output_path,
            "w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=_COMPRESS_LEVEL,
            strict_timestamps=False,
        ) as zf:
            for source in paths:
                source = normalize_path(source)
                source_is_dir = os.path.isdir(source)
                try:
                    for entry in walk_path(source, exclude_patterns):
                        if entry.is_dir:
                            continue
                        zf.write(entry.path, _entry_name(source, source_is_dir, entry.path))
                        original_size += entry.size
                        file_count += 1
                except OSError as exc:
                    raise ArchiveCreationFailed(f"failed to add {source} to archive: {exc}") from exc
    except OSError as exc:
        raise ArchiveCreationFailed(f"failed to write archive {output_path}: {exc}") from exc

    compressed_size = os.path.getsize(output_path)
    ratio = compressed_size / original_size if original_size > 0 else 0.0

    logger.info(
        "Created archive %s: %d files, %d -> %d bytes",
        output_path,
        file_count,
        original_size,
        compressed_size,
    )
    return ArchiveInfo(
        archive_path=output_path,
        original_paths=list(paths),
        compressed_size=compressed_size,
        original_size=original_size,
        compression_ratio=ratio,
        created_at=created_at,
        file_count=file_count,
    )


def cleanup_temp_file(path: str) -> None:
    """Remove a temporary file. Failures are logged, never raised."""
    if not path:
        return
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Failed to clean up temporary file %s: %s", path, exc)
    else:
        logger.debug("Removed temporary file %s", path)


@contextmanager
def temporary_archive(
    paths: list[str],
    exclude_patterns: list[str] | None = None,
    archive_name: str | None = None,
    temp_dir: str | None = None,
) -> Iterator[ArchiveInfo]:
    """Build an archive in the temp directory and remove it on exit.

    The archive file is removed when the block exits normally, raises, or
    is cancelled, and also when building the archive itself fails.

    Args:
        paths: Sources to archive.
        exclude_patterns: Glob patterns excluded from the archive.
        archive_name: Name to use instead of the generated one; ``.zip`` is
            appended when it has no such suffix.
        temp_dir: Directory for the archive (default: system temp dir).

    Raises:
        InvalidArgument: If ``archive_name`` contains a path separator.
        ArchiveCreationFailed: If the archive cannot be built.
    """
    archive_path = os.path.join(temp_dir or tempfile.gettempdir(), archive_filename(paths, archive_name))
    try:
        yield create_archive(paths, archive_path, exclude_patterns)
    finally:
        cleanup_temp_file(archive_path)
