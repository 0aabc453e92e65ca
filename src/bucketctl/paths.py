"""Local filesystem analysis: existence checks, recursive walks and sizes.

``walk_path`` is the single traversal used by archiving, uploading and size
computation. It is a plain generator, so each call starts a fresh walk.
"""

import fnmatch
import logging
import os
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from bucketctl.errors import PathNotFound

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathEntry:
    """A visited filesystem entry.

    Attributes:
        path: Path of the entry (built from the walked root).
        is_dir: True for directories.
        size: File size in bytes; always 0 for directories.
    """

    path: str
    is_dir: bool
    size: int


def matches_any(name: str, patterns: Iterable[str] | None) -> bool:
    """Return True if ``name`` matches any glob in ``patterns``."""
    if not patterns:
        return False
    return any(fnmatch.fnmatchcase(name, pattern) for pattern in patterns)


def normalize_path(path: str) -> str:
    """Normalize a user-supplied path so ``dir/`` and ``dir`` behave the same."""
    return os.path.normpath(path)


def walk_path(path: str, exclude_patterns: list[str] | None = None) -> Iterator[PathEntry]:
    """Yield ``path`` and everything beneath it, depth-first.

    Entries whose base name matches an exclusion pattern are skipped, and
    excluded directories are not descended into. Directory children are
    visited in sorted name order. Symlinked directories below ``path`` are
    skipped; symlinked files report their target's size.

    Args:
        path: File or directory to walk.
        exclude_patterns: Optional glob patterns matched against base names.

    Raises:
        OSError: If an entry cannot be stat'ed or a directory cannot be read.
    """
    path = normalize_path(path)
    if matches_any(os.path.basename(path), exclude_patterns):
        return
    st = os.stat(path)
    if not os.path.isdir(path):
        yield PathEntry(path=path, is_dir=False, size=st.st_size)
        return
    yield PathEntry(path=path, is_dir=True, size=0)
    yield from _walk_dir(path, exclude_patterns)


def _walk_dir(directory: str, exclude_patterns: list[str] | None) -> Iterator[PathEntry]:
    with os.scandir(directory) as it:
        children = sorted(it, key=lambda e: e.name)
    for entry in children:
        if matches_any(entry.name, exclude_patterns):
            logger.debug("Excluding %s", entry.path)
            continue
        if entry.is_symlink() and entry.is_dir():
            logger.debug("Skipping symlinked directory %s", entry.path)
            continue
        if entry.is_dir():
            yield PathEntry(path=entry.path, is_dir=True, size=0)
            yield from _walk_dir(entry.path, exclude_patterns)
        else:
            yield PathEntry(path=entry.path, is_dir=False, size=entry.stat().st_size)


def validate_paths(paths: Iterable[str]) -> None:
    """Confirm every path exists.

    Raises:
        PathNotFound: Naming the first path that does not exist.
    """
    for path in paths:
        if not os.path.exists(path):
            raise PathNotFound(path)


def path_size(path: str, exclude_patterns: list[str] | None = None) -> int:
    """Return the recursive byte size of a file or directory tree."""
    return sum(entry.size for entry in walk_path(path, exclude_patterns) if not entry.is_dir)


def total_size(paths: Iterable[str], exclude_patterns: list[str] | None = None) -> int:
    """Return the combined recursive size of several paths."""
    return sum(path_size(path, exclude_patterns) for path in paths)
