"""Local file helpers shared by the store implementations."""

import logging
import os
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO

logger = logging.getLogger(__name__)


@contextmanager
def atomic_output(path: str) -> Iterator[BinaryIO]:
    """Open a temporary sibling of ``path`` for writing and rename it into place.

    The target is replaced only when the block completes; on any failure
    the temporary file is removed and the existing target is left intact.
    """
    tmp = f"{path}.tmp.{uuid.uuid4().hex[:8]}"
    try:
        with open(tmp, "wb") as fh:
            yield fh
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        try:
            os.remove(tmp)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Failed to remove partial download %s: %s", tmp, exc)
        raise


def read_chunk(path: str, offset: int, length: int) -> bytes:
    """Read ``length`` bytes of ``path`` starting at ``offset``."""
    with open(path, "rb") as fh:
        fh.seek(offset)
        return fh.read(length)
