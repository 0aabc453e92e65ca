"""Cursor-paginated object listing with running aggregates."""

import logging
from collections.abc import AsyncIterator
from datetime import datetime

from bucketctl.errors import ListingFailed, StoreError
from bucketctl.models import ObjectEntry
from bucketctl.storage.backend import ObjectStore

logger = logging.getLogger(__name__)


class ObjectLister:
    """Enumerates every object under a prefix, one page at a time.

    Iterating with ``async for`` starts from the first page and resets the
    aggregates, so the same lister can be iterated again for a fresh pass.
    While iterating it tracks ``count``, ``total_size`` and the newest
    ``last_modified`` seen. If any page request fails the aggregates are
    reset and ``ListingFailed`` is raised.

    Attributes:
        bucket: Bucket to list.
        prefix: Key prefix ("" lists the whole bucket).
        count: Objects seen so far in the current pass.
        total_size: Sum of object sizes seen so far.
        last_modified: Newest last-modified timestamp seen, or None.
        pages: Pages fetched in the current pass.
    """

    def __init__(self, store: ObjectStore, bucket: str, prefix: str = "") -> None:
        self.store = store
        self.bucket = bucket
        self.prefix = prefix
        self._reset()

    def _reset(self) -> None:
        self.count = 0
        self.total_size = 0
        self.last_modified: datetime | None = None
        self.pages = 0

    def __aiter__(self) -> AsyncIterator[ObjectEntry]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ObjectEntry]:
        self._reset()
        token: str | None = None
        while True:
            try:
                page = await self.store.list_page(self.bucket, self.prefix, token)
            except StoreError as exc:
                self._reset()
                raise ListingFailed(self.bucket, self.prefix, exc.message) from exc
            self.pages += 1
            for obj in page.objects:
                self.count += 1
                self.total_size += obj.size
                if self.last_modified is None or obj.last_modified > self.last_modified:
                    self.last_modified = obj.last_modified
                yield obj
            if page.next_token is None:
                break
            token = page.next_token
        logger.debug(
            "Listed %s/%s: %d objects in %d pages",
            self.bucket,
            self.prefix,
            self.count,
            self.pages,
            extra={"bucket": self.bucket, "prefix": self.prefix, "size": self.total_size},
        )

    async def collect(self) -> list[ObjectEntry]:
        """Return every object under the prefix as a list."""
        return [obj async for obj in self]
