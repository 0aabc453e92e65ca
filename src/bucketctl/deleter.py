"""Age-based bulk deletion in bounded batches."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from bucketctl.errors import BatchDeleteFailed, StoreError
from bucketctl.listing import ObjectLister
from bucketctl.models import ObjectEntry
from bucketctl.storage.backend import ObjectStore

logger = logging.getLogger(__name__)

# Maximum keys accepted by one S3 DeleteObjects call
DELETE_BATCH_SIZE = 1000


@dataclass
class DeletionOutcome:
    """Candidates found and how many were deleted.

    Attributes:
        candidates: Objects older than the cutoff, in discovery order.
        deleted_count: Keys removed (0 for a dry run).
        total_size: Combined size of the candidates.
    """

    candidates: list[ObjectEntry] = field(default_factory=list)
    deleted_count: int = 0
    total_size: int = 0

    @property
    def keys(self) -> list[str]:
        return [obj.key for obj in self.candidates]


def select_candidates(objects: list[ObjectEntry], cutoff: datetime) -> list[ObjectEntry]:
    """Return the objects last modified strictly before ``cutoff``."""
    return [obj for obj in objects if obj.last_modified < cutoff]


def batched(keys: list[str], size: int) -> list[list[str]]:
    """Split keys into consecutive slices of at most ``size``."""
    return [keys[i : i + size] for i in range(0, len(keys), size)]


class BatchDeleter:
    """Deletes objects older than a cutoff under a prefix.

    Candidates are fully recorded before any delete call, so a dry run
    and a real run report the same set. Batches are issued one at a time
    in discovery order; a failed batch aborts the run, and batches that
    already succeeded stay deleted.
    """

    def __init__(
        self, store: ObjectStore, bucket: str, batch_size: int = DELETE_BATCH_SIZE
    ) -> None:
        if not 0 < batch_size <= DELETE_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {DELETE_BATCH_SIZE}")
        self.store = store
        self.bucket = bucket
        self.batch_size = batch_size

    async def delete_older_than(
        self, prefix: str, cutoff: datetime, dry_run: bool = False
    ) -> DeletionOutcome:
        """List ``prefix`` and delete everything older than ``cutoff``.

        Args:
            prefix: Key prefix to scan.
            cutoff: Objects modified before this instant are deleted.
            dry_run: Report candidates without deleting anything.

        Raises:
            ListingFailed: If listing the prefix fails.
            BatchDeleteFailed: If a bulk-delete call fails.
        """
        lister = ObjectLister(self.store, self.bucket, prefix)
        candidates = select_candidates(await lister.collect(), cutoff)
        outcome = DeletionOutcome(
            candidates=candidates,
            total_size=sum(obj.size for obj in candidates),
        )
        logger.info(
            "Found %d of %d objects under %s/%s older than %s",
            len(candidates),
            lister.count,
            self.bucket,
            prefix,
            cutoff.isoformat(),
        )

        if dry_run:
            return outcome

        for index, batch in enumerate(batched(outcome.keys, self.batch_size), 1):
            try:
                await self.store.delete_batch(self.bucket, batch)
            except StoreError as exc:
                logger.error(
                    "Delete batch %d failed after %d objects were deleted",
                    index,
                    outcome.deleted_count,
                    extra={
                        "operation": "delete-old",
                        "bucket": self.bucket,
                        "prefix": prefix,
                        "batch_index": index,
                        "deleted_count": outcome.deleted_count,
                    },
                )
                raise BatchDeleteFailed(index, outcome.deleted_count, exc.message) from exc
            outcome.deleted_count += len(batch)
            logger.debug(
                "Deleted batch %d (%d keys)",
                index,
                len(batch),
                extra={"bucket": self.bucket, "batch_index": index, "deleted_count": outcome.deleted_count},
            )

        return outcome
