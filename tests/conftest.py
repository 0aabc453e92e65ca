"""Shared pytest fixtures for bucketctl tests.

Core components run against the in-memory object store with a small page
size so that pagination is exercised on every listing.
"""

from datetime import datetime, timedelta, timezone

import pytest

from bucketctl.client import Client
from bucketctl.config import StorageCredentials
from bucketctl.storage.memory import MemoryObjectStore

BUCKET = "test-bucket"
NOW = datetime.now(timezone.utc)


def days_ago(days: float) -> datetime:
    """Aware timestamp ``days`` days before the test session started."""
    return NOW - timedelta(days=days)


@pytest.fixture
def store() -> MemoryObjectStore:
    """A memory store with an empty test bucket and 2 objects per page."""
    backend = MemoryObjectStore(page_size=2)
    backend.create_bucket(BUCKET, created_at=datetime(2024, 1, 2, tzinfo=timezone.utc))
    return backend


@pytest.fixture
def credentials() -> StorageCredentials:
    return StorageCredentials(
        endpoint_url="http://127.0.0.1:9000",
        region="us-east-1",
        access_key="test",
        secret_key="test-secret",
        bucket_name=BUCKET,
    )


@pytest.fixture
async def client(credentials, store) -> Client:
    async with Client(credentials, store=store) as c:
        yield c


@pytest.fixture
def tree(tmp_path):
    """A small local tree::

        tmp_path/src/report.pdf        (11 bytes)
        tmp_path/src/data/a.txt        (5 bytes)
        tmp_path/src/data/sub/b.log    (3 bytes)
        tmp_path/src/data/sub/c.txt    (4 bytes)
    """
    root = tmp_path / "src"
    (root / "data" / "sub").mkdir(parents=True)
    (root / "report.pdf").write_bytes(b"pdf-content")
    (root / "data" / "a.txt").write_bytes(b"alpha")
    (root / "data" / "sub" / "b.log").write_bytes(b"log")
    (root / "data" / "sub" / "c.txt").write_bytes(b"cccc")
    return root
