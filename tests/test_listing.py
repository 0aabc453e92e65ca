"""Tests for paginated listing with aggregates."""

import pytest

from bucketctl.errors import ListingFailed, StoreError
from bucketctl.listing import ObjectLister

from conftest import BUCKET, days_ago


@pytest.fixture
def seeded(store):
    store.put_object(BUCKET, "logs/a.log", b"aaaa", last_modified=days_ago(10))
    store.put_object(BUCKET, "logs/b.log", b"bb", last_modified=days_ago(2))
    store.put_object(BUCKET, "logs/c.log", b"c", last_modified=days_ago(5))
    store.put_object(BUCKET, "other/x.bin", b"xxxxxxxx", last_modified=days_ago(1))
    store.put_object(BUCKET, "top.txt", b"top", last_modified=days_ago(30))
    return store


class TestObjectLister:
    """Tests for ObjectLister."""

    async def test_lists_every_object_across_pages(self, seeded):
        lister = ObjectLister(seeded, BUCKET)
        keys = [obj.key async for obj in lister]
        assert keys == ["logs/a.log", "logs/b.log", "logs/c.log", "other/x.bin", "top.txt"]
        assert lister.pages == 3

    async def test_aggregates(self, seeded):
        lister = ObjectLister(seeded, BUCKET)
        await lister.collect()
        assert lister.count == 5
        assert lister.total_size == 4 + 2 + 1 + 8 + 3
        assert lister.last_modified == days_ago(1)

    async def test_prefix(self, seeded):
        lister = ObjectLister(seeded, BUCKET, "logs/")
        objects = await lister.collect()
        assert [o.key for o in objects] == ["logs/a.log", "logs/b.log", "logs/c.log"]
        assert lister.total_size == 7
        assert lister.last_modified == days_ago(2)

    async def test_empty_prefix_result(self, seeded):
        lister = ObjectLister(seeded, BUCKET, "missing/")
        assert await lister.collect() == []
        assert lister.count == 0
        assert lister.total_size == 0
        assert lister.last_modified is None
        assert lister.pages == 1

    async def test_second_pass_starts_fresh(self, seeded):
        lister = ObjectLister(seeded, BUCKET)
        first = await lister.collect()
        second = await lister.collect()
        assert [o.key for o in first] == [o.key for o in second]
        assert lister.count == 5
        assert lister.pages == 3

    async def test_failure_resets_aggregates(self, seeded, monkeypatch):
        original = seeded.list_page
        calls = 0

        async def flaky(bucket, prefix, continuation_token=None):
            nonlocal calls
            calls += 1
            if calls == 2:
                raise StoreError("connection reset", provider_code="RequestTimeout")
            return await original(bucket, prefix, continuation_token)

        monkeypatch.setattr(seeded, "list_page", flaky)
        lister = ObjectLister(seeded, BUCKET)
        seen = []
        with pytest.raises(ListingFailed) as exc_info:
            async for obj in lister:
                seen.append(obj.key)
        assert seen == ["logs/a.log", "logs/b.log"]
        assert lister.count == 0
        assert lister.total_size == 0
        assert lister.last_modified is None
        assert exc_info.value.code == "ListingFailed"
        assert "connection reset" in exc_info.value.message

    async def test_missing_bucket(self, store):
        with pytest.raises(ListingFailed):
            await ObjectLister(store, "no-such-bucket").collect()
