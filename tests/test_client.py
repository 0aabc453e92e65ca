"""Tests for the Client operations, run against the memory store."""

import asyncio
from datetime import datetime, timezone

import pytest

from bucketctl.client import Client
from bucketctl.config import StorageCredentials
from bucketctl.errors import (
    BucketLookupFailed,
    ConfigurationInvalid,
    InvalidArgument,
    ListingFailed,
    OperationTimeout,
    StoreError,
)
from bucketctl.storage.aws import S3ObjectStore
from bucketctl.storage.memory import MemoryObjectStore

from conftest import BUCKET, days_ago


class TestConstruction:
    def test_missing_credentials(self):
        with pytest.raises(ConfigurationInvalid) as exc_info:
            Client(StorageCredentials(bucket_name="b"))
        assert "access_key" in exc_info.value.message
        assert "secret_key" in exc_info.value.message

    def test_builds_s3_store(self, credentials):
        client = Client(credentials)
        assert isinstance(client.store, S3ObjectStore)
        assert client.store.endpoint_url == "http://127.0.0.1:9000"
        assert client.store.use_path_style is True

    async def test_injected_store_not_closed(self, credentials, store, monkeypatch):
        closed = []

        async def record_close():
            closed.append(True)

        monkeypatch.setattr(store, "close", record_close)
        async with Client(credentials, store=store):
            pass
        assert closed == []

    async def test_empty_bucket_rejected(self, store):
        client = Client(StorageCredentials(access_key="k", secret_key="s"), store=store)
        with pytest.raises(ConfigurationInvalid):
            await client.get_bucket_info()


class TestBucketInfo:
    async def test_statistics(self, client, store):
        store.put_object(BUCKET, "a", b"12345", last_modified=days_ago(3))
        store.put_object(BUCKET, "b", b"123", last_modified=days_ago(1))
        store.put_object(BUCKET, "c/d", b"1", last_modified=days_ago(2))

        info = await client.get_bucket_info()

        assert info.bucket_name == BUCKET
        assert info.object_count == 3
        assert info.total_size_bytes == 9
        assert info.total_size_human == "9 B"
        assert info.last_modified == days_ago(1)
        assert info.creation_date == datetime(2024, 1, 2, tzinfo=timezone.utc)
        assert info.api_endpoint == "http://127.0.0.1:9000"

    async def test_region_falls_back_to_configured(self, client):
        info = await client.get_bucket_info()
        assert info.region == "us-east-1"

    async def test_region_from_store(self, credentials):
        store = MemoryObjectStore(region="eu-west-1")
        store.create_bucket(BUCKET)
        async with Client(credentials, store=store) as client:
            assert (await client.get_bucket_info()).region == "eu-west-1"

    async def test_empty_bucket(self, client):
        info = await client.get_bucket_info()
        assert info.object_count == 0
        assert info.total_size_bytes == 0
        assert info.last_modified is None
        assert info.to_dict()["last_modified"] == ""

    async def test_unknown_bucket(self, client):
        with pytest.raises(BucketLookupFailed):
            await client.get_bucket_info(bucket="missing")

    async def test_bucket_override(self, client, store):
        store.create_bucket("other")
        store.put_object("other", "k", b"xy")
        info = await client.get_bucket_info(bucket="other")
        assert info.bucket_name == "other"
        assert info.object_count == 1

    async def test_listing_failure(self, client, store, monkeypatch):
        async def failing(bucket, prefix, continuation_token=None):
            raise StoreError("boom")

        monkeypatch.setattr(store, "list_page", failing)
        with pytest.raises(ListingFailed):
            await client.get_bucket_info()


class TestDeleteOldFiles:
    async def test_dry_run_then_delete(self, client, store):
        store.put_object(BUCKET, "logs/old1", b"aaa", last_modified=days_ago(40))
        store.put_object(BUCKET, "logs/old2", b"bb", last_modified=days_ago(31))
        store.put_object(BUCKET, "logs/new", b"c", last_modified=days_ago(2))
        store.put_object(BUCKET, "logsx/old", b"d", last_modified=days_ago(90))

        preview = await client.delete_old_files("logs", 30, dry_run=True)
        assert preview.dry_run is True
        assert preview.deleted_files == ["logs/old1", "logs/old2"]
        assert preview.deleted_count == 0
        assert preview.total_size_bytes == 5
        assert len(store.keys(BUCKET)) == 4

        result = await client.delete_old_files("logs", 30)
        assert result.deleted_files == preview.deleted_files
        assert result.deleted_count == 2
        assert result.folder == "logs"
        assert result.days_old == 30
        assert store.keys(BUCKET) == ["logs/new", "logsx/old"]

        again = await client.delete_old_files("logs", 30)
        assert again.deleted_count == 0

    async def test_cutoff(self, client):
        result = await client.delete_old_files("", 7, dry_run=True)
        delta = result.operation_time - result.cutoff_date
        assert abs(delta.total_seconds() - 7 * 86400) < 5

    @pytest.mark.parametrize("days", [0, -3])
    async def test_days_must_be_positive(self, client, days):
        with pytest.raises(InvalidArgument):
            await client.delete_old_files("logs", days)


class TestUploadAndDownload:
    async def test_upload_then_download(self, client, store, tree, tmp_path):
        upload = await client.upload_files([str(tree / "report.pdf")], "docs", should_archive=False)
        assert upload.items[0].remote_path == "docs/report.pdf"

        result = await client.download_latest_file("docs", str(tmp_path / "out"))
        assert (tmp_path / "out" / "report.pdf").read_bytes() == b"pdf-content"
        assert result.bucket_name == BUCKET

    async def test_upload_dry_run(self, client, store, tree):
        result = await client.upload_files([str(tree / "data")], "x", dry_run=True)
        assert result.dry_run is True
        assert store.keys(BUCKET) == []


class TestTimeout:
    async def test_timeout(self, client, store, monkeypatch):
        async def slow(bucket):
            await asyncio.sleep(5)
            return ""

        monkeypatch.setattr(store, "get_bucket_region", slow)
        with pytest.raises(OperationTimeout) as exc_info:
            await client.get_bucket_info(timeout=0.05)
        assert exc_info.value.code == "Timeout"
        assert exc_info.value.operation == "bucket-info"

    async def test_timeout_cleans_up_archive(self, client, store, tree, tmp_path, monkeypatch):
        monkeypatch.setattr("bucketctl.archive.tempfile.gettempdir", lambda: str(tmp_path))

        async def slow(bucket, key, path, content_type="application/octet-stream"):
            await asyncio.sleep(5)
            return 0

        monkeypatch.setattr(store, "upload_file", slow)
        with pytest.raises(OperationTimeout):
            await client.upload_files([str(tree / "data")], archive_name="slow", timeout=0.05)
        assert not (tmp_path / "slow.zip").exists()
