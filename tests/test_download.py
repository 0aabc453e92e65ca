"""Tests for latest-object download."""

from datetime import timedelta

import pytest

from bucketctl.download import DownloadSelector, select_latest
from bucketctl.errors import DirectoryCreationFailed, DownloadFailed, NoObjectsFound, StoreError
from bucketctl.models import ObjectEntry

from conftest import BUCKET, days_ago


def test_select_latest_empty():
    assert select_latest([]) is None


def test_select_latest_tie_goes_to_first():
    stamp = days_ago(1)
    objects = [ObjectEntry("a", 1, stamp), ObjectEntry("b", 2, stamp), ObjectEntry("c", 3, days_ago(2))]
    assert select_latest(objects).key == "a"


class TestDownloadSelector:
    async def test_downloads_newest(self, store, tmp_path):
        store.put_object(BUCKET, "builds/v1.zip", b"one", last_modified=days_ago(3))
        store.put_object(BUCKET, "builds/v3.zip", b"three!", last_modified=days_ago(1))
        store.put_object(BUCKET, "builds/v2.zip", b"two", last_modified=days_ago(2))
        store.put_object(BUCKET, "other/newer.zip", b"no", last_modified=days_ago(0))

        dest = tmp_path / "out"
        result = await DownloadSelector(store, BUCKET).download_latest("builds", str(dest))

        assert result.total_files == 1
        item = result.items[0]
        assert item.remote_path == "builds/v3.zip"
        assert item.local_path == str(dest / "v3.zip")
        assert item.size == 6
        assert item.last_modified == days_ago(1)
        assert (dest / "v3.zip").read_bytes() == b"three!"
        assert result.source_path == "builds"
        assert result.total_size_human == "6 B"

    async def test_creates_nested_destination(self, store, tmp_path):
        store.put_object(BUCKET, "f/x.txt", b"x", last_modified=days_ago(1))
        dest = tmp_path / "a" / "b" / "c"
        await DownloadSelector(store, BUCKET).download_latest("f/", str(dest))
        assert (dest / "x.txt").read_bytes() == b"x"

    async def test_nested_key_uses_base_name(self, store, tmp_path):
        store.put_object(BUCKET, "f/deep/er/x.txt", b"x", last_modified=days_ago(1))
        result = await DownloadSelector(store, BUCKET).download_latest("f", str(tmp_path))
        assert result.items[0].local_path == str(tmp_path / "x.txt")

    async def test_folder_marker_saved_under_its_name(self, store, tmp_path):
        store.put_object(BUCKET, "logs/a.txt", b"a", last_modified=days_ago(2))
        store.put_object(BUCKET, "logs/sub/", b"", last_modified=days_ago(1))
        out = tmp_path / "out"

        result = await DownloadSelector(store, BUCKET).download_latest("logs", str(out))

        assert result.items[0].remote_path == "logs/sub/"
        assert result.items[0].local_path == str(out / "sub")
        assert (out / "sub").is_file()
        assert (out / "sub").read_bytes() == b""

    async def test_overwrites_existing_file(self, store, tmp_path):
        (tmp_path / "x.txt").write_bytes(b"stale content")
        store.put_object(BUCKET, "f/x.txt", b"fresh", last_modified=days_ago(1))
        await DownloadSelector(store, BUCKET).download_latest("f", str(tmp_path))
        assert (tmp_path / "x.txt").read_bytes() == b"fresh"

    async def test_tie_across_pages_goes_to_first_key(self, store, tmp_path):
        stamp = days_ago(1) - timedelta(seconds=5)
        for name in ("c", "a", "b"):
            store.put_object(BUCKET, f"f/{name}", name.encode(), last_modified=stamp)
        result = await DownloadSelector(store, BUCKET).download_latest("f", str(tmp_path))
        assert result.items[0].remote_path == "f/a"

    async def test_empty_folder(self, store, tmp_path):
        store.put_object(BUCKET, "elsewhere/x", b"x")
        with pytest.raises(NoObjectsFound) as exc_info:
            await DownloadSelector(store, BUCKET).download_latest("empty", str(tmp_path / "out"))
        assert exc_info.value.message == "no files found in folder: empty"
        assert not (tmp_path / "out").exists()

    async def test_destination_is_a_file(self, store, tmp_path):
        store.put_object(BUCKET, "f/x", b"x")
        blocker = tmp_path / "blocker"
        blocker.write_bytes(b"")
        with pytest.raises(DirectoryCreationFailed):
            await DownloadSelector(store, BUCKET).download_latest("f", str(blocker / "sub"))

    async def test_transfer_failure(self, store, tmp_path, monkeypatch):
        store.put_object(BUCKET, "f/x", b"x")

        async def failing(bucket, key, path):
            raise StoreError("connection reset")

        monkeypatch.setattr(store, "download_file", failing)
        with pytest.raises(DownloadFailed) as exc_info:
            await DownloadSelector(store, BUCKET).download_latest("f", str(tmp_path))
        assert exc_info.value.key == "f/x"
        assert list(tmp_path.iterdir()) == []
