"""Tests for the bounded-concurrency object transfer engine."""

import pytest

from supabase_migrator.exceptions import BucketNotFoundError, ConfigError
from supabase_migrator.services.local_store import LocalDirectoryStore
from supabase_migrator.services.transfer import move_object, transfer_storage
from supabase_migrator.types import TaskState, TransferTask


def _objects(count):
    return {f"obj-{i:03d}.bin": bytes([i % 256]) * (i + 1) for i in range(count)}


class TestMoveObject:
    """Tests for a single object move."""

    def test_success_records_size(self, fake_store):
        source = fake_store().add_bucket("b", objects={"a": b"12345"})
        destination = fake_store().add_bucket("b")

        task = move_object(source, destination, TransferTask("b", "a"))

        assert task.state is TaskState.SUCCEEDED
        assert task.size == 5
        assert destination.objects["b"]["a"] == b"12345"

    def test_failure_is_recorded_not_raised(self, fake_store):
        source = fake_store(fail_on=("a",)).add_bucket("b", objects={"a": b"1"})
        destination = fake_store().add_bucket("b")

        task = move_object(source, destination, TransferTask("b", "a"))

        assert task.state is TaskState.FAILED
        assert "download failed" in task.error


class TestTransferStorage:
    """Tests for whole-store transfers."""

    @pytest.mark.parametrize("concurrency", [1, 7, 70])
    def test_each_object_attempted_exactly_once(self, fake_store, concurrency):
        objects = _objects(7)
        source = fake_store().add_bucket("data", objects=objects)
        destination = fake_store()

        stats = transfer_storage(
            source, destination, concurrency=concurrency, show_progress=False
        )

        assert stats.attempted == 7
        assert stats.succeeded + stats.failed == 7
        assert set(source.downloads.values()) == {1}
        assert len(source.downloads) == 7
        assert set(destination.uploads.values()) == {1}
        assert destination.objects["data"] == objects

    def test_failures_are_counted_and_do_not_stop_the_run(self, fake_store):
        objects = _objects(10)
        failing = ("obj-002.bin", "obj-007.bin")
        source = fake_store(fail_on=failing).add_bucket("data", objects=objects)
        destination = fake_store()

        stats = transfer_storage(source, destination, concurrency=3, show_progress=False)

        assert stats.attempted == 10
        assert stats.succeeded == 8
        assert stats.failed == 2
        assert sorted(f.name for f in stats.failures) == list(failing)
        assert all(f.bucket == "data" for f in stats.failures)
        assert len(destination.objects["data"]) == 8

    def test_upload_failures_are_counted(self, fake_store):
        source = fake_store().add_bucket("data", objects={"ok": b"1", "bad": b"2"})
        destination = fake_store(fail_on=("bad",))

        stats = transfer_storage(source, destination, concurrency=2, show_progress=False)

        assert (stats.succeeded, stats.failed) == (1, 1)
        assert stats.bytes == 1

    def test_avatars_end_to_end(self, fake_store):
        source = fake_store().add_bucket(
            "avatars", public=True, objects={"a.png": b"a" * 10, "b.png": b"b" * 20}
        )
        destination = fake_store()

        stats = transfer_storage(source, destination, concurrency=4, show_progress=False)

        assert destination.created == ["avatars"]
        assert destination.buckets["avatars"] is True
        assert destination.objects["avatars"] == source.objects["avatars"]
        assert (stats.buckets, stats.objects, stats.bytes, stats.failed) == (1, 2, 30, 0)
        assert str(stats) == "1 buckets, 2 objects, 30 B transferred"

    def test_existing_bucket_is_reused(self, fake_store):
        source = fake_store().add_bucket("avatars", objects={"a": b"1"})
        destination = fake_store().add_bucket("avatars", objects={"old": b"x"})

        stats = transfer_storage(source, destination, show_progress=False)

        assert destination.created == []
        assert stats.succeeded == 1
        assert set(destination.objects["avatars"]) == {"a", "old"}

    def test_single_bucket(self, fake_store):
        source = (
            fake_store()
            .add_bucket("avatars", objects={"a": b"1"})
            .add_bucket("docs", objects={"d": b"22"})
        )
        destination = fake_store()

        stats = transfer_storage(source, destination, bucket="docs", show_progress=False)

        assert stats.buckets == 1
        assert list(destination.buckets) == ["docs"]

    def test_unknown_bucket_raises(self, fake_store):
        source = fake_store().add_bucket("avatars")
        with pytest.raises(BucketNotFoundError, match="nope"):
            transfer_storage(source, fake_store(), bucket="nope", show_progress=False)

    def test_invalid_concurrency_raises(self, fake_store):
        with pytest.raises(ConfigError):
            transfer_storage(fake_store(), fake_store(), concurrency=0)

    def test_empty_bucket_is_still_created(self, fake_store):
        source = fake_store().add_bucket("empty")
        destination = fake_store()

        stats = transfer_storage(source, destination, show_progress=False)

        assert stats.buckets == 1
        assert stats.attempted == 0
        assert "empty" in destination.buckets

    def test_multiple_buckets_are_merged(self, fake_store):
        source = (
            fake_store()
            .add_bucket("one", objects={"a": b"1"})
            .add_bucket("two", objects={"b": b"22", "c": b"333"})
        )

        stats = transfer_storage(source, fake_store(), concurrency=2, show_progress=False)

        assert (stats.buckets, stats.attempted, stats.bytes) == (2, 3, 6)


class TestLocalMirror:
    """Tests for transfers into and out of a local directory."""

    def test_download_to_directory_and_back(self, fake_store, tmp_path):
        source = fake_store().add_bucket(
            "avatars", public=True, objects={"users/1/a.png": b"abc", "b.png": b"de"}
        )
        mirror = LocalDirectoryStore(tmp_path / "storage")

        stats = transfer_storage(source, mirror, concurrency=2, show_progress=False)

        assert stats.succeeded == 2
        assert (tmp_path / "storage" / "avatars" / "users" / "1" / "a.png").read_bytes() == b"abc"
        assert mirror.visibility == {"avatars": True}

        restored = fake_store()
        restore_source = LocalDirectoryStore(tmp_path / "storage", mirror.visibility)
        stats = transfer_storage(restore_source, restored, show_progress=False)

        assert stats.succeeded == 2
        assert restored.buckets == {"avatars": True}
        assert restored.objects["avatars"] == source.objects["avatars"]
