"""Tests for the SQLite cache storage (buckets and entries)."""

from __future__ import annotations

from pathlib import Path

import pytest
from fakes import url

from kronos.shared.errors import CacheStorageError, ErrorCode
from kronos.worker.http import Request, Response
from kronos.worker.storage import CacheStorage


def _response(body: bytes, status: int = 200, **kwargs) -> Response:
    return Response(status=status, body=body, **kwargs)


class TestBuckets:
    """Bucket creation, listing and deletion."""

    def test_open_creates_bucket(self, storage: CacheStorage) -> None:
        # Given an empty storage
        assert storage.keys() == []

        # When a bucket is opened
        storage.open("kronos-static-v1")

        # Then it exists
        assert storage.has("kronos-static-v1")
        assert storage.keys() == ["kronos-static-v1"]

    def test_open_is_idempotent(self, storage: CacheStorage) -> None:
        storage.open("a").put(url("/x"), _response(b"x"))
        storage.open("a")

        assert storage.keys() == ["a"]
        assert len(storage.open("a")) == 1

    def test_keys_in_creation_order(self, storage: CacheStorage) -> None:
        for name in ("kronos-v1", "kronos-static-v1", "kronos-dynamic-v1"):
            storage.open(name)

        assert storage.keys() == ["kronos-v1", "kronos-static-v1", "kronos-dynamic-v1"]

    def test_delete_removes_bucket_and_entries(self, storage: CacheStorage) -> None:
        storage.open("old").put(url("/a"), _response(b"a"))

        assert storage.delete("old") is True

        assert not storage.has("old")
        assert storage.match(url("/a")) is None

    def test_delete_missing_bucket(self, storage: CacheStorage) -> None:
        assert storage.delete("nope") is False


class TestEntries:
    """put / match / delete on a bucket."""

    def test_match_returns_stored_response_exactly(self, storage: CacheStorage) -> None:
        # Given a stored response with headers and a status text
        bucket = storage.open("kronos-dynamic-v1")
        stored = _response(
            b'[{"id":1}]',
            status=203,
            headers={"Content-Type": "application/json", "X-Trace": "abc"},
            status_text="Non-Authoritative Information",
        )
        bucket.put(Request(url("/api/deals")), stored)

        # When it is matched
        cached = bucket.match(url("/api/deals"))

        # Then every field comes back as stored
        assert cached is not None
        assert cached.status == 203
        assert cached.status_text == "Non-Authoritative Information"
        assert cached.headers == {"Content-Type": "application/json", "X-Trace": "abc"}
        assert cached.body == b'[{"id":1}]'

    def test_match_miss(self, storage: CacheStorage) -> None:
        assert storage.open("a").match(url("/missing")) is None

    def test_last_writer_wins(self, storage: CacheStorage) -> None:
        bucket = storage.open("a")
        bucket.put(url("/api/x"), _response(b"first"))
        bucket.put(url("/api/x"), _response(b"second"))

        assert len(bucket) == 1
        assert bucket.match(url("/api/x")).body == b"second"

    def test_keys_follow_write_order(self, storage: CacheStorage) -> None:
        bucket = storage.open("a")
        bucket.put(url("/1"), _response(b"1"))
        bucket.put(url("/2"), _response(b"2"))
        bucket.put(url("/1"), _response(b"1 again"))

        assert bucket.keys() == [url("/2"), url("/1")]

    def test_delete_entry(self, storage: CacheStorage) -> None:
        bucket = storage.open("a")
        bucket.put(url("/1"), _response(b"1"))

        assert bucket.delete(url("/1")) is True
        assert bucket.delete(url("/1")) is False
        assert len(bucket) == 0

    def test_entries_metadata(self, storage: CacheStorage) -> None:
        bucket = storage.open("a")
        bucket.put(url("/1"), _response(b"12345", status=200))

        (entry,) = bucket.entries()

        assert entry.bucket == "a"
        assert entry.url == url("/1")
        assert entry.status == 200
        assert entry.size == 5
        assert entry.stored_at

    def test_combined_match_prefers_oldest_bucket(self, storage: CacheStorage) -> None:
        storage.open("first").put(url("/x"), _response(b"from first"))
        storage.open("second").put(url("/x"), _response(b"from second"))

        assert storage.match(url("/x")).body == b"from first"

    def test_buckets_are_independent(self, storage: CacheStorage) -> None:
        storage.open("a").put(url("/x"), _response(b"a"))

        assert storage.open("b").match(url("/x")) is None


class TestPutAll:
    """Batch writes are all-or-nothing."""

    def test_put_all_stores_every_pair(self, storage: CacheStorage) -> None:
        bucket = storage.open("static")
        bucket.put_all([(url(f"/{i}"), _response(str(i).encode())) for i in range(3)])

        assert bucket.keys() == [url("/0"), url("/1"), url("/2")]

    def test_put_all_rolls_back_on_failure(self, storage: CacheStorage) -> None:
        # Given a batch whose last body cannot be stored
        bucket = storage.open("static")
        pairs = [
            (url("/ok"), _response(b"ok")),
            (url("/bad"), Response(status=200, body=object())),  # type: ignore[arg-type]
        ]

        # When it is written
        with pytest.raises(CacheStorageError) as exc_info:
            bucket.put_all(pairs)

        # Then nothing was stored
        assert exc_info.value.code == ErrorCode.CACHE_WRITE_FAILED
        assert len(bucket) == 0

    def test_put_into_deleted_bucket_fails(self, storage: CacheStorage) -> None:
        bucket = storage.open("gone")
        storage.delete("gone")

        with pytest.raises(CacheStorageError):
            bucket.put(url("/x"), _response(b"x"))


class TestBoundedBucket:
    """Optional eviction of the oldest entries."""

    def test_unbounded_by_default(self, storage: CacheStorage) -> None:
        bucket = storage.open("dynamic")
        for i in range(50):
            bucket.put(url(f"/api/{i}"), _response(b"x"))

        assert len(bucket) == 50

    def test_max_entries_evicts_oldest(self, storage: CacheStorage) -> None:
        bucket = storage.open("dynamic", max_entries=2)
        bucket.put(url("/api/1"), _response(b"1"))
        bucket.put(url("/api/2"), _response(b"2"))
        bucket.put(url("/api/3"), _response(b"3"))

        assert bucket.keys() == [url("/api/2"), url("/api/3")]


class TestPersistence:
    """File-backed storage."""

    def test_entries_survive_reopen(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "cache.db"

        with CacheStorage(db_path) as first:
            first.open("kronos-static-v1").put(url("/"), _response(b"<html>"))

        with CacheStorage(db_path) as second:
            assert second.keys() == ["kronos-static-v1"]
            assert second.match(url("/")).body == b"<html>"

    def test_closed_storage_raises(self) -> None:
        storage = CacheStorage()
        storage.close()

        with pytest.raises(CacheStorageError):
            storage.keys()
