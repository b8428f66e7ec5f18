"""Unit tests for storage helpers and the in-memory storage."""

import io

import pytest

from app.core.storage import InMemoryStorage, read_limited, split_storage_ref, storage_ref


class TestReadLimited:
    """Tests for read_limited()."""

    def test_stops_one_byte_past_the_limit(self) -> None:
        stream = io.BytesIO(b"x" * 10_000)

        data = read_limited(stream, 100)

        assert len(data) == 101
        assert stream.tell() == 101

    def test_small_upload_is_read_whole(self) -> None:
        assert read_limited(io.BytesIO(b"slip"), 100) == b"slip"


class TestStorageRefs:
    """Tests for storage_ref() / split_storage_ref()."""

    def test_split_reverses_join(self) -> None:
        assert split_storage_ref(storage_ref("order-slips", "o-1.png")) == ("order-slips", "o-1.png")

    @pytest.mark.parametrize("ref", ["https://cdn.example.com/a.png", "no-bucket", "/key", "bucket/"])
    def test_not_a_storage_ref(self, ref: str) -> None:
        assert split_storage_ref(ref) is None


class TestInMemoryStorage:
    """Tests for InMemoryStorage."""

    def test_remove_is_idempotent(self) -> None:
        storage = InMemoryStorage()
        storage.upload("order-slips", "o-1.png", b"png", "image/png")

        storage.remove("order-slips", "o-1.png")
        storage.remove("order-slips", "o-1.png")

        assert storage.objects == {}
