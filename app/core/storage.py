# app/core/storage.py
"""
Object storage for payment slips and book assets.

Objects are addressed by (bucket, key). Rows store references as
"<bucket>/<key>" (see `storage_ref` / `split_storage_ref`).

Buckets:
  - order-slips : private, viewed through signed URLs
  - book-covers : public
  - book-pdfs   : private, delivered through signed URLs
"""
import secrets
import time
from abc import ABC, abstractmethod
from typing import Any, BinaryIO

from app.core.errors import StorageError


def storage_ref(bucket: str, key: str) -> str:
    return f"{bucket}/{key}"


def read_limited(stream: BinaryIO, max_bytes: int) -> bytes:
    """
    Read at most max_bytes + 1 bytes, enough for the caller to tell an
    oversized upload apart without buffering all of it.
    """
    return stream.read(max_bytes + 1)


def split_storage_ref(ref: str) -> tuple[str, str] | None:
    """
    Split "<bucket>/<key>" into its parts.

    Returns None for absolute URLs and values without a bucket prefix.
    """
    if "://" in ref or "/" not in ref:
        return None
    bucket, key = ref.split("/", 1)
    if not bucket or not key:
        return None
    return bucket, key


class FileStorage(ABC):
    """
    Storage boundary used by services.

    - upload is an upsert: uploading to an existing key overwrites it
    - failures raise StorageError and are not retried
    """

    @abstractmethod
    def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> None:
        ...

    @abstractmethod
    def public_url(self, bucket: str, key: str) -> str:
        ...

    @abstractmethod
    def signed_url(self, bucket: str, key: str, ttl_seconds: int) -> str:
        ...

    @abstractmethod
    def remove(self, bucket: str, key: str) -> None:
        ...


class SupabaseStorage(FileStorage):
    """
    Supabase Storage adapter (service role client).
    """

    def __init__(self, client: Any):
        self.client = client

    def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> None:
        try:
            self.client.storage.from_(bucket).upload(
                key,
                data,
                {"upsert": "true", "content-type": content_type},
            )
        except Exception as exc:
            raise StorageError(f"Upload to {bucket}/{key} failed: {exc}") from exc

    def public_url(self, bucket: str, key: str) -> str:
        return self.client.storage.from_(bucket).get_public_url(key)

    def signed_url(self, bucket: str, key: str, ttl_seconds: int) -> str:
        try:
            result = self.client.storage.from_(bucket).create_signed_url(key, ttl_seconds)
        except Exception as exc:
            raise StorageError(f"Signing {bucket}/{key} failed: {exc}") from exc

        # storage3 has returned both spellings across releases
        url = result.get("signedURL") or result.get("signedUrl")
        if not url:
            raise StorageError(f"Signing {bucket}/{key} returned no URL")
        return url

    def remove(self, bucket: str, key: str) -> None:
        # Supabase Python client expects a list of paths.
        try:
            self.client.storage.from_(bucket).remove([key])
        except Exception as exc:
            raise StorageError(f"Removing {bucket}/{key} failed: {exc}") from exc


class InMemoryStorage(FileStorage):
    """
    Process-local storage for demo mode and tests.
    """

    def __init__(self, base_url: str = "memory://storage"):
        self.base_url = base_url.rstrip("/")
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}

    def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> None:
        self.objects[(bucket, key)] = (data, content_type)

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.base_url}/public/{bucket}/{key}"

    def signed_url(self, bucket: str, key: str, ttl_seconds: int) -> str:
        if (bucket, key) not in self.objects:
            raise StorageError(f"Object not found: {bucket}/{key}")
        expires = int(time.time()) + ttl_seconds
        token = secrets.token_urlsafe(16)
        return f"{self.base_url}/sign/{bucket}/{key}?token={token}&expires={expires}"

    def remove(self, bucket: str, key: str) -> None:
        self.objects.pop((bucket, key), None)
