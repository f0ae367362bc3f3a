"""Unit tests for batch storage backends."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any

import pytest

from core.errors import ConfigurationError, NotFoundError, StorageError
from store.batch_storage import LocalBatchStorage, S3BatchStorage, join_uri, resolve_storage


class _MissingKeyError(Exception):
    def __init__(self) -> None:
        super().__init__("NoSuchKey")
        self.response = {"Error": {"Code": "NoSuchKey"}}


class _StubPaginator:
    def __init__(self, keys: list[str]) -> None:
        self._keys = keys

    def paginate(self, Bucket: str, Prefix: str) -> list[dict[str, Any]]:
        return [{"Contents": [{"Key": key} for key in self._keys if key.startswith(Prefix)]}]


class _StubS3Client:
    """In-memory stand-in for a boto3 S3 client."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], bytes] = {}

    def put_object(self, Bucket: str, Key: str, Body: bytes) -> None:
        self.objects[(Bucket, Key)] = Body

    def get_object(self, Bucket: str, Key: str) -> dict[str, Any]:
        if (Bucket, Key) not in self.objects:
            raise _MissingKeyError()
        return {"Body": io.BytesIO(self.objects[(Bucket, Key)])}

    def get_paginator(self, operation_name: str) -> _StubPaginator:
        return _StubPaginator(sorted(key for _, key in self.objects))


def test_local_storage_roundtrip_creates_parent_dirs(tmp_path: Path) -> None:
    """Local writes should create directories and read back bytes."""
    storage = LocalBatchStorage()
    target = tmp_path / "nested" / "out.batch"

    storage.write_all(str(target), b"\x00\x01")

    assert storage.read_all(str(target)) == b"\x00\x01"


def test_local_storage_missing_file_raises_not_found(tmp_path: Path) -> None:
    """Reading a missing local file should raise not-found."""
    with pytest.raises(NotFoundError):
        LocalBatchStorage().read_all(str(tmp_path / "absent"))


def test_local_storage_write_failure_raises_storage_error(tmp_path: Path) -> None:
    """Writing beneath a regular file should raise a storage error."""
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")

    with pytest.raises(StorageError):
        LocalBatchStorage().write_all(str(blocker / "out.batch"), b"data")


def test_s3_storage_roundtrip() -> None:
    """S3 storage should upload and download object bytes."""
    storage = S3BatchStorage(_StubS3Client())

    storage.write_all("s3://bucket/batches/a.batch", b"payload")

    assert storage.read_all("s3://bucket/batches/a.batch") == b"payload"


def test_s3_storage_missing_key_raises_not_found() -> None:
    """Missing objects should map to not-found errors."""
    with pytest.raises(NotFoundError):
        S3BatchStorage(_StubS3Client()).read_all("s3://bucket/absent.batch")


def test_s3_storage_lists_keys_under_prefix() -> None:
    """Listing should return full URIs under the prefix."""
    client = _StubS3Client()
    client.put_object("bucket", "in/b.jsonl", b"")
    client.put_object("bucket", "in/a.jsonl", b"")
    client.put_object("bucket", "other/c.jsonl", b"")

    uris = S3BatchStorage(client).list_keys("s3://bucket/in/")

    assert uris == ["s3://bucket/in/a.jsonl", "s3://bucket/in/b.jsonl"]


def test_s3_storage_rejects_uri_without_key() -> None:
    """Bucket-only URIs cannot address an object."""
    with pytest.raises(ConfigurationError):
        S3BatchStorage(_StubS3Client()).read_all("s3://bucket")


def test_join_uri_handles_local_and_s3() -> None:
    """File names should join onto directories and prefixes."""
    assert join_uri("s3://bucket/out/", "x.batch") == "s3://bucket/out/x.batch"
    assert join_uri("/tmp/out", "x.batch") == str(Path("/tmp/out") / "x.batch")


def test_resolve_storage_picks_local_for_paths(tmp_path: Path) -> None:
    """Non-S3 locations should use the local backend."""
    assert isinstance(resolve_storage(str(tmp_path)), LocalBatchStorage)
