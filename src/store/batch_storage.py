"""Storage backends for batch input and output bytes.

This module hides the difference between local files and S3 objects
behind a two-call read/write interface used by the reader, serializer,
and orchestrator.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Protocol

from core.config import IngestionConfig
from core.errors import DependencyError, NotFoundError, StorageError
from core.s3_uri import is_s3_uri, parse_s3_uri

_MISSING_OBJECT_CODES = ("NoSuchKey", "404", "NotFound")


class BatchStorage(Protocol):
    """Whole-object storage interface."""

    def read_all(self, path: str) -> bytes:
        """Return the full contents stored at path."""
        ...

    def write_all(self, path: str, data: bytes) -> None:
        """Replace the contents stored at path."""
        ...


class LocalBatchStorage:
    """Filesystem-backed storage."""

    def read_all(self, path: str) -> bytes:
        """Read a local file.

        Raises:
            NotFoundError: If the file does not exist.
            StorageError: If the file cannot be read.
        """
        file_path = Path(path).expanduser()
        if not file_path.is_file():
            raise NotFoundError(
                f"Failed to read {file_path}: path does not exist. Provide an existing file."
            )
        try:
            return file_path.read_bytes()
        except OSError as error:
            raise StorageError(
                f"Failed to read {file_path}: {error}. Check file permissions and retry."
            ) from error

    def write_all(self, path: str, data: bytes) -> None:
        """Write a local file, creating parent directories."""
        file_path = Path(path).expanduser()
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(data)
        except OSError as error:
            raise StorageError(
                f"Failed to write {file_path}: {error}. Check the output directory and retry."
            ) from error


class S3BatchStorage:
    """S3-backed storage using a boto3 client."""

    def __init__(self, s3_client: Any) -> None:
        self._s3_client = s3_client

    def read_all(self, path: str) -> bytes:
        """Download an object.

        Raises:
            NotFoundError: If the object does not exist.
            StorageError: If the download fails.
        """
        location = parse_s3_uri(path)
        try:
            response = self._s3_client.get_object(Bucket=location.bucket, Key=location.key)
            return bytes(response["Body"].read())
        except Exception as error:
            if _is_missing_object_error(error):
                raise NotFoundError(
                    f"Failed to read {path}: object does not exist. Provide an existing key."
                ) from error
            raise StorageError(
                f"Failed to read {path}: {error}. Check AWS credentials and retry."
            ) from error

    def write_all(self, path: str, data: bytes) -> None:
        """Upload an object."""
        location = parse_s3_uri(path)
        try:
            self._s3_client.put_object(Bucket=location.bucket, Key=location.key, Body=data)
        except Exception as error:
            raise StorageError(
                f"Failed to write {path}: {error}. Check AWS credentials and retry."
            ) from error

    def list_keys(self, prefix_uri: str) -> list[str]:
        """List object URIs under a prefix, sorted."""
        location = parse_s3_uri(prefix_uri)
        paginator = self._s3_client.get_paginator("list_objects_v2")
        pages = paginator.paginate(Bucket=location.bucket, Prefix=location.key)
        uris: list[str] = []
        for page in pages:
            for obj in page.get("Contents", []):
                uris.append(f"s3://{location.bucket}/{obj['Key']}")
        return sorted(uris)


def resolve_storage(uri: str, config: IngestionConfig | None = None) -> BatchStorage:
    """Pick the storage backend addressing a URI.

    Args:
        uri: Local path or ``s3://`` URI.
        config: Runtime config for S3 session defaults.

    Returns:
        Storage backend.
    """
    if is_s3_uri(uri):
        return S3BatchStorage(create_s3_client(config or IngestionConfig.from_env()))
    return LocalBatchStorage()


def join_uri(base_uri: str, name: str) -> str:
    """Append a file name to a local directory or S3 prefix."""
    if is_s3_uri(base_uri):
        return f"{base_uri.rstrip('/')}/{name}"
    return str(Path(base_uri).expanduser() / name)


def create_s3_client(config: IngestionConfig) -> Any:
    """Create boto3 S3 client.

    Args:
        config: Runtime config with optional session settings.

    Returns:
        Boto3 S3 client.

    Raises:
        DependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise DependencyError(
            "S3 storage requires boto3, but it is not installed. "
            "Install boto3 to read or write s3:// locations."
        ) from error
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")


def _is_missing_object_error(error: Exception) -> bool:
    response = getattr(error, "response", None)
    if not isinstance(response, dict):
        return False
    code = str(response.get("Error", {}).get("Code", ""))
    return code in _MISSING_OBJECT_CODES
