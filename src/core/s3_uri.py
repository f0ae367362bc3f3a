"""S3 URI parsing helpers.

This module centralizes S3 URI parsing for input reading and batch
storage so URI validation behaves the same everywhere.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import ConfigurationError

S3_SCHEME = "s3://"


@dataclass(frozen=True)
class S3Location:
    """Parsed S3 location model."""

    bucket: str
    key: str


def is_s3_uri(uri: str) -> bool:
    """Return whether a URI addresses S3."""
    return uri.startswith(S3_SCHEME)


def parse_s3_uri(uri: str) -> S3Location:
    """Parse and validate an S3 URI.

    Args:
        uri: URI in format ``s3://bucket/key``.

    Returns:
        Parsed bucket and key pair.

    Raises:
        ConfigurationError: If the URI lacks a bucket or key.
    """
    stripped_uri = uri.removeprefix(S3_SCHEME)
    bucket, _, key = stripped_uri.partition("/")
    if not bucket or not key:
        raise ConfigurationError(
            f"Invalid S3 URI '{uri}': expected s3://bucket/key. "
            "Provide both bucket and key."
        )
    return S3Location(bucket=bucket, key=key)
