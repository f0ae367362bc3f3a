"""Data-share document readers for ingestion.

This module loads device data-share documents from local paths or S3
and normalizes them into typed data shares. Documents are JSON Lines,
one share per line, with base64 encrypted payloads.
"""

from __future__ import annotations

import base64
import binascii
import json
from pathlib import Path
from typing import Any, Mapping

from core.config import IngestionConfig
from core.constants import SUPPORTED_INPUT_EXTENSIONS
from core.errors import ConfigurationError, NotFoundError, SerializationError
from core.s3_uri import is_s3_uri
from core.types import DataShare, DataShareMetadata, EncryptedShare
from store.batch_storage import LocalBatchStorage, S3BatchStorage, create_s3_client


class _MetadataInterner:
    """Shares one metadata instance across equal metric configurations."""

    def __init__(self) -> None:
        self._instances: dict[DataShareMetadata, DataShareMetadata] = {}

    def intern(self, metadata: DataShareMetadata) -> DataShareMetadata:
        return self._instances.setdefault(metadata, metadata)


def read_data_shares(source_uri: str, config: IngestionConfig | None = None) -> list[DataShare]:
    """Load data shares from local files or S3.

    Args:
        source_uri: Local file, local directory, or ``s3://`` URI.
        config: Runtime configuration for S3 session defaults.

    Returns:
        Data shares in document order.

    Raises:
        NotFoundError: If the source does not exist.
        SerializationError: If a document is malformed.
    """
    interner = _MetadataInterner()
    if is_s3_uri(source_uri):
        storage = S3BatchStorage(create_s3_client(config or IngestionConfig.from_env()))
        return _read_s3_shares(storage, source_uri, interner)
    return _read_local_shares(Path(source_uri).expanduser(), interner)


def parse_data_share_lines(text: str, source: str) -> list[DataShare]:
    """Parse JSON Lines text into data shares.

    Args:
        text: Document body.
        source: Source location used in default paths and error messages.

    Returns:
        Parsed data shares.
    """
    return _parse_lines(text, source, _MetadataInterner())


def _read_local_shares(source_path: Path, interner: _MetadataInterner) -> list[DataShare]:
    if not source_path.exists():
        raise NotFoundError(
            f"Failed to read data shares at {source_path}: path does not exist. "
            "Provide an existing file or directory."
        )
    if source_path.is_file():
        files = [source_path]
    else:
        files = [
            file_path
            for file_path in sorted(source_path.rglob("*"))
            if file_path.is_file() and _is_supported(file_path.name)
        ]
    storage = LocalBatchStorage()
    shares: list[DataShare] = []
    for file_path in files:
        text = _decode_text(storage.read_all(str(file_path)), str(file_path))
        shares.extend(_parse_lines(text, str(file_path), interner))
    return shares


def _read_s3_shares(
    storage: S3BatchStorage,
    source_uri: str,
    interner: _MetadataInterner,
) -> list[DataShare]:
    if _is_supported(source_uri):
        object_uris = [source_uri]
    else:
        object_uris = [uri for uri in storage.list_keys(source_uri) if _is_supported(uri)]
    shares: list[DataShare] = []
    for object_uri in object_uris:
        text = _decode_text(storage.read_all(object_uri), object_uri)
        shares.extend(_parse_lines(text, object_uri, interner))
    return shares


def _parse_lines(text: str, source: str, interner: _MetadataInterner) -> list[DataShare]:
    shares: list[DataShare] = []
    for line_number, line in enumerate(text.splitlines(), 1):
        if not line.strip():
            continue
        location = f"{source}:{line_number}"
        payload = _parse_json_line(line, location)
        shares.append(_data_share_from_payload(payload, location, interner))
    return shares


def _parse_json_line(line: str, location: str) -> Mapping[str, Any]:
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as error:
        raise SerializationError(
            f"Failed to parse data share at {location}: {error.msg}. "
            "Fix the JSON syntax and retry ingest."
        ) from error
    if not isinstance(payload, dict):
        raise SerializationError(
            f"Invalid data share at {location}: expected JSON object."
        )
    return payload


def _data_share_from_payload(
    payload: Mapping[str, Any],
    location: str,
    interner: _MetadataInterner,
) -> DataShare:
    metadata = interner.intern(_metadata_from_payload(payload.get("metadata"), location))
    raw_shares = payload.get("encryptedDataShares")
    if not isinstance(raw_shares, list):
        raise SerializationError(
            f"Invalid data share at {location}: expected list field 'encryptedDataShares'."
        )
    path = payload.get("path", location)
    if not isinstance(path, str):
        raise SerializationError(f"Invalid data share at {location}: 'path' must be a string.")
    return DataShare(
        path=path,
        created=_optional_int(payload, "created", location),
        r_pit=_required_int(payload, "rPit", location),
        uuid=_required_string(payload, "uuid", location),
        metadata=metadata,
        encrypted_data_shares=tuple(
            _encrypted_share_from_payload(raw_share, f"{location} share #{index + 1}")
            for index, raw_share in enumerate(raw_shares)
        ),
    )


def _metadata_from_payload(raw_metadata: object, location: str) -> DataShareMetadata:
    if not isinstance(raw_metadata, dict):
        raise SerializationError(
            f"Invalid data share at {location}: expected object field 'metadata'."
        )
    epsilon = raw_metadata.get("epsilon")
    if not isinstance(epsilon, (int, float)) or isinstance(epsilon, bool):
        raise SerializationError(
            f"Invalid data share metadata at {location}: 'epsilon' must be a number."
        )
    try:
        return DataShareMetadata(
            number_of_servers=_required_int(raw_metadata, "numberOfServers", location),
            bins=_required_int(raw_metadata, "bins", location),
            hamming_weight=_required_int(raw_metadata, "hammingWeight", location),
            prime=_required_int(raw_metadata, "prime", location),
            epsilon=float(epsilon),
            metric_name=_required_string(raw_metadata, "metricName", location),
        )
    except ConfigurationError as error:
        raise SerializationError(f"Invalid data share metadata at {location}: {error}") from error


def _encrypted_share_from_payload(raw_share: object, location: str) -> EncryptedShare:
    if not isinstance(raw_share, dict):
        raise SerializationError(f"Invalid encrypted share at {location}: expected JSON object.")
    encoded_payload = _required_string(raw_share, "payload", location)
    try:
        encrypted_payload = base64.b64decode(encoded_payload, validate=True)
    except binascii.Error as error:
        raise SerializationError(
            f"Invalid encrypted share at {location}: 'payload' is not valid base64."
        ) from error
    return EncryptedShare(
        encryption_key_id=_required_string(raw_share, "encryptionKeyId", location),
        encrypted_payload=encrypted_payload,
    )


def _required_int(payload: Mapping[str, Any], field_name: str, location: str) -> int:
    value = _optional_int(payload, field_name, location)
    if value is None:
        raise SerializationError(
            f"Invalid data share at {location}: missing integer field '{field_name}'."
        )
    return value


def _optional_int(payload: Mapping[str, Any], field_name: str, location: str) -> int | None:
    value = payload.get(field_name)
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise SerializationError(
        f"Invalid data share at {location}: field '{field_name}' must be an integer."
    )


def _required_string(payload: Mapping[str, Any], field_name: str, location: str) -> str:
    value = payload.get(field_name)
    if not isinstance(value, str):
        raise SerializationError(
            f"Invalid data share at {location}: missing string field '{field_name}'."
        )
    return value


def _decode_text(data: bytes, source: str) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as error:
        raise SerializationError(
            f"Failed to decode data shares at {source}: expected UTF-8 JSON Lines."
        ) from error


def _is_supported(name: str) -> bool:
    return Path(name).suffix.lower() in SUPPORTED_INPUT_EXTENSIONS
