"""Avro object container serialization for batch records.

This module writes typed packet and header records into self-describing
Avro container files and reads them back. Containers embed their schema
and terminate themselves, so readers need no external record count.
"""

from __future__ import annotations

import io
import struct
from types import TracebackType
from typing import Any, BinaryIO, Iterable, Iterator, Type, TypeVar

import fastavro
from fastavro.schema import SchemaParseException
from fastavro.validation import ValidationError
from fastavro.write import Writer

from core.constants import AVRO_SYNC_MARKER_SIZE
from core.errors import SerializationError
from store.avro_schemas import RecordSchema, avro_full_name, schema_for
from store.batch_storage import BatchStorage, resolve_storage

T = TypeVar("T")

_READ_ERRORS = (
    ValueError,
    EOFError,
    TypeError,
    KeyError,
    IndexError,
    struct.error,
    SchemaParseException,
)


class BatchWriter:
    """Streaming append writer for one batch container.

    One writer serves one batch; it is not safe to share across batches
    or threads.
    """

    def __init__(
        self,
        stream: BinaryIO,
        record_type: type,
        sync_marker: bytes | None = None,
    ) -> None:
        """Create a writer and emit the container header.

        Args:
            stream: Writable binary stream owned by the caller.
            record_type: Record dataclass registered in the schema registry.
            sync_marker: Optional pinned 16-byte block sync marker.

        Raises:
            SerializationError: If the record type or sync marker is invalid.
        """
        self._schema = schema_for(record_type)
        _check_sync_marker(sync_marker)
        self._writer = Writer(
            stream,
            self._schema.parsed_schema,
            validator=True,
            sync_marker=sync_marker,
        )
        self._closed = False
        self.record_count = 0

    def append(self, record: Any) -> None:
        """Validate and append one record.

        Raises:
            SerializationError: If the writer is closed or the record fails
                schema validation.
        """
        if self._closed:
            raise SerializationError(
                f"Cannot append {self._schema.record_type.__name__}: writer already closed."
            )
        if not isinstance(record, self._schema.record_type):
            raise SerializationError(
                f"Cannot append {type(record).__name__} to a "
                f"{self._schema.record_type.__name__} container."
            )
        try:
            self._writer.write(self._schema.to_payload(record))
        except (ValidationError, ValueError, TypeError) as error:
            raise SerializationError(
                f"Record failed {self._schema.full_name} schema validation: {error}. "
                "Populate every required field with the declared type."
            ) from error
        self.record_count += 1

    def extend(self, records: Iterable[Any]) -> None:
        """Append records in order."""
        for record in records:
            self.append(record)

    def close(self) -> None:
        """Flush buffered records. The underlying stream stays open."""
        if self._closed:
            return
        self._writer.flush()
        self._closed = True

    def __enter__(self) -> "BatchWriter":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()


def serialize_records(
    records: Iterable[Any],
    record_type: type,
    sync_marker: bytes | None = None,
) -> bytes:
    """Serialize records into one Avro container.

    Args:
        records: Records of ``record_type``, in write order.
        record_type: Record dataclass registered in the schema registry.
        sync_marker: Optional pinned sync marker for byte-identical output.

    Returns:
        Complete container bytes.

    Raises:
        SerializationError: If any record fails schema validation.
    """
    buffer = io.BytesIO()
    with BatchWriter(buffer, record_type, sync_marker=sync_marker) as writer:
        writer.extend(records)
    return buffer.getvalue()


def iter_records(data: bytes, record_type: Type[T]) -> Iterator[T]:
    """Iterate records stored in container bytes.

    The container header is checked eagerly; records decode lazily and
    the iterator ends when the container does. A container cut exactly
    at the end of its header reads as zero records, so packet files must
    still be checked against their header digest.

    Args:
        data: Complete container bytes.
        record_type: Expected record dataclass.

    Returns:
        Finite, non-restartable record iterator.

    Raises:
        SerializationError: If the container is malformed, truncated, or
            holds another record type.
    """
    schema = schema_for(record_type)
    try:
        avro_reader = fastavro.reader(io.BytesIO(data))
    except _READ_ERRORS as error:
        raise SerializationError(
            f"Failed to read {schema.full_name} container header: {error}. "
            "The file is not an Avro container or is truncated."
        ) from error
    _check_writer_schema(avro_reader.writer_schema, schema)
    return _decode_records(avro_reader, schema)


def deserialize_records(
    path: str,
    record_type: Type[T],
    storage: BatchStorage | None = None,
) -> list[T]:
    """Read every record of a container file.

    Args:
        path: Local path or ``s3://`` URI of the container.
        record_type: Expected record dataclass.
        storage: Optional storage backend, resolved from path when omitted.

    Returns:
        Records in write order.

    Raises:
        NotFoundError: If the path does not exist.
        SerializationError: If the container is malformed or truncated.
    """
    backend = storage or resolve_storage(path)
    return list(iter_records(backend.read_all(path), record_type))


def _decode_records(avro_reader: Any, schema: RecordSchema) -> Iterator[Any]:
    try:
        for payload in avro_reader:
            yield schema.from_payload(payload)
    except _READ_ERRORS as error:
        raise SerializationError(
            f"Failed to decode {schema.full_name} records: {error}. "
            "The container is truncated or corrupt."
        ) from error


def _check_writer_schema(writer_schema: Any, schema: RecordSchema) -> None:
    found_name = avro_full_name(writer_schema) if isinstance(writer_schema, dict) else ""
    if found_name != schema.full_name:
        raise SerializationError(
            f"Container holds '{found_name or 'unknown'}' records, expected {schema.full_name}. "
            "Check that the packet and header files were not swapped."
        )


def _check_sync_marker(sync_marker: bytes | None) -> None:
    if sync_marker is not None and len(sync_marker) != AVRO_SYNC_MARKER_SIZE:
        raise SerializationError(
            f"Invalid sync marker: expected {AVRO_SYNC_MARKER_SIZE} bytes, "
            f"got {len(sync_marker)}."
        )
