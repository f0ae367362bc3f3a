"""Avro schema registry for batch record types.

This module centralizes the Avro schemas of packet and header records
and the conversions between typed records and Avro datum payloads.
It is reused by the batch serializer for both write and read paths.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Callable, Mapping

import fastavro

from core.constants import AVRO_NAMESPACE
from core.errors import SerializationError
from core.types import PrioDataSharePacket, PrioIngestionHeader

PRIO_DATA_SHARE_PACKET_SCHEMA: dict[str, Any] = {
    "namespace": AVRO_NAMESPACE,
    "type": "record",
    "name": "PrioDataSharePacket",
    "fields": [
        {"name": "encryption_key_id", "type": "string"},
        {"name": "r_pit", "type": "long"},
        {"name": "uuid", "type": "string"},
        {"name": "encrypted_payload", "type": "bytes"},
    ],
}

PRIO_INGESTION_HEADER_SCHEMA: dict[str, Any] = {
    "namespace": AVRO_NAMESPACE,
    "type": "record",
    "name": "PrioIngestionHeader",
    "fields": [
        {"name": "batch_uuid", "type": "string"},
        {"name": "name", "type": "string"},
        {"name": "batch_start_time", "type": "long"},
        {"name": "batch_end_time", "type": "long"},
        {"name": "number_of_servers", "type": "int"},
        {"name": "bins", "type": "int"},
        {"name": "hamming_weight", "type": "int"},
        {"name": "prime", "type": "long"},
        {"name": "epsilon", "type": "double"},
        {"name": "packet_file_digest", "type": "bytes"},
    ],
}


@dataclass(frozen=True)
class RecordSchema:
    """Schema registration for one record type.

    Attributes:
        record_type: Dataclass written and read with this schema.
        full_name: Namespace-qualified Avro record name.
        parsed_schema: fastavro-parsed schema.
        to_payload: Record to Avro datum conversion.
        from_payload: Avro datum to record conversion.
    """

    record_type: type
    full_name: str
    parsed_schema: Any
    to_payload: Callable[[Any], dict[str, object]]
    from_payload: Callable[[Mapping[str, Any]], Any]


def record_to_payload(record: Any) -> dict[str, object]:
    """Serialize a record dataclass into an Avro datum.

    Field names of the record types match the Avro field names.
    """
    return {field.name: getattr(record, field.name) for field in fields(record)}


def packet_from_payload(payload: Mapping[str, Any]) -> PrioDataSharePacket:
    """Deserialize an Avro datum into a packet."""
    return PrioDataSharePacket(
        encryption_key_id=payload["encryption_key_id"],
        r_pit=payload["r_pit"],
        uuid=payload["uuid"],
        encrypted_payload=bytes(payload["encrypted_payload"]),
    )


def header_from_payload(payload: Mapping[str, Any]) -> PrioIngestionHeader:
    """Deserialize an Avro datum into a header."""
    return PrioIngestionHeader(
        batch_uuid=payload["batch_uuid"],
        name=payload["name"],
        batch_start_time=payload["batch_start_time"],
        batch_end_time=payload["batch_end_time"],
        number_of_servers=payload["number_of_servers"],
        bins=payload["bins"],
        hamming_weight=payload["hamming_weight"],
        prime=payload["prime"],
        epsilon=payload["epsilon"],
        packet_file_digest=bytes(payload["packet_file_digest"]),
    )


def avro_full_name(schema: Mapping[str, Any]) -> str:
    """Return the namespace-qualified name of a record schema."""
    name = str(schema.get("name", ""))
    namespace = schema.get("namespace")
    if "." in name or not namespace:
        return name
    return f"{namespace}.{name}"


def _register(
    record_type: type,
    schema: dict[str, Any],
    from_payload: Callable[[Mapping[str, Any]], Any],
) -> RecordSchema:
    return RecordSchema(
        record_type=record_type,
        full_name=avro_full_name(schema),
        parsed_schema=fastavro.parse_schema(schema),
        to_payload=record_to_payload,
        from_payload=from_payload,
    )


_REGISTRY: dict[type, RecordSchema] = {
    PrioDataSharePacket: _register(
        PrioDataSharePacket, PRIO_DATA_SHARE_PACKET_SCHEMA, packet_from_payload
    ),
    PrioIngestionHeader: _register(
        PrioIngestionHeader, PRIO_INGESTION_HEADER_SCHEMA, header_from_payload
    ),
}


def schema_for(record_type: type) -> RecordSchema:
    """Look up the schema registration for a record type.

    Args:
        record_type: Record dataclass.

    Returns:
        Registered schema.

    Raises:
        SerializationError: If the type has no registered schema.
    """
    registration = _REGISTRY.get(record_type)
    if registration is None:
        supported = ", ".join(sorted(cls.__name__ for cls in _REGISTRY))
        raise SerializationError(
            f"No Avro schema registered for {record_type.__name__}. "
            f"Supported record types: {supported}."
        )
    return registration
