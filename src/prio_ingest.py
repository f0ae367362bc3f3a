"""Public SDK surface for Prio batch ingestion.

This module provides a stable import path for pipeline integrations.
It re-exports the stage functions, typed models, and error types.
"""

from __future__ import annotations

from core.config import IngestionConfig
from core.errors import (
    ConfigurationError,
    EmptyBatchError,
    InsufficientParticipantsError,
    NotFoundError,
    PrioIngestError,
    SerializationError,
    ShapeMismatchError,
)
from core.types import (
    BatchOptions,
    BatchResult,
    BatchWindow,
    DataShare,
    DataShareMetadata,
    EncryptedShare,
    PrioDataSharePacket,
    PrioIngestionHeader,
)
from ingest.data_share_reader import read_data_shares
from ingest.header_builder import build_header
from ingest.pipeline import build_batch, ingest_batch, process_data_shares
from store.batch_digest import DigestComputer, Sha256DigestComputer, verify_packet_file
from store.batch_serializer import BatchWriter, deserialize_records, iter_records, serialize_records
from transforms.packet_splitter import split_batch, split_packets
from transforms.window_filter import filter_window, is_in_window, require_minimum_participants

__all__ = [
    "BatchOptions",
    "BatchResult",
    "BatchWindow",
    "BatchWriter",
    "ConfigurationError",
    "DataShare",
    "DataShareMetadata",
    "DigestComputer",
    "EmptyBatchError",
    "EncryptedShare",
    "IngestionConfig",
    "InsufficientParticipantsError",
    "NotFoundError",
    "PrioDataSharePacket",
    "PrioIngestError",
    "PrioIngestionHeader",
    "SerializationError",
    "ShapeMismatchError",
    "Sha256DigestComputer",
    "build_batch",
    "build_header",
    "deserialize_records",
    "filter_window",
    "ingest_batch",
    "is_in_window",
    "iter_records",
    "process_data_shares",
    "read_data_shares",
    "require_minimum_participants",
    "serialize_records",
    "split_batch",
    "split_packets",
    "verify_packet_file",
]
