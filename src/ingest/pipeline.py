"""Batch ingestion orchestration.

This module wires the window filter, packet splitter, batch serializer,
digest computer, and header builder for one collection window. The
packet file is fully serialized and digested before its header exists.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Iterable

from core.config import IngestionConfig
from core.constants import HEADER_FILE_SUFFIX, PACKET_FILE_SUFFIX
from core.errors import EmptyBatchError, InsufficientParticipantsError
from core.logging_config import get_logger
from core.types import (
    BatchOptions,
    BatchResult,
    BatchWindow,
    DataShare,
    PrioDataSharePacket,
    PrioIngestionHeader,
)
from ingest.data_share_reader import read_data_shares
from ingest.header_builder import build_header
from store.batch_digest import DigestComputer, Sha256DigestComputer
from store.batch_serializer import serialize_records
from store.batch_storage import BatchStorage, join_uri, resolve_storage
from transforms.packet_splitter import split_batch
from transforms.window_filter import (
    filter_window,
    require_homogeneous_metadata,
    require_minimum_participants,
)

_LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class BatchArtifacts:
    """Serialized batch ready to be written."""

    header: PrioIngestionHeader
    packet_file_bytes: bytes
    header_file_bytes: bytes
    participant_count: int
    packet_count: int


def process_data_shares(
    data_shares: Iterable[DataShare],
    window: BatchWindow,
    minimum_participant_count: int,
) -> list[DataShare]:
    """Filter shares to the window and apply batch acceptance checks.

    Args:
        data_shares: Candidate shares.
        window: Collection window.
        minimum_participant_count: Privacy threshold.

    Returns:
        Accepted shares of one homogeneous batch.

    Raises:
        InsufficientParticipantsError: If too few shares survive.
        ShapeMismatchError: If surviving shares mix metric configurations.
    """
    accepted = filter_window(data_shares, window)
    try:
        require_minimum_participants(accepted, minimum_participant_count)
    except InsufficientParticipantsError as error:
        _LOGGER.warning(
            "batch_rejected_insufficient_participants",
            start_time=window.start_time,
            end_time=window.end_time,
            participant_count=error.participant_count,
            minimum_participant_count=error.minimum_participant_count,
        )
        raise
    require_homogeneous_metadata(accepted)
    return accepted


def build_batch(
    data_shares: Iterable[DataShare],
    window: BatchWindow,
    minimum_participant_count: int,
    batch_uuid: uuid.UUID | str,
    digest_computer: DigestComputer | None = None,
) -> BatchArtifacts:
    """Build packet and header containers for one window in memory.

    Args:
        data_shares: Candidate shares.
        window: Collection window.
        minimum_participant_count: Privacy threshold.
        batch_uuid: Batch identifier.
        digest_computer: Digest implementation, SHA-256 when omitted.

    Returns:
        Serialized packet and header containers.

    Raises:
        InsufficientParticipantsError: If too few shares survive.
        EmptyBatchError: If no share survives, even with a zero threshold.
        ShapeMismatchError: If any share is malformed or metadata is mixed.
        ConfigurationError: If the batch cannot carry a valid header.
        SerializationError: If records fail schema validation.
    """
    accepted = process_data_shares(data_shares, window, minimum_participant_count)
    if not accepted:
        raise EmptyBatchError(minimum_participant_count)
    metadata = accepted[0].metadata
    packets = split_batch(accepted)
    packet_file_bytes = serialize_records(packets, PrioDataSharePacket)
    digest = (digest_computer or Sha256DigestComputer()).digest(packet_file_bytes)
    header = build_header(metadata, digest, batch_uuid, window.start_time, window.duration)
    header_file_bytes = serialize_records([header], PrioIngestionHeader)
    _LOGGER.info(
        "packet_file_serialized",
        batch_uuid=header.batch_uuid,
        participant_count=len(accepted),
        packet_count=len(packets),
        packet_file_size=len(packet_file_bytes),
    )
    return BatchArtifacts(
        header=header,
        packet_file_bytes=packet_file_bytes,
        header_file_bytes=header_file_bytes,
        participant_count=len(accepted),
        packet_count=len(packets),
    )


class BatchIngestionRunner:
    """Runner for one window: read input, build the batch, write files."""

    def __init__(
        self,
        options: BatchOptions,
        config: IngestionConfig,
        storage: BatchStorage | None = None,
        digest_computer: DigestComputer | None = None,
    ) -> None:
        self._options = options
        self._config = config
        self._window = BatchWindow(options.start_time, options.duration)
        self._storage = storage or resolve_storage(options.output_uri, config)
        self._digest_computer = digest_computer or Sha256DigestComputer()
        self._batch_uuid = options.batch_uuid or str(uuid.uuid4())

    def run(self) -> BatchResult:
        """Execute the batch and return written artifact locations."""
        data_shares = read_data_shares(self._options.source_uri, self._config)
        artifacts = build_batch(
            data_shares,
            self._window,
            self._options.minimum_participant_count,
            self._batch_uuid,
            self._digest_computer,
        )
        packet_path = join_uri(self._options.output_uri, f"{self._batch_uuid}{PACKET_FILE_SUFFIX}")
        header_path = join_uri(self._options.output_uri, f"{self._batch_uuid}{HEADER_FILE_SUFFIX}")
        self._storage.write_all(packet_path, artifacts.packet_file_bytes)
        self._storage.write_all(header_path, artifacts.header_file_bytes)
        _log_batch_written(self._options, artifacts, packet_path, len(data_shares))
        return BatchResult(
            batch_uuid=self._batch_uuid,
            packet_path=packet_path,
            header_path=header_path,
            participant_count=artifacts.participant_count,
            packet_count=artifacts.packet_count,
            packet_file_digest=artifacts.header.packet_file_digest,
        )


def ingest_batch(
    options: BatchOptions,
    config: IngestionConfig,
    storage: BatchStorage | None = None,
    digest_computer: DigestComputer | None = None,
) -> BatchResult:
    """Run ingestion for one collection window and persist the batch.

    Args:
        options: Batch request options.
        config: Runtime configuration.
        storage: Optional output storage, resolved from the output URI when omitted.
        digest_computer: Optional digest implementation.

    Returns:
        Written batch summary.

    Raises:
        InsufficientParticipantsError: If the window is below the threshold;
            nothing is written.
        PrioIngestError: For any other input, shape, or storage failure.
    """
    runner = BatchIngestionRunner(options, config, storage, digest_computer)
    return runner.run()


def _log_batch_written(
    options: BatchOptions,
    artifacts: BatchArtifacts,
    packet_path: str,
    input_count: int,
) -> None:
    """Log batch completion with contextual metadata."""
    _LOGGER.info(
        "batch_written",
        batch_uuid=artifacts.header.batch_uuid,
        source_uri=options.source_uri,
        output_uri=options.output_uri,
        packet_path=packet_path,
        start_time=options.start_time,
        end_time=artifacts.header.batch_end_time,
        input_count=input_count,
        participant_count=artifacts.participant_count,
        packet_count=artifacts.packet_count,
        packet_file_digest=artifacts.header.packet_file_digest.hex(),
    )
