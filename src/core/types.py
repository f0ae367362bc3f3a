"""Shared typed models.

This module defines immutable data models used by the filter, splitter,
serializer, and orchestration layers to keep interfaces explicit and
stable. Values validate themselves at construction instead of relying
on builders.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import ConfigurationError


@dataclass(frozen=True)
class DataShareMetadata:
    """Per-metric parameters shared by every data share of that metric.

    Attributes:
        number_of_servers: Count of aggregation servers receiving shares.
        bins: Number of statistical bins in the encoded vector.
        hamming_weight: Expected Hamming weight of the encoded vector.
        prime: Prime modulus of the underlying field arithmetic.
        epsilon: Differential privacy epsilon.
        metric_name: Metric identifier.
    """

    number_of_servers: int
    bins: int
    hamming_weight: int
    prime: int
    epsilon: float
    metric_name: str

    def __post_init__(self) -> None:
        if self.number_of_servers < 1:
            raise ConfigurationError(
                f"Invalid metadata for metric '{self.metric_name}': "
                f"number_of_servers must be positive, got {self.number_of_servers}."
            )
        if self.bins <= 0 or self.prime <= 0:
            raise ConfigurationError(
                f"Invalid metadata for metric '{self.metric_name}': "
                f"bins and prime must be positive, got bins={self.bins}, prime={self.prime}."
            )
        if self.hamming_weight < 0:
            raise ConfigurationError(
                f"Invalid metadata for metric '{self.metric_name}': "
                f"hamming_weight must be non-negative, got {self.hamming_weight}."
            )
        if not self.epsilon > 0:
            raise ConfigurationError(
                f"Invalid metadata for metric '{self.metric_name}': "
                f"epsilon must be greater than zero, got {self.epsilon}."
            )


@dataclass(frozen=True)
class EncryptedShare:
    """One recipient's encrypted payload.

    Attributes:
        encryption_key_id: Identifier of the recipient key.
        encrypted_payload: Opaque ciphertext bytes.
    """

    encryption_key_id: str
    encrypted_payload: bytes


@dataclass(frozen=True)
class DataShare:
    """One device contribution awaiting batching.

    Attributes:
        path: Storage path or document id the share was read from.
        created: Creation time, or None when the upload carried none.
        r_pit: Random evaluation point used by the aggregation protocol.
        uuid: Unique share identifier.
        metadata: Metric parameters shared across the batch.
        encrypted_data_shares: One encrypted share per server, in server order.
    """

    path: str
    created: int | None
    r_pit: int
    uuid: str
    metadata: DataShareMetadata
    encrypted_data_shares: tuple[EncryptedShare, ...] = ()


@dataclass(frozen=True)
class PrioDataSharePacket:
    """Per-recipient packet written to the batch packet file."""

    encryption_key_id: str
    r_pit: int
    uuid: str
    encrypted_payload: bytes


@dataclass(frozen=True)
class PrioIngestionHeader:
    """Batch header bound to one packet file by its digest."""

    batch_uuid: str
    name: str
    batch_start_time: int
    batch_end_time: int
    number_of_servers: int
    bins: int
    hamming_weight: int
    prime: int
    epsilon: float
    packet_file_digest: bytes


@dataclass(frozen=True)
class BatchWindow:
    """Half-open collection window ``[start_time, start_time + duration)``.

    Attributes:
        start_time: Inclusive window start.
        duration: Window length, strictly positive.
    """

    start_time: int
    duration: int

    def __post_init__(self) -> None:
        if self.start_time < 0:
            raise ConfigurationError(
                f"Invalid batch window: start_time must be non-negative, got {self.start_time}."
            )
        if self.duration <= 0:
            raise ConfigurationError(
                f"Invalid batch window: duration must be greater than zero, got {self.duration}. "
                "Provide a positive duration in the same unit as share creation times."
            )

    @property
    def end_time(self) -> int:
        """Exclusive window end."""
        return self.start_time + self.duration

    def contains(self, timestamp: int) -> bool:
        """Return whether a timestamp falls inside the window."""
        return self.start_time <= timestamp < self.end_time


@dataclass(frozen=True)
class BatchOptions:
    """Options for one batch ingestion run.

    Attributes:
        source_uri: Local path or ``s3://`` URI holding data-share documents.
        output_uri: Local directory or ``s3://`` prefix for batch files.
        start_time: Window start.
        duration: Window length.
        minimum_participant_count: Privacy threshold for the window.
        batch_uuid: Optional fixed batch id, random when omitted.
    """

    source_uri: str
    output_uri: str
    start_time: int
    duration: int
    minimum_participant_count: int
    batch_uuid: str | None = None


@dataclass(frozen=True)
class BatchResult:
    """Artifacts produced by one successful batch run.

    Attributes:
        batch_uuid: Batch identifier.
        packet_path: Location of the packet file.
        header_path: Location of the header file.
        participant_count: Data shares included in the batch.
        packet_count: Packets written to the packet file.
        packet_file_digest: Digest recorded in the header.
    """

    batch_uuid: str
    packet_path: str
    header_path: str
    participant_count: int
    packet_count: int
    packet_file_digest: bytes
