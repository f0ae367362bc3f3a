"""Batch header construction.

This module binds batch identity, window, metric parameters, and the
packet file digest into one header record. Callers must pass the digest
of the fully serialized packet file for the same batch.
"""

from __future__ import annotations

import uuid

from core.constants import HEADER_NAME_PREFIX, MINIMUM_AGGREGATION_SERVERS
from core.errors import ConfigurationError
from core.types import DataShareMetadata, PrioIngestionHeader


def build_header(
    metadata: DataShareMetadata,
    digest: bytes,
    batch_uuid: uuid.UUID | str,
    start_time: int,
    duration: int,
) -> PrioIngestionHeader:
    """Build the header record for a serialized batch.

    Args:
        metadata: Metric parameters shared by the batch.
        digest: Digest of the complete packet file bytes.
        batch_uuid: Batch identifier.
        start_time: Window start.
        duration: Window length, strictly positive.

    Returns:
        Header with ``batch_end_time = start_time + duration``.

    Raises:
        ConfigurationError: If the window, digest, or server count is invalid.
    """
    if duration <= 0:
        raise ConfigurationError(
            f"Invalid header window: duration must be greater than zero, got {duration}."
        )
    if not digest:
        raise ConfigurationError(
            "Invalid header digest: expected digest of the serialized packet file, got empty bytes."
        )
    if metadata.number_of_servers < MINIMUM_AGGREGATION_SERVERS:
        raise ConfigurationError(
            f"Invalid metadata for metric '{metadata.metric_name}': aggregation batches need "
            f"at least {MINIMUM_AGGREGATION_SERVERS} servers, got {metadata.number_of_servers}."
        )
    batch_id = str(batch_uuid)
    return PrioIngestionHeader(
        batch_uuid=batch_id,
        name=f"{HEADER_NAME_PREFIX}{batch_id}",
        batch_start_time=start_time,
        batch_end_time=start_time + duration,
        number_of_servers=metadata.number_of_servers,
        bins=metadata.bins,
        hamming_weight=metadata.hamming_weight,
        prime=metadata.prime,
        epsilon=metadata.epsilon,
        packet_file_digest=bytes(digest),
    )
