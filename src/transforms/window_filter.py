"""Collection-window filter and batch acceptance gates.

This module decides which data shares belong to a batch window and
whether the surviving set may be emitted at all. Filtering is a pure
per-record predicate; the participant threshold is a hard privacy gate.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from core.errors import ConfigurationError, InsufficientParticipantsError, ShapeMismatchError
from core.logging_config import get_logger
from core.types import BatchWindow, DataShare, DataShareMetadata

_LOGGER = get_logger(__name__)


def is_in_window(data_share: DataShare, window: BatchWindow) -> bool:
    """Return whether a data share was created inside the window.

    Shares without a creation time never match.
    """
    if data_share.created is None:
        return False
    return window.contains(data_share.created)


def filter_window(data_shares: Iterable[DataShare], window: BatchWindow) -> list[DataShare]:
    """Keep data shares created inside the batch window.

    Args:
        data_shares: Candidate shares, in any order.
        window: Half-open collection window.

    Returns:
        Shares with a present creation time inside the window.
    """
    kept: list[DataShare] = []
    seen_uuids: set[str] = set()
    input_count = 0
    missing_created_count = 0
    for data_share in data_shares:
        input_count += 1
        if data_share.created is None:
            missing_created_count += 1
        if not is_in_window(data_share, window):
            continue
        if data_share.uuid in seen_uuids:
            _LOGGER.warning("duplicate_data_share_uuid", uuid=data_share.uuid)
        seen_uuids.add(data_share.uuid)
        kept.append(data_share)
    _LOGGER.info(
        "window_filtered",
        start_time=window.start_time,
        end_time=window.end_time,
        input_count=input_count,
        output_count=len(kept),
        missing_created_count=missing_created_count,
    )
    return kept


def require_minimum_participants(
    data_shares: Sequence[DataShare],
    minimum_participant_count: int,
) -> None:
    """Reject a batch holding fewer shares than the privacy threshold.

    Args:
        data_shares: Shares surviving the window filter.
        minimum_participant_count: Configured threshold, non-negative.

    Raises:
        ConfigurationError: If the threshold is negative.
        InsufficientParticipantsError: If the batch is below the threshold.
    """
    if minimum_participant_count < 0:
        raise ConfigurationError(
            "Invalid minimum participant count: expected non-negative integer, "
            f"got {minimum_participant_count}."
        )
    if len(data_shares) < minimum_participant_count:
        raise InsufficientParticipantsError(len(data_shares), minimum_participant_count)


def require_homogeneous_metadata(data_shares: Sequence[DataShare]) -> DataShareMetadata | None:
    """Return the metadata shared by every share in the batch.

    Args:
        data_shares: Shares of one batch.

    Returns:
        The common metadata, or None for an empty batch.

    Raises:
        ShapeMismatchError: If shares carry different metadata.
    """
    if not data_shares:
        return None
    metadata = data_shares[0].metadata
    for data_share in data_shares[1:]:
        if data_share.metadata != metadata:
            raise ShapeMismatchError(
                f"Batch mixes metric configurations: share {data_share.uuid} has metric "
                f"'{data_share.metadata.metric_name}', expected '{metadata.metric_name}' "
                "with identical parameters. Split input by metric before batching."
            )
    return metadata
