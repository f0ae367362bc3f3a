"""Unit tests for batch header construction."""

from __future__ import annotations

import uuid

import pytest

from core.errors import ConfigurationError
from ingest.header_builder import build_header
from tests.data_share_builders import SAMPLE_PRIME, sample_metadata

DIGEST = bytes(range(32))


def test_build_header_binds_window_metadata_and_digest() -> None:
    """Header fields should derive from metadata, window, and digest."""
    batch_uuid = uuid.UUID("6f1c2f5e-9a8b-4c1d-8e7f-0a1b2c3d4e5f")

    header = build_header(sample_metadata(), DIGEST, batch_uuid, 1_600_000_000, 3600)

    assert header.batch_uuid == "6f1c2f5e-9a8b-4c1d-8e7f-0a1b2c3d4e5f"
    assert header.name == "BatchUuid=6f1c2f5e-9a8b-4c1d-8e7f-0a1b2c3d4e5f"
    assert header.batch_start_time == 1_600_000_000
    assert header.batch_end_time == 1_600_003_600
    assert (header.number_of_servers, header.bins, header.hamming_weight) == (2, 4, 1)
    assert header.prime == SAMPLE_PRIME
    assert header.epsilon == 5.2933
    assert header.packet_file_digest == DIGEST


def test_build_header_accepts_string_batch_id() -> None:
    """String batch ids should be used unchanged."""
    header = build_header(sample_metadata(), DIGEST, "batch-7", 0, 1)

    assert header.name == "BatchUuid=batch-7"
    assert header.batch_end_time == 1


@pytest.mark.parametrize("duration", [0, -5])
def test_build_header_rejects_non_positive_duration(duration: int) -> None:
    """Header windows must have positive length."""
    with pytest.raises(ConfigurationError):
        build_header(sample_metadata(), DIGEST, "batch-1", 10, duration)


def test_build_header_rejects_empty_digest() -> None:
    """A header must carry the packet file digest."""
    with pytest.raises(ConfigurationError):
        build_header(sample_metadata(), b"", "batch-1", 10, 60)


def test_build_header_rejects_single_server_metadata() -> None:
    """Aggregation batches need at least two servers."""
    with pytest.raises(ConfigurationError):
        build_header(sample_metadata(number_of_servers=1), DIGEST, "batch-1", 10, 60)
