"""Unit tests for batch ingestion orchestration."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from core.config import IngestionConfig
from core.errors import EmptyBatchError, InsufficientParticipantsError, ShapeMismatchError
from core.types import BatchOptions, BatchWindow, PrioDataSharePacket, PrioIngestionHeader
from ingest.data_share_reader import read_data_shares
from ingest.pipeline import build_batch, ingest_batch, process_data_shares
from store.batch_digest import verify_packet_file
from store.batch_serializer import deserialize_records, iter_records
from tests.data_share_builders import sample_data_share, sample_metadata, write_data_shares_jsonl
from tests.fixture_paths import fixture_path

BATCH_UUID = "6f1c2f5e-9a8b-4c1d-8e7f-0a1b2c3d4e5f"


def _fixture_shares() -> list:
    return read_data_shares(str(fixture_path("data_shares/window_sample.jsonl")))


def _config(tmp_path: Path) -> IngestionConfig:
    return replace(IngestionConfig.from_env(), output_root=tmp_path)


def test_process_data_shares_keeps_single_window_share() -> None:
    """Window [2, 3) should accept only the share created at 2."""
    accepted = process_data_shares(_fixture_shares(), BatchWindow(2, 1), 1)

    assert [share.uuid for share in accepted] == ["uuid-2"]


def test_process_data_shares_rejects_window_below_threshold() -> None:
    """One participant should not satisfy a threshold of two."""
    with pytest.raises(InsufficientParticipantsError) as error_info:
        process_data_shares(_fixture_shares(), BatchWindow(2, 1), 2)

    assert error_info.value.participant_count == 1
    assert error_info.value.minimum_participant_count == 2


def test_process_data_shares_rejects_mixed_metrics() -> None:
    """Accepted shares must share one metric configuration."""
    shares = [
        sample_data_share("uuid-1", 5),
        sample_data_share("uuid-2", 6, metadata=sample_metadata(metric_name="otherMetric")),
    ]

    with pytest.raises(ShapeMismatchError):
        process_data_shares(shares, BatchWindow(0, 10), 1)


def test_build_batch_header_digest_verifies_packet_file() -> None:
    """The header should bind the digest of the exact packet file bytes."""
    artifacts = build_batch(_fixture_shares(), BatchWindow(1, 3), 3, BATCH_UUID)

    headers = list(iter_records(artifacts.header_file_bytes, PrioIngestionHeader))
    packets = list(iter_records(artifacts.packet_file_bytes, PrioDataSharePacket))

    assert headers == [artifacts.header]
    assert artifacts.header.batch_start_time == 1
    assert artifacts.header.batch_end_time == 4
    assert verify_packet_file(artifacts.packet_file_bytes, artifacts.header)
    assert artifacts.participant_count == 3
    assert artifacts.packet_count == 6
    assert [packet.uuid for packet in packets] == [
        "uuid-1", "uuid-1", "uuid-2", "uuid-2", "uuid-3", "uuid-3"
    ]
    assert [packet.encryption_key_id for packet in packets[:2]] == ["server-a", "server-b"]


def test_build_batch_rejects_empty_window_with_zero_threshold() -> None:
    """An empty window has no metadata and cannot form a batch."""
    with pytest.raises(EmptyBatchError) as error_info:
        build_batch(_fixture_shares(), BatchWindow(100, 10), 0, BATCH_UUID)

    assert error_info.value.participant_count == 0
    assert error_info.value.minimum_participant_count == 0
    assert "no data shares in window" in str(error_info.value)


def test_build_batch_aborts_on_share_count_mismatch() -> None:
    """One malformed share should abort the whole batch."""
    shares = [
        sample_data_share("uuid-1", 1),
        sample_data_share("uuid-2", 2, payloads=(b"only-one",)),
    ]

    with pytest.raises(ShapeMismatchError):
        build_batch(shares, BatchWindow(0, 10), 1, BATCH_UUID)


def test_ingest_batch_writes_packet_and_header_files(tmp_path: Path) -> None:
    """Ingest should persist both containers named by batch id."""
    output_dir = tmp_path / "out"
    options = BatchOptions(
        source_uri=str(fixture_path("data_shares/window_sample.jsonl")),
        output_uri=str(output_dir),
        start_time=2,
        duration=1,
        minimum_participant_count=1,
        batch_uuid=BATCH_UUID,
    )

    result = ingest_batch(options, _config(tmp_path))

    assert result.batch_uuid == BATCH_UUID
    assert result.packet_path == str(output_dir / f"{BATCH_UUID}.batch.avro")
    assert result.header_path == str(output_dir / f"{BATCH_UUID}.batch")
    assert result.packet_count == 2
    packets = deserialize_records(result.packet_path, PrioDataSharePacket)
    headers = deserialize_records(result.header_path, PrioIngestionHeader)
    assert {packet.uuid for packet in packets} == {"uuid-2"}
    assert headers[0].packet_file_digest == result.packet_file_digest
    assert verify_packet_file(Path(result.packet_path).read_bytes(), headers[0])


def test_ingest_batch_generates_batch_uuid(tmp_path: Path) -> None:
    """Batches without a fixed id should get a fresh one."""
    options = BatchOptions(
        source_uri=str(fixture_path("data_shares/window_sample.jsonl")),
        output_uri=str(tmp_path),
        start_time=1,
        duration=3,
        minimum_participant_count=1,
    )

    first = ingest_batch(options, _config(tmp_path))
    second = ingest_batch(options, _config(tmp_path))

    assert first.batch_uuid != second.batch_uuid
    assert Path(first.header_path).exists()


def test_ingest_batch_below_threshold_writes_nothing(tmp_path: Path) -> None:
    """Rejected windows should leave no files behind."""
    output_dir = tmp_path / "out"
    options = BatchOptions(
        source_uri=str(fixture_path("data_shares/window_sample.jsonl")),
        output_uri=str(output_dir),
        start_time=2,
        duration=1,
        minimum_participant_count=2,
    )

    with pytest.raises(InsufficientParticipantsError):
        ingest_batch(options, _config(tmp_path))

    assert not output_dir.exists()


def test_ingest_batch_shape_mismatch_writes_nothing(tmp_path: Path) -> None:
    """Malformed shares should abort before any file is written."""
    source = write_data_shares_jsonl(
        tmp_path / "shares.jsonl",
        [sample_data_share("uuid-1", 1), sample_data_share("uuid-2", 2, payloads=(b"x",))],
    )
    output_dir = tmp_path / "out"
    options = BatchOptions(
        source_uri=str(source),
        output_uri=str(output_dir),
        start_time=0,
        duration=10,
        minimum_participant_count=1,
    )

    with pytest.raises(ShapeMismatchError):
        ingest_batch(options, _config(tmp_path))

    assert not output_dir.exists()
