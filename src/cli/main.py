"""Prio ingestion CLI entry points.

This module exposes batch, run-spec, inspect, and verify commands.
It maps argparse commands onto pipeline and serializer calls and turns
domain errors into exit codes.
"""

from __future__ import annotations

import argparse
import base64
import json
import sys
from dataclasses import fields, replace
from pathlib import Path
from typing import Any, Sequence

from core.batch_spec import load_batch_spec
from core.config import IngestionConfig
from core.errors import InsufficientParticipantsError, PrioIngestError
from core.logging_config import get_logger
from core.types import BatchOptions, BatchResult, PrioDataSharePacket, PrioIngestionHeader
from ingest.pipeline import ingest_batch
from store.batch_digest import verify_packet_file
from store.batch_serializer import iter_records
from store.batch_storage import resolve_storage

_LOGGER = get_logger(__name__)

_RECORD_TYPES: dict[str, type] = {
    "packet": PrioDataSharePacket,
    "header": PrioIngestionHeader,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="prio-ingest", description="Prio batch ingestion CLI")
    parser.add_argument(
        "--output-root", help="Override PRIO_INGEST_OUTPUT_ROOT for this command"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_batch_command(subparsers)
    _add_run_spec_command(subparsers)
    _add_inspect_command(subparsers)
    _add_verify_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Prio ingestion CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code: 0 on success or skipped window, 1 on failure.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = _build_config(args.output_root)
        if args.command == "batch":
            return _run_batch_command(config, args)
        if args.command == "run-spec":
            return _run_spec_command(config, args)
        if args.command == "inspect":
            return _run_inspect_command(config, args)
        if args.command == "verify":
            return _run_verify_command(config, args)
    except InsufficientParticipantsError as error:
        _log_skip(error)
        return 0
    except PrioIngestError as error:
        print(f"error: {error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_config(output_root: str | None) -> IngestionConfig:
    """Build runtime config with optional output-root override."""
    config = IngestionConfig.from_env()
    if output_root:
        config = replace(config, output_root=Path(output_root).expanduser().resolve())
    return config


def _run_batch_command(config: IngestionConfig, args: argparse.Namespace) -> int:
    """Handle batch command.

    Args:
        config: Runtime config.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    minimum = args.minimum_participants
    options = BatchOptions(
        source_uri=args.source,
        output_uri=args.output_uri or str(config.output_root),
        start_time=args.start_time,
        duration=args.duration,
        minimum_participant_count=(
            config.minimum_participant_count if minimum is None else minimum
        ),
        batch_uuid=args.batch_uuid,
    )
    _print_result(ingest_batch(options, config))
    return 0


def _run_spec_command(config: IngestionConfig, args: argparse.Namespace) -> int:
    """Handle run-spec command.

    Windows below the participant threshold are skipped; any other
    failure stops the run.
    """
    spec = load_batch_spec(args.spec_file, config)
    for options in spec.batches:
        try:
            _print_result(ingest_batch(options, config))
        except InsufficientParticipantsError as error:
            _log_skip(error, start_time=options.start_time, duration=options.duration)
    return 0


def _run_inspect_command(config: IngestionConfig, args: argparse.Namespace) -> int:
    """Handle inspect command by printing records as JSON lines."""
    storage = resolve_storage(args.path, config)
    record_type = _RECORD_TYPES[args.record_type]
    for record in iter_records(storage.read_all(args.path), record_type):
        print(json.dumps(_record_to_json(record), sort_keys=True))
    return 0


def _run_verify_command(config: IngestionConfig, args: argparse.Namespace) -> int:
    """Handle verify command.

    Returns:
        0 when the header digest matches the packet file, 1 otherwise.
    """
    packet_file_bytes = resolve_storage(args.packet_path, config).read_all(args.packet_path)
    header_file_bytes = resolve_storage(args.header_path, config).read_all(args.header_path)
    headers = list(iter_records(header_file_bytes, PrioIngestionHeader))
    verified = len(headers) == 1 and verify_packet_file(packet_file_bytes, headers[0])
    print("verified" if verified else "digest_mismatch")
    return 0 if verified else 1


def _print_result(result: BatchResult) -> None:
    print(f"batch_uuid={result.batch_uuid}")
    print(f"packet_path={result.packet_path}")
    print(f"header_path={result.header_path}")
    print(f"packet_count={result.packet_count}")


def _log_skip(error: InsufficientParticipantsError, **fields_: object) -> None:
    _LOGGER.info(
        "batch_skipped",
        participant_count=error.participant_count,
        minimum_participant_count=error.minimum_participant_count,
        **fields_,
    )


def _record_to_json(record: Any) -> dict[str, object]:
    payload: dict[str, object] = {}
    for field in fields(record):
        value = getattr(record, field.name)
        if isinstance(value, bytes):
            value = base64.b64encode(value).decode("ascii")
        payload[field.name] = value
    return payload


def _add_batch_command(subparsers: Any) -> None:
    """Register batch subcommand."""
    parser = subparsers.add_parser("batch", help="Ingest one collection window")
    parser.add_argument("source", help="Data-share JSONL file, directory, or s3:// URI")
    parser.add_argument("--start-time", type=int, required=True, help="Window start")
    parser.add_argument("--duration", type=int, required=True, help="Window length")
    parser.add_argument(
        "--minimum-participants",
        type=int,
        help="Privacy threshold, defaults to PRIO_INGEST_MINIMUM_PARTICIPANT_COUNT",
    )
    parser.add_argument("--output-uri", help="Output directory or s3:// prefix")
    parser.add_argument("--batch-uuid", help="Fixed batch id, random when omitted")


def _add_run_spec_command(subparsers: Any) -> None:
    """Register run-spec subcommand."""
    parser = subparsers.add_parser("run-spec", help="Run every window of a YAML batch spec")
    parser.add_argument("spec_file", help="Path to YAML batch spec")


def _add_inspect_command(subparsers: Any) -> None:
    """Register inspect subcommand."""
    parser = subparsers.add_parser("inspect", help="Print records of a batch container")
    parser.add_argument("path", help="Packet or header file path or s3:// URI")
    parser.add_argument(
        "--record-type",
        choices=sorted(_RECORD_TYPES),
        default="packet",
        help="Record type stored in the container",
    )


def _add_verify_command(subparsers: Any) -> None:
    """Register verify subcommand."""
    parser = subparsers.add_parser("verify", help="Check a header digest against its packet file")
    parser.add_argument("packet_path", help="Packet file path or s3:// URI")
    parser.add_argument("header_path", help="Header file path or s3:// URI")
