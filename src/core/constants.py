"""Core constants used across ingestion modules.

This module centralizes file naming, schema, and threshold defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_OUTPUT_ROOT = Path(".prio-ingest")
DEFAULT_MINIMUM_PARTICIPANT_COUNT = 10
MINIMUM_AGGREGATION_SERVERS = 2
HEADER_NAME_PREFIX = "BatchUuid="
DIGEST_ALGORITHM = "sha256"
AVRO_NAMESPACE = "org.abetterinternet.prio.v1"
AVRO_SYNC_MARKER_SIZE = 16
PACKET_FILE_SUFFIX = ".batch.avro"
HEADER_FILE_SUFFIX = ".batch"
SUPPORTED_INPUT_EXTENSIONS = (".jsonl", ".json")
BATCH_SPEC_VERSION = 1
