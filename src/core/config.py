"""Runtime configuration model for Prio ingestion.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import DEFAULT_MINIMUM_PARTICIPANT_COUNT, DEFAULT_OUTPUT_ROOT
from core.errors import ConfigurationError


@dataclass(frozen=True)
class IngestionConfig:
    """Validated runtime configuration.

    Attributes:
        output_root: Local root directory for batch files.
        s3_region: Optional default AWS region for S3 operations.
        s3_profile: Optional AWS profile for boto3 session initialization.
        minimum_participant_count: Default privacy threshold per window.
    """

    output_root: Path
    s3_region: str | None
    s3_profile: str | None
    minimum_participant_count: int

    @classmethod
    def from_env(cls) -> "IngestionConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            ConfigurationError: If environment values are invalid.
        """
        output_root_value = os.getenv("PRIO_INGEST_OUTPUT_ROOT", str(DEFAULT_OUTPUT_ROOT))
        minimum_value = os.getenv(
            "PRIO_INGEST_MINIMUM_PARTICIPANT_COUNT", str(DEFAULT_MINIMUM_PARTICIPANT_COUNT)
        )
        return cls(
            output_root=Path(output_root_value).expanduser().resolve(),
            s3_region=os.getenv("PRIO_INGEST_S3_REGION"),
            s3_profile=os.getenv("PRIO_INGEST_S3_PROFILE"),
            minimum_participant_count=_parse_minimum_participant_count(minimum_value),
        )


def _parse_minimum_participant_count(raw_value: str) -> int:
    """Parse the minimum participant count environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Parsed non-negative integer.

    Raises:
        ConfigurationError: If value is not a non-negative integer.
    """
    try:
        value = int(raw_value)
    except ValueError as error:
        raise ConfigurationError(
            "Invalid PRIO_INGEST_MINIMUM_PARTICIPANT_COUNT value: "
            f"expected integer, got '{raw_value}'. "
            "Set PRIO_INGEST_MINIMUM_PARTICIPANT_COUNT to a numeric value."
        ) from error
    if value < 0:
        raise ConfigurationError(
            "Invalid PRIO_INGEST_MINIMUM_PARTICIPANT_COUNT value: "
            f"expected non-negative integer, got {value}."
        )
    return value
