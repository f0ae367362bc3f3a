"""Prio ingestion exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each stage raises a specific error type so the orchestrator can tell
an expected skip apart from corruption that needs an alert.
"""

from __future__ import annotations


class PrioIngestError(Exception):
    """Base exception for all ingestion failures."""


class ConfigurationError(PrioIngestError):
    """Raised for invalid window, threshold, metadata, or runtime configuration."""


class ShapeMismatchError(PrioIngestError):
    """Raised when a data share or batch violates its declared shape."""


class SerializationError(PrioIngestError):
    """Raised for schema validation failures and malformed containers."""


class NotFoundError(PrioIngestError):
    """Raised when an input path or object does not exist."""


class StorageError(PrioIngestError):
    """Raised for storage backend read and write failures."""


class DependencyError(PrioIngestError):
    """Raised when an optional runtime dependency is missing."""


class InsufficientParticipantsError(PrioIngestError):
    """Raised when a window holds fewer data shares than the privacy threshold."""

    def __init__(
        self,
        participant_count: int,
        minimum_participant_count: int,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message
            or f"Batch rejected: {participant_count} data shares in window, "
            f"minimum participant count is {minimum_participant_count}. "
            "No output is written for this window."
        )
        self.participant_count = participant_count
        self.minimum_participant_count = minimum_participant_count


class EmptyBatchError(InsufficientParticipantsError):
    """Raised when a window holds no data shares at all."""

    def __init__(self, minimum_participant_count: int) -> None:
        super().__init__(
            0,
            minimum_participant_count,
            "Batch rejected: no data shares in window. An empty batch has no metric "
            "metadata to bind into a header, so no output is written for this window.",
        )
