"""Pytest configuration for repository test runs."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host PRIO_INGEST_* variables out of test runs."""
    for name in (
        "PRIO_INGEST_OUTPUT_ROOT",
        "PRIO_INGEST_S3_REGION",
        "PRIO_INGEST_S3_PROFILE",
        "PRIO_INGEST_MINIMUM_PARTICIPANT_COUNT",
    ):
        monkeypatch.delenv(name, raising=False)
