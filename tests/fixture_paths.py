"""Locations of checked-in data-share and batch-spec fixtures."""

from __future__ import annotations

from pathlib import Path

FIXTURES_ROOT = Path(__file__).resolve().parent / "fixtures"


def fixture_path(relative_path: str) -> Path:
    """Return the absolute path of a file under tests/fixtures."""
    return FIXTURES_ROOT / relative_path
