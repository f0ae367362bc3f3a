"""Structured logging configuration.

This module initializes structlog with a stable JSON event format.
Stages log snake_case event names with keyword fields.
"""

from __future__ import annotations

import sys
from typing import Any

import structlog

_CONFIGURED = False


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger with structured JSON output.
    """
    _configure_once()
    return structlog.get_logger(name)


def _configure_once() -> None:
    global _CONFIGURED
    if _CONFIGURED:
        return
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        logger_factory=_stderr_logger_factory,
        cache_logger_on_first_use=False,
    )
    _CONFIGURED = True


def _stderr_logger_factory(*_args: Any) -> structlog.PrintLogger:
    """Return a print logger bound to the current stderr."""
    return structlog.PrintLogger(file=sys.stderr)
