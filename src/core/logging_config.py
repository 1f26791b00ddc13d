"""Structured logging configuration.

This module initializes structlog with a stable JSON event format.
The level threshold is read from SNAPSTORE_LOG_LEVEL.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import structlog

from core.constants import DEFAULT_LOG_LEVEL, LOG_LEVEL_ENV


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger with structured output.
    """
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_level()),
        cache_logger_on_first_use=True,
    )
    return structlog.get_logger(name)


def _resolve_level() -> int:
    """Map the configured level name onto a stdlib level number."""
    level_name = os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(level_name)
    if isinstance(level, int):
        return level
    return logging.INFO
