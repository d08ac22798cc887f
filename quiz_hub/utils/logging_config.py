"""Logging configuration helpers for the quiz service."""

from __future__ import annotations

import logging
from logging import Logger


def configure_logging(level: str | int = logging.INFO) -> Logger:
    """Configure basic logging for the service and return the package logger."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    # APScheduler logs every job execution at INFO.
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    return logging.getLogger("quiz_hub")
