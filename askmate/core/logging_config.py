"""Logging configuration helpers for the AskMate API."""

from __future__ import annotations

import logging
from logging import Logger

from askmate.core import config


def configure_logging(level: str | None = None) -> Logger:
    """Configure basic logging for the application and return its logger."""
    logging.basicConfig(
        level=(level or config.LOG_LEVEL).upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    return logging.getLogger("askmate")
