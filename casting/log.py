"""Logging setup for the casting package."""

from __future__ import annotations

import logging
import sys

logger = logging.getLogger("casting")


def configure_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Attach a stdout handler to the package logger.

    Safe to call more than once; the handler is only added the first time.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        logger.addHandler(handler)
    return logger
