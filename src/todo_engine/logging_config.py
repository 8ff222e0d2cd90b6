"""Loguru logging setup for hosts embedding the engine."""

from __future__ import annotations

import os
import sys
from typing import Optional

from loguru import logger


# PUBLIC_INTERFACE
def setup_logging(level: Optional[str] = None) -> None:
    """
    Replace loguru's default sink with a formatted stderr sink.

    The level defaults to the LOG_LEVEL environment variable (INFO when unset).
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO")

    logger.remove()
    logger.add(
        sys.stderr,
        format="<level>{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}</level>",
        level=level.upper(),
        colorize=True,
        backtrace=True,
        diagnose=False,
    )
