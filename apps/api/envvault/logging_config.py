"""
Loguru setup for the API process.
"""

from __future__ import annotations

import sys

from loguru import logger


def configure_logging(level: str = "INFO") -> None:
  logger.remove()
  logger.add(
    sys.stderr,
    level=level.upper(),
    format="{time:YYYY-MM-DDTHH:mm:ss.SSSZ} | {level: <8} | {name}:{function} - {message}",
    backtrace=False,
    diagnose=False,
  )
