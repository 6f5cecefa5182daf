"""
Logging setup for MathPractice.

Library modules only do ``from loguru import logger``; sinks are installed
by the host application through :func:`setup_logging`.
"""

from __future__ import annotations

import sys
from typing import Optional

from loguru import logger

from ..config import config

_CONSOLE_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {name}:{function} - {message}"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Replace loguru's default sink with MathPractice sinks.

    Args:
        level: Minimum level (default: config.logging.log_level)
        log_file: Optional file path for a rotating sink (default: config.logging.log_file)
    """
    level = (level or config.logging.log_level).upper()
    log_file = log_file or config.logging.log_file

    logger.remove()
    logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT)

    if log_file:
        logger.add(
            log_file,
            level=level,
            format=_FILE_FORMAT,
            rotation=config.logging.rotation,
            retention=config.logging.retention,
            encoding="utf-8",
        )

    logger.debug("Logging configured at {}", level)
