"""Logging setup for the pagepace CLI."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

CONSOLE_FORMAT = "<level>{level: <8}</level> | <cyan>{name}</cyan> - <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logger(level: str = "WARNING", log_file: Optional[Path] = None) -> None:
    """Route loguru output to stderr and, when configured, a log file.

    Args:
        level: Minimum level from PAGEPACE_LOG_LEVEL
        log_file: PAGEPACE_LOG_FILE path; rotated at 10 MB, kept a week
    """
    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=level)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(log_file, format=FILE_FORMAT, level=level, rotation="10 MB", retention="7 days")

    logger.debug("Logging at {}", level)
