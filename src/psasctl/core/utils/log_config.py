"""Logging configuration for the console.

This module provides centralized logging configuration using Loguru.
The interactive menus own the terminal, so the console handler stays quiet
unless debug output is requested; everything is also written to a rotating
file under the user's home directory.
"""

import sys
from pathlib import Path

from loguru import logger

LOG_DIR = Path.home() / ".psasctl" / "logs"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def configure_logging(debug: bool = False, log_dir: Path | None = None) -> None:
    """Install the stderr and file handlers.

    Args:
        debug: Log DEBUG and above to stderr instead of WARNING and above
        log_dir: Directory for the rotating log file (default: ``LOG_DIR``)
    """
    logger.remove()

    logger.add(
        sys.stderr,
        format=CONSOLE_FORMAT,
        level="DEBUG" if debug else "WARNING",
        backtrace=True,
        diagnose=debug,
    )

    target = log_dir or LOG_DIR
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.warning(f"File logging disabled, cannot create {target}: {e}")
        return

    logger.add(
        target / "psasctl.log",
        rotation="10 MB",
        retention="1 week",
        compression="zip",
        format=FILE_FORMAT,
        level="DEBUG",
        backtrace=True,
        diagnose=False,
    )


__all__ = ["configure_logging", "logger", "LOG_DIR"]
