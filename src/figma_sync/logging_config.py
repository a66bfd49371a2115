"""Logging setup for the figma-sync command line."""

import sys
from pathlib import Path

from loguru import logger


def configure_logging(*, verbose: bool = False, log_file: Path | None = None) -> None:
    """Send sync progress to stderr, and optionally a full debug log to a file.

    Args:
        verbose: Show per-node and per-batch debug messages on stderr.
        log_file: If set, also write DEBUG-level records there, rotated at 5 MB.
    """
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO", format="{level.icon} {message}")
    if log_file is not None:
        logger.add(
            log_file,
            level="DEBUG",
            rotation="5 MB",
            format="{time:YYYY-MM-DD HH:mm:ss} {level: <8} {name}:{line} {message}",
        )
