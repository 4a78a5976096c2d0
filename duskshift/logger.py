"""
Centralized logging configuration for duskshift.

Logs INFO and DEBUG to stdout, WARNING and ERROR to stderr.
Log level is configurable via LOG_LEVEL environment variable,
and switched to DEBUG by the -v command line flag.
"""

import logging
import sys
from duskshift.config import LOG_LEVEL


class LevelFilter(logging.Filter):
    """Filter log records by level range."""

    def __init__(self, level_min: int, level_max: int):
        super().__init__()
        self.level_min = level_min
        self.level_max = level_max

    def filter(self, record: logging.LogRecord) -> bool:
        return self.level_min <= record.levelno <= self.level_max


def setup_logging(level: str = LOG_LEVEL) -> logging.Logger:
    """
    Configure application-wide logging to stdout/stderr.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Logger instance for duskshift
    """
    logger = logging.getLogger("duskshift")
    logger.setLevel(level)

    # Prevent propagation to root logger
    logger.propagate = False

    # Remove any existing handlers (for reload safety)
    logger.handlers.clear()

    # INFO and DEBUG to stdout
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(logging.DEBUG)
    stdout_handler.addFilter(LevelFilter(logging.DEBUG, logging.INFO))

    # WARNING and ERROR to stderr
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)

    # Format: "2025-01-15 14:30:45 - duskshift - INFO - Message"
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    stdout_handler.setFormatter(formatter)
    stderr_handler.setFormatter(formatter)

    logger.addHandler(stdout_handler)
    logger.addHandler(stderr_handler)

    return logger


def set_verbose(enabled: bool = True) -> None:
    """Switch the package logger to DEBUG (or back to LOG_LEVEL)."""
    logger.setLevel(logging.DEBUG if enabled else LOG_LEVEL)


# Global logger instance
logger = setup_logging()
