"""
Logging setup.

Configures loguru sinks for the monitor service.
Sets up log rotation and retention policies.
"""

import sys

from loguru import logger


def setup_logging(level: str = "INFO", log_file: str | None = "logs/service.log") -> None:
    """
    Configure logger with stderr output and file rotation.

    Args:
        level: Minimum log level
        log_file: Rotating log file path, or None to disable the file sink
    """
    logger.remove()
    logger.add(sys.stderr, level=level.upper())

    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=level.upper(),
            encoding="utf-8",
        )
