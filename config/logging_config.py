"""
Logging configuration for RawdahScope.

All modules log through loguru's global ``logger``. This module only
decides where the records go:

- stderr sink (colourised, human readable)
- optional rotating file sink under ``log_dir``
- optional JSON serialization for log shippers
"""

import sys
from pathlib import Path

from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - {message}"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name} | {message}"


def setup_logging(
    log_level: str = "INFO",
    log_dir: str | None = "logs",
    json_logs: bool = False,
) -> None:
    """
    Replace loguru's default sink with the application sinks.

    Args:
        log_level: Minimum level for every sink
        log_dir: Directory for the rotating file sink (None disables it)
        json_logs: Serialize records as JSON instead of plain text
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        colorize=not json_logs,
        serialize=json_logs,
        format=CONSOLE_FORMAT,
    )

    if log_dir:
        Path(log_dir).mkdir(parents=True, exist_ok=True)
        logger.add(
            str(Path(log_dir) / "rawdahscope.log"),
            level=log_level,
            rotation="10 MB",
            retention="10 days",
            serialize=json_logs,
            format=FILE_FORMAT,
        )

    logger.debug(
        f"Logging configured (level={log_level}, dir={log_dir}, "
        f"json={json_logs})"
    )


def get_logger(**context):
    """Return the loguru logger, optionally bound to extra context."""
    if context:
        return logger.bind(**context)
    return logger
