"""
Logging configuration for the poison ladder.

Sets up loguru sinks for the console and, optionally, a rotating log file
that keeps the record of rank changes.
"""

import sys
from pathlib import Path

from loguru import logger
from typing import Any

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[name]}:{function}:{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} - {message}"


def setup_logging(
    level: str = "INFO",
    debug: bool = False,
    log_file: str | Path | None = None,
) -> None:
    """
    Configure loguru logging.

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: If True, log DEBUG to the console and keep a separate debug file
        log_file: Rotating INFO log; None logs to the console only
    """
    logger.remove()
    logger.configure(extra={"name": "poison_ladder"})

    logger.add(sys.stderr, level="DEBUG" if debug else level, format=CONSOLE_FORMAT)

    if log_file is None:
        return

    log_path = Path(log_file)
    logger.add(
        log_path,
        level="INFO",
        format=FILE_FORMAT,
        rotation="10 MB",
        retention="7 days",
        compression="zip",
    )
    if debug:
        logger.add(
            log_path.with_name(f"{log_path.stem}_debug{log_path.suffix}"),
            level="DEBUG",
            format=FILE_FORMAT,
            rotation="50 MB",
            retention="3 days",
            compression="zip",
        )


def get_logger(name: str | None = None) -> Any:
    """
    Get a logger bound to a component name.

    Args:
        name: Component shown in the log line (defaults to the package name)
    """
    return logger.bind(name=name or "poison_ladder")
