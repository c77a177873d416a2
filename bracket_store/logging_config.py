"""
Logging configuration for bracket store.

Library code only obtains bound loggers; sinks are installed by whoever
runs the store (the CLI, or an application embedding it).
"""

import sys
from pathlib import Path
from typing import Any

from loguru import logger

CONSOLE_FORMAT = "<level>{level: <8}</level> | <cyan>{extra[component]}</cyan> - <level>{message}</level>"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component]}:{function}:{line} - {message}"


def setup_logging(level: str = "WARNING", debug: bool = False, log_file: Path | None = None) -> None:
    """
    Configure loguru sinks for a store session.

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: Force DEBUG on every sink
        log_file: Optional file that also receives snapshot writes and
                  failures (INFO and up), rotated at 10 MB
    """
    logger.remove()
    # Records logged without get_logger() still render
    logger.configure(extra={"component": "bracket_store"})

    console_level = "DEBUG" if debug else level
    logger.add(sys.stderr, level=console_level, format=CONSOLE_FORMAT)

    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_file),
            level="DEBUG" if debug else "INFO",
            format=FILE_FORMAT,
            rotation="10 MB",
            retention="7 days",
        )


def get_logger(name: str | None = None) -> Any:
    """
    Get a logger bound to a store component.

    Args:
        name: Component shown in log lines (defaults to "bracket_store")
    """
    return logger.bind(component=name or "bracket_store")
