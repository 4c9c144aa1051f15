"""Logging configuration for latchkey.

Command output goes to ``console`` (stdout). Log records go to stderr through
Rich, and optionally to a plain-text file for debugging.

Nothing secret (passwords, keys, record values) is ever passed to a logger;
messages refer to records by kind and id only.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "latchkey"

# Command output
console = Console()

# Log records, kept off stdout so piped output stays clean
err_console = Console(stderr=True)

FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def _stderr_handler(rich_output: bool) -> logging.Handler:
    if rich_output:
        handler = RichHandler(
            console=err_console,
            show_time=False,
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        return handler

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    return handler


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[Path] = None,
    rich_output: bool = True,
) -> logging.Logger:
    """
    Configure the package logger.

    Safe to call more than once; previous handlers are replaced.

    Args:
        level: Level name for stderr output (DEBUG, INFO, WARNING, ERROR)
        log_file: Also append every record, down to DEBUG, to this file
        rich_output: Render stderr output with Rich

    Returns:
        The "latchkey" logger
    """
    stderr_level = logging.getLevelName(level.upper())
    if not isinstance(stderr_level, int):
        stderr_level = logging.WARNING

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    stderr_handler = _stderr_handler(rich_output)
    stderr_handler.setLevel(stderr_level)
    logger.addHandler(stderr_handler)
    logger.setLevel(stderr_level)

    if log_file:
        log_file = Path(log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger, e.g. get_logger(__name__) in latchkey.vault.session."""
    return logging.getLogger(name)
