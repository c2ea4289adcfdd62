"""Logging setup shared by the CLI and library callers.

Console records go through Rich so they interleave cleanly with progress
bars; a plain-text file handler keeps a full debug trace of every run.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "metasync"
DEFAULT_LOG_FILE = Path("debug.log")
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


def setup_logging(
    *,
    level: str = "INFO",
    log_file: Path | None = DEFAULT_LOG_FILE,
    console: Console | None = None,
) -> logging.Logger:
    """
    Configure the `metasync` logger.

    Handlers installed by a previous call are replaced, so the function can
    be called once per CLI invocation (or per test) without duplicating
    output.

    Args:
        level: Console log level name.
        log_file: Debug log destination; None disables file logging.
        console: Rich console used for terminal output.

    Returns:
        The configured `metasync` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    for handler in list(logger.handlers):
        if getattr(handler, "_metasync_managed", False):
            logger.removeHandler(handler)
            handler.close()

    console_handler = RichHandler(
        console=console,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(getattr(logging, level.upper(), logging.INFO))
    console_handler._metasync_managed = True  # type: ignore[attr-defined]
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        file_handler._metasync_managed = True  # type: ignore[attr-defined]
        logger.addHandler(file_handler)

    return logger
