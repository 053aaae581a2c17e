"""Logging setup for stackforge.

Console output goes through a Rich handler; file logging is opt-in via
:func:`setup_file_logging`.  Every module asks for its logger with
``get_logger(__name__)`` so the whole tree hangs off the ``stackforge`` root.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)

ROOT_LOGGER_NAME = "stackforge"
DEFAULT_LOG_FILE = Path.home() / ".stackforge" / "stackforge.log"

_file_logging_configured = False


def setup_file_logging(log_file: str | Path | None = None, verbose: bool = False) -> Path:
    """Attach a file handler to the ``stackforge`` root logger.

    Args:
        log_file: Destination file. Defaults to ``~/.stackforge/stackforge.log``.
        verbose: Log at DEBUG instead of INFO.

    Returns:
        The path the log is written to.  Calling this twice is a no-op and
        returns the default path.
    """
    global _file_logging_configured

    target = Path(log_file) if log_file else DEFAULT_LOG_FILE
    if _file_logging_configured:
        return target

    target.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    file_handler = logging.FileHandler(target, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    file_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s | %(name)s | %(levelname)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(file_handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    _file_logging_configured = True
    root_logger.info("stackforge file logging initialised: %s", target)
    return target


def get_logger(name: str) -> logging.Logger:
    """Return a logger whose records reach a Rich console handler.

    The handler is installed once on the ``stackforge`` root logger; child
    loggers (``stackforge.plugins.merger`` ...) propagate to it.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    if not any(isinstance(h, RichHandler) for h in root_logger.handlers):
        handler = RichHandler(console=console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(handler)
        if root_logger.level == logging.NOTSET:
            root_logger.setLevel(logging.WARNING)

    return logging.getLogger(name)


def set_level(level: str | int) -> None:
    """Change the level of the ``stackforge`` root logger."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.getLogger(ROOT_LOGGER_NAME).setLevel(level)
