"""File logging and crash hooks.

curses owns the screen while the dashboard runs, so log records go to a
rotating file instead of stderr.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
import threading
from pathlib import Path

_LOGGER_NAME = "mainframe"
_FORMAT = "%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s"


def default_log_path() -> Path:
    return Path.home() / ".local" / "state" / "mainframe" / "mainframe.log"


def configure_logging(level: str = "WARNING", path: Path | None = None) -> logging.Logger:
    """Attach a rotating file handler to the ``mainframe`` logger (once)."""
    logger = logging.getLogger(_LOGGER_NAME)
    if logger.handlers:
        return logger

    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"unknown log level: {level!r}")
    logger.setLevel(numeric)

    path = path if path is not None else default_log_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.handlers.RotatingFileHandler(
        filename=str(path),
        maxBytes=1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False

    logger.info("logging configured at %s", logging.getLevelName(numeric))
    return logger


def install_crash_hooks() -> None:
    """Log uncaught exceptions from the main thread and worker threads."""
    logger = logging.getLogger(_LOGGER_NAME)
    previous_hook = sys.excepthook

    def _log_uncaught(exc_type, exc_value, exc_tb) -> None:
        logger.critical("uncaught exception", exc_info=(exc_type, exc_value, exc_tb))
        previous_hook(exc_type, exc_value, exc_tb)

    def _thread_hook(args: threading.ExceptHookArgs) -> None:
        thread_name = args.thread.name if args.thread else "?"
        logger.critical(
            "uncaught exception in thread %s",
            thread_name,
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
        )

    sys.excepthook = _log_uncaught
    threading.excepthook = _thread_hook
