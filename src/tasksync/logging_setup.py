# src/tasksync/logging_setup.py

"""
Logging for applications embedding tasksync.

The console shows what a person watching the app cares about: service-level
events (lists created, cascades that only partly succeeded, failed mutations).
The store and the subscription hub log every write and delivery at DEBUG; that
detail goes to the log file only. Other libraries reach the console only when
they report errors.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "tasksync.log"

# Per-write / per-delivery chatter; console shows these at WARNING+.
_CHATTY_PREFIXES = ("tasksync.store.", "tasksync.sync.")


class _ConsoleNoiseFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if name.startswith(_CHATTY_PREFIXES):
            return record.levelno >= logging.WARNING
        if name == "tasksync" or name.startswith("tasksync."):
            return True
        # py.warnings and third-party loggers
        return record.levelno >= logging.ERROR


def setup_logging(
    *,
    log_dir: str | Path | None = ".local/tasksync",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Replace the root handlers with a filtered stderr handler and, unless
    log_dir is None, a file handler that keeps everything at file_level.

    Call once at startup; calling again resets the handlers.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    if log_dir is not None:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(path / LOG_FILE_NAME), encoding="utf-8")
        file_handler.setLevel(file_level)
        file_handler.setFormatter(fmt)
        root.addHandler(file_handler)

    logging.captureWarnings(True)
    # Slow-callback and selector debug messages.
    logging.getLogger("asyncio").setLevel(logging.WARNING)
