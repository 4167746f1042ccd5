# src/tasksync/logging_setup.py

"""
Console + file logging for the CLI.

The console sits under an interactive prompt, so it only shows what the user
should act on: our own records, background push chatter only at WARNING+,
everything else (HTTP / Socket.IO libraries, captured warnings) only at ERROR+.
The file gets every record at DEBUG.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

CONSOLE_HANDLER = "tasksync.console"
FILE_HANDLER = "tasksync.file"
LOG_FILE_NAME = "tasksync.log"

# First matching prefix wins.
_CONSOLE_THRESHOLDS: tuple[tuple[str, int], ...] = (
    ("tasksync.api.push_", logging.WARNING),
    ("tasksync.", logging.NOTSET),
)
_DEFAULT_CONSOLE_THRESHOLD = logging.ERROR

_CHATTY_LIBS = ("httpx", "httpcore", "socketio", "engineio", "aiohttp")


def console_threshold(logger_name: str) -> int:
    for prefix, level in _CONSOLE_THRESHOLDS:
        if logger_name.startswith(prefix):
            return level
    return _DEFAULT_CONSOLE_THRESHOLD


class _ConsoleNoiseFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= console_threshold(record.name)


def _handler(handler: logging.Handler, name: str, level: int, fmt: str, datefmt: str | None = None) -> logging.Handler:
    handler.set_name(name)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
    return handler


def setup_logging(
    *,
    log_dir: str | Path = ".local/tasksync",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Install the console and file handlers on the root logger and return the log file path.

    Safe to call again: only handlers installed here are replaced, so handlers
    added by a test runner stay attached.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / LOG_FILE_NAME

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        if h.get_name() in (CONSOLE_HANDLER, FILE_HANDLER):
            root.removeHandler(h)
            h.close()

    console = _handler(
        logging.StreamHandler(sys.stderr),
        CONSOLE_HANDLER,
        console_level,
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    root.addHandler(
        _handler(
            logging.FileHandler(log_file, encoding="utf-8"),
            FILE_HANDLER,
            file_level,
            "%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        )
    )

    logging.captureWarnings(True)
    for lib in _CHATTY_LIBS:
        logging.getLogger(lib).setLevel(logging.WARNING)

    return log_file
