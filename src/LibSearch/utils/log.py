"""LibSearch logging utilities.

Everything logs through the package logger ``log``. Console lines look like
``mm-dd HH:MM:SS [INFO] message``; the optional per-action log file also
records the thread name, since connector searches run on worker threads
named ``libsearch-source_N``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Final


_LEVEL_ABBREV: Final[dict[int, str]] = {
    logging.DEBUG: "DEBG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERRO",
    logging.CRITICAL: "ERRO",
}

_CONSOLE_FORMAT: Final = "%(asctime)s [%(levelabbr)s] %(message)s"
_FILE_FORMAT: Final = "%(asctime)s [%(levelabbr)s] (%(threadName)s) %(message)s"
_DATE_FORMAT: Final = "%m-%d %H:%M:%S"

# Transport loggers stay at WARNING unless DEBUG is requested.
_TRANSPORT_LOGGERS: Final[tuple[str, ...]] = ("urllib3", "requests")


class _AbbrevLevelFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 - record is stdlib name
        record.levelabbr = _LEVEL_ABBREV.get(record.levelno, record.levelname[:4])
        return super().format(record)


log = logging.getLogger("LibSearch")


def configure_logging(
    *,
    level: str = "INFO",
    action: str | None = None,
    log_to_file: bool = False,
    log_dir: str = "log",
) -> Path | None:
    """Install console (and optionally file) handlers on the LibSearch logger.

    Calling it again replaces the previous handlers, so each CLI command
    starts from a clean configuration.

    Args:
        level: Console level name, e.g. INFO or DEBUG. Unknown names fall
            back to INFO.
        action: CLI command name; the log file lives in ``<log_dir>/<action>/``.
        log_to_file: Mirror every record at DEBUG into a timestamped file.
        log_dir: Root directory for log files.

    Returns:
        Path of the log file when one was opened, otherwise None.
    """
    console_level = getattr(logging, (level or "INFO").upper(), logging.INFO)

    log.handlers.clear()
    log.addHandler(_console_handler(console_level))

    log_path = _log_file_path(log_dir, action) if log_to_file and action else None
    if log_path is not None:
        log.addHandler(_file_handler(log_path))

    log.setLevel(logging.DEBUG if log_path is not None else console_level)
    log.propagate = False

    transport_level = logging.DEBUG if console_level <= logging.DEBUG else logging.WARNING
    for name in _TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)
    return log_path


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(_AbbrevLevelFormatter(fmt=_CONSOLE_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def _file_handler(path: Path) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(_AbbrevLevelFormatter(fmt=_FILE_FORMAT, datefmt=_DATE_FORMAT))
    return handler


def _log_file_path(log_dir: str, action: str) -> Path:
    """Create ``<log_dir>/<action>/`` and return a timestamped file path inside it."""
    action_dir = Path(log_dir or "log") / action
    action_dir.mkdir(parents=True, exist_ok=True)
    return action_dir / f"{action}_{datetime.now().strftime('%m%d%H%M%S')}.log"
