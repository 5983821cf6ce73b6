"""Logging setup for assembly runs."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOGGER_NAME = "pagecomposer"
LOG_FILENAME = f"{LOGGER_NAME}.log"
LOG_FORMAT = "%(asctime)s %(process)08x %(levelname).1s [%(run_id)s] %(name)s %(message)s"
MAX_BYTES = 2 * 1024 * 1024
BACKUP_COUNT = 5
NO_RUN = "-"


class RunContextFilter(logging.Filter):
    """Stamp every record with the id of the assembly run in progress."""

    def __init__(self) -> None:
        super().__init__()
        self.run_id = NO_RUN

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = self.run_id
        return True


_run_context = RunContextFilter()


def set_run_id(run_id: str | None) -> None:
    """Tag subsequent log lines with ``run_id`` (``None`` clears it)."""

    _run_context.run_id = run_id or NO_RUN


def configure_logging(
    log_path: Path | None = None,
    level: str = "INFO",
    mirror_to_console: bool = True,
) -> logging.Logger:
    """Configure the package logger.

    Every module logs through a child of ``pagecomposer``, so resolver fallbacks, catalog
    inconsistencies and validation substitutions all land in the same rotating file.
    Handlers carry the run context filter because child records skip logger-level filters.
    """

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
    logger.propagate = False

    numeric_level = _level_number(level)
    logger.setLevel(numeric_level)

    file_path = _log_file(log_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [
        RotatingFileHandler(file_path, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8")
    ]
    if mirror_to_console:
        handlers.append(logging.StreamHandler())

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        handler.addFilter(_run_context)
        logger.addHandler(handler)

    return logger


def _level_number(level: str) -> int:
    candidate = level.strip().upper()
    if candidate == "WARN":
        candidate = "WARNING"
    numeric = logging.getLevelName(candidate)
    if not isinstance(numeric, int):
        raise ValueError(f"Unsupported log level: {level!r}")
    return numeric


def _log_file(log_path: Path | None) -> Path:
    """A directory (or suffix-less path) gets the default file name appended."""

    if log_path is None:
        return Path.cwd() / LOG_FILENAME
    candidate = log_path if log_path.is_absolute() else Path.cwd() / log_path
    if candidate.is_dir() or not candidate.suffix:
        return candidate / LOG_FILENAME
    return candidate
