"""Timed, level-filtered run logging."""

from __future__ import annotations

import logging as py_logging
import sys
import time
from collections.abc import Callable
from enum import IntEnum
from pathlib import Path
from typing import TextIO


class LogLevel(IntEnum):
    """Run verbosity. Lower values are more important and always shown."""

    INFO = 0
    DEBUG = 1


LOG_LEVELS = {
    LogLevel.INFO: py_logging.INFO,
    LogLevel.DEBUG: py_logging.DEBUG,
}
ROOT_LOGGER_NAME = "retrycmd"
ELAPSED_SENTINEL = "??"
_SILENT = py_logging.CRITICAL + 10
_FORMAT = "[retry][+%(elapsed)s] %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s"


def to_logging_level(level: LogLevel | str) -> int:
    if isinstance(level, str):
        try:
            level = LogLevel[level.strip().upper()]
        except KeyError:
            level = LogLevel.INFO
    return LOG_LEVELS.get(LogLevel(level), py_logging.INFO)


def format_elapsed(start: float, now: float | None = None) -> str:
    current = time.time() if now is None else now
    delta = current - start
    if delta < 0:
        return ELAPSED_SENTINEL
    return f"{delta:.3f}"


class ElapsedFormatter(py_logging.Formatter):
    """Prefix each line with the seconds elapsed since the run started."""

    def __init__(
        self,
        start: float | None = None,
        *,
        clock: Callable[[], float] | None = None,
    ) -> None:
        super().__init__(_FORMAT)
        self.clock = clock
        self.start = time.time() if start is None else start

    def format(self, record: py_logging.LogRecord) -> str:
        now = self.clock() if self.clock is not None else record.created
        record.elapsed = format_elapsed(self.start, now)
        return super().format(record)


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    stream: TextIO | None = None,
    *,
    quiet: bool = False,
    start: float | None = None,
    clock: Callable[[], float] | None = None,
    log_file: str | Path | None = None,
) -> py_logging.Logger:
    resolved = _SILENT if quiet else to_logging_level(level)

    logger = py_logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(resolved)
    logger.handlers.clear()

    handler = py_logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(resolved)
    handler.setFormatter(ElapsedFormatter(start, clock=clock))
    logger.addHandler(handler)

    if log_file and not quiet:
        try:
            log_path = Path(log_file).expanduser()
        except RuntimeError:
            log_path = Path(log_file)
        if not log_path.is_absolute():
            log_path = log_path.resolve()
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = py_logging.FileHandler(log_path, encoding="utf-8")
        except OSError:
            pass
        else:
            file_handler.setLevel(py_logging.DEBUG)
            file_handler.setFormatter(py_logging.Formatter(_FILE_FORMAT))
            logger.addHandler(file_handler)
            logger.setLevel(py_logging.DEBUG)

    logger.propagate = False
    return logger
