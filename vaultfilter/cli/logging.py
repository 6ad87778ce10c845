"""Logging setup for the CLI process.

The library only emits records through `logging.getLogger(__name__)`; the CLI
decides where they go.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True, slots=True)
class LoggingState:
    level: int
    handlers: list[logging.Handler]


def _level_for_verbosity(verbosity: int) -> int:
    if verbosity >= 2:
        return logging.DEBUG
    if verbosity == 1:
        return logging.INFO
    return logging.WARNING


def configure_logging(*, verbosity: int, log_file: Path | None = None) -> LoggingState:
    """Route package logs to stderr (and optionally a file).

    Returns the previous root logger state for `restore_logging()`.
    """
    root = logging.getLogger()
    previous = LoggingState(level=root.level, handlers=list(root.handlers))

    level = _level_for_verbosity(verbosity)
    handlers: list[logging.Handler] = []

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(level)
    stderr_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    handlers.append(stderr_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        # The file always gets the full detail.
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FORMAT))
        handlers.append(file_handler)

    root.handlers = handlers
    root.setLevel(logging.DEBUG if log_file is not None else level)
    return previous


def restore_logging(previous: LoggingState) -> None:
    root = logging.getLogger()
    for handler in root.handlers:
        if handler not in previous.handlers:
            handler.close()
    root.handlers = previous.handlers
    root.setLevel(previous.level)
