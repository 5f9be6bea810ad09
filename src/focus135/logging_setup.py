# src/focus135/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Background parts of the app that share the terminal with the REPL prompt.
_QUIET_PREFIXES = ("focus135.connectors.matrix_", "focus135.core.clock")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Terminal filter. The clock ticks every minute and nio is chatty, so below
    WARNING only the interactive parts of focus135 reach the prompt; other
    libraries and captured warnings need ERROR.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name
        if not name.startswith("focus135."):
            return record.levelno >= logging.ERROR
        if name.startswith(_QUIET_PREFIXES):
            return record.levelno >= logging.WARNING
        return True


def _console_handler(level: int, fmt: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(fmt)
    handler.addFilter(_ConsoleNoiseFilter())
    return handler


def _file_handler(path: Path, level: int, fmt: logging.Formatter) -> logging.Handler:
    handler = logging.FileHandler(str(path), encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(fmt)
    return handler


def setup_logging(
    *,
    log_dir: str | Path = ".local/focus135",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Send planner logs to stderr (filtered) and to <log_dir>/focus135.log (everything
    from file_level up). Replaces any handlers already on the root logger.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    root.addHandler(_console_handler(console_level, fmt))
    root.addHandler(_file_handler(log_dir / "focus135.log", file_level, fmt))

    logging.captureWarnings(True)
