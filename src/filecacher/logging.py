"""Logging configuration for filecacher.

The library only ever logs through ``get_logger``; nothing is emitted until
the host application calls ``setup_logging`` (or configures the
``filecacher`` logger itself).

Verbosity levels map to: error(0), warning(1), info(2), verbose(3), trace(4).
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from filecacher.config.schema import LoggingConfig

TRACE = 5
VERBOSE = 15

logging.addLevelName(TRACE, "TRACE")
logging.addLevelName(VERBOSE, "VERBOSE")

LOG_ENV_VAR = "FILECACHER_LOG"

logger = logging.getLogger("filecacher")

_initialized = False

_LEVEL_MAP = {
    "TRACE": TRACE,
    "DEBUG": logging.DEBUG,
    "VERBOSE": VERBOSE,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_VERBOSITY_MAP = {
    0: logging.ERROR,
    1: logging.WARNING,
    2: logging.INFO,
    3: VERBOSE,
    4: TRACE,
}


class _LowercaseLevelFormatter(logging.Formatter):
    """Emit level names in lowercase ("warning" rather than "WARNING")."""

    def format(self, record: logging.LogRecord) -> str:
        record.levelname = record.levelname.lower()
        return super().format(record)


def resolve_level(config: LoggingConfig | None) -> int:
    """Pick the effective log level for a config.

    An explicit verbosity wins over a level name; unknown names fall back
    to INFO and verbosities above 4 mean TRACE.
    """
    if config is None:
        return logging.INFO
    if config.verbose is not None:
        return _VERBOSITY_MAP.get(config.verbose, TRACE)
    if config.level:
        return _LEVEL_MAP.get(config.level.upper(), logging.INFO)
    return logging.INFO


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Attach handlers to the ``filecacher`` logger.

    Only the first call has any effect. Output goes to the configured log
    file (or ``$FILECACHER_LOG``); without one, a stderr handler is added
    only when stderr is an interactive console.

    Args:
        config: Optional LoggingConfig with level, verbose and file settings.
    """
    global _initialized
    if _initialized:
        return
    _initialized = True

    level = resolve_level(config)
    logger.setLevel(level)

    formatter = _LowercaseLevelFormatter(
        "%(asctime)s %(name)s %(levelname)s: %(message)s", datefmt="%H:%M:%S"
    )

    log_path = config.file if config and config.file else os.environ.get(LOG_ENV_VAR)
    if log_path:
        log_path = os.path.expanduser(log_path)
        try:
            handler: logging.Handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        except OSError as e:
            if sys.stderr.isatty():
                print(f"[filecacher] Failed to open log file: {e}", file=sys.stderr)
                _add_handler(logging.StreamHandler(sys.stderr), formatter, level)
            return
        _add_handler(handler, formatter, level)
    elif sys.stderr.isatty():
        _add_handler(logging.StreamHandler(sys.stderr), formatter, level)


def _add_handler(handler: logging.Handler, formatter: logging.Formatter, level: int) -> None:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def get_logger(name: str | None = None) -> logging.Logger:
    """Get the package logger, or a child of it (e.g. "cache", "watching")."""
    if name:
        return logger.getChild(name)
    return logger
