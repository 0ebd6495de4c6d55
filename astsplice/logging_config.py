from __future__ import annotations

import logging
import os
from typing import Optional

from astsplice.config import _env_bool

LOGGER_NAME = "astsplice"

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
    "NOTSET": logging.NOTSET,
}

_LEVEL_COLORS = {
    logging.DEBUG: "\x1b[36m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[35m",
}
_RESET = "\x1b[0m"


def _resolve_level(level: Optional[str | int], default_level: Optional[str]) -> int:
    if level is None:
        level = os.getenv("ASTSPLICE_LOG_LEVEL") or default_level or "WARNING"
    if isinstance(level, int):
        return level
    name = str(level).strip().upper()
    try:
        return int(name)
    except ValueError:
        return _LEVELS.get(name, logging.WARNING)


class _ColorFormatter(logging.Formatter):
    """Colors the level name only; the record is restored after formatting."""

    def format(self, record: logging.LogRecord) -> str:
        original = record.levelname
        color = _LEVEL_COLORS.get(record.levelno, "")
        try:
            if color:
                record.levelname = f"{color}{original}{_RESET}"
            return super().format(record)
        finally:
            record.levelname = original


def setup_logging(
    default_level: Optional[str] = None,
    *,
    level: Optional[str | int] = None,
    stream=None,
) -> logging.Logger:
    """
    Configure the "astsplice" logger idempotently and return it.

    Priority of log level: explicit `level` arg > env ASTSPLICE_LOG_LEVEL > `default_level` > WARNING.
    The engine is a library, so it stays quiet unless asked.

    Env variables supported:
      - ASTSPLICE_LOG_LEVEL: e.g., "DEBUG" | "INFO" | int
      - ASTSPLICE_LOG_FORMAT: "simple" (default) or "rich" (adds time, module, line)
      - ASTSPLICE_LOG_FILE: path to also write logs
      - ASTSPLICE_LOG_COLOR: "true/false" (ANSI colors for console). Default: false.
      - ASTSPLICE_LOG_FORCE: "true/false". If true, reset handlers each call.
    """
    log_level = _resolve_level(level, default_level)
    rich = (os.getenv("ASTSPLICE_LOG_FORMAT") or "simple").strip().lower() == "rich"
    want_color = _env_bool(os.environ, "ASTSPLICE_LOG_COLOR", default=False)
    log_file = os.getenv("ASTSPLICE_LOG_FILE")
    force_reset = _env_bool(os.environ, "ASTSPLICE_LOG_FORCE", default=False)

    if rich:
        fmt, datefmt = "%(asctime)s | %(levelname)s | %(name)s:%(lineno)d | %(message)s", "%H:%M:%S"
    else:
        fmt, datefmt = "%(levelname)s %(name)s: %(message)s", None
    console_formatter = (_ColorFormatter if want_color else logging.Formatter)(fmt, datefmt=datefmt)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(log_level)

    if stream is not None or force_reset:
        for h in list(logger.handlers):
            logger.removeHandler(h)

    if not logger.handlers:
        ch = logging.StreamHandler(stream) if stream is not None else logging.StreamHandler()
        ch.setLevel(log_level)
        ch.setFormatter(console_formatter)
        logger.addHandler(ch)
        if log_file:
            try:
                fh = logging.FileHandler(log_file)
            except OSError as e:
                logger.warning("Failed to set file handler for '%s': %s", log_file, e)
            else:
                fh.setLevel(log_level)
                fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s:%(lineno)d: %(message)s", "%Y-%m-%d %H:%M:%S"))
                logger.addHandler(fh)
        # handlers are local; don't double print through the root logger
        logger.propagate = False

    logger.debug("Logging initialized at %s (rich=%s, color=%s, file=%s)", logging.getLevelName(log_level), rich, want_color, bool(log_file))
    return logger


def set_log_level(new_level: str | int) -> None:
    """Change the level of the astsplice logger and its handlers."""
    logger = logging.getLogger(LOGGER_NAME)
    lvl = _resolve_level(new_level, None)
    logger.setLevel(lvl)
    for h in logger.handlers:
        h.setLevel(lvl)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the astsplice logger or a child logger (e.g., get_logger('patch'))."""
    base = logging.getLogger(LOGGER_NAME)
    return base if not name else base.getChild(name)
