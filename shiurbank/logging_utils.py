"""Logging setup shared by the ``serve`` and ``overview`` commands."""

from __future__ import annotations

import logging
from logging import Logger
from pathlib import Path
from typing import Iterable, List


DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILE_NAME = "shiurbank.log"

# Set on handlers installed by configure_logging.
_HANDLER_MARKER = "_shiurbank_handler"


def get_log_file_path(storage_root: Path) -> Path:
    """Return the log file location inside *storage_root*."""

    return storage_root / LOG_FILE_NAME


def build_handlers(storage_root: Path, *, console: bool = True) -> List[logging.Handler]:
    """Return a file handler (and optionally a stream handler) using the default format."""

    formatter = logging.Formatter(DEFAULT_LOG_FORMAT)
    log_file = get_log_file_path(storage_root)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handlers: List[logging.Handler] = [logging.FileHandler(log_file, encoding="utf-8")]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def configure_logging(
    level: int = logging.INFO,
    *,
    handlers: Iterable[logging.Handler] | None = None,
) -> Logger:
    """Install *handlers* on the root logger, replacing ones installed earlier."""

    logger = logging.getLogger()
    logger.setLevel(level)

    for existing in list(logger.handlers):
        if getattr(existing, _HANDLER_MARKER, False):
            logger.removeHandler(existing)
            existing.close()

    if handlers is None:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(logging.Formatter(DEFAULT_LOG_FORMAT))
        handlers = [stream_handler]

    for handler in handlers:
        setattr(handler, _HANDLER_MARKER, True)
        logger.addHandler(handler)

    return logger


__all__ = [
    "DEFAULT_LOG_FORMAT",
    "LOG_FILE_NAME",
    "build_handlers",
    "configure_logging",
    "get_log_file_path",
]
