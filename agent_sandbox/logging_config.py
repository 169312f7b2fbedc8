"""Logging setup for the API server and CLI.

Modules log through stdlib ``logging``. The ``text`` format writes records
with a plain formatter; the ``json`` format forwards them to a loguru sink
that serializes one JSON object per line.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger as loguru_logger


TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class InterceptHandler(logging.Handler):
    """Forward stdlib records to loguru, keeping the originating logger name."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        loguru_logger.bind(logger_name=record.name).opt(exception=record.exc_info).log(
            level, record.getMessage()
        )


_handler: logging.Handler | None = None


def configure_logging(level: str = "info", fmt: str = "json") -> None:
    """Install a stdout handler on the root logger.

    Unknown levels fall back to INFO. Calling this again replaces the
    handler installed by the previous call and leaves others alone.
    """
    global _handler

    levelno = _LEVELS.get(level.lower(), logging.INFO)

    # Drop loguru's default stderr sink along with any earlier JSON sink
    loguru_logger.remove()

    if fmt == "json":
        loguru_logger.add(
            sys.stdout,
            level=levelno,
            serialize=True,
            backtrace=False,
            diagnose=False,
        )
        handler: logging.Handler = InterceptHandler()
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)
    root.addHandler(handler)
    root.setLevel(levelno)
    _handler = handler
