"""Logging setup for lexitrend.

Modules log through standard loggers under the ``lexitrend`` namespace
(``lexitrend.retry``, ``lexitrend.cache``, ``lexitrend.coordinator``, ...).
configure_logging() attaches one handler to that namespace with either a
human-readable or a JSON formatter.

Example:
    >>> from lexitrend.runtime.observability import configure_logging
    >>> configure_logging(level="DEBUG", format="json")
"""

from __future__ import annotations

import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Literal, TextIO

import orjson

if TYPE_CHECKING:
    from lexitrend.foundation.config import LoggingSettings

ROOT_LOGGER = "lexitrend"

# LogRecord attributes that are not user-supplied extras
_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, event, plus any `extra` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }
        payload.update({k: v for k, v in vars(record).items() if k not in _RESERVED})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return orjson.dumps(payload, default=str).decode()


_TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(
    level: str = "INFO",
    format: Literal["json", "text"] = "text",
    *,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Install a single handler on the lexitrend logger. Safe to call repeatedly."""
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter() if format == "json" else logging.Formatter(_TEXT_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def configure_from_settings(settings: LoggingSettings, *, stream: TextIO | None = None) -> logging.Logger:
    return configure_logging(settings.level, settings.format, stream=stream)
