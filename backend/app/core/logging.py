"""Logging configuration and logger factory used across the backend."""

from __future__ import annotations

import json
import logging
import sys
import time
from typing import Any

from app.core.config import settings

_ROOT_LOGGER_NAME = "app"
_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Attributes present on every LogRecord; anything else came from `extra=`.
_RESERVED_RECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    },
)


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_RECORD_ATTRS and not key.startswith("_")
    }


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_record_extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Plain-text formatter that appends `extra` fields as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = _record_extras(record)
        if not extras:
            return base
        rendered = " ".join(f"{key}={value}" for key, value in sorted(extras.items()))
        return f"{base} {rendered}"


def _build_formatter() -> logging.Formatter:
    formatter: logging.Formatter
    if settings.log_format.strip().lower() == "json":
        formatter = JsonFormatter()
    else:
        formatter = TextFormatter(_TEXT_FORMAT)
    if settings.log_use_utc:
        formatter.converter = time.gmtime
    return formatter


def configure_logging() -> None:
    """Attach a single stream handler to the application logger tree."""
    logger = logging.getLogger(_ROOT_LOGGER_NAME)
    level = logging.getLevelName(settings.log_level.strip().upper())
    logger.setLevel(level if isinstance(level, int) else logging.INFO)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_build_formatter())
    logger.addHandler(handler)
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Return a module logger nested under the application logger."""
    if name == _ROOT_LOGGER_NAME or name.startswith(f"{_ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")
