"""
JSON logging for the VoiceLink backend.

Every line is one JSON object carrying the logger, level, message, the
request id of the HTTP request being served (when there is one) and any
``extra={...}`` fields passed at the call site.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

from voicelink.config import get_settings

# Request id of the HTTP request being served; set by the app middleware.
correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_NOISY_LOGGERS = ("httpx", "httpcore", "python_multipart", "python_multipart.multipart")


class StructuredFormatter(logging.Formatter):
    """Render a LogRecord as JSON, merging ``extra=`` fields at the top level."""

    # Attributes present on every LogRecord (plus the ones Formatter adds).
    _STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = correlation_id_var.get()
        if request_id:
            entry["correlation_id"] = request_id

        for key, value in vars(record).items():
            if key in self._STANDARD_ATTRS:
                continue
            # Never let an extra silently replace one of the fixed keys.
            entry[f"extra_{key}" if key in entry else key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def _json_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter())
    return handler


def get_logger(name: str) -> logging.Logger:
    """Module logger writing JSON to stdout at the configured level."""
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.addHandler(_json_handler())
        logger.propagate = False

    logger.setLevel(get_settings().log_level.upper())
    return logger


def setup_logging() -> None:
    """Route the root logger (uvicorn, libraries) through the JSON formatter."""
    settings = get_settings()

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.log_level.upper())
    root_logger.handlers = [_json_handler()]

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
