"""JSON log output for the intake service.

Log messages are event names (``export.remote_failed``); structured context
rides in ``extra={"extra_payload": {...}}`` and is scrubbed of personal data
and credentials before it is written.
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from typing import Any

from .http import get_trace_context
from .redaction import scrub

LOG_LEVEL_ENV = "INTAKE_LOG_LEVEL"

_RESERVED_KEYS = frozenset({"timestamp", "level", "logger", "message", "trace_id"})


class JsonFormatter(logging.Formatter):
    """One JSON object per record, tagged with the active request trace id."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        trace_id = get_trace_context().get()
        if trace_id:
            payload["trace_id"] = trace_id
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        extra = getattr(record, "extra_payload", None)
        if isinstance(extra, dict):
            for key, value in scrub(extra).items():
                # Context keys never shadow the envelope fields.
                payload[f"extra_{key}" if key in _RESERVED_KEYS else key] = value
        return json.dumps(payload, ensure_ascii=False, default=str)


def build_logging_config(level: str = "INFO") -> dict[str, Any]:
    """Return the ``dictConfig`` mapping shared by the service and Uvicorn."""

    console = {"handlers": ["console"], "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"json": {"()": f"{__name__}.JsonFormatter"}},
        "handlers": {"console": {"class": "logging.StreamHandler", "formatter": "json"}},
        "loggers": {
            "uvicorn.access": {**console, "level": "INFO"},
            "uvicorn.error": {**console, "level": "INFO"},
            "peddlewest.intake": {**console, "level": level.upper()},
        },
        "root": {"handlers": ["console"], "level": "WARNING"},
    }


def configure_logging(level: str | None = None) -> dict[str, Any]:
    """Apply the JSON logging configuration and return it.

    ``level`` falls back to ``INTAKE_LOG_LEVEL`` and then to ``INFO``.
    """

    config = build_logging_config(level or os.environ.get(LOG_LEVEL_ENV, "INFO"))
    logging.config.dictConfig(config)
    return config


__all__ = ["JsonFormatter", "LOG_LEVEL_ENV", "build_logging_config", "configure_logging"]
