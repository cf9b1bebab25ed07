"""
PATH: backend/logging_config.py

LOGGING CONFIGURATION

- Development: human-readable console lines
- Production: JSON lines to stdout (LOG_FORMAT=json)

Application code logs through logging.getLogger(__name__) and passes
business context (bill_id, product_id, journal_entry_id) via `extra`.
The JSON formatter lifts those extras into the emitted record.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

APP_LOGGERS = ("accounting", "products", "bills")

_STANDARD_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName", "taskName",
    "processName", "process", "exc_info", "exc_text", "stack_info",
    "message",
}


def get_logging_config(*, debug: bool = False, level: str = "", fmt: str = "") -> dict:
    log_level = (level or ("DEBUG" if debug else "INFO")).strip().upper()
    log_format = (fmt or ("console" if debug else "json")).strip().lower()

    if log_format == "json":
        formatters = {"json": {"()": "backend.logging_config.JsonFormatter"}}
        formatter = "json"
    else:
        formatters = {
            "verbose": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
        }
        formatter = "verbose"

    loggers = {
        "": {"handlers": ["console"], "level": log_level},
        "django": {"handlers": ["console"], "level": log_level, "propagate": False},
        "django.request": {
            "handlers": ["console"],
            "level": log_level if debug else "ERROR",
            "propagate": False,
        },
    }
    for name in APP_LOGGERS:
        loggers[name] = {"handlers": ["console"], "level": log_level, "propagate": False}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
            },
        },
        "loggers": loggers,
    }


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extras = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS
        }
        if extras:
            entry["extra"] = extras

        return json.dumps(entry, default=str)
