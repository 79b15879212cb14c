#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Logging configuration for the bookkeeping CLI.

Logs go to stderr so stdout stays pure JSON.

Environment variables:
- LOG_FORMAT: "json" or "console" (default: console)
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: WARNING)
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional


_STANDARD_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "lineno", "funcName", "created",
    "msecs", "relativeCreated", "thread", "threadName", "taskName",
    "processName", "process", "exc_info", "exc_text", "stack_info",
    "message",
}


def get_logging_config(level: Optional[str] = None, fmt: Optional[str] = None) -> Dict[str, Any]:
    log_level = (level or os.environ.get("LOG_LEVEL") or "WARNING").upper()
    log_format = fmt or os.environ.get("LOG_FORMAT") or "console"

    if log_format == "json":
        formatters = {"default": {"()": "bookkeeping.logging_config.JsonFormatter"}}
    else:
        formatters = {
            "default": {
                "format": "[{asctime}] {levelname} {name} {message}",
                "style": "{",
            },
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            "bookkeeping": {
                "handlers": ["console"],
                "level": log_level,
                "propagate": False,
            },
        },
    }


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    logging.config.dictConfig(get_logging_config(level, fmt))


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, extras."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extras = {}
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
                extras[key] = value
            except (TypeError, ValueError):
                extras[key] = str(value)
        if extras:
            entry["extra"] = extras

        return json.dumps(entry, default=str)
