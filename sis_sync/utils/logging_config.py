"""
Logging setup for the sync host application.

Modules log through ``logging.getLogger(__name__)`` and attach structured
context with ``extra={...}``; the JSON formatter carries those fields through.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any

_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "message",
        "taskName",
    }
)

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_HANDLER_MARKER = "_sis_sync_handler"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, including any ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]
            + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                payload[key] = value
        return json.dumps(payload, default=str)


def _build_formatter(log_format: str) -> logging.Formatter:
    if str(log_format).lower() == "json":
        return JSONFormatter()
    return logging.Formatter(TEXT_FORMAT)


def setup_logging(app) -> None:
    """
    Configure root logging from the app config.

    Reads LOG_LEVEL, LOG_FORMAT, ENABLE_CONSOLE_LOGGING, ENABLE_FILE_LOGGING,
    LOG_DIR, LOG_FILE, LOG_FILE_MAX_BYTES and LOG_FILE_BACKUP_COUNT. Calling it
    again replaces the handlers it installed earlier, so tests can re-run it
    after changing the config.
    """

    config = app.config
    level_name = str(config.get("LOG_LEVEL", "INFO")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    formatter = _build_formatter(config.get("LOG_FORMAT", "text"))

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            root_logger.removeHandler(handler)
            handler.close()
    root_logger.setLevel(level)

    if config.get("ENABLE_CONSOLE_LOGGING", True):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(formatter)
        setattr(console_handler, _HANDLER_MARKER, True)
        root_logger.addHandler(console_handler)

    if config.get("ENABLE_FILE_LOGGING", False):
        log_dir = config.get("LOG_DIR", "logs")
        os.makedirs(log_dir, exist_ok=True)
        log_file = config.get("LOG_FILE") or os.path.join(log_dir, "sis_sync.log")
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=int(config.get("LOG_FILE_MAX_BYTES", 10485760)),
            backupCount=int(config.get("LOG_FILE_BACKUP_COUNT", 10)),
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_MARKER, True)
        root_logger.addHandler(file_handler)

    app.logger.setLevel(level)
    app.logger.debug("Logging configured", extra={"log_level": level_name})
