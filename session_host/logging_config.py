"""JSON logging for the session host and the uvicorn server it runs under."""

import json
import logging
import logging.config
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path

from .config import DEFAULT_LOG_PATH

# Server loggers routed through our handlers instead of uvicorn's own config
SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")

_RECORD_FIELDS = ("module", "funcName", "lineno")


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, attr in zip(("module", "function", "line"), _RECORD_FIELDS):
            log_data[key] = getattr(record, attr)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # extra={"context": {...}}
        context = getattr(record, "context", None)
        if context is not None:
            log_data["context"] = context

        return json.dumps(log_data, default=str)


def build_logging_config(log_level: str, log_file: str) -> dict:
    """dictConfig for the root logger plus uvicorn's loggers."""
    handlers = ["file", "console"]
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JSONFormatter},
        },
        "handlers": {
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "filename": log_file,
                "maxBytes": 10 * 1024 * 1024,
                "backupCount": 5,
                "formatter": "json",
                "encoding": "utf-8",
            },
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            name: {"handlers": [], "propagate": True} for name in SERVER_LOGGERS
        },
        "root": {
            "level": log_level.upper(),
            "handlers": handlers,
        },
    }


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
) -> None:
    """
    Configure structured logging.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
                   Defaults to the LOG_LEVEL env var, else INFO.
        log_file: Rotating log file. Defaults to LOG_FILE, else logs/app.log.
    """
    log_level = log_level or os.getenv("LOG_LEVEL", "INFO")
    log_file = log_file or os.getenv("LOG_FILE") or str(DEFAULT_LOG_PATH)

    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(log_level, log_file))


def get_logger(name: str) -> logging.Logger:
    """Logger for a module; pass __name__."""
    return logging.getLogger(name)
