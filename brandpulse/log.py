"""Structured JSON logging for the engine and CLI."""

import json
import logging
import os
import sys
from datetime import datetime, timezone

LOG_LEVEL_ENV = "BRANDPULSE_LOG_LEVEL"


class JSONFormatter(logging.Formatter):
    """Produces one JSON object per log line."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        for key in ("batch", "label", "row", "success", "errors", "skipped"):
            if hasattr(record, key):
                log_entry[key] = getattr(record, key)
        return json.dumps(log_entry, default=str)


def get_logger(name: str) -> logging.Logger:
    """Return a named logger under ``brandpulse`` with a JSON handler."""
    logger = logging.getLogger(f"brandpulse.{name}")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)
    level = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
    logger.setLevel(getattr(logging, level, logging.WARNING))
    return logger
