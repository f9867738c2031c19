"""Structured logging configuration for the productivity engine."""
import logging
import json
import sys
from datetime import datetime, timezone

# Structured extras copied onto the JSON line when a log call supplies them
_EXTRA_FIELDS = (
    "location_id", "date", "duration_ms", "record_index", "reason", "kind", "worker_id", "function_name",
)


class JSONFormatter(logging.Formatter):
    """JSON structured log formatter for batch runs."""
    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        for name in _EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = str(getattr(record, name)) if name == "date" else getattr(record, name)
        return json.dumps(log_entry)


def setup_logging(level: str = "INFO", json_output: bool = True):
    """Configure application logging."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
        ))

    root.handlers = [handler]

    # Suppress noisy loggers
    for name in ["celery", "kombu", "amqp"]:
        logging.getLogger(name).setLevel(logging.WARNING)
