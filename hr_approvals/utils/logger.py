"""
Structured JSON Logging with Correlation ID Support

Three sinks share one JSON format:
    - stdout
    - app.log (everything at the configured level)
    - decisions.log (approval / rejection / cancellation trail, any record
      that carries a `decision` or `status` field)
"""
import json
import logging
import os
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional
from contextvars import ContextVar

from ..config.settings import settings


correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)

# Record attributes copied into the JSON line when a caller passes them via `extra`
CONTEXT_FIELDS = (
    "request_id", "workflow_id", "step_id", "step_order", "delegation_id",
    "actor_id", "decision", "status", "error_code",
)

_MAX_BYTES = 10 * 1024 * 1024


class JsonFormatter(logging.Formatter):
    """One JSON object per line"""

    def format(self, record: logging.LogRecord) -> str:
        log_obj: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_obj["correlation_id"] = correlation_id

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_obj[field] = value

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_obj, default=str)


class DecisionTrailFilter(logging.Filter):
    """Keeps records describing a request state change"""

    def filter(self, record: logging.LogRecord) -> bool:
        return getattr(record, "request_id", None) is not None and (
            getattr(record, "decision", None) is not None
            or getattr(record, "status", None) is not None
        )


def _rotating_handler(filename: str, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        os.path.join(settings.logs_path, filename),
        maxBytes=_MAX_BYTES,
        backupCount=5,
        encoding="utf-8"
    )
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    """Setup logging configuration"""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper()))
    root_logger.handlers.clear()

    json_formatter = JsonFormatter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(json_formatter)
    root_logger.addHandler(console_handler)

    if settings.log_to_file:
        os.makedirs(settings.logs_path, exist_ok=True)
        root_logger.addHandler(_rotating_handler("app.log", json_formatter))

        decisions_handler = _rotating_handler("decisions.log", json_formatter)
        decisions_handler.addFilter(DecisionTrailFilter())
        root_logger.addHandler(decisions_handler)

    # Reduce verbosity of third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the given name"""
    return logging.getLogger(name)


def set_correlation_id(correlation_id: str) -> None:
    correlation_id_var.set(correlation_id)


def get_correlation_id() -> Optional[str]:
    return correlation_id_var.get()
