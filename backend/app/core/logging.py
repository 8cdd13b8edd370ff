"""
JSON log lines for the triage backend.

Each record becomes a single JSON object tagged with the configured service
name and, while a request is in flight, the correlation ID that
TracingMiddleware stored in ``correlation_id_ctx``. Callers attach
structured fields with ``extra={"extra_data": {...}}``.
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from contextvars import ContextVar

from backend.app.core.config import get_settings

correlation_id_ctx: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


class JSONFormatter(logging.Formatter):
    """Serialise a LogRecord plus its ``extra_data`` into one JSON line."""

    def __init__(self, service_name: Optional[str] = None):
        super().__init__()
        self.service_name = service_name or get_settings().service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
            "service": self.service_name,
        }

        cid = correlation_id_ctx.get()
        if cid:
            log_data["correlation_id"] = cid

        extra_data = getattr(record, "extra_data", None)
        if extra_data:
            log_data.update(extra_data)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", service_name: Optional[str] = None):
    """Route every logger through a single stdout handler emitting JSON."""
    root = logging.getLogger()
    root.setLevel(level)

    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter(service_name))
    root.addHandler(handler)

    # TracingMiddleware already writes one line per request
    logging.getLogger("uvicorn.access").disabled = True
    logging.getLogger("httpx").setLevel("WARNING")


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
