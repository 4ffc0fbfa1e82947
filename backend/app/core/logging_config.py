"""
Structured logging for the alert relay.

Production (ENVIRONMENT=production) writes one JSON object per line; every
other environment gets a coloured single-line format. Both carry:

    • the request context set by RequestLoggingMiddleware
      (request_id, client_ip, endpoint, method)
    • relay fields passed through ``extra=``: district, source, alert_id,
      sender_id, and the sync counters locality_count / advisory_count

Usage:
    from backend.app.core.logging_config import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__)
    logger.info("Feed alert upserted", extra={"district": "Delhi", "source": "openweather"})
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict

from backend.app.core.config import settings

_request_context: ContextVar[Dict[str, Any]] = ContextVar(
    "request_context", default={}
)

# Shown inline by PrettyFormatter
_RELAY_FIELDS = (
    "district", "source", "alert_id", "sender_id",
    "locality_count", "advisory_count",
)
# Promoted to top-level keys by JSONFormatter
_EXTRA_FIELDS = _RELAY_FIELDS + ("duration_ms", "status_code", "endpoint")


def set_request_context(**kwargs: Any) -> None:
    """Replace the request context; call with no arguments to clear it."""
    _request_context.set(kwargs)


def get_request_context() -> Dict[str, Any]:
    return _request_context.get()


def _extras(record: logging.LogRecord, fields=_EXTRA_FIELDS) -> Dict[str, Any]:
    return {key: getattr(record, key) for key in fields if hasattr(record, key)}


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        ctx = get_request_context()
        if ctx:
            entry["context"] = ctx
        entry.update(_extras(record))

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(entry, default=str)


class PrettyFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL [request] logger: message key=value …``"""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        ts = self.formatTime(record, "%H:%M:%S")

        request_id = get_request_context().get("request_id")
        req = f" [{request_id[:8]}]" if request_id else ""

        fields = _extras(record, _RELAY_FIELDS)
        tail = "".join(f" {k}={v}" for k, v in fields.items())

        line = (
            f"{color}{ts} {record.levelname:8s}{self.RESET}"
            f"{req} {record.name}: {record.getMessage()}{tail}"
        )
        if record.exc_info and record.exc_info[1]:
            line += f"\n  {type(record.exc_info[1]).__name__}: {record.exc_info[1]}"
        return line


def setup_logging() -> None:
    """Install the environment's formatter on the root logger."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if settings.is_production else PrettyFormatter())
    root.addHandler(handler)

    # Per-request lines come from RequestLoggingMiddleware; outbound feed
    # calls are summarised by the reconciler
    for name in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
    if not settings.DATABASE_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
