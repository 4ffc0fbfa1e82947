"""
Centralised error handling — exception hierarchy + FastAPI handlers.

Provides:
    • Domain-specific exception classes
    • Consistent JSON error response format ({"message": ..., "error": {...}})
    • Automatic logging of unhandled errors
    • No internal detail in 5xx responses

Usage:
    from backend.app.core.errors import (
        AlertRelayError,
        ValidationError,
        StoreError,
        UpstreamFetchError,
        register_error_handlers,
    )

    raise ValidationError("senderId and msg required", fields=["senderId"])
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from backend.app.core.config import settings

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# Exception Hierarchy
# ═══════════════════════════════════════════════════════════════════════════

class AlertRelayError(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class ValidationError(AlertRelayError):
    """Required input missing or malformed (400). Never retried."""

    def __init__(self, message: str, *, fields: Optional[List[str]] = None, **details: Any):
        d = {**details}
        if fields:
            d["fields"] = list(fields)
        super().__init__(
            message=message,
            status_code=400,
            error_code="VALIDATION_ERROR",
            details=d,
        )


class StoreError(AlertRelayError):
    """
    Persistence unavailable or write failed (500).

    ``message`` is what the client sees; ``reason`` is logged only.
    """

    def __init__(self, operation: str, reason: str = "", *, message: str = "Storage unavailable"):
        super().__init__(
            message=message,
            status_code=500,
            error_code="STORE_ERROR",
            details={"operation": operation},
        )
        self.operation = operation
        self.reason = reason


class UpstreamFetchError(AlertRelayError):
    """
    External feed call failed (network, timeout, non-2xx, malformed body).

    Contained inside the reconciler; never surfaced to an API caller.
    """

    def __init__(self, service: str, message: str = "", *, status: str = "network_error", **details: Any):
        super().__init__(
            message=f"External service '{service}' failed: {message}",
            status_code=502,
            error_code="UPSTREAM_FETCH_ERROR",
            details={"service": service, "status": status, **details},
        )
        self.service = service
        self.status = status


# ═══════════════════════════════════════════════════════════════════════════
# Error Response Builder
# ═══════════════════════════════════════════════════════════════════════════

def _build_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    request: Optional[Request] = None,
) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: Dict[str, Any] = {
        "message": message,
        "error": {
            "code": error_code,
            "message": message,
            "status": status_code,
        },
    }

    if details:
        body["error"]["details"] = details

    # Include request path in non-production
    if request and not settings.is_production:
        body["error"]["path"] = str(request.url.path)
        body["error"]["method"] = request.method

    return JSONResponse(status_code=status_code, content=body)


# ═══════════════════════════════════════════════════════════════════════════
# FastAPI Exception Handlers
# ═══════════════════════════════════════════════════════════════════════════

def register_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app."""

    @app.exception_handler(StoreError)
    async def handle_store_error(request: Request, exc: StoreError):
        logger.error(
            "Store failure during %s: %s",
            exc.operation, exc.reason or exc.message,
        )
        return _build_error_response(
            exc.status_code, exc.error_code, exc.message, request=request,
        )

    @app.exception_handler(AlertRelayError)
    async def handle_relay_error(request: Request, exc: AlertRelayError):
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            "API Error [%s]: %s | details=%s",
            exc.error_code, exc.message, exc.details,
        )
        return _build_error_response(
            exc.status_code, exc.error_code, exc.message,
            exc.details, request,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        fields = [
            ".".join(str(p) for p in err.get("loc", ()) if p != "body")
            for err in exc.errors()
        ]
        logger.warning("Request validation failed: %s", fields)
        return _build_error_response(
            400, "VALIDATION_ERROR", "Invalid request body",
            {"fields": fields}, request,
        )

    @app.exception_handler(Exception)
    async def handle_unhandled(request: Request, exc: Exception):
        logger.critical("Unhandled exception: %s", exc, exc_info=exc)
        return _build_error_response(
            500, "INTERNAL_ERROR", "Internal server error", request=request,
        )
