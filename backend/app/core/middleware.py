"""
Per-request correlation and access logging.

Each request is tagged with an X-Request-ID (the caller's, when it sends
one) that is echoed on the response and attached to every log record
emitted while the request is handled. Responses also carry
X-Process-Time. Health check and docs paths are served silently.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from backend.app.core.logging_config import set_request_context

logger = logging.getLogger(__name__)

_QUIET_PREFIXES = ("/docs", "/redoc", "/openapi", "/favicon", "/health/")


def _log_request(request: Request, status_code: int, duration_ms: float, client_ip: str) -> None:
    path = request.url.path
    if path.startswith(_QUIET_PREFIXES):
        return
    if status_code >= 500:
        level = logging.ERROR
    elif status_code >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO
    logger.log(
        level,
        "%s %s → %d (%.1fms) [%s]",
        request.method, path, status_code, duration_ms, client_ip,
        extra={"duration_ms": duration_ms, "status_code": status_code, "endpoint": path},
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:16]
        client_ip = request.client.host if request.client else "unknown"
        set_request_context(
            request_id=request_id,
            client_ip=client_ip,
            endpoint=request.url.path,
            method=request.method,
        )

        start = time.perf_counter()
        try:
            try:
                response = await call_next(request)
            except Exception:
                _log_request(request, 500, (time.perf_counter() - start) * 1000, client_ip)
                raise

            duration_ms = (time.perf_counter() - start) * 1000
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Process-Time"] = f"{duration_ms:.1f}ms"
            _log_request(request, response.status_code, duration_ms, client_ip)
            return response
        finally:
            set_request_context()
