"""
Request logging middleware for the CareAlert relay.

Logs HTTP requests with method, path, status and latency.  Liveness
probes are logged at debug level so they do not drown alert lines.
"""

from __future__ import annotations

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger(__name__)

_PROBE_PATHS = frozenset({"/", "/ping", "/health", "/metrics"})


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log every HTTP request; WebSocket traffic is not seen here."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 2)
        log = logger.debug if request.url.path in _PROBE_PATHS else logger.info
        log(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            client=request.client.host if request.client else None,
            duration_ms=duration_ms,
        )
        return response
