"""Middleware for observability: request/response logging."""

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from cinesync.infrastructure.observability.logging import (
    get_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


# Hey future me, this runs around EVERY request. It sets the correlation id first so that all
# logs of the request (sync engine included) carry it, and echoes it back in the response
# header. Health checks are not logged - docker pings them every few seconds.
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests and responses."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Process request and log details."""
        set_correlation_id(request.headers.get(CORRELATION_HEADER))

        method = request.method
        path = request.url.path
        quiet = path == "/health"

        if not quiet:
            logger.info(
                f"→ {method} {path}",
                extra={
                    "method": method,
                    "path": path,
                    "client_ip": request.client.host if request.client else "unknown",
                },
            )

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                f"Request failed: {method} {path}",
                extra={
                    "method": method,
                    "path": path,
                    "duration_ms": int((time.perf_counter() - start_time) * 1000),
                    "error_type": type(e).__name__,
                },
            )
            raise

        duration_ms = int((time.perf_counter() - start_time) * 1000)
        if not quiet:
            status_mark = "✓" if response.status_code < 400 else "✗"
            logger.info(
                f"{status_mark} {method} {path} → {response.status_code} ({duration_ms}ms)",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                },
            )

        response.headers[CORRELATION_HEADER] = get_correlation_id()
        return response
