"""Observability infrastructure for structured logging."""

from cinesync.infrastructure.observability.logging import (
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)
from cinesync.infrastructure.observability.middleware import RequestLoggingMiddleware

__all__ = [
    "RequestLoggingMiddleware",
    "configure_logging",
    "get_correlation_id",
    "set_correlation_id",
]
