"""Structured logging configuration with JSON formatting and correlation IDs."""

import contextvars
import logging
import sys
import traceback
import uuid
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

# Hey future me, the correlation id follows one HTTP request through every log line it causes -
# including the whole sync run behind POST /api/trakt/sync. contextvars are asyncio-safe: each
# task sees its own value. Empty string = not inside a request (startup, shutdown).
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

PACKAGE_NAME = "cinesync"


def get_correlation_id() -> str:
    """Get the current correlation ID from context ("" if not set)."""
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set correlation ID in context.

    Args:
        correlation_id: Correlation ID to set. If None, generates a new UUID

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    correlation_id_var.set(correlation_id)
    return correlation_id


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Attach correlation_id to the record. Never blocks a record."""
        record.correlation_id = get_correlation_id()
        return True


class CompactExceptionFormatter(logging.Formatter):
    """Human-readable formatter that prints exception chains compactly.

    Each exception in the chain (root cause first) gets one "╰─►" header line followed by
    the frames that belong to our own package. Library and stdlib frames are dropped.

    Example output:
    12:00:01 │ ERROR   │ cinesync.application...:88 │ Trakt sync failed for user u1
    ╰─► ConnectError: All connection attempts failed
    ╰─► ExternalServiceError: Trakt request /sync/history/movies failed: ...
        File "trakt_client.py", line 97, in _get
          raise ExternalServiceError(f"Trakt request {path} failed: {e}") from e
    """

    def formatException(self, ei: Any) -> str:
        """Format exception chain in a compact, readable way."""
        _exc_type, exc_value, _exc_tb = ei
        if exc_value is None:
            return ""

        chain: list[BaseException] = []
        current: BaseException | None = exc_value
        while current is not None and current not in chain:
            chain.append(current)
            current = current.__cause__ or current.__context__
        chain.reverse()

        lines: list[str] = []
        for exc in chain:
            lines.append(f"╰─► {exc.__class__.__name__}: {exc}")
            if exc.__traceback__ is None:
                continue
            for frame in traceback.extract_tb(exc.__traceback__):
                if "/site-packages/" in frame.filename or PACKAGE_NAME not in frame.filename:
                    continue
                lines.append(
                    f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}'
                )
                if frame.line:
                    lines.append(f"      {frame.line.strip()}")

        return "\n".join(lines)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """JSON formatter adding level, logger, source location and correlation id."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        """Add custom fields to log record."""
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName
        log_record["line"] = record.lineno

        correlation_id = getattr(record, "correlation_id", "")
        if correlation_id:
            log_record["correlation_id"] = correlation_id

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)


# Listen future me, call this ONCE at startup (the lifespan does it). It replaces every handler
# on the root logger, so calling it again in tests is safe.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = PACKAGE_NAME,
) -> None:
    """Configure structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format for logs (recommended for production)
        app_name: Application name to include in logs
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())

    if json_format:
        formatter: logging.Formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = CompactExceptionFormatter(
            fmt="%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(message)s",
            datefmt="%H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # HTTP libraries are chatty at INFO - every Trakt call would show up twice
    for noisy in ("httpx", "httpcore", "asyncio", "aiosqlite", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "app_name": app_name,
            "log_level": log_level,
            "json_format": json_format,
        },
    )
