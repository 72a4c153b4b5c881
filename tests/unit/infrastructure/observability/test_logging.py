"""Tests for structured logging."""

import json
import logging
import sys

from cinesync.infrastructure.observability.logging import (
    CompactExceptionFormatter,
    CorrelationIdFilter,
    CustomJsonFormatter,
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)


class TestCorrelationId:
    """Test correlation ID functionality."""

    def test_set_and_get_correlation_id(self):
        """Test setting and getting correlation ID."""
        test_id = "test-123-abc"
        result = set_correlation_id(test_id)
        assert result == test_id
        assert get_correlation_id() == test_id

    def test_set_correlation_id_generates_uuid_when_none(self):
        """Test that setting None generates a UUID."""
        result = set_correlation_id(None)
        assert len(result) == 36
        assert get_correlation_id() == result

    def test_filter_attaches_correlation_id(self):
        """Test that the filter copies the id onto every record."""
        set_correlation_id("corr-42")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        assert CorrelationIdFilter().filter(record) is True
        assert record.correlation_id == "corr-42"


class TestLoggingConfiguration:
    """Test logging configuration."""

    def test_configure_logging_debug_level(self):
        """Test configuring logging with DEBUG level."""
        configure_logging(log_level="DEBUG", json_format=False, app_name="test-app")
        assert logging.getLogger("test").getEffectiveLevel() <= logging.DEBUG

    def test_configure_logging_replaces_handlers(self):
        """Calling configure_logging twice leaves exactly one handler."""
        configure_logging(log_level="INFO", json_format=False, app_name="test-app")
        configure_logging(log_level="INFO", json_format=True, app_name="test-app")
        root_logger = logging.getLogger()
        assert len(root_logger.handlers) == 1
        assert isinstance(root_logger.handlers[0].formatter, CustomJsonFormatter)

    def test_http_libraries_are_quieted(self):
        configure_logging(log_level="DEBUG", json_format=False)
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("aiosqlite").level == logging.WARNING


class TestFormatters:
    def test_json_formatter_includes_correlation_id(self):
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord(
            "cinesync.test", logging.WARNING, __file__, 10, "lock %s", ("taken",), None
        )
        record.correlation_id = "corr-7"

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "lock taken"
        assert payload["level"] == "WARNING"
        assert payload["logger"] == "cinesync.test"
        assert payload["correlation_id"] == "corr-7"

    def test_compact_formatter_prints_exception_chain(self):
        formatter = CompactExceptionFormatter()
        try:
            try:
                raise ValueError("root cause")
            except ValueError as e:
                raise RuntimeError("wrapper") from e
        except RuntimeError:
            text = formatter.formatException(sys.exc_info())

        lines = text.splitlines()
        assert lines[0] == "╰─► ValueError: root cause"
        assert "╰─► RuntimeError: wrapper" in lines
