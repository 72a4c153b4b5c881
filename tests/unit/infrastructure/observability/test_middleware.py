"""Unit tests for RequestLoggingMiddleware."""

from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from cinesync.infrastructure.observability.middleware import (
    CORRELATION_HEADER,
    RequestLoggingMiddleware,
)


class TestRequestLoggingMiddleware:
    """Test suite for RequestLoggingMiddleware."""

    @pytest.fixture
    def app(self) -> FastAPI:
        """Create a FastAPI app with middleware for testing."""
        app = FastAPI()
        app.add_middleware(RequestLoggingMiddleware)

        @app.get("/test")
        async def test_endpoint():
            return {"message": "test"}

        @app.get("/health")
        async def health():
            return {"status": "alive"}

        @app.get("/error")
        async def error_endpoint():
            raise ValueError("Test error")

        return app

    @pytest.fixture
    def client(self, app: FastAPI) -> TestClient:
        """Create a test client."""
        return TestClient(app, raise_server_exceptions=False)

    def test_successful_request_logs_start_and_completion(self, client: TestClient):
        """Test that a request logs once on entry and once with status and duration."""
        with patch(
            "cinesync.infrastructure.observability.middleware.logger"
        ) as mock_logger:
            response = client.get("/test")

        assert response.status_code == 200
        assert mock_logger.info.call_count == 2
        completion = mock_logger.info.call_args_list[1][0][0]
        assert "GET /test" in completion
        assert "200" in completion
        assert "ms" in completion

    def test_correlation_id_is_echoed(self, client: TestClient):
        """Test that a caller-supplied correlation id comes back in the response."""
        response = client.get("/test", headers={CORRELATION_HEADER: "corr-abc"})
        assert response.headers[CORRELATION_HEADER] == "corr-abc"

    def test_correlation_id_is_generated(self, client: TestClient):
        """Test that a correlation id is generated when none is supplied."""
        response = client.get("/test")
        assert len(response.headers[CORRELATION_HEADER]) == 36

    def test_health_checks_are_not_logged(self, client: TestClient):
        """Test that /health stays out of the logs."""
        with patch(
            "cinesync.infrastructure.observability.middleware.logger"
        ) as mock_logger:
            response = client.get("/health")

        assert response.status_code == 200
        mock_logger.info.assert_not_called()

    def test_unhandled_error_is_logged(self, client: TestClient):
        """Test that exceptions are logged with the request context."""
        with patch(
            "cinesync.infrastructure.observability.middleware.logger"
        ) as mock_logger:
            response = client.get("/error")

        assert response.status_code == 500
        mock_logger.exception.assert_called_once()
