"""Custom exception handlers for FastAPI application.

Domain exceptions raised anywhere below a route are converted here into the JSON error
contract of the API: a body with an "error" key plus optional "code", "retryAfter" and
"message" keys.
"""

import logging
import math

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from cinesync.domain.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ExternalServiceError,
    NotConnectedError,
    ReauthRequiredError,
    SyncInProgressError,
    SyncRateLimitedError,
    TokenRefreshException,
    UnexpectedSyncFailure,
)

logger = logging.getLogger(__name__)


def rate_limit_message(retry_after_seconds: int) -> str:
    """Human-readable hint for a 429, in whole minutes (rounded up)."""
    minutes = math.ceil(retry_after_seconds / 60)
    return f"Please wait {minutes} minute(s) before syncing again"


# Hey future me, register these BEFORE the app serves requests (create_app does it). Lock-phase
# rejections (400/401/409/429) are normal traffic, so they log at info/warning. The 500s log at
# error - the sync service already logged the stack trace when it wrapped the failure.
def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers mapping domain exceptions to HTTP responses."""

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        """Handle missing/invalid sessions with 401 Unauthorized."""
        logger.info(
            "Unauthenticated request at %s",
            request.url.path,
            extra={"path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": exc.message},
        )

    @app.exception_handler(NotConnectedError)
    async def not_connected_handler(
        request: Request, exc: NotConnectedError
    ) -> JSONResponse:
        """Handle sync requests without a linked Trakt account with 400."""
        logger.info(
            "Trakt not connected at %s",
            request.url.path,
            extra={"path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": exc.message},
        )

    @app.exception_handler(ReauthRequiredError)
    async def reauth_required_handler(
        request: Request, exc: ReauthRequiredError
    ) -> JSONResponse:
        """Handle missing Trakt credentials with 401 and the REAUTH_REQUIRED code."""
        logger.warning(
            "Trakt re-authentication required at %s",
            request.url.path,
            extra={"path": request.url.path, "code": exc.code},
        )
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"error": exc.message, "code": exc.code},
        )

    @app.exception_handler(SyncRateLimitedError)
    async def sync_rate_limited_handler(
        request: Request, exc: SyncRateLimitedError
    ) -> JSONResponse:
        """Handle cooldown rejections with 429 and a Retry-After header."""
        logger.info(
            "Sync cooldown active at %s, retry after %ds",
            request.url.path,
            exc.retry_after_seconds,
            extra={"path": request.url.path, "retry_after": exc.retry_after_seconds},
        )
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "error": "Sync rate limit exceeded",
                "retryAfter": exc.retry_after_seconds,
                "message": rate_limit_message(exc.retry_after_seconds),
            },
            headers={"Retry-After": str(exc.retry_after_seconds)},
        )

    @app.exception_handler(SyncInProgressError)
    async def sync_in_progress_handler(
        request: Request, exc: SyncInProgressError
    ) -> JSONResponse:
        """Handle a live sync lock with 409 Conflict."""
        logger.info(
            "Sync already in progress at %s",
            request.url.path,
            extra={"path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "error": exc.message,
                "message": "A sync is already running. Please wait for it to complete.",
            },
        )

    @app.exception_handler(TokenRefreshException)
    async def token_refresh_handler(
        request: Request, exc: TokenRefreshException
    ) -> JSONResponse:
        """Handle a failed token refresh with 500."""
        logger.error(
            "Token refresh failed at %s: %s",
            request.url.path,
            exc.message,
            extra={
                "path": request.url.path,
                "error_code": exc.error_code,
                "requires_reauth": exc.requires_reauth,
            },
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Token refresh failed"},
        )

    @app.exception_handler(UnexpectedSyncFailure)
    async def unexpected_sync_failure_handler(
        request: Request, exc: UnexpectedSyncFailure
    ) -> JSONResponse:
        """Handle any other sync failure with 500."""
        logger.error(
            "Sync failed at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": exc.message},
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """Handle misconfiguration with 503 Service Unavailable."""
        logger.error(
            "Configuration error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"error": exc.message},
        )

    @app.exception_handler(ExternalServiceError)
    async def external_service_error_handler(
        request: Request, exc: ExternalServiceError
    ) -> JSONResponse:
        """Handle remote failures that escaped a service with 502 Bad Gateway."""
        logger.error(
            "External service error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "status_code": exc.status_code},
        )
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"error": exc.message},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        """Handle HTTP exceptions with the same error body shape."""
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "HTTP error %d at %s: %s",
            exc.status_code,
            request.url.path,
            exc.detail,
            extra={"path": request.url.path, "status_code": exc.status_code},
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )
