"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so handlers can inspect it without parsing
    # str(exception). Never raise this directly - always a subclass so callers can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class ConfigurationError(DomainException):
    """Application misconfiguration.

    Raised when required configuration is missing or invalid.

    HTTP Status: 503 (Service Unavailable)

    Example:
        raise ConfigurationError("TRAKT_CLIENT_ID is not configured")
    """

    pass


class AuthenticationError(DomainException):
    """User is not authenticated or the session expired.

    HTTP Status: 401
    """

    pass


class ExternalServiceError(DomainException):
    """External service (Trakt) returned an error.

    HTTP Status: 502 (Bad Gateway) when it escapes a request handler directly.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TokenRefreshException(DomainException):
    """Raised when exchanging the refresh token for a new access token fails.

    Hey future me - during a sync this happens AFTER the lock is held, so whoever catches it
    must make sure the lock gets released. The sync aborts; the user usually has to reconnect
    if requires_reauth is True (revoked grant, access denied).
    """

    def __init__(
        self,
        message: str = "Token refresh failed. Please re-connect your Trakt account.",
        error_code: str | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code  # e.g., "invalid_grant"
        self.http_status = http_status  # e.g., 400, 401

    @property
    def requires_reauth(self) -> bool:
        """Check if error requires user re-authentication."""
        return self.error_code == "invalid_grant" or self.http_status in (400, 401, 403)


# =============================================================================
# Sync lock-phase rejections
# These short-circuit before any remote call or write - no lock is held.
# =============================================================================


class NotConnectedError(DomainException):
    """The user has no linked Trakt account.

    HTTP Status: 400
    """

    def __init__(self, message: str = "Not connected to Trakt") -> None:
        super().__init__(message)


class ReauthRequiredError(DomainException):
    """The account is linked but stored credentials are missing or malformed.

    HTTP Status: 401 (code REAUTH_REQUIRED)
    """

    code = "REAUTH_REQUIRED"

    def __init__(self, message: str = "Trakt re-authentication required") -> None:
        super().__init__(message)


class SyncRateLimitedError(DomainException):
    """A sync was requested before the cooldown since the last successful sync elapsed.

    HTTP Status: 429 (Retry-After header = retry_after_seconds)
    """

    def __init__(self, retry_after_seconds: int) -> None:
        super().__init__(
            f"Sync rate limit exceeded - retry after {retry_after_seconds}s"
        )
        self.retry_after_seconds = retry_after_seconds


class SyncInProgressError(DomainException):
    """Another sync holds a non-stale lock for this user.

    HTTP Status: 409
    """

    def __init__(self, message: str = "Sync already in progress") -> None:
        super().__init__(message)


class UnexpectedSyncFailure(DomainException):
    """Any failure of the sync body that is not a token refresh failure.

    HTTP Status: 500
    """

    pass


__all__ = [
    "AuthenticationError",
    "ConfigurationError",
    "DomainException",
    "ExternalServiceError",
    "NotConnectedError",
    "ReauthRequiredError",
    "SyncInProgressError",
    "SyncRateLimitedError",
    "TokenRefreshException",
    "UnexpectedSyncFailure",
]
