"""Dependency injection for API endpoints."""

import logging
from datetime import timedelta
from typing import cast

from fastapi import Depends, Header, HTTPException, Request

from cinesync.application.services.session_store import SessionStore
from cinesync.application.services.trakt_connection_service import (
    TraktConnectionService,
)
from cinesync.application.services.trakt_sync import TraktSyncService
from cinesync.config import Settings
from cinesync.domain.exceptions import AuthenticationError
from cinesync.domain.ports import ITraktClient
from cinesync.infrastructure.persistence import Database

logger = logging.getLogger(__name__)


# Hey future me, everything long-lived (settings, Database, TraktClient) is created ONCE in the
# lifespan and hung on app.state. These getters just pull it back out. Tests that skip the
# lifespan (httpx ASGITransport doesn't run it) set app.state by hand.
def get_app_settings(request: Request) -> Settings:
    """Get application settings from app state."""
    return cast(Settings, request.app.state.settings)


def get_database(request: Request) -> Database:
    """Get the Database from app state.

    Raises:
        HTTPException: 503 if the database is not initialized
    """
    if not hasattr(request.app.state, "db"):
        raise HTTPException(status_code=503, detail="Database not initialized")
    return cast(Database, request.app.state.db)


def get_trakt_client(request: Request) -> ITraktClient:
    """Get the shared Trakt client from app state."""
    return cast(ITraktClient, request.app.state.trakt_client)


def parse_bearer_token(authorization: str) -> str:
    """Parse Authorization header to extract session ID.

    Handles both "Bearer {token}" and raw token formats.
    Bearer prefix is case-insensitive.
    """
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip()
    return authorization.strip()


# Yo, header beats cookie: API clients send "Authorization: Bearer <session id>", the browser
# sends the session cookie (name configurable via API_SESSION_COOKIE_NAME). A blank header
# falls back to the cookie.
async def get_session_id(
    request: Request,
    authorization: str | None = Header(None),
    settings: Settings = Depends(get_app_settings),
) -> str | None:
    """Extract session ID from either Authorization header or cookie."""
    if authorization and authorization.strip():
        return parse_bearer_token(authorization)
    return request.cookies.get(settings.api.session_cookie_name)


def get_session_store(db: Database = Depends(get_database)) -> SessionStore:
    """Get the session store."""
    return SessionStore(db)


# Hey future me - this one is for endpoints that must NEVER fail (the status poll). A broken
# session lookup reads as "anonymous" there. Everything that needs a real user goes through
# get_current_user_id, which lets store errors propagate.
async def get_optional_user_id(
    session_id: str | None = Depends(get_session_id),
    session_store: SessionStore = Depends(get_session_store),
) -> str | None:
    """Resolve the current user, or None when unauthenticated or the lookup fails."""
    try:
        return await session_store.resolve_user_id(session_id)
    except Exception as e:
        logger.warning("Session lookup failed, treating request as anonymous: %s", e)
        return None


async def get_current_user_id(
    session_id: str | None = Depends(get_session_id),
    session_store: SessionStore = Depends(get_session_store),
) -> str:
    """Resolve the current user.

    Raises:
        AuthenticationError: No session, or unknown/expired session (401)
    """
    user_id = await session_store.resolve_user_id(session_id)
    if user_id is None:
        raise AuthenticationError("Unauthorized")
    return user_id


def get_trakt_sync_service(
    db: Database = Depends(get_database),
    client: ITraktClient = Depends(get_trakt_client),
    settings: Settings = Depends(get_app_settings),
) -> TraktSyncService:
    """Build the sync service for one request."""
    return TraktSyncService(db, client, settings)


def get_trakt_connection_service(
    db: Database = Depends(get_database),
    client: ITraktClient = Depends(get_trakt_client),
    settings: Settings = Depends(get_app_settings),
) -> TraktConnectionService:
    """Build the connection (status/disconnect) service for one request."""
    return TraktConnectionService(
        db,
        client,
        lock_timeout=timedelta(seconds=settings.sync.lock_timeout_seconds),
    )
