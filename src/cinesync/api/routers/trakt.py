"""Trakt sync API endpoints."""

# Hey future me - these routes stay THIN. All rules (lock, cooldown, refresh,
# sweep, batching) live in TraktSyncService; every rejection is a domain exception that
# exception_handlers.py turns into the right status code. Don't catch them here!

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from cinesync.api.dependencies import (
    get_current_user_id,
    get_optional_user_id,
    get_trakt_connection_service,
    get_trakt_sync_service,
)
from cinesync.api.schemas import (
    DisconnectResponse,
    SyncResultResponse,
    TraktStatusResponse,
)
from cinesync.application.services.trakt_connection_service import (
    TraktConnectionService,
)
from cinesync.application.services.trakt_sync import TraktSyncService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trakt", tags=["Trakt"])


@router.post("/sync", response_model=SyncResultResponse)
async def sync_trakt(
    user_id: str = Depends(get_current_user_id),
    sync_service: TraktSyncService = Depends(get_trakt_sync_service),
) -> SyncResultResponse:
    """Pull the user's Trakt history, ratings, watchlist and lists into local storage.

    Returns:
        Per-category counts of the synced state

    Status codes:
        400 not connected, 401 no session / REAUTH_REQUIRED, 409 sync already running,
        429 cooldown active (Retry-After header), 500 refresh or sync failure
    """
    result = await sync_service.run(user_id)
    return SyncResultResponse.from_result(result)


@router.get("/status", response_model=TraktStatusResponse)
async def get_trakt_status(
    user_id: str | None = Depends(get_optional_user_id),
    connection_service: TraktConnectionService = Depends(get_trakt_connection_service),
) -> TraktStatusResponse:
    """Get the Trakt connection status. Never fails - errors read as "not connected"."""
    status = await connection_service.get_status(user_id)
    return TraktStatusResponse.from_status(status)


@router.post("/disconnect", response_model=DisconnectResponse)
async def disconnect_trakt(
    user_id: str = Depends(get_current_user_id),
    connection_service: TraktConnectionService = Depends(get_trakt_connection_service),
) -> DisconnectResponse | JSONResponse:
    """Revoke the Trakt token (best effort) and forget the connection."""
    try:
        await connection_service.disconnect(user_id)
    except Exception:
        logger.exception("Trakt disconnect failed for user %s", user_id)
        return JSONResponse(status_code=500, content={"error": "Failed to disconnect"})
    return DisconnectResponse(success=True)
