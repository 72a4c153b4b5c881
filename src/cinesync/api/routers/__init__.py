"""API router initialization."""

from fastapi import APIRouter

from cinesync.api.routers import health, trakt

# Mounted at /api in main.py, so the sync endpoint is /api/trakt/sync
api_router = APIRouter()
api_router.include_router(trakt.router)

__all__ = ["api_router", "health", "trakt"]
