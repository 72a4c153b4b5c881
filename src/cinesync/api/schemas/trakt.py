"""API schemas for the Trakt sync endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cinesync.application.services.trakt_connection_service import (
    TraktConnectionStatus,
)
from cinesync.domain.entities import SyncResult


class SyncResultResponse(BaseModel):
    """Per-category counts of a successful sync."""

    success: bool = Field(default=True, description="Always true on 200")
    movies: int = Field(default=0, description="Distinct watched movies")
    shows: int = Field(default=0, description="Shows with at least one watched episode")
    episodes: int = Field(default=0, description="Distinct watched episodes")
    ratings: int = Field(default=0, description="Distinct ratings")
    lists: int = Field(default=0, description="Custom lists (favorites excluded)")
    favorites: int = Field(default=0, description="Items in the favorites list")
    watchlist: int = Field(default=0, description="Items in the watchlist")

    @classmethod
    def from_result(cls, result: SyncResult) -> "SyncResultResponse":
        """Build from the engine's result."""
        return cls(**result.as_dict())


class TraktStatusResponse(BaseModel):
    """Trakt connection status of the current user (camelCase on the wire)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    connected: bool = Field(default=False, description="Trakt account linked")
    last_sync_at: int | None = Field(
        default=None, description="Last successful sync (epoch ms)"
    )
    connected_at: int | None = Field(
        default=None, description="When the account was linked (epoch ms)"
    )
    sync_in_progress: bool = Field(default=False, description="A live sync lock exists")
    last_sync_result: dict[str, Any] | None = Field(
        default=None, description="Counts of the last successful sync"
    )

    @classmethod
    def from_status(cls, status: TraktConnectionStatus) -> "TraktStatusResponse":
        """Build from the connection service's status."""
        return cls(
            connected=status.connected,
            last_sync_at=status.last_sync_at,
            connected_at=status.connected_at,
            sync_in_progress=status.sync_in_progress,
            last_sync_result=status.last_sync_result,
        )


class DisconnectResponse(BaseModel):
    """Result of a disconnect."""

    success: bool = True
