"""API request/response schemas."""

from cinesync.api.schemas.trakt import (
    DisconnectResponse,
    SyncResultResponse,
    TraktStatusResponse,
)

__all__ = ["DisconnectResponse", "SyncResultResponse", "TraktStatusResponse"]
