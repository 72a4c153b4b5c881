"""Domain ports (interfaces) for external collaborators."""

from abc import ABC, abstractmethod
from typing import Literal

from cinesync.domain.dtos import (
    HistoryEntry,
    ListDefinition,
    ListItemEntry,
    RatingEntry,
    TokenGrant,
    WatchlistEntry,
)

HistoryKind = Literal["movies", "shows", "episodes"]
RatingKind = Literal["movies", "shows", "episodes"]
WatchlistKind = Literal["movies", "shows"]


# Hey future me, ITraktClient is the PORT for the remote tracking service! The sync engine only
# ever talks to this interface - the httpx implementation lives in
# infrastructure/integrations/trakt_client.py and tests plug in a fake. Every method returns
# DTOs, never raw JSON. No method retries on its own - retry is the client's (the human's) job.
class ITraktClient(ABC):
    """Port for Trakt API operations needed by the sync engine."""

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """
        Exchange a refresh token for a new access/refresh pair.

        Raises:
            TokenRefreshException: If Trakt rejects the refresh token
        """
        pass

    @abstractmethod
    async def revoke_token(self, access_token: str) -> None:
        """Revoke an access token at Trakt."""
        pass

    @abstractmethod
    async def get_history(
        self, access_token: str, kind: HistoryKind, page_size: int = 1000
    ) -> list[HistoryEntry]:
        """Get the user's complete watch history of one kind."""
        pass

    @abstractmethod
    async def get_ratings(self, access_token: str, kind: RatingKind) -> list[RatingEntry]:
        """Get the user's ratings of one kind."""
        pass

    @abstractmethod
    async def get_watchlist(
        self, access_token: str, kind: WatchlistKind
    ) -> list[WatchlistEntry]:
        """Get the user's watchlist entries of one kind."""
        pass

    @abstractmethod
    async def get_user_lists(self, access_token: str) -> list[ListDefinition]:
        """Get the user's custom list definitions."""
        pass

    @abstractmethod
    async def get_list_items(self, access_token: str, slug: str) -> list[ListItemEntry]:
        """Get all items of one custom list."""
        pass


__all__ = ["HistoryKind", "ITraktClient", "RatingKind", "WatchlistKind"]
