"""
Data Transfer Objects for records fetched from the remote tracking service.

Hey future me - these DTOs are the boundary between the Trakt JSON and the engine!
TraktClient converts every API response into these dumb, read-only carriers, so the planner
never touches raw dicts. Fields are Optional wherever Trakt may omit them - a movie without a
TMDB id is a perfectly valid Trakt record, we just can't store it locally (planner skips it).

Flow: Trakt API Response → DTO → ReconciliationPlanner → target documents
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class MediaRef:
    """A movie or show as referenced by a remote record.

    tmdb_id is the id we store locally; Trakt's own id is kept for diagnostics only.
    """

    title: str | None = None
    year: int | None = None
    tmdb_id: int | None = None
    trakt_id: int | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any] | None) -> "MediaRef | None":
        """Build from a Trakt movie/show object (None if absent)."""
        if not data:
            return None
        ids = data.get("ids") or {}
        return cls(
            title=data.get("title"),
            year=data.get("year"),
            tmdb_id=_as_int(ids.get("tmdb")),
            trakt_id=_as_int(ids.get("trakt")),
        )


@dataclass(frozen=True)
class EpisodeRef:
    """An episode as referenced by a remote record."""

    season: int
    number: int
    title: str | None = None
    tmdb_id: int | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any] | None) -> "EpisodeRef | None":
        """Build from a Trakt episode object (None if absent or incomplete)."""
        if not data:
            return None
        season = _as_int(data.get("season"))
        number = _as_int(data.get("number"))
        if season is None or number is None:
            return None
        ids = data.get("ids") or {}
        return cls(
            season=season,
            number=number,
            title=data.get("title"),
            tmdb_id=_as_int(ids.get("tmdb")),
        )


@dataclass(frozen=True)
class HistoryEntry:
    """One watch event (movie or episode)."""

    media_kind: str  # "movie" | "episode"
    watched_at: datetime | None
    movie: MediaRef | None = None
    show: MediaRef | None = None
    episode: EpisodeRef | None = None

    @property
    def remote_media_id(self) -> int | None:
        """TMDB id of the movie, or of the show for episodes."""
        ref = self.movie if self.media_kind == "movie" else self.show
        return ref.tmdb_id if ref else None


@dataclass(frozen=True)
class RatingEntry:
    """One rating of a movie, show or episode."""

    media_kind: str  # "movie" | "show" | "episode"
    rating: int
    rated_at: datetime | None
    movie: MediaRef | None = None
    show: MediaRef | None = None
    episode: EpisodeRef | None = None

    @property
    def remote_media_id(self) -> int | None:
        """TMDB id of the rated movie/show (the show for episode ratings)."""
        ref = self.movie if self.media_kind == "movie" else self.show
        return ref.tmdb_id if ref else None


@dataclass(frozen=True)
class WatchlistEntry:
    """One watchlist entry (movie or show)."""

    media_kind: str  # "movie" | "show"
    listed_at: datetime | None
    movie: MediaRef | None = None
    show: MediaRef | None = None

    @property
    def media(self) -> MediaRef | None:
        """The referenced movie or show."""
        return self.movie if self.media_kind == "movie" else self.show

    @property
    def remote_media_id(self) -> int | None:
        """TMDB id of the listed movie/show."""
        media = self.media
        return media.tmdb_id if media else None


@dataclass(frozen=True)
class ListItemEntry(WatchlistEntry):
    """One item of a custom list.

    Same shape as a watchlist entry - Trakt list items can also be people, seasons or
    episodes, but those have media_kind outside {"movie", "show"} and are skipped.
    """


@dataclass(frozen=True)
class ListDefinition:
    """A user's custom list (metadata only, items are fetched separately)."""

    name: str
    slug: str
    trakt_id: int | None = None
    item_count: int | None = None


@dataclass(frozen=True)
class TokenGrant:
    """Result of a token exchange/refresh.

    Hey future me - Trakt returns created_at (epoch seconds) + expires_in. The expiry is
    created_at + expires_in, NOT now + expires_in (clock skew between us and Trakt).
    """

    access_token: str
    refresh_token: str
    expires_in: int
    created_at: int
    token_type: str = "bearer"
    scope: str | None = None

    @property
    def expires_at_epoch(self) -> int:
        """Expiry as epoch seconds."""
        return self.created_at + self.expires_in


@dataclass
class RemoteSnapshot:
    """Everything fetched for one sync - re-fetched in full every time, never cached."""

    movie_history: list[HistoryEntry] = field(default_factory=list)
    episode_history: list[HistoryEntry] = field(default_factory=list)
    movie_ratings: list[RatingEntry] = field(default_factory=list)
    show_ratings: list[RatingEntry] = field(default_factory=list)
    episode_ratings: list[RatingEntry] = field(default_factory=list)
    movie_watchlist: list[WatchlistEntry] = field(default_factory=list)
    show_watchlist: list[WatchlistEntry] = field(default_factory=list)
    custom_lists: list[ListDefinition] = field(default_factory=list)
    # Same order as custom_lists
    list_items: list[list[ListItemEntry]] = field(default_factory=list)

    def counts(self) -> dict[str, int]:
        """Raw record counts for debug logging."""
        return {
            "movie_history": len(self.movie_history),
            "episode_history": len(self.episode_history),
            "movie_ratings": len(self.movie_ratings),
            "show_ratings": len(self.show_ratings),
            "episode_ratings": len(self.episode_ratings),
            "movie_watchlist": len(self.movie_watchlist),
            "show_watchlist": len(self.show_watchlist),
            "custom_lists": len(self.custom_lists),
        }


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


__all__ = [
    "EpisodeRef",
    "HistoryEntry",
    "ListDefinition",
    "ListItemEntry",
    "MediaRef",
    "RatingEntry",
    "RemoteSnapshot",
    "TokenGrant",
    "WatchlistEntry",
]
