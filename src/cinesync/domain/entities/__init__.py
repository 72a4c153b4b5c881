"""Domain entities."""

import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import Any

from cinesync.domain.value_objects import parse_instant


# Hey future me, UserSyncState is the slice of the user row the engine cares about. The lock
# field (sync_in_progress_at) is the ONLY shared mutable thing in the whole engine - it is
# written by LockedSessionResolver (inside the acquire transaction) and cleared by
# LockReleaseFinalizer. Nothing else touches it. A lock older than the timeout is VOID even if
# nobody cleared it - that's how a crashed worker heals itself.
@dataclass
class UserSyncState:
    """Remote-sync state embedded in a user's record."""

    user_id: str
    connected: bool = False
    access_token: Any = None
    refresh_token: Any = None
    token_expires_at: Any = None
    connected_at: Any = None
    last_sync_at: Any = None
    last_sync_result: dict[str, Any] | None = None
    sync_in_progress_at: Any = None

    def has_credentials(self) -> bool:
        """Both credential strings present and non-empty."""
        return (
            isinstance(self.access_token, str)
            and bool(self.access_token)
            and isinstance(self.refresh_token, str)
            and bool(self.refresh_token)
        )

    def retry_after_seconds(self, now: datetime, cooldown: timedelta) -> int | None:
        """Seconds until the cooldown since the last successful sync elapses.

        Returns None when no cooldown applies (never synced, or cooldown already over).
        """
        last_sync = parse_instant(self.last_sync_at)
        if last_sync is None:
            return None
        elapsed = now - last_sync
        if elapsed >= cooldown:
            return None
        return math.ceil((cooldown - elapsed).total_seconds())

    def lock_is_held(self, now: datetime, lock_timeout: timedelta) -> bool:
        """Check for a live (non-stale) sync lock."""
        locked_at = parse_instant(self.sync_in_progress_at)
        if locked_at is None:
            return False
        return now - locked_at < lock_timeout


@dataclass(frozen=True)
class SyncLease:
    """Proof of an acquired sync lock, carrying the credentials loaded in the same transaction."""

    user_id: str
    acquired_at: datetime
    access_token: str
    refresh_token: str
    token_expires_at: datetime | None


@dataclass(frozen=True)
class TokenPair:
    """Access/refresh credential pair usable for remote calls."""

    access_token: str
    refresh_token: str
    expires_at: datetime | None = None


@dataclass
class SyncResult:
    """Per-category counts reported after a successful sync."""

    success: bool = True
    movies: int = 0
    shows: int = 0
    episodes: int = 0
    ratings: int = 0
    lists: int = 0
    favorites: int = 0
    watchlist: int = 0

    def as_dict(self) -> dict[str, Any]:
        """Serialize for the last-sync-result snapshot and the API response."""
        return asdict(self)


# =============================================================================
# Target documents - the authoritative local shape of each sub-collection
# =============================================================================


@dataclass
class AggregateListDocument:
    """A whole list (already-watched, watchlist, favorites or a custom list).

    Always written as a full overwrite, items keyed by media id (as string).
    """

    list_id: str
    name: str
    items: dict[str, dict[str, Any]] = field(default_factory=dict)
    is_custom: bool | None = None
    synced_from_remote: bool = True


@dataclass
class WatchedEpisode:
    """A watched episode inside a show's tracking document."""

    episode_id: int
    tv_show_id: int
    season_number: int
    episode_number: int
    watched_at: int | None  # epoch ms
    episode_name: str | None = None
    episode_air_date: str | None = None

    def to_document(self) -> dict[str, Any]:
        """JSON shape stored in the episodes map."""
        return {
            "episodeId": self.episode_id,
            "tvShowId": self.tv_show_id,
            "seasonNumber": self.season_number,
            "episodeNumber": self.episode_number,
            "watchedAt": self.watched_at,
            "episodeName": self.episode_name,
            "episodeAirDate": self.episode_air_date,
        }


@dataclass
class EpisodeTrackingDocument:
    """All watched episodes of one show. Fully overwritten per show on every sync."""

    show_id: int
    tv_show_name: str | None
    episodes: dict[str, WatchedEpisode] = field(default_factory=dict)
    poster_path: str | None = None

    @property
    def document_id(self) -> str:
        """Store key of this document."""
        return str(self.show_id)


@dataclass
class RatingDocument:
    """One rating, addressed by its composite key."""

    rating_key: str
    media_type: str  # "movie" | "tv" | "episode"
    rating: int
    rated_at: datetime | None
    media_id: int | None = None
    title: str | None = None
    poster_path: str | None = None
    release_date: str | None = None
    # Episode ratings only
    tv_show_id: int | None = None
    tv_show_name: str | None = None
    season_number: int | None = None
    episode_number: int | None = None
    episode_name: str | None = None


@dataclass
class SyncPlan:
    """Everything the planner decided for one sync, ready to sweep and write."""

    lists: list[AggregateListDocument] = field(default_factory=list)
    episode_tracking: list[EpisodeTrackingDocument] = field(default_factory=list)
    ratings: list[RatingDocument] = field(default_factory=list)
    result: SyncResult = field(default_factory=SyncResult)

    @property
    def fresh_list_ids(self) -> set[str]:
        """List ids present in the latest fetch."""
        return {doc.list_id for doc in self.lists}

    @property
    def fresh_show_ids(self) -> set[str]:
        """Show ids present in the latest episode history."""
        return {doc.document_id for doc in self.episode_tracking}

    @property
    def fresh_rating_keys(self) -> set[str]:
        """Rating keys present in the latest fetch."""
        return {doc.rating_key for doc in self.ratings}


__all__ = [
    "AggregateListDocument",
    "EpisodeTrackingDocument",
    "RatingDocument",
    "SyncLease",
    "SyncPlan",
    "SyncResult",
    "TokenPair",
    "UserSyncState",
    "WatchedEpisode",
]
