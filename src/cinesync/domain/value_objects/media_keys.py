"""Composite document keys for reconciled records.

Rating keys encode kind and identity so the same rating always lands on the same row:
"movie-{id}", "tv-{id}", "episode-{showId}-{season}-{episode}". Episode tracking keys are
"{season}_{episode}" inside a per-show document.
"""

from collections.abc import Collection
from enum import Enum

ALREADY_WATCHED_LIST_ID = "already-watched"
WATCHLIST_LIST_ID = "watchlist"
FAVORITES_LIST_ID = "favorites"

RESERVED_LIST_IDS = frozenset(
    {ALREADY_WATCHED_LIST_ID, WATCHLIST_LIST_ID, FAVORITES_LIST_ID}
)


class MediaKind(str, Enum):
    """Kind of media as stored locally."""

    MOVIE = "movie"
    TV = "tv"
    EPISODE = "episode"


def movie_rating_key(movie_id: int) -> str:
    """Build the rating key for a movie."""
    return f"{MediaKind.MOVIE.value}-{movie_id}"


def show_rating_key(show_id: int) -> str:
    """Build the rating key for a TV show."""
    return f"{MediaKind.TV.value}-{show_id}"


def episode_rating_key(show_id: int, season: int, episode: int) -> str:
    """Build the rating key for a single episode."""
    return f"{MediaKind.EPISODE.value}-{show_id}-{season}-{episode}"


def episode_tracking_key(season: int, episode: int) -> str:
    """Build the key of a watched episode inside a show's tracking document."""
    return f"{season}_{episode}"


def custom_list_id(name: str, slug: str) -> str:
    """Map a remote custom list onto its local list id.

    A list named "Favorites" (any case) becomes the reserved favorites list. Anything else goes
    through slug_list_id().
    """
    if is_favorites_list(name):
        return FAVORITES_LIST_ID
    return slug_list_id(slug)


def slug_list_id(slug: str) -> str:
    """Local list id for a list slug. Reserved ids move to "custom-{slug}"."""
    if slug in RESERVED_LIST_IDS:
        return f"custom-{slug}"
    return slug


# Hey future me - "custom-watchlist" is ALSO a legal Trakt slug, so the remap above alone can
# still put two lists on one id. The planner runs every id through here with the ids it already
# handed out; a clash gets "-2", "-3", ... in upstream order.
def unique_list_id(list_id: str, taken: Collection[str]) -> str:
    """Suffix a list id until it no longer clashes with an id in taken."""
    candidate = list_id
    suffix = 2
    while candidate in taken:
        candidate = f"{list_id}-{suffix}"
        suffix += 1
    return candidate


def is_favorites_list(name: str) -> bool:
    """Check whether a remote list is the user's favorites list."""
    return name.strip().lower() == FAVORITES_LIST_ID
