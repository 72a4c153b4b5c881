"""Domain value objects."""

from cinesync.domain.value_objects.instant import parse_instant, to_epoch_ms, utc_now
from cinesync.domain.value_objects.media_keys import (
    ALREADY_WATCHED_LIST_ID,
    FAVORITES_LIST_ID,
    RESERVED_LIST_IDS,
    WATCHLIST_LIST_ID,
    MediaKind,
    custom_list_id,
    episode_rating_key,
    episode_tracking_key,
    is_favorites_list,
    movie_rating_key,
    show_rating_key,
    slug_list_id,
    unique_list_id,
)

__all__ = [
    "ALREADY_WATCHED_LIST_ID",
    "FAVORITES_LIST_ID",
    "RESERVED_LIST_IDS",
    "WATCHLIST_LIST_ID",
    "MediaKind",
    "custom_list_id",
    "episode_rating_key",
    "episode_tracking_key",
    "is_favorites_list",
    "movie_rating_key",
    "parse_instant",
    "show_rating_key",
    "slug_list_id",
    "to_epoch_ms",
    "unique_list_id",
    "utc_now",
]
