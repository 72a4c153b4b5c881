# Hey future me - the planner is PURE: snapshot in, SyncPlan out. No I/O, no DB, no clock
# at all. That's why all the dedup/grouping rules are tested here and not
# through HTTP. The rules are:
#
# - movie history → "already-watched" list, first occurrence per movie wins
# - episode history → one tracking document per show, first occurrence per "{season}_{episode}"
# - ratings → one document per composite key (movie-1, tv-2, episode-3-1-4)
# - watchlist → "watchlist" list (movies AND shows in one map, keyed by tmdb id)
# - custom lists → one list each; a list named "Favorites" becomes the reserved "favorites",
#   and no two lists ever share a local id (a clash gets a "-2" suffix)
#
# Records without a TMDB id are skipped silently - we can't address them locally.
"""Reconciliation planner - maps a remote snapshot onto authoritative local documents."""

import logging
from collections.abc import Iterable
from typing import Any

from cinesync.domain.dtos import (
    HistoryEntry,
    ListDefinition,
    ListItemEntry,
    RatingEntry,
    RemoteSnapshot,
    WatchlistEntry,
)
from cinesync.domain.entities import (
    AggregateListDocument,
    EpisodeTrackingDocument,
    RatingDocument,
    SyncPlan,
    SyncResult,
    WatchedEpisode,
)
from cinesync.domain.value_objects import (
    ALREADY_WATCHED_LIST_ID,
    FAVORITES_LIST_ID,
    WATCHLIST_LIST_ID,
    MediaKind,
    custom_list_id,
    episode_rating_key,
    episode_tracking_key,
    movie_rating_key,
    show_rating_key,
    slug_list_id,
    to_epoch_ms,
    unique_list_id,
)

logger = logging.getLogger(__name__)

ALREADY_WATCHED_LIST_NAME = "Already Watched"
WATCHLIST_LIST_NAME = "Should Watch"


class ReconciliationPlanner:
    """Compute the target shape of every synced sub-collection."""

    def plan(self, snapshot: RemoteSnapshot) -> SyncPlan:
        """Build the full sync plan for one snapshot."""
        result = SyncResult(success=True)
        plan = SyncPlan(result=result)

        already_watched = self._plan_already_watched(snapshot.movie_history)
        result.movies = len(already_watched.items)
        plan.lists.append(already_watched)

        plan.episode_tracking = self._plan_episode_tracking(snapshot.episode_history)
        result.shows = len(plan.episode_tracking)
        result.episodes = sum(len(doc.episodes) for doc in plan.episode_tracking)

        plan.ratings = self._plan_ratings(
            [*snapshot.movie_ratings, *snapshot.show_ratings, *snapshot.episode_ratings]
        )
        result.ratings = len(plan.ratings)

        watchlist = self._plan_watchlist(
            [*snapshot.movie_watchlist, *snapshot.show_watchlist]
        )
        result.watchlist = len(watchlist.items)
        plan.lists.append(watchlist)

        taken = {doc.list_id for doc in plan.lists}
        for definition, items in zip(
            snapshot.custom_lists, snapshot.list_items, strict=True
        ):
            document = self._plan_custom_list(definition, items, taken)
            taken.add(document.list_id)
            plan.lists.append(document)

        # Counted from what will actually be written
        for document in plan.lists:
            if document.is_custom:
                result.lists += 1
            elif document.list_id == FAVORITES_LIST_ID:
                result.favorites = len(document.items)
        return plan

    def _plan_already_watched(
        self, history: Iterable[HistoryEntry]
    ) -> AggregateListDocument:
        items: dict[str, dict[str, Any]] = {}
        for entry in history:
            tmdb_id = entry.remote_media_id
            if entry.media_kind != "movie" or tmdb_id is None:
                continue
            key = str(tmdb_id)
            if key in items:
                continue
            items[key] = {
                "id": tmdb_id,
                "media_type": MediaKind.MOVIE.value,
                "title": entry.movie.title if entry.movie else None,
                "poster_path": None,
                "release_date": None,
                "addedAt": to_epoch_ms(entry.watched_at),
            }

        # Always emitted, even when empty - that's what clears a list emptied upstream
        return AggregateListDocument(
            list_id=ALREADY_WATCHED_LIST_ID,
            name=ALREADY_WATCHED_LIST_NAME,
            items=items,
        )

    def _plan_episode_tracking(
        self, history: Iterable[HistoryEntry]
    ) -> list[EpisodeTrackingDocument]:
        shows: dict[int, EpisodeTrackingDocument] = {}
        for entry in history:
            show_id, show, episode = entry.remote_media_id, entry.show, entry.episode
            if entry.media_kind != "episode" or show_id is None or episode is None:
                continue

            document = shows.get(show_id)
            if document is None:
                document = EpisodeTrackingDocument(
                    show_id=show_id, tv_show_name=show.title if show else None
                )
                shows[show_id] = document

            key = episode_tracking_key(episode.season, episode.number)
            if key in document.episodes:
                continue
            document.episodes[key] = WatchedEpisode(
                episode_id=episode.tmdb_id or 0,
                tv_show_id=show_id,
                season_number=episode.season,
                episode_number=episode.number,
                watched_at=to_epoch_ms(entry.watched_at),
                episode_name=episode.title,
            )

        return list(shows.values())

    # Listen up, the same key can come back twice (Trakt bug or a re-rate between pages). The
    # LAST one wins, and the count is the number of distinct documents we write.
    def _plan_ratings(self, ratings: Iterable[RatingEntry]) -> list[RatingDocument]:
        documents: dict[str, RatingDocument] = {}
        for entry in ratings:
            document = self._rating_document(entry)
            if document is not None:
                documents[document.rating_key] = document
        return list(documents.values())

    @staticmethod
    def _rating_document(entry: RatingEntry) -> RatingDocument | None:
        # For episode ratings this is the SHOW id
        media_id = entry.remote_media_id
        if media_id is None:
            return None
        # rated_at is a real column (not JSON), so it stays a datetime
        rated_at = entry.rated_at

        if entry.media_kind == "movie":
            return RatingDocument(
                rating_key=movie_rating_key(media_id),
                media_type=MediaKind.MOVIE.value,
                rating=entry.rating,
                rated_at=rated_at,
                media_id=media_id,
                title=entry.movie.title if entry.movie else None,
            )

        show_title = entry.show.title if entry.show else None
        if entry.media_kind == "show":
            return RatingDocument(
                rating_key=show_rating_key(media_id),
                media_type=MediaKind.TV.value,
                rating=entry.rating,
                rated_at=rated_at,
                media_id=media_id,
                title=show_title,
            )

        if entry.media_kind == "episode" and entry.episode is not None:
            episode = entry.episode
            return RatingDocument(
                rating_key=episode_rating_key(media_id, episode.season, episode.number),
                media_type=MediaKind.EPISODE.value,
                rating=entry.rating,
                rated_at=rated_at,
                tv_show_id=media_id,
                tv_show_name=show_title,
                season_number=episode.season,
                episode_number=episode.number,
                episode_name=episode.title,
            )

        return None

    def _plan_watchlist(
        self, entries: Iterable[WatchlistEntry]
    ) -> AggregateListDocument:
        return AggregateListDocument(
            list_id=WATCHLIST_LIST_ID,
            name=WATCHLIST_LIST_NAME,
            items=_list_items(entries),
        )

    def _plan_custom_list(
        self,
        definition: ListDefinition,
        entries: Iterable[ListItemEntry],
        taken: set[str],
    ) -> AggregateListDocument:
        list_id = custom_list_id(definition.name, definition.slug)
        if list_id == FAVORITES_LIST_ID and list_id in taken:
            # Only the first "Favorites" list is THE favorites list, the rest stay custom
            list_id = slug_list_id(definition.slug)
        list_id = unique_list_id(list_id, taken)
        if list_id != custom_list_id(definition.name, definition.slug):
            logger.info(
                "Trakt list %r (%s) stored as %s to avoid an id clash",
                definition.name,
                definition.slug,
                list_id,
            )
        return AggregateListDocument(
            list_id=list_id,
            name=definition.name,
            items=_list_items(entries),
            is_custom=list_id != FAVORITES_LIST_ID,
        )


def _list_items(entries: Iterable[WatchlistEntry]) -> dict[str, dict[str, Any]]:
    """Key list entries by tmdb id. Movies and shows share one id space (later wins)."""
    items: dict[str, dict[str, Any]] = {}
    for entry in entries:
        media = entry.media
        if entry.media_kind not in ("movie", "show") or media is None:
            continue
        tmdb_id = entry.remote_media_id
        if tmdb_id is None:
            logger.debug("Skipping %s list entry without TMDB id: %s", entry.media_kind, media.title)
            continue

        item: dict[str, Any] = {"id": tmdb_id, "title": media.title, "poster_path": None}
        if entry.media_kind == "movie":
            item["media_type"] = MediaKind.MOVIE.value
            item["release_date"] = None
        else:
            item["media_type"] = MediaKind.TV.value
            item["first_air_date"] = None
        item["addedAt"] = to_epoch_ms(entry.listed_at)
        items[str(tmdb_id)] = item
    return items

