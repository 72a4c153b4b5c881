"""Tests for ReconciliationPlanner.

Hey future me - the planner is pure, so every mapping/dedup rule is pinned down here with plain
DTOs and no database.
"""

from datetime import UTC, datetime

from cinesync.application.services.trakt_sync import ReconciliationPlanner
from cinesync.domain.dtos import ListDefinition, RemoteSnapshot
from cinesync.domain.entities import AggregateListDocument, SyncPlan
from support.trakt import (
    episode_play,
    episode_rating,
    list_movie,
    list_show,
    movie_play,
    movie_rating,
    show_rating,
    watchlist_movie,
    watchlist_show,
)


def plan_for(snapshot: RemoteSnapshot) -> SyncPlan:
    return ReconciliationPlanner().plan(snapshot)


def list_by_id(plan: SyncPlan, list_id: str) -> AggregateListDocument:
    return next(doc for doc in plan.lists if doc.list_id == list_id)


class TestHistory:
    def test_movies_and_episodes_scenario(self) -> None:
        """2 distinct movies (one watched twice) + one show with 2 episodes."""
        snapshot = RemoteSnapshot(
            movie_history=[
                movie_play(550, "Fight Club", "2025-06-02T20:00:00.000Z"),
                movie_play(550, "Fight Club", "2024-01-01T20:00:00.000Z"),
                movie_play(13, "Forrest Gump"),
            ],
            episode_history=[
                episode_play(1396, 1, 1, "Breaking Bad", episode_tmdb_id=62085),
                episode_play(1396, 1, 2, "Breaking Bad", episode_tmdb_id=62086),
            ],
        )

        plan = plan_for(snapshot)

        assert plan.result.as_dict() == {
            "success": True,
            "movies": 2,
            "shows": 1,
            "episodes": 2,
            "ratings": 0,
            "lists": 0,
            "favorites": 0,
            "watchlist": 0,
        }
        already_watched = list_by_id(plan, "already-watched")
        assert already_watched.name == "Already Watched"
        assert set(already_watched.items) == {"550", "13"}

    def test_first_occurrence_wins_for_movies(self) -> None:
        """History is newest first, so the first play is the latest one."""
        plan = plan_for(
            RemoteSnapshot(
                movie_history=[
                    movie_play(550, watched_at="2025-06-02T00:00:00.000Z"),
                    movie_play(550, watched_at="2020-01-01T00:00:00.000Z"),
                ]
            )
        )
        item = list_by_id(plan, "already-watched").items["550"]
        assert item["addedAt"] == 1_748_822_400_000
        assert item["media_type"] == "movie"
        assert item["id"] == 550

    def test_episodes_grouped_per_show_with_first_occurrence(self) -> None:
        plan = plan_for(
            RemoteSnapshot(
                episode_history=[
                    episode_play(1, 1, 1, episode_title="newest", watched_at="2025-02-01T00:00:00Z"),
                    episode_play(1, 1, 1, episode_title="older", watched_at="2025-01-01T00:00:00Z"),
                    episode_play(2, 3, 4),
                ]
            )
        )

        assert plan.result.shows == 2
        assert plan.result.episodes == 2
        show_one = next(doc for doc in plan.episode_tracking if doc.show_id == 1)
        assert show_one.document_id == "1"
        assert list(show_one.episodes) == ["1_1"]
        assert show_one.episodes["1_1"].episode_name == "newest"
        # No episode TMDB id → 0
        assert show_one.episodes["1_1"].episode_id == 0

    def test_records_without_tmdb_id_are_skipped(self) -> None:
        plan = plan_for(
            RemoteSnapshot(
                movie_history=[movie_play(None)],
                episode_history=[episode_play(None, 1, 1)],
                movie_ratings=[movie_rating(None, 5)],
                movie_watchlist=[watchlist_movie(None)],
            )
        )
        assert plan.result.movies == 0
        assert plan.result.shows == 0
        assert plan.result.ratings == 0
        assert plan.result.watchlist == 0


class TestRatings:
    def test_rating_keys_per_kind(self) -> None:
        plan = plan_for(
            RemoteSnapshot(
                movie_ratings=[movie_rating(550, 9)],
                show_ratings=[show_rating(1396, 10)],
                episode_ratings=[episode_rating(1396, 1, 4, 8)],
            )
        )
        assert plan.fresh_rating_keys == {"movie-550", "tv-1396", "episode-1396-1-4"}
        episode = next(r for r in plan.ratings if r.media_type == "episode")
        assert episode.tv_show_id == 1396
        assert (episode.season_number, episode.episode_number) == (1, 4)
        assert plan.result.ratings == 3

    def test_duplicate_keys_last_wins_and_count_unique(self) -> None:
        plan = plan_for(
            RemoteSnapshot(movie_ratings=[movie_rating(550, 6), movie_rating(550, 9)])
        )
        assert plan.result.ratings == 1
        assert plan.ratings[0].rating == 9

    def test_rated_at_keeps_early_dates(self) -> None:
        """Pre-1973 instants must not be squeezed through epoch numbers."""
        plan = plan_for(
            RemoteSnapshot(
                movie_ratings=[movie_rating(550, 8, rated_at="1970-01-02T00:00:00Z")]
            )
        )
        assert plan.ratings[0].rated_at == datetime(1970, 1, 2, tzinfo=UTC)


class TestLists:
    def test_default_lists_are_always_planned(self) -> None:
        """Empty upstream still produces (empty) default lists so they get cleared."""
        plan = plan_for(RemoteSnapshot())
        assert plan.fresh_list_ids == {"already-watched", "watchlist"}
        assert list_by_id(plan, "watchlist").items == {}
        assert list_by_id(plan, "watchlist").name == "Should Watch"

    def test_watchlist_merges_movies_and_shows(self) -> None:
        plan = plan_for(
            RemoteSnapshot(
                movie_watchlist=[watchlist_movie(550)],
                show_watchlist=[watchlist_show(1396)],
            )
        )
        watchlist = list_by_id(plan, "watchlist")
        assert plan.result.watchlist == 2
        assert watchlist.items["550"]["media_type"] == "movie"
        assert "release_date" in watchlist.items["550"]
        assert watchlist.items["1396"]["media_type"] == "tv"
        assert "first_air_date" in watchlist.items["1396"]

    def test_custom_lists_and_favorites(self) -> None:
        plan = plan_for(
            RemoteSnapshot(
                custom_lists=[
                    ListDefinition(name="Horror Night", slug="horror-night"),
                    ListDefinition(name="Favorites", slug="favorites"),
                    ListDefinition(name="My Watchlist Copy", slug="watchlist"),
                ],
                list_items=[
                    [list_movie(1), list_show(2)],
                    [list_movie(3), list_movie(4), list_movie(5)],
                    [list_movie(6)],
                ],
            )
        )

        assert plan.result.lists == 2
        assert plan.result.favorites == 3
        assert list_by_id(plan, "horror-night").is_custom is True
        assert list_by_id(plan, "favorites").is_custom is False
        # A reserved slug can't clobber the real watchlist
        assert set(list_by_id(plan, "custom-watchlist").items) == {"6"}
        assert list_by_id(plan, "watchlist").items == {}
        assert all(doc.synced_from_remote for doc in plan.lists)

    def test_clashing_list_ids_are_suffixed(self) -> None:
        """A remapped reserved slug and a real "custom-watchlist" slug both survive."""
        plan = plan_for(
            RemoteSnapshot(
                custom_lists=[
                    ListDefinition(name="My Watchlist", slug="watchlist"),
                    ListDefinition(name="Other", slug="custom-watchlist"),
                ],
                list_items=[[list_movie(1)], [list_movie(2)]],
            )
        )

        custom = [doc for doc in plan.lists if doc.is_custom]
        assert plan.result.lists == len(custom) == 2
        assert set(list_by_id(plan, "custom-watchlist").items) == {"1"}
        assert set(list_by_id(plan, "custom-watchlist-2").items) == {"2"}
        assert len(plan.fresh_list_ids) == len(plan.lists)

    def test_second_favorites_list_stays_custom(self) -> None:
        plan = plan_for(
            RemoteSnapshot(
                custom_lists=[
                    ListDefinition(name="Favorites", slug="favorites"),
                    ListDefinition(name="favorites", slug="favorites-1"),
                ],
                list_items=[[list_movie(1), list_movie(2)], [list_movie(3)]],
            )
        )

        assert plan.result.favorites == 2
        assert plan.result.lists == 1
        assert set(list_by_id(plan, "favorites").items) == {"1", "2"}
        assert list_by_id(plan, "favorites-1").is_custom is True
