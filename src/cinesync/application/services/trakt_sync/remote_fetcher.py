"""Remote data fetcher - pulls everything one sync needs from Trakt."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from cinesync.domain.dtos import ListItemEntry, RemoteSnapshot
from cinesync.domain.exceptions import UnexpectedSyncFailure
from cinesync.domain.ports import ITraktClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RemoteDataFetcher:
    """Fetch a complete remote snapshot with bounded concurrency."""

    def __init__(
        self,
        client: ITraktClient,
        concurrency: int = 8,
        history_page_size: int = 1000,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._client = client
        self._concurrency = concurrency
        self._history_page_size = history_page_size

    # Hey future me - ALL OR NOTHING. If any single fetch fails, the whole snapshot fails and the
    # sync aborts before touching the store. Writing a partial snapshot would make the sweeper
    # delete everything in the category that failed to load! The semaphore bounds how many
    # requests hit Trakt at once (TRAKT_FETCH_CONCURRENCY), list items included.
    async def fetch(self, access_token: str) -> RemoteSnapshot:
        """Fetch history, ratings, watchlist and custom lists (with their items).

        Raises:
            UnexpectedSyncFailure: Wrapping the first fetch error
        """
        semaphore = asyncio.Semaphore(self._concurrency)
        client = self._client

        async def limited(call: Callable[[], Awaitable[T]]) -> T:
            async with semaphore:
                return await call()

        page_size = self._history_page_size
        snapshot = RemoteSnapshot()
        (
            snapshot.movie_history,
            snapshot.episode_history,
            snapshot.movie_ratings,
            snapshot.show_ratings,
            snapshot.episode_ratings,
            snapshot.movie_watchlist,
            snapshot.show_watchlist,
            snapshot.custom_lists,
        ) = await self._gather(
            limited(lambda: client.get_history(access_token, "movies", page_size)),
            limited(lambda: client.get_history(access_token, "episodes", page_size)),
            limited(lambda: client.get_ratings(access_token, "movies")),
            limited(lambda: client.get_ratings(access_token, "shows")),
            limited(lambda: client.get_ratings(access_token, "episodes")),
            limited(lambda: client.get_watchlist(access_token, "movies")),
            limited(lambda: client.get_watchlist(access_token, "shows")),
            limited(lambda: client.get_user_lists(access_token)),
        )

        def items_of(slug: str) -> Callable[[], Awaitable[list[ListItemEntry]]]:
            return lambda: client.get_list_items(access_token, slug)

        snapshot.list_items = list(
            await self._gather(
                *(limited(items_of(definition.slug)) for definition in snapshot.custom_lists)
            )
        )

        logger.debug("Fetched Trakt snapshot: %s", snapshot.counts())
        return snapshot

    @staticmethod
    async def _gather(*calls: Awaitable) -> list:  # type: ignore[type-arg]
        tasks = [asyncio.ensure_future(call) for call in calls]
        if not tasks:
            return []
        try:
            return list(await asyncio.gather(*tasks))
        except Exception as e:
            for task in tasks:
                task.cancel()
            # Let the siblings finish cancelling so their errors are retrieved, not leaked
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.warning("Trakt fetch failed: %s", e)
            raise UnexpectedSyncFailure(f"Fetching Trakt data failed: {e}") from e
