# Hey future me - this is THE Trakt sync! One call = one full reconciliation of a user's Trakt
# account into our tables. The pipeline is strictly sequential:
#
#   LockedSessionResolver.acquire()     → lock taken (or NotConnected/Reauth/RateLimited/InProgress)
#   TokenRefresher.ensure_fresh()       → usable access token (refreshed + persisted if needed)
#   RemoteDataFetcher.fetch()           → full snapshot, all-or-nothing
#   ReconciliationPlanner.plan()        → target documents + counts
#   StaleRecordSweeper.sweep()          → deletes committed BEFORE any fresh write
#   _write_plan()                       → fresh writes in 500-op chunks
#   LockReleaseFinalizer.on_success()   → lastSyncAt + result, lock cleared
#
# Anything failing after acquire() goes through on_failure() (lock cleared, errors swallowed)
# and THEN re-raises. Domain errors keep their type, everything else becomes
# UnexpectedSyncFailure. No retry anywhere - the user clicks "Sync" again.
"""Trakt sync service - orchestrates one reconciliation run."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from cinesync.config import Settings
from cinesync.domain.entities import SyncPlan, SyncResult
from cinesync.domain.exceptions import DomainException, UnexpectedSyncFailure
from cinesync.domain.ports import ITraktClient
from cinesync.domain.value_objects import utc_now
from cinesync.infrastructure.persistence import (
    ChunkedBatchWriter,
    Database,
    DocumentRef,
    EpisodeTrackingModel,
    RatingModel,
    UserListModel,
)

from .planner import ReconciliationPlanner
from .remote_fetcher import RemoteDataFetcher
from .sweeper import StaleRecordSweeper
from .sync_lock import LockedSessionResolver, LockReleaseFinalizer
from .token_refresher import TokenRefresher

logger = logging.getLogger(__name__)


class TraktSyncService:
    """Run a full Trakt → local reconciliation for one user."""

    def __init__(
        self,
        db: Database,
        client: ITraktClient,
        settings: Settings,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the sync pipeline.

        Args:
            db: Database (each step opens its own transactions)
            client: Trakt API port
            settings: Application settings (sync + trakt groups are used)
            clock: Injected time source, utc_now in production
        """
        sync = settings.sync
        self._db = db
        self._clock = clock
        self._max_operations = sync.batch_max_operations

        self._resolver = LockedSessionResolver(
            db,
            cooldown=timedelta(seconds=sync.cooldown_seconds),
            lock_timeout=timedelta(seconds=sync.lock_timeout_seconds),
            clock=clock,
        )
        self._refresher = TokenRefresher(
            db,
            client,
            margin=timedelta(seconds=sync.token_refresh_margin_seconds),
            clock=clock,
        )
        self._fetcher = RemoteDataFetcher(
            client,
            concurrency=settings.trakt.fetch_concurrency,
            history_page_size=settings.trakt.history_page_size,
        )
        self._planner = ReconciliationPlanner()
        self._sweeper = StaleRecordSweeper(db, max_operations=self._max_operations)
        self._finalizer = LockReleaseFinalizer(db, clock=clock)

    async def run(self, user_id: str) -> SyncResult:
        """Sync the user's Trakt account into local storage.

        Returns:
            Per-category counts of the synced state

        Raises:
            NotConnectedError, ReauthRequiredError, SyncRateLimitedError,
            SyncInProgressError: Rejected before the lock was taken
            TokenRefreshException: Token refresh failed (lock released)
            UnexpectedSyncFailure: Any other failure (lock released)
        """
        lease = await self._resolver.acquire(user_id)

        try:
            tokens = await self._refresher.ensure_fresh(lease)
            snapshot = await self._fetcher.fetch(tokens.access_token)
            plan = self._planner.plan(snapshot)
            sweep = await self._sweeper.sweep(user_id, plan)
            commits = await self._write_plan(user_id, plan)
            await self._finalizer.on_success(lease, plan.result)
        except DomainException as e:
            logger.error("Trakt sync failed for user %s: %s", user_id, e.message)
            await self._finalizer.on_failure(lease)
            raise
        except Exception as e:
            logger.exception("Trakt sync crashed for user %s", user_id)
            await self._finalizer.on_failure(lease)
            raise UnexpectedSyncFailure(f"Sync failed: {e}") from e

        logger.info(
            "Trakt sync completed for user %s: %s (swept %d, %d write commits)",
            user_id,
            plan.result.as_dict(),
            sweep.total,
            commits,
        )
        return plan.result

    # Listen up, every document in the plan is written, even if unchanged. A "set" overwrites
    # the whole row, so nothing from a previous sync leaks through.
    async def _write_plan(self, user_id: str, plan: SyncPlan) -> int:
        now = self._clock()
        writer = ChunkedBatchWriter(self._db, self._max_operations)

        for document in plan.lists:
            writer.set(
                DocumentRef(UserListModel, {"user_id": user_id, "list_id": document.list_id}),
                {
                    "name": document.name,
                    "items": document.items,
                    "is_custom": document.is_custom,
                    "synced_from_remote": document.synced_from_remote,
                    "updated_at": now,
                },
            )
            await writer.commit_if_needed()

        for tracking in plan.episode_tracking:
            writer.set(
                DocumentRef(
                    EpisodeTrackingModel,
                    {"user_id": user_id, "show_id": tracking.document_id},
                ),
                {
                    "episodes": {
                        key: episode.to_document()
                        for key, episode in tracking.episodes.items()
                    },
                    "tv_show_name": tracking.tv_show_name,
                    "poster_path": tracking.poster_path,
                    "last_updated": now,
                },
            )
            await writer.commit_if_needed()

        for rating in plan.ratings:
            writer.set(
                DocumentRef(RatingModel, {"user_id": user_id, "rating_key": rating.rating_key}),
                {
                    "media_type": rating.media_type,
                    "rating": rating.rating,
                    "media_id": rating.media_id,
                    "title": rating.title,
                    "poster_path": rating.poster_path,
                    "release_date": rating.release_date,
                    "rated_at": rating.rated_at,
                    "tv_show_id": rating.tv_show_id,
                    "tv_show_name": rating.tv_show_name,
                    "season_number": rating.season_number,
                    "episode_number": rating.episode_number,
                    "episode_name": rating.episode_name,
                },
            )
            await writer.commit_if_needed()

        await writer.commit()
        return writer.commits_made
