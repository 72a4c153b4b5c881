"""Stale record sweeper - mark-and-sweep deletion of documents gone upstream."""

import logging
from dataclasses import dataclass

from cinesync.domain.entities import SyncPlan
from cinesync.infrastructure.persistence import (
    ChunkedBatchWriter,
    Database,
    DocumentRef,
    EpisodeTrackingModel,
    LibraryRepository,
    RatingModel,
    UserListModel,
)
from cinesync.infrastructure.persistence.batch_utils import DEFAULT_MAX_OPERATIONS

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """How many stored documents were deleted per sub-collection."""

    ratings: int = 0
    shows: int = 0
    lists: int = 0

    @property
    def total(self) -> int:
        return self.ratings + self.shows + self.lists


# Hey future me - ORDER MATTERS here! sweep() must be awaited to completion BEFORE any fresh
# write is queued. The deletes run in their own writer and are fully committed when sweep()
# returns, so a delete can never land after a fresh write of the same key.
#
# What gets swept:
# - ratings: every stored key not in the fresh key set
# - episode tracking: every stored show not in the fresh show set
# - lists: only lists a previous sync created (synced_from_remote) and that vanished upstream.
#   already-watched and watchlist are always in the plan, so they are overwritten, never swept.
class StaleRecordSweeper:
    """Delete stored documents whose key is absent from the fresh remote data."""

    def __init__(self, db: Database, max_operations: int = DEFAULT_MAX_OPERATIONS) -> None:
        self._db = db
        self._max_operations = max_operations

    async def sweep(self, user_id: str, plan: SyncPlan) -> SweepReport:
        """Delete every stale rating, episode-tracking and synced list document of the user."""
        async with self._db.session_scope() as session:
            repo = LibraryRepository(session)
            stored_rating_keys = await repo.list_rating_keys(user_id)
            stored_show_ids = await repo.list_tracked_show_ids(user_id)
            stored_list_ids = await repo.list_synced_list_ids(user_id)

        stale_ratings = sorted(stored_rating_keys - plan.fresh_rating_keys)
        stale_shows = sorted(stored_show_ids - plan.fresh_show_ids)
        stale_lists = sorted(stored_list_ids - plan.fresh_list_ids)

        writer = ChunkedBatchWriter(self._db, self._max_operations)
        for rating_key in stale_ratings:
            writer.delete(
                DocumentRef(RatingModel, {"user_id": user_id, "rating_key": rating_key})
            )
            await writer.commit_if_needed()
        for show_id in stale_shows:
            writer.delete(
                DocumentRef(EpisodeTrackingModel, {"user_id": user_id, "show_id": show_id})
            )
            await writer.commit_if_needed()
        for list_id in stale_lists:
            writer.delete(
                DocumentRef(UserListModel, {"user_id": user_id, "list_id": list_id})
            )
            await writer.commit_if_needed()
        await writer.commit()

        report = SweepReport(
            ratings=len(stale_ratings), shows=len(stale_shows), lists=len(stale_lists)
        )
        if report.total:
            logger.info(
                "Swept %d stale documents for user %s (ratings=%d, shows=%d, lists=%d)",
                report.total,
                user_id,
                report.ratings,
                report.shows,
                report.lists,
            )
        return report
