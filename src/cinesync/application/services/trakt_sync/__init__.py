"""Trakt reconciliation engine."""

from cinesync.application.services.trakt_sync.planner import ReconciliationPlanner
from cinesync.application.services.trakt_sync.remote_fetcher import RemoteDataFetcher
from cinesync.application.services.trakt_sync.sweeper import (
    StaleRecordSweeper,
    SweepReport,
)
from cinesync.application.services.trakt_sync.sync_lock import (
    LockedSessionResolver,
    LockReleaseFinalizer,
)
from cinesync.application.services.trakt_sync.sync_service import TraktSyncService
from cinesync.application.services.trakt_sync.token_refresher import TokenRefresher

__all__ = [
    "LockReleaseFinalizer",
    "LockedSessionResolver",
    "ReconciliationPlanner",
    "RemoteDataFetcher",
    "StaleRecordSweeper",
    "SweepReport",
    "TokenRefresher",
    "TraktSyncService",
]
