"""Sync lock acquisition and release.

The lock is the sync_in_progress_at column of the user's row. LockedSessionResolver is the
only writer that sets it, LockReleaseFinalizer the only one that clears it. A lock older
than the lock timeout is void (crashed worker), so the next acquire simply takes it over.

    Unlocked ──acquire()──> Locked ──on_success()/on_failure()──> Unlocked
                               └──── age >= lock timeout ─────────> (void, re-acquirable)
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from cinesync.domain.entities import SyncLease, SyncResult
from cinesync.domain.exceptions import (
    NotConnectedError,
    ReauthRequiredError,
    SyncInProgressError,
    SyncRateLimitedError,
)
from cinesync.domain.value_objects import parse_instant, utc_now
from cinesync.infrastructure.persistence import Database, UserRepository

logger = logging.getLogger(__name__)


class LockedSessionResolver:
    """Validate a user's sync eligibility and acquire the sync lock atomically."""

    def __init__(
        self,
        db: Database,
        cooldown: timedelta = timedelta(minutes=5),
        lock_timeout: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._db = db
        self._cooldown = cooldown
        self._lock_timeout = lock_timeout
        self._clock = clock

    # Hey future me - EVERYTHING below happens in ONE transaction, that's the whole point.
    # claim_row() grabs the write lock first, so a second concurrent acquire waits right there
    # until we commit, then reads OUR lock timestamp and gets SyncInProgress. Every rejection
    # raises inside session_scope(), which rolls back - a rejected request writes nothing.
    # The compare-and-set in try_acquire_lock() is belt AND braces for stores where the claim
    # doesn't serialize readers.
    async def acquire(self, user_id: str) -> SyncLease:
        """Acquire the sync lock for a user.

        Returns:
            Lease carrying the credentials loaded in the same transaction

        Raises:
            NotConnectedError: No linked Trakt account (or unknown user)
            ReauthRequiredError: Linked, but credentials missing/malformed
            SyncRateLimitedError: Last successful sync is within the cooldown
            SyncInProgressError: Another sync holds a live lock
        """
        async with self._db.session_scope() as session:
            repo = UserRepository(session)

            if not await repo.claim_row(user_id):
                logger.warning("Sync rejected for unknown user %s", user_id)
                raise NotConnectedError()

            # Read the clock AFTER the claim - we may have waited for another acquirer
            now = self._clock()
            state = await repo.get_sync_state(user_id)
            if state is None or not state.connected:
                logger.info("Sync rejected for user %s: not connected", user_id)
                raise NotConnectedError()

            if not state.has_credentials():
                logger.warning("Sync rejected for user %s: credentials missing", user_id)
                raise ReauthRequiredError()

            retry_after = state.retry_after_seconds(now, self._cooldown)
            if retry_after is not None:
                logger.info(
                    "Sync rejected for user %s: cooldown active, retry after %ds",
                    user_id,
                    retry_after,
                )
                raise SyncRateLimitedError(retry_after)

            if state.lock_is_held(now, self._lock_timeout):
                logger.info("Sync rejected for user %s: already in progress", user_id)
                raise SyncInProgressError()

            if not await repo.try_acquire_lock(user_id, now, self._lock_timeout):
                logger.info("Sync rejected for user %s: lock taken concurrently", user_id)
                raise SyncInProgressError()

        if state.sync_in_progress_at is not None:
            logger.warning(
                "Took over stale sync lock for user %s (locked since %s)",
                user_id,
                parse_instant(state.sync_in_progress_at),
            )
        logger.info("Sync lock acquired for user %s", user_id)

        return SyncLease(
            user_id=user_id,
            acquired_at=now,
            access_token=state.access_token,
            refresh_token=state.refresh_token,
            token_expires_at=parse_instant(state.token_expires_at),
        )


class LockReleaseFinalizer:
    """Release the sync lock on both the success and the failure path."""

    def __init__(
        self, db: Database, clock: Callable[[], datetime] = utc_now
    ) -> None:
        self._db = db
        self._clock = clock

    async def on_success(self, lease: SyncLease, result: SyncResult) -> None:
        """Record last-sync time and result, and clear the lock, in one update."""
        async with self._db.session_scope() as session:
            await UserRepository(session).finalize_success(
                lease.user_id, self._clock(), result.as_dict()
            )
        logger.debug("Sync lock released for user %s (success)", lease.user_id)

    # Listen up - this must NEVER raise. It runs while another exception is already on its way
    # to the caller, and that exception is the one the user should see. If we can't even clear
    # the lock, the lock timeout heals it.
    async def on_failure(self, lease: SyncLease) -> None:
        """Clear the lock only. Failures are logged and swallowed."""
        try:
            async with self._db.session_scope() as session:
                await UserRepository(session).release_lock(lease.user_id)
        except Exception:
            logger.exception(
                "Failed to release sync lock for user %s - it expires on its own",
                lease.user_id,
            )
            return
        logger.debug("Sync lock released for user %s (failure)", lease.user_id)
