"""Tests for LockedSessionResolver and LockReleaseFinalizer.

Hey future me - these run against a real SQLite file. The concurrency test only means something
because two acquires really race on two connections.
"""

import asyncio
from datetime import timedelta
from unittest.mock import patch

import pytest

from cinesync.application.services.trakt_sync import (
    LockedSessionResolver,
    LockReleaseFinalizer,
)
from cinesync.domain.entities import SyncLease, SyncResult
from cinesync.domain.exceptions import (
    NotConnectedError,
    ReauthRequiredError,
    SyncInProgressError,
    SyncRateLimitedError,
)
from cinesync.infrastructure.persistence import Database
from support.store import FrozenClock, load_state, seed_user

FIVE_MINUTES = timedelta(seconds=300)


@pytest.fixture
def resolver(db: Database, clock: FrozenClock) -> LockedSessionResolver:
    return LockedSessionResolver(
        db, cooldown=FIVE_MINUTES, lock_timeout=FIVE_MINUTES, clock=clock
    )


async def lock_of(db: Database):
    state = await load_state(db)
    assert state is not None
    return state.sync_in_progress_at


class TestAcquire:
    async def test_acquires_and_returns_credentials(
        self, db: Database, resolver: LockedSessionResolver, clock: FrozenClock
    ) -> None:
        await seed_user(db)

        lease = await resolver.acquire("user-1")

        assert lease.user_id == "user-1"
        assert lease.acquired_at == clock.now
        assert (lease.access_token, lease.refresh_token) == ("access-1", "refresh-1")
        assert lease.token_expires_at is not None
        state = await load_state(db)
        assert state is not None
        assert state.lock_is_held(clock.now, FIVE_MINUTES)

    async def test_unknown_user_is_not_connected(
        self, resolver: LockedSessionResolver
    ) -> None:
        with pytest.raises(NotConnectedError):
            await resolver.acquire("ghost")

    async def test_disconnected_user(
        self, db: Database, resolver: LockedSessionResolver
    ) -> None:
        await seed_user(db, connected=False)
        with pytest.raises(NotConnectedError):
            await resolver.acquire("user-1")
        assert await lock_of(db) is None

    async def test_missing_credentials_require_reauth(
        self, db: Database, resolver: LockedSessionResolver
    ) -> None:
        await seed_user(db, refresh_token=None)
        with pytest.raises(ReauthRequiredError):
            await resolver.acquire("user-1")
        assert await lock_of(db) is None

    async def test_cooldown_reports_remaining_seconds(
        self, db: Database, resolver: LockedSessionResolver, clock: FrozenClock
    ) -> None:
        await seed_user(db, last_sync_at=clock.now - timedelta(seconds=120))

        with pytest.raises(SyncRateLimitedError) as exc_info:
            await resolver.acquire("user-1")

        assert exc_info.value.retry_after_seconds == 180
        assert await lock_of(db) is None

    async def test_cooldown_elapsed(
        self, db: Database, resolver: LockedSessionResolver, clock: FrozenClock
    ) -> None:
        await seed_user(db, last_sync_at=clock.now - timedelta(seconds=300))
        await resolver.acquire("user-1")

    async def test_live_lock_is_in_progress(
        self, db: Database, resolver: LockedSessionResolver, clock: FrozenClock
    ) -> None:
        locked_at = clock.now - timedelta(seconds=1)
        await seed_user(db, sync_in_progress_at=locked_at)

        with pytest.raises(SyncInProgressError):
            await resolver.acquire("user-1")

        state = await load_state(db)
        assert state is not None
        assert state.lock_is_held(clock.now, FIVE_MINUTES)

    async def test_stale_lock_is_taken_over(
        self, db: Database, resolver: LockedSessionResolver, clock: FrozenClock
    ) -> None:
        await seed_user(db, sync_in_progress_at=clock.now - timedelta(seconds=301))

        lease = await resolver.acquire("user-1")

        assert lease.acquired_at == clock.now
        state = await load_state(db)
        assert state is not None
        # Overwritten with the new acquire time, not just cleared
        assert state.lock_is_held(clock.now, FIVE_MINUTES)
        assert not state.lock_is_held(clock.now + FIVE_MINUTES, FIVE_MINUTES)

    async def test_compare_and_set_loss_is_in_progress(
        self, db: Database, resolver: LockedSessionResolver
    ) -> None:
        """A lock written between our read and our write still yields a clean rejection."""
        await seed_user(db)
        with patch(
            "cinesync.application.services.trakt_sync.sync_lock.UserRepository.try_acquire_lock",
            return_value=False,
        ):
            with pytest.raises(SyncInProgressError):
                await resolver.acquire("user-1")

    async def test_concurrent_acquires_exactly_one_wins(
        self, db: Database, resolver: LockedSessionResolver
    ) -> None:
        await seed_user(db)

        results = await asyncio.gather(
            resolver.acquire("user-1"),
            resolver.acquire("user-1"),
            return_exceptions=True,
        )

        leases = [r for r in results if isinstance(r, SyncLease)]
        rejections = [r for r in results if isinstance(r, SyncInProgressError)]
        assert len(leases) == 1
        assert len(rejections) == 1


class TestFinalizer:
    async def test_success_records_result_and_unlocks(
        self, db: Database, resolver: LockedSessionResolver, clock: FrozenClock
    ) -> None:
        await seed_user(db)
        lease = await resolver.acquire("user-1")
        clock.advance(seconds=42)

        await LockReleaseFinalizer(db, clock=clock).on_success(
            lease, SyncResult(movies=2, shows=1, episodes=2)
        )

        state = await load_state(db)
        assert state is not None
        assert state.sync_in_progress_at is None
        assert state.last_sync_result is not None
        assert state.last_sync_result["movies"] == 2
        # Cooldown counts from completion time
        assert state.retry_after_seconds(clock.now, FIVE_MINUTES) == 300

    async def test_failure_only_clears_lock(
        self, db: Database, resolver: LockedSessionResolver, clock: FrozenClock
    ) -> None:
        await seed_user(db)
        lease = await resolver.acquire("user-1")

        await LockReleaseFinalizer(db, clock=clock).on_failure(lease)

        state = await load_state(db)
        assert state is not None
        assert state.sync_in_progress_at is None
        assert state.last_sync_at is None
        assert state.last_sync_result is None

    async def test_failure_path_never_raises(
        self, db: Database, resolver: LockedSessionResolver, clock: FrozenClock
    ) -> None:
        await seed_user(db)
        lease = await resolver.acquire("user-1")

        with patch(
            "cinesync.application.services.trakt_sync.sync_lock.UserRepository.release_lock",
            side_effect=RuntimeError("db gone"),
        ):
            await LockReleaseFinalizer(db, clock=clock).on_failure(lease)

        # Lock stays, the timeout will void it
        assert await lock_of(db) is not None
