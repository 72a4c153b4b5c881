"""Tests for TraktConnectionService and SessionStore."""

from datetime import timedelta

import pytest

from cinesync.application.services.session_store import SessionStore
from cinesync.application.services.trakt_connection_service import (
    TraktConnectionService,
)
from cinesync.domain.exceptions import ExternalServiceError
from cinesync.domain.value_objects import to_epoch_ms
from cinesync.infrastructure.persistence import Database, LibraryRepository
from support.store import FrozenClock, load_state, seed_list, seed_session, seed_user
from support.trakt import FakeTraktClient


@pytest.fixture
def connection_service(
    db: Database, fake_trakt: FakeTraktClient, clock: FrozenClock
) -> TraktConnectionService:
    return TraktConnectionService(
        db, fake_trakt, lock_timeout=timedelta(seconds=300), clock=clock
    )


class TestStatus:
    async def test_anonymous_is_disconnected(
        self, connection_service: TraktConnectionService
    ) -> None:
        status = await connection_service.get_status(None)
        assert status.connected is False
        assert status.last_sync_at is None

    async def test_unknown_user_is_disconnected(
        self, connection_service: TraktConnectionService
    ) -> None:
        assert (await connection_service.get_status("ghost")).connected is False

    async def test_connected_user(
        self,
        db: Database,
        connection_service: TraktConnectionService,
        clock: FrozenClock,
    ) -> None:
        last_sync = clock.now - timedelta(hours=2)
        await seed_user(
            db,
            last_sync_at=last_sync,
            last_sync_result={"success": True, "movies": 4},
            sync_in_progress_at=clock.now - timedelta(seconds=5),
        )

        status = await connection_service.get_status("user-1")

        assert status.connected is True
        assert status.last_sync_at == to_epoch_ms(last_sync)
        assert status.connected_at is not None
        assert status.sync_in_progress is True
        assert status.last_sync_result == {"success": True, "movies": 4}

    async def test_stale_lock_is_not_in_progress(
        self,
        db: Database,
        connection_service: TraktConnectionService,
        clock: FrozenClock,
    ) -> None:
        await seed_user(db, sync_in_progress_at=clock.now - timedelta(seconds=301))
        assert (await connection_service.get_status("user-1")).sync_in_progress is False

    async def test_database_errors_read_as_disconnected(
        self, db: Database, connection_service: TraktConnectionService
    ) -> None:
        await db.drop_tables()
        assert (await connection_service.get_status("user-1")).connected is False


class TestDisconnect:
    async def test_revokes_and_clears(
        self,
        db: Database,
        connection_service: TraktConnectionService,
        fake_trakt: FakeTraktClient,
    ) -> None:
        await seed_user(db)
        await seed_list(db, "horror-night")

        await connection_service.disconnect("user-1")

        assert fake_trakt.revoked == ["access-1"]
        state = await load_state(db)
        assert state is not None
        assert state.connected is False
        assert state.access_token is None
        # Synced data stays with the user
        async with db.session_scope() as session:
            assert await LibraryRepository(session).get_list("user-1", "horror-night")

    async def test_revoke_failure_still_disconnects(
        self,
        db: Database,
        connection_service: TraktConnectionService,
        fake_trakt: FakeTraktClient,
    ) -> None:
        await seed_user(db)
        fake_trakt.revoke_error = ExternalServiceError("Trakt down", status_code=503)

        await connection_service.disconnect("user-1")

        state = await load_state(db)
        assert state is not None
        assert state.connected is False

    async def test_unknown_user_is_a_no_op(
        self, connection_service: TraktConnectionService, fake_trakt: FakeTraktClient
    ) -> None:
        await connection_service.disconnect("ghost")
        assert fake_trakt.revoked == []


class TestSessionStore:
    async def test_resolves_sessions(self, db: Database, clock: FrozenClock) -> None:
        await seed_user(db)
        await seed_session(db, "live", expires_at=clock.now + timedelta(hours=1))
        await seed_session(db, "dead", expires_at=clock.now - timedelta(hours=1))
        store = SessionStore(db, clock=clock)

        assert await store.resolve_user_id("live") == "user-1"
        assert await store.resolve_user_id("dead") is None
        assert await store.resolve_user_id("unknown") is None
        assert await store.resolve_user_id(None) is None
        assert await store.resolve_user_id("") is None
