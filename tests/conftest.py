"""Shared fixtures.

Hey future me - every test that touches the database gets its OWN SQLite file under tmp_path.
Never :memory: here. The sync lock relies on SQLite's file locking between
separate connections, and :memory: gives every connection its own empty database.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest

from cinesync.config import Settings
from cinesync.config.settings import DatabaseSettings, SyncSettings, TraktSettings
from cinesync.infrastructure.persistence import Database
from support.store import FrozenClock
from support.trakt import FakeTraktClient


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway SQLite file and a fake Trakt host."""
    return Settings(
        database=DatabaseSettings(
            url=f"sqlite+aiosqlite:///{tmp_path / 'cinesync-test.db'}"
        ),
        trakt=TraktSettings(
            client_id="test-client-id",
            client_secret="test-client-secret",
            api_url="https://api.trakt.test",
        ),
        sync=SyncSettings(
            cooldown_seconds=300,
            lock_timeout_seconds=300,
            batch_max_operations=500,
            token_refresh_margin_seconds=60,
        ),
    )


@pytest.fixture
async def db(settings: Settings) -> AsyncGenerator[Database, None]:
    """Database with all tables created."""
    database = Database(settings)
    await database.create_tables()
    yield database
    await database.close()


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at 2026-01-01 12:00 UTC."""
    return FrozenClock()


@pytest.fixture
def fake_trakt() -> FakeTraktClient:
    """Empty remote Trakt account."""
    return FakeTraktClient()
