"""Trakt connection service - connection status and disconnect."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from cinesync.domain.exceptions import DomainException
from cinesync.domain.ports import ITraktClient
from cinesync.domain.value_objects import to_epoch_ms, utc_now
from cinesync.infrastructure.persistence import Database, UserRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TraktConnectionStatus:
    """What the settings page shows about the Trakt link."""

    connected: bool = False
    last_sync_at: int | None = None  # epoch ms
    connected_at: int | None = None  # epoch ms
    sync_in_progress: bool = False
    last_sync_result: dict[str, Any] | None = None


class TraktConnectionService:
    """Read and tear down a user's Trakt connection."""

    def __init__(
        self,
        db: Database,
        client: ITraktClient,
        lock_timeout: timedelta = timedelta(minutes=5),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._db = db
        self._client = client
        self._lock_timeout = lock_timeout
        self._clock = clock

    # Yo, status NEVER fails - it's polled by the UI and a broken status call must not break
    # the page. Any error is logged and reported as "not connected".
    async def get_status(self, user_id: str | None) -> TraktConnectionStatus:
        """Get the connection status of a user (disconnected on any error)."""
        if user_id is None:
            return TraktConnectionStatus()
        try:
            async with self._db.session_scope() as session:
                state = await UserRepository(session).get_sync_state(user_id)
        except Exception as e:
            logger.warning("Failed to load Trakt status for user %s: %s", user_id, e)
            return TraktConnectionStatus()

        if state is None:
            return TraktConnectionStatus()

        return TraktConnectionStatus(
            connected=state.connected,
            last_sync_at=to_epoch_ms(state.last_sync_at),
            connected_at=to_epoch_ms(state.connected_at),
            sync_in_progress=state.lock_is_held(self._clock(), self._lock_timeout),
            last_sync_result=state.last_sync_result,
        )

    # Hey future me - revocation is BEST EFFORT. If Trakt is down or the token is already dead,
    # we still forget the credentials locally; the user asked to disconnect and that's what
    # they get. Synced lists/ratings stay - they are the user's data now.
    async def disconnect(self, user_id: str) -> None:
        """Revoke the token at Trakt (best effort) and clear the local connection."""
        async with self._db.session_scope() as session:
            state = await UserRepository(session).get_sync_state(user_id)

        if state is None:
            return

        if isinstance(state.access_token, str) and state.access_token:
            try:
                await self._client.revoke_token(state.access_token)
            except DomainException as e:
                logger.warning("Failed to revoke Trakt token for user %s: %s", user_id, e)

        async with self._db.session_scope() as session:
            await UserRepository(session).clear_connection(user_id)
        logger.info("Trakt disconnected for user %s", user_id)
