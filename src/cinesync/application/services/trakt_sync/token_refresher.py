"""Token refresher - keeps the Trakt credential pair usable for one sync."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from cinesync.domain.entities import SyncLease, TokenPair
from cinesync.domain.exceptions import TokenRefreshException
from cinesync.domain.ports import ITraktClient
from cinesync.domain.value_objects import parse_instant, utc_now
from cinesync.infrastructure.persistence import Database, UserRepository

logger = logging.getLogger(__name__)


class TokenRefresher:
    """Refresh the access token when it is expired, about to expire, or of unknown expiry."""

    def __init__(
        self,
        db: Database,
        client: ITraktClient,
        margin: timedelta = timedelta(seconds=60),
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._db = db
        self._client = client
        self._margin = margin
        self._clock = clock

    def needs_refresh(self, expires_at: object) -> bool:
        """True if the expiry is unknown/unparsable or within the safety margin."""
        expiry = parse_instant(expires_at)
        if expiry is None:
            return True
        return self._clock() > expiry - self._margin

    # Hey future me - a refresh ROTATES the refresh token at Trakt. The old one is dead the
    # moment Trakt answers, so the new pair MUST be persisted right away, before any fetch.
    # If we crash after that, the next sync finds a fresh pair. If we persisted later and
    # crashed in between, the user would have to reconnect.
    async def ensure_fresh(self, lease: SyncLease) -> TokenPair:
        """Return a usable token pair, refreshing and persisting it if needed.

        Raises:
            TokenRefreshException: If the refresh is rejected or can't be completed
        """
        if not self.needs_refresh(lease.token_expires_at):
            return TokenPair(
                access_token=lease.access_token,
                refresh_token=lease.refresh_token,
                expires_at=lease.token_expires_at,
            )

        logger.info("Refreshing Trakt token for user %s", lease.user_id)
        try:
            grant = await self._client.refresh_token(lease.refresh_token)
            expires_at = parse_instant(grant.expires_at_epoch)
            async with self._db.session_scope() as session:
                await UserRepository(session).update_tokens(
                    lease.user_id, grant.access_token, grant.refresh_token, expires_at
                )
        except TokenRefreshException:
            logger.warning("Trakt token refresh rejected for user %s", lease.user_id)
            raise
        except Exception as e:
            raise TokenRefreshException(f"Token refresh failed: {e}") from e

        logger.info(
            "Trakt token refreshed for user %s (expires %s)", lease.user_id, expires_at
        )
        return TokenPair(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            expires_at=expires_at,
        )
