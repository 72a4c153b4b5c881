"""Session store - resolves browser/API sessions to users."""

import logging
from collections.abc import Callable
from datetime import datetime

from cinesync.domain.value_objects import utc_now
from cinesync.infrastructure.persistence import Database, SessionRepository

logger = logging.getLogger(__name__)


# Hey future me - session ISSUANCE (login, OAuth) lives outside this service. We only answer
# "which user does this session id belong to?". Unknown and expired sessions both give None,
# the API layer turns that into 401.
class SessionStore:
    """Database-backed lookup of session ids."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = utc_now) -> None:
        self._db = db
        self._clock = clock

    async def resolve_user_id(self, session_id: str | None) -> str | None:
        """Get the user id of a session, or None if missing, unknown or expired."""
        if not session_id:
            return None
        async with self._db.session_scope() as session:
            user_id = await SessionRepository(session).get_user_id(
                session_id, self._clock()
            )
        if user_id is None:
            logger.debug("Unknown or expired session presented")
        return user_id
