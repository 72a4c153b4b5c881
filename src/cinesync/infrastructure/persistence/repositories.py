"""Repository implementations for the sync engine's stored state."""

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from cinesync.domain.entities import UserSyncState

from .models import (
    EpisodeTrackingModel,
    RatingModel,
    UserListModel,
    UserModel,
    UserSessionModel,
    ensure_utc_aware,
)


class UserRepository:
    """SQLAlchemy repository for the UserSyncState slice of the users table."""

    # Hey future me, same rule as every repo here: the session is injected and NEVER committed
    # in the repo. The caller owns the transaction (Database.session_scope()). That is what lets
    # LockedSessionResolver run claim → read → checks → lock write as ONE atomic unit.
    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def get_sync_state(self, user_id: str) -> UserSyncState | None:
        """Load the remote-sync state of a user (None if the user doesn't exist)."""
        stmt = select(UserModel).where(UserModel.id == user_id)
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None

        return UserSyncState(
            user_id=model.id,
            connected=bool(model.trakt_connected),
            access_token=model.trakt_access_token,
            refresh_token=model.trakt_refresh_token,
            token_expires_at=model.trakt_token_expires_at,
            connected_at=model.trakt_connected_at,
            last_sync_at=model.trakt_last_sync_at,
            last_sync_result=model.trakt_last_sync_result,
            sync_in_progress_at=model.sync_in_progress_at,
        )

    # Listen up, claim_row() is a write that changes nothing. Its only job is to take the write
    # lock BEFORE we read: a row lock on PostgreSQL, the database-wide RESERVED lock on SQLite.
    # Without it two deferred SQLite transactions could both read "unlocked", then both try to
    # upgrade to a write lock and one dies with "database is locked" instead of a clean 409.
    async def claim_row(self, user_id: str) -> bool:
        """Take the write lock on the user's row. Returns False if the user doesn't exist."""
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(sync_in_progress_at=UserModel.sync_in_progress_at)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def try_acquire_lock(
        self, user_id: str, now: datetime, lock_timeout: timedelta
    ) -> bool:
        """Compare-and-set the sync lock.

        Writes the lock timestamp only if the lock is free or stale. Returns False when
        another sync holds a live lock (nothing was written).
        """
        stale_before = now - lock_timeout
        stmt = (
            update(UserModel)
            .where(
                UserModel.id == user_id,
                or_(
                    UserModel.sync_in_progress_at.is_(None),
                    UserModel.sync_in_progress_at <= stale_before,
                ),
            )
            .values(sync_in_progress_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def update_tokens(
        self,
        user_id: str,
        access_token: str,
        refresh_token: str,
        expires_at: datetime | None,
    ) -> None:
        """Persist a refreshed credential pair."""
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(
                trakt_access_token=access_token,
                trakt_refresh_token=refresh_token,
                trakt_token_expires_at=expires_at,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def finalize_success(
        self, user_id: str, synced_at: datetime, result: dict[str, Any]
    ) -> None:
        """Record a successful sync and release the lock, in one update."""
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(
                trakt_last_sync_at=synced_at,
                trakt_last_sync_result=result,
                sync_in_progress_at=None,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def release_lock(self, user_id: str) -> None:
        """Clear the sync lock without touching anything else."""
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(sync_in_progress_at=None)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)

    async def clear_connection(self, user_id: str) -> bool:
        """Forget the remote account: tokens, expiry, connected flag and sync history.

        Returns False if the user doesn't exist.
        """
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(
                trakt_connected=False,
                trakt_access_token=None,
                trakt_refresh_token=None,
                trakt_token_expires_at=None,
                trakt_connected_at=None,
                trakt_last_sync_at=None,
                trakt_last_sync_result=None,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return bool(result.rowcount)  # type: ignore[attr-defined]


class SessionRepository:
    """Repository resolving session ids (cookie/bearer values) to users."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def create(
        self, session_id: str, user_id: str, expires_at: datetime | None = None
    ) -> None:
        """Stage a new session row."""
        self.session.add(
            UserSessionModel(
                session_id=session_id, user_id=user_id, expires_at=expires_at
            )
        )

    # Yo, expired sessions are treated exactly like unknown ones - callers get None and the API
    # answers 401. We don't delete them here, that's a read path.
    async def get_user_id(self, session_id: str, now: datetime) -> str | None:
        """Resolve a session id to its user id, or None if unknown or expired."""
        stmt = select(UserSessionModel).where(UserSessionModel.session_id == session_id)
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        if model is None:
            return None
        if model.expires_at is not None and ensure_utc_aware(model.expires_at) <= now:
            return None
        return model.user_id


class LibraryRepository:
    """Read access to a user's synced documents (lists, episode tracking, ratings).

    Writes never go through here - they go through ChunkedBatchWriter so they can be
    split across commits.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def list_rating_keys(self, user_id: str) -> set[str]:
        """Keys of every stored rating of the user."""
        stmt = select(RatingModel.rating_key).where(RatingModel.user_id == user_id)
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def list_tracked_show_ids(self, user_id: str) -> set[str]:
        """Ids of every show with a stored episode-tracking document."""
        stmt = select(EpisodeTrackingModel.show_id).where(
            EpisodeTrackingModel.user_id == user_id
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def list_synced_list_ids(self, user_id: str) -> set[str]:
        """Ids of lists previously written by a sync (locally created lists excluded)."""
        stmt = select(UserListModel.list_id).where(
            UserListModel.user_id == user_id,
            UserListModel.synced_from_remote.is_(True),
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def get_list(self, user_id: str, list_id: str) -> UserListModel | None:
        """Get one aggregate list document."""
        return await self.session.get(
            UserListModel, {"user_id": user_id, "list_id": list_id}
        )

    async def get_episode_tracking(
        self, user_id: str, show_id: str
    ) -> EpisodeTrackingModel | None:
        """Get one show's episode-tracking document."""
        return await self.session.get(
            EpisodeTrackingModel, {"user_id": user_id, "show_id": show_id}
        )

    async def list_ratings(self, user_id: str) -> list[RatingModel]:
        """All stored ratings of the user, ordered by key."""
        stmt = (
            select(RatingModel)
            .where(RatingModel.user_id == user_id)
            .order_by(RatingModel.rating_key)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
