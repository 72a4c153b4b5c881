"""SQLAlchemy ORM models for CineSync."""

from datetime import UTC, datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from cinesync.domain.value_objects import utc_now


# Hey future me - SQLite doesn't preserve timezone info! Datetimes come back "naive". Always run
# DB datetimes through this (or parse_instant) before comparing with utc_now(), otherwise you
# get "can't compare offset-naive and offset-aware datetimes".
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models.

    All models inherit from this to use the same metadata registry.
    """

    pass


# Listen up, UserModel carries the UserSyncState columns right on the user row - one row per user.
# The trakt_* tokens are SENSITIVE (full read access to the user's Trakt account). The
# sync_in_progress_at column IS the sync lock: NULL = unlocked, a timestamp = locked since then.
# Only LockedSessionResolver sets it and only LockReleaseFinalizer clears it!
class UserModel(Base):
    """Application user with embedded remote-sync state."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    trakt_connected: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    trakt_access_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    trakt_refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    trakt_token_expires_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    trakt_connected_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    trakt_last_sync_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    trakt_last_sync_result: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True
    )
    sync_in_progress_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )


class UserSessionModel(Base):
    """Browser/API session mapping a session id (cookie value) to a user."""

    __tablename__ = "user_sessions"

    session_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utc_now, nullable=False
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )

    __table_args__ = (Index("ix_user_sessions_user_id", "user_id"),)


# Hey future me - list documents are AGGREGATES: the whole list (every item) lives in the items
# JSON column keyed by media id. A sync always overwrites the full row. synced_from_remote marks
# rows created by a sync - only those may be swept when the list disappears upstream. Lists a
# user created in-app have synced_from_remote=False and are never touched by the engine.
class UserListModel(Base):
    """Aggregate list document (already-watched, watchlist, favorites, custom lists)."""

    __tablename__ = "user_lists"

    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    list_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    items: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    is_custom: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    synced_from_remote: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )


class EpisodeTrackingModel(Base):
    """Per-show document of watched episodes, keyed "{season}_{episode}"."""

    __tablename__ = "episode_tracking"

    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    show_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    episodes: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    tv_show_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    poster_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    last_updated: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )


class RatingModel(Base):
    """One rating, addressed by composite key (movie-1, tv-2, episode-3-1-4)."""

    __tablename__ = "user_ratings"

    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    rating_key: Mapped[str] = mapped_column(String(128), primary_key=True)
    media_type: Mapped[str] = mapped_column(String(20), nullable=False)
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    media_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    title: Mapped[str | None] = mapped_column(String(512), nullable=True)
    poster_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    release_date: Mapped[str | None] = mapped_column(String(32), nullable=True)
    rated_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    # Episode ratings only
    tv_show_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tv_show_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
    season_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    episode_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    episode_name: Mapped[str | None] = mapped_column(String(512), nullable=True)

    __table_args__ = (Index("ix_user_ratings_media_type", "user_id", "media_type"),)
