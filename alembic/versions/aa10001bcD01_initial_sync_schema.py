"""initial sync schema

Revision ID: aa10001bcD01
Revises:
Create Date: 2026-10-19 12:00:00.000000

Hey future me - THE starting point!

TABLES:
- users: one row per user, carries the Trakt sync state (tokens, last sync, result) and
  the sync lock column sync_in_progress_at (NULL = unlocked)
- user_sessions: session id -> user id, optional expiry
- user_lists: aggregate list documents (already-watched, watchlist, favorites, custom-*)
  with ALL items in one JSON column. synced_from_remote marks rows a sync may sweep
- episode_tracking: one row per show, watched episodes keyed "{season}_{episode}"
- user_ratings: one row per rating key (movie-1, tv-2, episode-3-1-4)

All document tables cascade on user delete.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'aa10001bcD01'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # === Users (with embedded sync state) ===
    op.create_table(
        'users',
        sa.Column('id', sa.String(128), primary_key=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('trakt_connected', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('trakt_access_token', sa.Text, nullable=True),
        sa.Column('trakt_refresh_token', sa.Text, nullable=True),
        sa.Column('trakt_token_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('trakt_connected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('trakt_last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('trakt_last_sync_result', sa.JSON, nullable=True),
        sa.Column('sync_in_progress_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    # === Sessions ===
    op.create_table(
        'user_sessions',
        sa.Column('session_id', sa.String(128), primary_key=True),
        sa.Column('user_id', sa.String(128), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_user_sessions_user_id', 'user_sessions', ['user_id'])

    # === Aggregate list documents ===
    op.create_table(
        'user_lists',
        sa.Column('user_id', sa.String(128), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('list_id', sa.String(255), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('items', sa.JSON, nullable=False),
        sa.Column('is_custom', sa.Boolean, nullable=True),
        sa.Column('synced_from_remote', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    # === Episode tracking (one row per show) ===
    op.create_table(
        'episode_tracking',
        sa.Column('user_id', sa.String(128), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('show_id', sa.String(64), primary_key=True),
        sa.Column('episodes', sa.JSON, nullable=False),
        sa.Column('tv_show_name', sa.String(512), nullable=True),
        sa.Column('poster_path', sa.String(512), nullable=True),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=True),
    )

    # === Ratings ===
    op.create_table(
        'user_ratings',
        sa.Column('user_id', sa.String(128), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('rating_key', sa.String(128), primary_key=True),
        sa.Column('media_type', sa.String(20), nullable=False),
        sa.Column('rating', sa.Integer, nullable=False),
        sa.Column('media_id', sa.Integer, nullable=True),
        sa.Column('title', sa.String(512), nullable=True),
        sa.Column('poster_path', sa.String(512), nullable=True),
        sa.Column('release_date', sa.String(32), nullable=True),
        sa.Column('rated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('tv_show_id', sa.Integer, nullable=True),
        sa.Column('tv_show_name', sa.String(512), nullable=True),
        sa.Column('season_number', sa.Integer, nullable=True),
        sa.Column('episode_number', sa.Integer, nullable=True),
        sa.Column('episode_name', sa.String(512), nullable=True),
    )
    op.create_index('ix_user_ratings_media_type', 'user_ratings', ['user_id', 'media_type'])


def downgrade() -> None:
    op.drop_index('ix_user_ratings_media_type', table_name='user_ratings')
    op.drop_table('user_ratings')
    op.drop_table('episode_tracking')
    op.drop_table('user_lists')
    op.drop_index('ix_user_sessions_user_id', table_name='user_sessions')
    op.drop_table('user_sessions')
    op.drop_table('users')
