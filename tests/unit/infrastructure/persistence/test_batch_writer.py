"""Tests for ChunkedBatchWriter.

Hey future me - the chunk ceiling is what keeps a huge sync from holding the SQLite write lock
for the whole run. These tests pin the commit arithmetic and the per-chunk ordering.
"""

import pytest
from sqlalchemy import func, select

from cinesync.infrastructure.persistence import (
    ChunkedBatchWriter,
    Database,
    DocumentRef,
    RatingModel,
    UserListModel,
)
from support.store import seed_user


def rating_ref(key: str, user_id: str = "user-1") -> DocumentRef:
    return DocumentRef(RatingModel, {"user_id": user_id, "rating_key": key})


async def count_ratings(db: Database) -> int:
    async with db.session_scope() as session:
        result = await session.execute(select(func.count()).select_from(RatingModel))
        return int(result.scalar_one())


class TestChunking:
    """Commit arithmetic."""

    async def test_rejects_non_positive_ceiling(self, db: Database) -> None:
        with pytest.raises(ValueError):
            ChunkedBatchWriter(db, max_operations=0)

    async def test_commits_in_chunks_of_max_operations(self, db: Database) -> None:
        """1201 writes with a ceiling of 500 → 500 + 500 + 201 = 3 commits."""
        await seed_user(db)
        writer = ChunkedBatchWriter(db, max_operations=500)

        commits_during_loop = 0
        for i in range(1201):
            writer.set(rating_ref(f"movie-{i}"), {"media_type": "movie", "rating": 5})
            if await writer.commit_if_needed():
                commits_during_loop += 1

        assert commits_during_loop == 2
        assert writer.pending_count == 201

        await writer.commit()

        assert writer.commits_made == 3
        assert writer.operations_written == 1201
        assert writer.pending_count == 0
        assert await count_ratings(db) == 1201

    async def test_commit_flushes_oversized_backlog_in_chunks(self, db: Database) -> None:
        """Without commit_if_needed() calls, commit() still never exceeds the ceiling."""
        await seed_user(db)
        writer = ChunkedBatchWriter(db, max_operations=3)
        for i in range(7):
            writer.set(rating_ref(f"movie-{i}"), {"media_type": "movie", "rating": 5})

        assert writer.should_commit()
        await writer.commit()

        assert writer.commits_made == 3  # 3 + 3 + 1
        assert await count_ratings(db) == 7

    async def test_empty_commit_is_a_no_op(self, db: Database) -> None:
        writer = ChunkedBatchWriter(db)
        await writer.commit()
        assert writer.commits_made == 0
        assert not await writer.commit_if_needed()


class TestSemantics:
    """Overwrite and delete semantics of single operations."""

    async def test_set_overwrites_the_whole_document(self, db: Database) -> None:
        await seed_user(db)
        writer = ChunkedBatchWriter(db)
        writer.set(
            rating_ref("movie-550"),
            {"media_type": "movie", "rating": 8, "title": "Fight Club", "poster_path": "/p.jpg"},
        )
        await writer.commit()

        writer.set(rating_ref("movie-550"), {"media_type": "movie", "rating": 9})
        await writer.commit()

        async with db.session_scope() as session:
            row = await session.get(RatingModel, {"user_id": "user-1", "rating_key": "movie-550"})
            assert row is not None
            assert row.rating == 9
            # Fields not supplied by the second write must not survive
            assert row.title is None
            assert row.poster_path is None

    async def test_delete_of_missing_document_is_a_no_op(self, db: Database) -> None:
        await seed_user(db)
        writer = ChunkedBatchWriter(db)
        writer.delete(rating_ref("movie-404"))
        await writer.commit()
        assert writer.commits_made == 1
        assert await count_ratings(db) == 0

    async def test_operations_apply_in_submission_order(self, db: Database) -> None:
        """delete → set of one key leaves the fresh row; set → delete leaves nothing."""
        await seed_user(db)
        writer = ChunkedBatchWriter(db)
        writer.set(rating_ref("movie-1"), {"media_type": "movie", "rating": 3})
        await writer.commit()

        writer.delete(rating_ref("movie-1"))
        writer.set(rating_ref("movie-1"), {"media_type": "movie", "rating": 10})
        writer.set(rating_ref("movie-2"), {"media_type": "movie", "rating": 4})
        writer.delete(rating_ref("movie-2"))
        await writer.commit()

        async with db.session_scope() as session:
            first = await session.get(RatingModel, {"user_id": "user-1", "rating_key": "movie-1"})
            second = await session.get(RatingModel, {"user_id": "user-1", "rating_key": "movie-2"})
        assert first is not None and first.rating == 10
        assert second is None

    async def test_json_documents_round_trip(self, db: Database) -> None:
        await seed_user(db)
        writer = ChunkedBatchWriter(db)
        items = {"550": {"id": 550, "media_type": "movie", "addedAt": 1_767_268_800_000}}
        writer.set(
            DocumentRef(UserListModel, {"user_id": "user-1", "list_id": "already-watched"}),
            {"name": "Already Watched", "items": items, "synced_from_remote": True},
        )
        await writer.commit()

        async with db.session_scope() as session:
            row = await session.get(
                UserListModel, {"user_id": "user-1", "list_id": "already-watched"}
            )
        assert row is not None
        assert row.items == items
        assert row.is_custom is None


def test_document_ref_str() -> None:
    ref = DocumentRef(RatingModel, {"user_id": "u1", "rating_key": "tv-2"})
    assert str(ref) == "user_ratings/u1/tv-2"
