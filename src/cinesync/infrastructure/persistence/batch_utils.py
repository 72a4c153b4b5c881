# Hey future me - ChunkedBatchWriter is how EVERY sync write reaches the database!
#
# A full sync can produce thousands of row writes (one per rating, one per show, one per list).
# Doing them all in one transaction holds the SQLite write lock for the whole time and blows up
# any store with a per-transaction size ceiling. So the writer queues operations and commits
# them in chunks of max_operations (500 by default).
#
# GOLDEN RULE: chunks are NOT atomic together. If chunk 3 fails, chunks 1 and 2 stay committed.
# That's fine for the sync engine - the next sync rewrites everything anyway.
#
# USAGE:
#     writer = ChunkedBatchWriter(db)
#     for doc in docs:
#         writer.set(DocumentRef(RatingModel, {"user_id": uid, "rating_key": doc.key}), {...})
#         await writer.commit_if_needed()
#     await writer.commit()  # flush the remainder!
"""Chunked batch writes for large sync payloads."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from cinesync.infrastructure.persistence.database import Database
from cinesync.infrastructure.persistence.models import Base

logger = logging.getLogger(__name__)

DEFAULT_MAX_OPERATIONS = 500


@dataclass(frozen=True)
class DocumentRef:
    """Address of one document (row): model class plus primary-key values."""

    model: type[Base]
    key: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        key = "/".join(str(value) for value in self.key.values())
        return f"{self.model.__tablename__}/{key}"


@dataclass(frozen=True)
class _Operation:
    kind: str  # "set" | "delete"
    ref: DocumentRef
    data: dict[str, Any] | None = None


class ChunkedBatchWriter:
    """Queue set/delete operations and commit them in bounded chunks.

    Operations are applied in the order submitted. Each physical commit runs in its
    own transaction.
    """

    def __init__(self, db: Database, max_operations: int = DEFAULT_MAX_OPERATIONS) -> None:
        """Initialize the writer.

        Args:
            db: Database providing transactional session scopes
            max_operations: Operation count that triggers a commit
        """
        if max_operations < 1:
            raise ValueError("max_operations must be at least 1")
        self._db = db
        self._max_operations = max_operations
        self._pending: list[_Operation] = []
        self._commit_count = 0
        self._written = 0

    def set(self, ref: DocumentRef, data: dict[str, Any]) -> None:
        """Queue a full overwrite of a document (created if missing)."""
        self._pending.append(_Operation("set", ref, data))

    def delete(self, ref: DocumentRef) -> None:
        """Queue deletion of a document (no-op if missing)."""
        self._pending.append(_Operation("delete", ref))

    def should_commit(self) -> bool:
        """True once the pending operation count reached the ceiling."""
        return len(self._pending) >= self._max_operations

    async def commit_if_needed(self) -> bool:
        """Commit pending operations if the ceiling is reached.

        Returns:
            True if a commit happened
        """
        if not self.should_commit():
            return False
        await self._commit_pending()
        return True

    async def commit(self) -> None:
        """Flush all remaining operations (in chunks of at most max_operations)."""
        while self._pending:
            await self._commit_pending()

    @property
    def pending_count(self) -> int:
        """Number of operations queued but not committed yet."""
        return len(self._pending)

    @property
    def commits_made(self) -> int:
        """Get total physical commits made so far."""
        return self._commit_count

    @property
    def operations_written(self) -> int:
        """Total operations committed so far."""
        return self._written

    async def _commit_pending(self) -> None:
        chunk = self._pending[: self._max_operations]
        async with self._db.session_scope() as session:
            for operation in chunk:
                if operation.kind == "set":
                    await self._apply_set(session, operation.ref, operation.data or {})
                else:
                    await self._apply_delete(session, operation.ref)

        # Only drop the chunk once its transaction committed
        del self._pending[: len(chunk)]
        self._commit_count += 1
        self._written += len(chunk)
        logger.debug(
            "Committed batch chunk #%d (%d operations, %d pending)",
            self._commit_count,
            len(chunk),
            len(self._pending),
        )

    # Hey future me, merge() only copies attributes that are present on the passed instance.
    # To get document-overwrite semantics every nullable column the caller didn't supply is
    # set to None explicitly - otherwise a stale posterPath would survive a rewrite.
    @staticmethod
    async def _apply_set(
        session: AsyncSession, ref: DocumentRef, data: dict[str, Any]
    ) -> None:
        values: dict[str, Any] = {
            column.key: None
            for column in inspect(ref.model).columns
            if column.nullable and not column.primary_key
        }
        values.update(data)
        values.update(ref.key)
        await session.merge(ref.model(**values))

    @staticmethod
    async def _apply_delete(session: AsyncSession, ref: DocumentRef) -> None:
        instance = await session.get(ref.model, ref.key)
        if instance is None:
            return
        await session.delete(instance)
        # Flush right away so a later set() of the same key inserts a fresh row
        await session.flush()
