"""Persistence layer - database, ORM models, repositories and batch writes."""

from cinesync.infrastructure.persistence.batch_utils import (
    ChunkedBatchWriter,
    DocumentRef,
)
from cinesync.infrastructure.persistence.database import Database
from cinesync.infrastructure.persistence.models import (
    Base,
    EpisodeTrackingModel,
    RatingModel,
    UserListModel,
    UserModel,
    UserSessionModel,
)
from cinesync.infrastructure.persistence.repositories import (
    LibraryRepository,
    SessionRepository,
    UserRepository,
)

__all__ = [
    "Base",
    "ChunkedBatchWriter",
    "Database",
    "DocumentRef",
    "EpisodeTrackingModel",
    "LibraryRepository",
    "RatingModel",
    "SessionRepository",
    "UserListModel",
    "UserModel",
    "UserRepository",
    "UserSessionModel",
]
