"""Application lifecycle management for startup and shutdown tasks.

This module handles the FastAPI lifespan context manager that creates the long-lived
resources (database engine, Trakt HTTP client) and tears them down again.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from cinesync.config import Settings, get_settings
from cinesync.domain.exceptions import ConfigurationError
from cinesync.infrastructure.integrations import TraktClient
from cinesync.infrastructure.observability import configure_logging
from cinesync.infrastructure.persistence import Database

logger = logging.getLogger(__name__)


# Hey future me, this validates the SQLite path BEFORE the engine exists. SQLite needs to create
# -journal/-wal/-shm files next to the .db file, so we check the directory is writable by
# writing a scratch file. We DON'T pre-create the .db file, SQLite initializes it on first connect.
# Returns early for PostgreSQL and in-memory SQLite.
def _validate_sqlite_path(settings: Settings) -> None:
    """Validate SQLite database path accessibility before engine creation."""
    db_path = settings.get_sqlite_db_path()
    if db_path is None:
        return

    try:
        if db_path.parent and str(db_path.parent) != ".":
            db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug("Ensured SQLite parent directory exists: %s", db_path.parent)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create SQLite database directory '{db_path.parent}': {exc}. "
            "Update DATABASE_URL or adjust directory permissions."
        ) from exc

    try:
        test_file = db_path.parent / f".{db_path.stem}_write_test"
        test_file.write_bytes(b"test")
        test_file.unlink()
        logger.debug(
            "Verified directory write permissions for SQLite files: %s",
            db_path.parent,
        )
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to write files in database directory '{db_path.parent}': {exc}. "
            "SQLite requires write permissions to create database and journal files. "
            "Update DATABASE_URL or adjust directory permissions."
        ) from exc


# Listen future me, everything before `yield` runs at STARTUP, everything after at SHUTDOWN.
# Resources go on app.state so the dependency getters in api/dependencies.py find them.
# Settings come from app.state when create_app() was given explicit ones (tests do that).
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown tasks including:
    - Logging configuration
    - SQLite path validation
    - Database initialization (optionally creating missing tables)
    - Trakt client creation
    - Resource cleanup
    """
    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    app.state.settings = settings

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    _validate_sqlite_path(settings)

    db = Database(settings)
    app.state.db = db
    logger.info("Database initialized: %s", settings.database.url)

    if settings.database.auto_create_tables:
        await db.create_tables()
        logger.info("Database tables ensured")

    trakt_client = TraktClient(settings.trakt)
    app.state.trakt_client = trakt_client
    if not settings.trakt.is_configured:
        logger.warning(
            "TRAKT_CLIENT_ID is not set - token refresh and sync will fail until it is"
        )

    try:
        yield
    finally:
        logger.info("Shutting down application")
        try:
            await trakt_client.close()
        except Exception:
            logger.exception("Error closing Trakt client")
        try:
            await db.close()
            logger.info("Database connection closed")
        except Exception:
            logger.exception("Error closing database")
