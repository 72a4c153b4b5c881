"""Application settings loaded from environment variables and .env files."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Hey future me - every settings group is its own BaseSettings with an env_prefix, so
# TRAKT_CLIENT_ID lands in settings.trakt.client_id without any manual mapping. The root
# Settings just wires the groups together via default_factory. Don't put secrets in defaults!
class DatabaseSettings(BaseSettings):
    """Database connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="DATABASE_", env_file=".env", extra="ignore"
    )

    url: str = "sqlite+aiosqlite:///./cinesync.db"
    echo: bool = False
    pool_pre_ping: bool = True
    # Create missing tables at startup (dev convenience). Production runs "alembic upgrade head".
    auto_create_tables: bool = False
    # Only applied for PostgreSQL - SQLite doesn't pool
    pool_size: int = 5
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 3600


class TraktSettings(BaseSettings):
    """Remote tracking service (Trakt) API settings."""

    model_config = SettingsConfigDict(
        env_prefix="TRAKT_", env_file=".env", extra="ignore"
    )

    client_id: str = ""
    # Native apps don't send a secret - leave empty for those
    client_secret: str = ""
    redirect_uri: str = "http://localhost:8000/api/trakt/callback"
    api_url: str = "https://api.trakt.tv"
    timeout: float = 30.0
    # Upper bound on concurrent remote fetches during one sync
    fetch_concurrency: int = Field(default=8, ge=1)
    history_page_size: int = Field(default=1000, ge=1)

    @property
    def is_configured(self) -> bool:
        """Check whether API credentials are present."""
        return bool(self.client_id.strip())


class SyncSettings(BaseSettings):
    """Reconciliation engine tuning knobs."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_", env_file=".env", extra="ignore"
    )

    cooldown_seconds: int = Field(default=300, ge=0)
    lock_timeout_seconds: int = Field(default=300, ge=1)
    batch_max_operations: int = Field(default=500, ge=1)
    token_refresh_margin_seconds: int = Field(default=60, ge=0)


class ObservabilitySettings(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(
        env_prefix="OBSERVABILITY_", env_file=".env", extra="ignore"
    )

    log_json_format: bool = False


class APISettings(BaseSettings):
    """HTTP server settings."""

    model_config = SettingsConfigDict(
        env_prefix="API_", env_file=".env", extra="ignore"
    )

    host: str = "0.0.0.0"  # nosec B104 - container deployment
    port: int = 8000
    session_cookie_name: str = "session"


class Settings(BaseSettings):
    """Root application settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "cinesync"
    log_level: str = "INFO"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    trakt: TraktSettings = Field(default_factory=TraktSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    api: APISettings = Field(default_factory=APISettings)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level

    # Yo, lifecycle calls this before creating the engine so SQLite gets a writable directory.
    # Returns None for in-memory SQLite and for every non-SQLite URL.
    def get_sqlite_db_path(self) -> Path | None:
        """Extract the SQLite database file path from the database URL."""
        url = self.database.url
        if not url.startswith("sqlite"):
            return None
        _, _, path = url.partition(":///")
        if not path or path == ":memory:":
            return None
        return Path(path)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
