"""Configuration module for CineSync."""

from .settings import (
    APISettings,
    DatabaseSettings,
    ObservabilitySettings,
    Settings,
    SyncSettings,
    TraktSettings,
    get_settings,
)

__all__ = [
    "APISettings",
    "DatabaseSettings",
    "ObservabilitySettings",
    "Settings",
    "SyncSettings",
    "TraktSettings",
    "get_settings",
]
