"""External integration client implementations."""

from cinesync.infrastructure.integrations.trakt_client import TraktClient

__all__ = ["TraktClient"]
