"""Trakt HTTP client implementation."""

import logging
from typing import Any, cast

import httpx

from cinesync.config.settings import TraktSettings
from cinesync.domain.dtos import (
    EpisodeRef,
    HistoryEntry,
    ListDefinition,
    ListItemEntry,
    MediaRef,
    RatingEntry,
    TokenGrant,
    WatchlistEntry,
)
from cinesync.domain.exceptions import (
    ConfigurationError,
    ExternalServiceError,
    TokenRefreshException,
)
from cinesync.domain.ports import HistoryKind, ITraktClient, RatingKind, WatchlistKind
from cinesync.domain.value_objects import parse_instant, utc_now

logger = logging.getLogger(__name__)


class TraktClient(ITraktClient):
    """HTTP client for the Trakt API (v2)."""

    API_VERSION = "2"
    PAGE_COUNT_HEADER = "X-Pagination-Page-Count"

    # Hey future me, same deal as every HTTP client in this codebase - DON'T create the
    # httpx.AsyncClient in __init__. It is lazy-loaded in _get_client() so constructing a
    # TraktClient at import/startup time never touches the event loop.
    def __init__(self, settings: TraktSettings) -> None:
        """
        Initialize Trakt client.

        Args:
            settings: Trakt configuration settings
        """
        self.settings = settings
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.api_url.rstrip("/"),
                timeout=self.settings.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _client_id(self) -> str:
        if not self.settings.is_configured:
            raise ConfigurationError("TRAKT_CLIENT_ID is not configured")
        return self.settings.client_id

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "trakt-api-version": self.API_VERSION,
            "trakt-api-key": self._client_id(),
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    # Listen up, every authenticated GET goes through here. No retry, no rate limiting - a
    # failed fetch fails the whole sync and the human retries. Both HTTP errors and transport
    # errors come out as ExternalServiceError so callers only catch one thing.
    async def _get(
        self,
        path: str,
        access_token: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        client = await self._get_client()
        try:
            response = await client.get(
                path, params=params, headers=self._headers(access_token)
            )
        except httpx.RequestError as e:
            raise ExternalServiceError(f"Trakt request {path} failed: {e}") from e

        if response.is_error:
            raise ExternalServiceError(
                f"Trakt API error {response.status_code} on {path}",
                status_code=response.status_code,
            )
        return response

    async def _get_json_list(
        self,
        path: str,
        access_token: str,
        params: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        response = await self._get(path, access_token, params)
        data = response.json()
        if not isinstance(data, list):
            raise ExternalServiceError(f"Unexpected Trakt payload on {path}")
        return cast(list[dict[str, Any]], data)

    # Hey future me - Trakt rejects a dead refresh token with 400 {"error": "invalid_grant"}
    # (sometimes 401). Those become TokenRefreshException so the caller knows the user has to
    # reconnect. Anything else (5xx, network) is an ExternalServiceError.
    async def refresh_token(self, refresh_token: str) -> TokenGrant:
        """
        Exchange a refresh token for a new token pair.

        Args:
            refresh_token: Refresh token from the previous grant

        Returns:
            New token grant

        Raises:
            TokenRefreshException: If Trakt rejects the refresh token
            ExternalServiceError: For other HTTP/network failures
        """
        client = await self._get_client()
        payload = {
            "refresh_token": refresh_token,
            "client_id": self._client_id(),
            "redirect_uri": self.settings.redirect_uri,
            "grant_type": "refresh_token",
        }
        if self.settings.client_secret:
            payload["client_secret"] = self.settings.client_secret

        try:
            response = await client.post(
                "/oauth/token", json=payload, headers=self._headers()
            )
        except httpx.RequestError as e:
            raise ExternalServiceError(f"Trakt token refresh failed: {e}") from e

        if response.status_code in (400, 401, 403):
            error_code = None
            description = "Refresh token is invalid or has been revoked"
            try:
                error_data = response.json()
                error_code = error_data.get("error")
                description = error_data.get("error_description") or description
            except (ValueError, AttributeError):
                pass
            raise TokenRefreshException(
                message=f"Trakt token refresh rejected: {description}",
                error_code=error_code,
                http_status=response.status_code,
            )

        if response.is_error:
            raise ExternalServiceError(
                f"Trakt token refresh failed with {response.status_code}",
                status_code=response.status_code,
            )

        data = response.json()
        try:
            return TokenGrant(
                access_token=data["access_token"],
                refresh_token=data["refresh_token"],
                expires_in=int(data["expires_in"]),
                created_at=int(data.get("created_at") or utc_now().timestamp()),
                token_type=data.get("token_type", "bearer"),
                scope=data.get("scope"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise TokenRefreshException(
                message=f"Malformed Trakt token response: {e}"
            ) from e

    async def revoke_token(self, access_token: str) -> None:
        """Revoke an access token at Trakt."""
        client = await self._get_client()
        payload = {"token": access_token, "client_id": self._client_id()}
        if self.settings.client_secret:
            payload["client_secret"] = self.settings.client_secret

        try:
            response = await client.post(
                "/oauth/revoke", json=payload, headers=self._headers()
            )
        except httpx.RequestError as e:
            raise ExternalServiceError(f"Trakt token revoke failed: {e}") from e
        if response.is_error:
            raise ExternalServiceError(
                f"Trakt token revoke failed with {response.status_code}",
                status_code=response.status_code,
            )

    # Hey future me, history is the only PAGINATED endpoint we use. Trakt tells us the page
    # count in X-Pagination-Page-Count; no header means a single page. Heavy users have
    # thousands of plays so page_size is big (1000) to keep the round trips down.
    async def get_history(
        self, access_token: str, kind: HistoryKind, page_size: int = 1000
    ) -> list[HistoryEntry]:
        """Get the complete watch history of one kind, following pagination."""
        entries: list[HistoryEntry] = []
        page = 1
        while True:
            response = await self._get(
                f"/sync/history/{kind}",
                access_token,
                params={"page": page, "limit": page_size},
            )
            for item in response.json() or []:
                entry = self._parse_history_item(item)
                if entry is not None:
                    entries.append(entry)

            page_count = _header_int(response, self.PAGE_COUNT_HEADER)
            if page_count is None or page >= page_count:
                break
            page += 1

        logger.debug("Fetched %d %s history entries (%d pages)", len(entries), kind, page)
        return entries

    async def get_ratings(self, access_token: str, kind: RatingKind) -> list[RatingEntry]:
        """Get the user's ratings of one kind."""
        items = await self._get_json_list(f"/sync/ratings/{kind}", access_token)
        entries = []
        for item in items:
            rating = item.get("rating")
            if not isinstance(rating, int) or isinstance(rating, bool):
                continue
            entries.append(
                RatingEntry(
                    media_kind=item.get("type", ""),
                    rating=rating,
                    rated_at=parse_instant(item.get("rated_at")),
                    movie=MediaRef.from_api(item.get("movie")),
                    show=MediaRef.from_api(item.get("show")),
                    episode=EpisodeRef.from_api(item.get("episode")),
                )
            )
        return entries

    async def get_watchlist(
        self, access_token: str, kind: WatchlistKind
    ) -> list[WatchlistEntry]:
        """Get the user's watchlist entries of one kind."""
        items = await self._get_json_list(f"/sync/watchlist/{kind}", access_token)
        return [
            WatchlistEntry(
                media_kind=item.get("type", ""),
                listed_at=parse_instant(item.get("listed_at")),
                movie=MediaRef.from_api(item.get("movie")),
                show=MediaRef.from_api(item.get("show")),
            )
            for item in items
        ]

    async def get_user_lists(self, access_token: str) -> list[ListDefinition]:
        """Get the user's custom list definitions."""
        items = await self._get_json_list("/users/me/lists", access_token)
        definitions = []
        for item in items:
            ids = item.get("ids") or {}
            slug = ids.get("slug")
            if not slug:
                continue
            definitions.append(
                ListDefinition(
                    name=item.get("name") or slug,
                    slug=slug,
                    trakt_id=ids.get("trakt"),
                    item_count=item.get("item_count"),
                )
            )
        return definitions

    async def get_list_items(self, access_token: str, slug: str) -> list[ListItemEntry]:
        """Get all items of one custom list."""
        items = await self._get_json_list(f"/users/me/lists/{slug}/items", access_token)
        return [
            ListItemEntry(
                media_kind=item.get("type", ""),
                listed_at=parse_instant(item.get("listed_at")),
                movie=MediaRef.from_api(item.get("movie")),
                show=MediaRef.from_api(item.get("show")),
            )
            for item in items
        ]

    @staticmethod
    def _parse_history_item(item: dict[str, Any]) -> HistoryEntry | None:
        media_kind = item.get("type")
        if media_kind not in ("movie", "episode"):
            return None
        return HistoryEntry(
            media_kind=media_kind,
            watched_at=parse_instant(item.get("watched_at")),
            movie=MediaRef.from_api(item.get("movie")),
            show=MediaRef.from_api(item.get("show")),
            episode=EpisodeRef.from_api(item.get("episode")),
        )

    async def __aenter__(self) -> "TraktClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()


def _header_int(response: httpx.Response, name: str) -> int | None:
    value = response.headers.get(name)
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
