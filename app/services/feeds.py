"""HTTP retrieval of Letterboxd and Goodreads RSS feeds."""

from __future__ import annotations

import logging

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)


class FeedFetchError(RuntimeError):
    """Raised when a feed cannot be retrieved."""

    def __init__(self, url: str, message: str):
        super().__init__(f"Failed to fetch feed {url}: {message}")
        self.url = url


def build_feed_url(provider: str, username: str, settings: Settings) -> str:
    """Return the RSS feed URL for a provider account."""

    cleaned = (username or "").strip()
    if not cleaned:
        raise ValueError("Username must not be empty")
    if provider == "letterboxd":
        return f"{settings.letterboxd_root}/{cleaned}/rss/"
    if provider == "goodreads":
        return f"{settings.goodreads_root}/review/list_rss/{cleaned}?shelf=read"
    raise ValueError(f"Unsupported provider: {provider}")


class FeedClient:
    """Thin wrapper fetching raw feed documents."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    def _headers(self) -> dict[str, str]:
        return {
            "User-Agent": self._settings.feed_user_agent,
            "Accept": "application/rss+xml, application/xml;q=0.9, */*;q=0.8",
        }

    async def fetch(self, url: str) -> str:
        """Return the body of the feed at ``url``.

        Transport errors and non-success responses raise ``FeedFetchError``;
        retrying is left to the next sync run.
        """

        try:
            response = await self._client.get(
                url, headers=self._headers(), follow_redirects=True
            )
        except httpx.HTTPError as exc:
            logger.warning(
                "Transport error fetching feed %s (%s)", url, exc.__class__.__name__
            )
            raise FeedFetchError(url, str(exc) or exc.__class__.__name__) from exc

        if response.status_code >= 400:
            logger.warning(
                "Feed %s responded with HTTP %s", url, response.status_code
            )
            raise FeedFetchError(url, f"HTTP {response.status_code}")
        return response.text
