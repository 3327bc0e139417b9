"""Search backend client: resolve a query to the URL to open.

The backend proxies either Google Custom Search or Bing and tags its JSON
answer with a ``provider`` field. Whichever shape comes back, the first
result link wins; otherwise a plain web-search URL is built.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from portal_sync.exceptions import NetworkError

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_URL = "https://www.google.com/search"


def first_link(result: dict[str, Any] | None) -> str | None:
    """Extract the first result link from a provider-tagged search response."""
    if not result or not isinstance(result, dict):
        return None
    raw = result.get("raw")
    if not isinstance(raw, dict):
        return None
    provider = result.get("provider")
    link = None
    try:
        if provider == "google":
            items = raw.get("items") or []
            link = items[0]["link"] if items else None
        elif provider == "bing":
            values = (raw.get("webPages") or {}).get("value") or []
            link = values[0]["url"] if values else None
    except (KeyError, TypeError, IndexError, AttributeError):
        logger.warning("Unexpected %s result shape", provider, exc_info=True)
    return link if isinstance(link, str) and link else None


def build_search_url(query: str, base_url: str = DEFAULT_FALLBACK_URL) -> str:
    return f"{base_url}?q={quote((query or '').strip(), safe='')}"


class SearchService:
    def __init__(
        self,
        search_url: str,
        fallback_url: str = DEFAULT_FALLBACK_URL,
        timeout: float = 10.0,
    ) -> None:
        self._search_url = search_url
        self._fallback_url = fallback_url
        self._timeout = timeout

    async def search(self, query: str) -> dict[str, Any] | None:
        """Query the search backend. Blank queries skip the request."""
        q = (query or "").strip()
        if not q:
            return None
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.get(self._search_url, params={"q": q})
        except httpx.HTTPError as exc:
            raise NetworkError(f"Search request failed: {exc}") from exc
        if not resp.is_success:
            raise NetworkError(f"Search error: {resp.status_code}")
        try:
            return resp.json()
        except (ValueError, RecursionError) as exc:
            raise NetworkError("Search backend returned a non-JSON body") from exc

    async def resolve(self, query: str) -> str:
        """URL to open for ``query``: first structured link, else fallback."""
        result = await self.search(query)
        return first_link(result) or build_search_url(query, self._fallback_url)
