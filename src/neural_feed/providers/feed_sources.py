from __future__ import annotations

import httpx

from .feed_parser import FeedEntry, parse_feed
from .http_support import FEED_ACCEPT, build_client

ARXIV_API_URL = "https://export.arxiv.org/api/query"
GOOGLE_NEWS_RSS_URL = "https://news.google.com/rss/search"


class ArxivProvider:
    name = "arxiv"

    def __init__(self, timeout_seconds: float = 8, client: httpx.Client | None = None) -> None:
        self._owns_client = client is None
        self.client = client or build_client(timeout_seconds)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def search(self, query: str, count: int = 5) -> list[FeedEntry]:
        response = self.client.get(
            ARXIV_API_URL,
            params={"search_query": f"all:{query}", "start": "0", "max_results": str(count)},
            headers={"Accept": "application/atom+xml"},
        )
        response.raise_for_status()
        return parse_feed(response.content)[:count]


class GoogleNewsProvider:
    name = "news"

    def __init__(self, timeout_seconds: float = 8, client: httpx.Client | None = None) -> None:
        self._owns_client = client is None
        self.client = client or build_client(timeout_seconds)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def search(self, query: str, window: str = "7d", limit: int = 10) -> list[FeedEntry]:
        response = self.client.get(
            GOOGLE_NEWS_RSS_URL,
            params={"q": f"{query} when:{window}", "hl": "en-US", "gl": "US", "ceid": "US:en"},
            headers={"Accept": FEED_ACCEPT},
        )
        response.raise_for_status()
        entries = [entry for entry in parse_feed(response.content) if entry.link]
        return entries[:limit]
