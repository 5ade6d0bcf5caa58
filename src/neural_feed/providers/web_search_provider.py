from __future__ import annotations

from html.parser import HTMLParser
from typing import Protocol
from urllib.parse import parse_qs, unquote, urlparse

import httpx

from ..config import Settings
from ..schemas import SearchResult
from .http_support import HTML_ACCEPT, build_client

GOOGLE_CSE_URL = "https://www.googleapis.com/customsearch/v1"
DUCKDUCKGO_HTML_URL = "https://html.duckduckgo.com/html/"


class WebSearchProvider(Protocol):
    name: str

    def search(self, query: str, limit: int = 10) -> list[SearchResult]: ...


def _decode_duck_href(raw: str) -> str:
    href = raw.strip()
    if href.startswith("//"):
        href = f"https:{href}"
    parsed = urlparse(href)
    if parsed.path.startswith("/l/"):
        target = parse_qs(parsed.query).get("uddg", [])
        if target:
            return unquote(target[0])
    return href


class _DuckResultParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.items: list[SearchResult] = []
        self._capture: str | None = None
        self._href = ""
        self._chunks: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag.lower() != "a":
            return
        attrs_map = {str(k).lower(): (v or "") for k, v in attrs}
        classes = attrs_map.get("class", "").split()
        if "result__a" in classes:
            self._capture = "title"
            self._href = attrs_map.get("href", "")
            self._chunks = []
        elif "result__snippet" in classes and self.items:
            self._capture = "snippet"
            self._chunks = []

    def handle_data(self, data: str) -> None:
        if self._capture and data.strip():
            self._chunks.append(data.strip())

    def handle_endtag(self, tag: str) -> None:
        if tag.lower() != "a" or not self._capture:
            return
        text = " ".join(self._chunks).strip()
        if self._capture == "title" and self._href:
            url = _decode_duck_href(self._href)
            self.items.append(SearchResult(title=text or url, url=url))
        elif self._capture == "snippet":
            self.items[-1].description = text
        self._capture = None
        self._chunks = []


class GoogleSearchProvider:
    name = "google"

    def __init__(
        self,
        api_key: str | None,
        cx: str | None,
        timeout_seconds: float = 8,
        client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key
        self.cx = cx
        self._owns_client = client is None
        self.client = client or build_client(timeout_seconds)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def search(self, query: str, limit: int = 10) -> list[SearchResult]:
        if not self.api_key or not self.cx:
            return []
        response = self.client.get(
            GOOGLE_CSE_URL,
            params={
                "key": self.api_key,
                "cx": self.cx,
                "q": query,
                "num": str(max(1, min(limit, 10))),
                "safe": "off",
            },
            headers={"Accept": "application/json"},
        )
        response.raise_for_status()
        payload = response.json()
        results: list[SearchResult] = []
        for item in payload.get("items") or []:
            link = str(item.get("link") or "").strip()
            if not link:
                continue
            results.append(
                SearchResult(
                    title=str(item.get("title") or link),
                    url=link,
                    description=str(item.get("snippet") or ""),
                )
            )
        return results


class DuckDuckGoSearchProvider:
    name = "duckduckgo"

    def __init__(self, timeout_seconds: float = 8, client: httpx.Client | None = None) -> None:
        self._owns_client = client is None
        self.client = client or build_client(timeout_seconds)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def search(self, query: str, limit: int = 10) -> list[SearchResult]:
        response = self.client.post(
            DUCKDUCKGO_HTML_URL,
            data={"q": query},
            headers={"Accept": HTML_ACCEPT},
        )
        response.raise_for_status()
        parser = _DuckResultParser()
        parser.feed(response.text)
        parser.close()
        return parser.items[:limit]


class NullSearchProvider:
    name = "none"

    def search(self, query: str, limit: int = 10) -> list[SearchResult]:
        return []

    def close(self) -> None:
        return None


def build_search_provider(settings: Settings, client: httpx.Client | None = None) -> WebSearchProvider:
    backend = settings.resolved_search_backend()
    if backend == "google":
        return GoogleSearchProvider(
            settings.google_search_api_key,
            settings.google_search_cx,
            timeout_seconds=settings.http_timeout_seconds,
            client=client,
        )
    if backend == "duckduckgo":
        return DuckDuckGoSearchProvider(timeout_seconds=settings.http_timeout_seconds, client=client)
    return NullSearchProvider()
