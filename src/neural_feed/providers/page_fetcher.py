from __future__ import annotations

from html.parser import HTMLParser

import httpx

from ..text_utils import normalize_url, strip_html, truncate
from .http_support import HTML_ACCEPT, build_client


class _AnchorParser(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.hrefs: list[str] = []

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if tag.lower() != "a":
            return
        for key, value in attrs:
            if str(key).lower() == "href" and value and value.strip():
                self.hrefs.append(value.strip())
                return


def extract_links(html_text: str, base_url: str) -> list[str]:
    parser = _AnchorParser()
    parser.feed(html_text or "")
    parser.close()
    links: list[str] = []
    for href in parser.hrefs:
        normalized = normalize_url(href, base=base_url)
        if normalized:
            links.append(normalized)
    return links


class PageFetcher:
    name = "page"

    def __init__(self, timeout_seconds: float = 8, client: httpx.Client | None = None) -> None:
        self._owns_client = client is None
        self.client = client or build_client(timeout_seconds)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def fetch_html(self, url: str) -> str:
        response = self.client.get(url, headers={"Accept": HTML_ACCEPT})
        response.raise_for_status()
        return response.text

    def readable_text(self, url: str, limit: int = 1200) -> str:
        try:
            raw = self.fetch_html(url)
        except Exception:  # noqa: BLE001
            return ""
        return truncate(strip_html(raw), limit)

    def outbound_links(self, url: str) -> list[str]:
        return extract_links(self.fetch_html(url), url)
