from __future__ import annotations

import logging
from typing import Protocol

from ..schemas import CandidateContentItem
from ..text_utils import normalize_url, short_id, truncate
from ..time_utils import today_iso
from .feed_sources import ArxivProvider, GoogleNewsProvider
from .http_support import describe_error
from .page_fetcher import PageFetcher
from .web_search_provider import WebSearchProvider

logger = logging.getLogger(__name__)

DISCUSSION_SITE = "news.ycombinator.com"


class ContentCollector(Protocol):
    name: str

    def collect(self, query: str, count: int = 3) -> list[CandidateContentItem]: ...


class ArxivCollector:
    name = "arxiv"

    def __init__(self, provider: ArxivProvider) -> None:
        self.provider = provider

    def collect(self, query: str, count: int = 3) -> list[CandidateContentItem]:
        try:
            entries = self.provider.search(query, count=count)
        except Exception as exc:  # noqa: BLE001
            logger.warning("arxiv query %r failed: %s", query, describe_error(exc))
            return []

        items: list[CandidateContentItem] = []
        for entry in entries:
            title = entry.title or "arXiv entry"
            items.append(
                CandidateContentItem(
                    id=entry.entry_id or entry.link,
                    source=self.name,
                    title=title,
                    snippet=truncate(entry.summary or title, 360),
                    url=entry.link or entry.entry_id,
                    date=entry.date or today_iso(),
                )
            )
            if len(items) >= count:
                break
        return items


class DiscussionCollector:
    name = "hn"

    def __init__(self, search: WebSearchProvider, pages: PageFetcher) -> None:
        self.search = search
        self.pages = pages

    def collect(self, query: str, count: int = 3) -> list[CandidateContentItem]:
        try:
            results = self.search.search(f"site:{DISCUSSION_SITE} {query}", limit=min(count * 2, 10))
        except Exception as exc:  # noqa: BLE001
            logger.warning("discussion search %r failed: %s", query, describe_error(exc))
            return []

        items: list[CandidateContentItem] = []
        seen: set[str] = set()
        for result in results:
            url = normalize_url(result.url)
            if not url or url in seen:
                continue
            seen.add(url)
            content = self.pages.readable_text(url)
            items.append(
                CandidateContentItem(
                    id=f"hn-{short_id(url, 10)}",
                    source=self.name,
                    title=result.title or url,
                    snippet=truncate(content or result.description, 320),
                    url=url,
                    date=today_iso(),
                )
            )
            if len(items) >= count:
                break
        return items


class NewsCollector:
    name = "news"

    def __init__(self, provider: GoogleNewsProvider, window: str = "7d") -> None:
        self.provider = provider
        self.window = window

    def collect(self, query: str, count: int = 3) -> list[CandidateContentItem]:
        try:
            entries = self.provider.search(query, window=self.window, limit=count)
        except Exception as exc:  # noqa: BLE001
            logger.warning("news query %r failed: %s", query, describe_error(exc))
            return []

        items: list[CandidateContentItem] = []
        for entry in entries:
            title = entry.title or "News article"
            items.append(
                CandidateContentItem(
                    id=f"news-{short_id(entry.link, 12)}",
                    source=self.name,
                    title=title,
                    snippet=truncate(entry.summary or title, 260),
                    url=entry.link,
                    date=entry.date or today_iso(),
                )
            )
        return items[:count]
