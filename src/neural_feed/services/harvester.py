from __future__ import annotations

import logging
from collections.abc import Iterable

from ..providers.code_host_provider import GitHubProvider
from ..providers.feed_sources import GoogleNewsProvider
from ..providers.http_support import describe_error
from ..providers.page_fetcher import PageFetcher
from ..schemas import EvidenceSnippet
from ..text_utils import first_path_segment, host_matches, host_of, truncate

logger = logging.getLogger(__name__)

MAX_SNIPPETS = 20
MAX_NEWS_SNIPPETS = 6
NEWS_WINDOW = "6m"
MAX_LINKED_IDENTITIES = 12
IDENTITY_DOMAINS = (
    "github.com",
    "linkedin.com",
    "scholar.google.com",
    "twitter.com",
    "x.com",
    "medium.com",
    "substack.com",
)
# Professional-network pages are not harvested while access is restricted.
SKIPPED_DOMAINS = ("linkedin.com",)
CODE_HOST_DOMAINS = ("github.com",)


class IdentityResolver:
    def __init__(self, pages: PageFetcher, max_links: int = MAX_LINKED_IDENTITIES) -> None:
        self.pages = pages
        self.max_links = max_links

    def expand(self, profile_url: str) -> list[str]:
        """Outbound identity links found on the profile page, or just the page itself on failure."""
        try:
            links = self.pages.outbound_links(profile_url)
        except Exception as exc:  # noqa: BLE001
            logger.warning("identity expansion for %s failed: %s", profile_url, describe_error(exc))
            return [profile_url]

        found: list[str] = []
        for link in links:
            host = host_of(link)
            if not host_matches(host, IDENTITY_DOMAINS):
                continue
            if link not in found:
                found.append(link)
            if len(found) >= self.max_links:
                break
        return found


class EvidenceHarvester:
    def __init__(
        self,
        code_host: GitHubProvider,
        pages: PageFetcher,
        news: GoogleNewsProvider,
        max_snippets: int = MAX_SNIPPETS,
        max_news: int = MAX_NEWS_SNIPPETS,
    ) -> None:
        self.code_host = code_host
        self.pages = pages
        self.news = news
        self.max_snippets = max_snippets
        self.max_news = max_news

    def harvest(self, name: str, identity_urls: Iterable[str]) -> list[EvidenceSnippet]:
        snippets: list[EvidenceSnippet] = []
        seen: set[str] = set()

        def _extend(batch: list[EvidenceSnippet]) -> None:
            for snippet in batch:
                if snippet.url in seen:
                    continue
                seen.add(snippet.url)
                snippets.append(snippet)

        for url in dict.fromkeys(identity_urls):
            host = host_of(url)
            if not host:
                continue
            if host_matches(host, SKIPPED_DOMAINS):
                logger.info("skipping %s: professional network harvesting is not supported", url)
                continue
            try:
                if host_matches(host, CODE_HOST_DOMAINS):
                    _extend(self._harvest_code_host(url))
                else:
                    _extend(self._harvest_website(url))
            except Exception as exc:  # noqa: BLE001
                logger.warning("harvest of %s failed: %s", url, describe_error(exc))

        _extend(self._harvest_news(name))
        return snippets[: self.max_snippets]

    def _harvest_code_host(self, url: str) -> list[EvidenceSnippet]:
        username = first_path_segment(url)
        if not username:
            return []

        user = self.code_host.user(username)
        repos = self.code_host.recent_repos(username, limit=5)

        overview = (
            f"Bio: {user.get('bio') or 'n/a'} • Location: {user.get('location') or 'n/a'} • "
            f"Followers: {user.get('followers') or 0} • Repos: {user.get('public_repos') or 0}"
        )
        snippets = [
            EvidenceSnippet(
                source="github",
                title=f"{user.get('name') or username} GitHub overview",
                text=truncate(overview, 320),
                url=f"https://github.com/{username}",
            )
        ]
        for repo in repos:
            repo_url = str(repo.get("html_url") or "").strip()
            if not repo_url:
                continue
            text = (
                f"{repo.get('description') or 'No description'} • "
                f"Stars: {repo.get('stargazers_count') or 0} • Language: {repo.get('language') or 'n/a'}"
            )
            snippets.append(
                EvidenceSnippet(
                    source="github",
                    title=str(repo.get("name") or repo_url),
                    text=truncate(text, 320),
                    url=repo_url,
                )
            )
        return snippets

    def _harvest_website(self, url: str) -> list[EvidenceSnippet]:
        content = self.pages.readable_text(url)
        if not content:
            return []
        return [
            EvidenceSnippet(
                source="website",
                title=f"Website: {host_of(url)}",
                text=truncate(content, 700),
                url=url,
            )
        ]

    def _harvest_news(self, name: str) -> list[EvidenceSnippet]:
        try:
            entries = self.news.search(name, window=NEWS_WINDOW, limit=self.max_news)
        except Exception as exc:  # noqa: BLE001
            logger.warning("news harvest for %r failed: %s", name, describe_error(exc))
            return []
        return [
            EvidenceSnippet(
                source="news",
                title=entry.title or "News mention",
                text=truncate(entry.summary, 320),
                url=entry.link,
            )
            for entry in entries[: self.max_news]
            if entry.link
        ]
