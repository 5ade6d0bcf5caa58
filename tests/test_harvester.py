from __future__ import annotations

import httpx

from neural_feed.providers.feed_parser import FeedEntry
from neural_feed.services.harvester import EvidenceHarvester, IdentityResolver


class FakePages:
    def __init__(self, texts: dict[str, str] | None = None, links: list[str] | None = None, broken: bool = False):
        self.texts = texts or {}
        self.links = links or []
        self.broken = broken
        self.fetched: list[str] = []

    def readable_text(self, url: str, limit: int = 1200) -> str:
        self.fetched.append(url)
        if url == "https://down.example.org/":
            raise httpx.ConnectError("refused")
        return self.texts.get(url, "")

    def outbound_links(self, url: str) -> list[str]:
        if self.broken:
            raise httpx.ReadTimeout("slow")
        return list(self.links)


class FakeCodeHost:
    def __init__(self, repo_count: int = 3) -> None:
        self.repo_count = repo_count

    def user(self, username: str) -> dict:
        return {"name": username.title(), "bio": "Builds compilers", "followers": 10, "public_repos": 3}

    def recent_repos(self, username: str, limit: int = 5) -> list[dict]:
        return [
            {
                "name": f"repo-{index}",
                "html_url": f"https://github.com/{username}/repo-{index}",
                "description": "Compiler experiments",
                "stargazers_count": index,
                "language": "Rust",
            }
            for index in range(self.repo_count)
        ][:limit]


class FakeNews:
    def __init__(self, count: int = 2, error: Exception | None = None) -> None:
        self.count = count
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def search(self, query: str, window: str = "7d", limit: int = 10) -> list[FeedEntry]:
        self.calls.append((query, window))
        if self.error is not None:
            raise self.error
        return [
            FeedEntry(
                entry_id=f"n{index}",
                title=f"Story {index}",
                link=f"https://news.example.com/{index}",
                summary="Coverage of compilers",
                date="2024-10-01",
            )
            for index in range(self.count)
        ][:limit]


def test_harvest_combines_sources_and_dedupes_by_url():
    pages = FakePages(texts={"https://grace.example.org/": "Grace writes about compilers and COBOL."})
    news = FakeNews(count=2)
    harvester = EvidenceHarvester(FakeCodeHost(repo_count=2), pages, news)

    snippets = harvester.harvest(
        "Grace Hopper",
        ["https://github.com/ghopper", "https://grace.example.org/", "https://github.com/ghopper"],
    )

    assert [s.source for s in snippets] == ["github", "github", "github", "website", "news", "news"]
    assert snippets[0].url == "https://github.com/ghopper"
    assert snippets[3].title == "Website: grace.example.org"
    assert len({s.url for s in snippets}) == len(snippets)
    assert news.calls == [("Grace Hopper", "6m")]


def test_harvest_is_capped_at_twenty():
    harvester = EvidenceHarvester(FakeCodeHost(repo_count=5), FakePages(), FakeNews(count=6))
    urls = [f"https://github.com/user{index}" for index in range(5)]

    snippets = harvester.harvest("Someone", urls)

    assert len(snippets) == 20


def test_harvest_skips_linkedin_and_swallows_failures():
    pages = FakePages()
    harvester = EvidenceHarvester(FakeCodeHost(), pages, FakeNews(error=httpx.ConnectError("down")))

    snippets = harvester.harvest(
        "Grace Hopper",
        ["https://www.linkedin.com/in/grace", "https://down.example.org/", "not a url"],
    )

    assert snippets == []
    assert "https://www.linkedin.com/in/grace" not in pages.fetched


def test_harvest_is_repeatable_for_same_upstream_data():
    pages = FakePages(texts={"https://grace.example.org/": "Compilers"})
    harvester = EvidenceHarvester(FakeCodeHost(repo_count=1), pages, FakeNews(count=1))
    urls = ["https://github.com/ghopper", "https://grace.example.org/"]

    assert harvester.harvest("Grace", urls) == harvester.harvest("Grace", urls)


def test_resolver_keeps_identity_hosts_only():
    pages = FakePages(
        links=[
            "https://x.com/grace",
            "https://blog.example.org/post",
            "https://scholar.google.com/citations?user=1",
            "https://x.com/grace",
            "https://github.com/ghopper",
            "https://www.netflix.com/title/1",
            "https://www.dropbox.com/s/abc",
            "https://linux.com/x",
            "https://mobile.twitter.com/grace",
        ]
    )

    found = IdentityResolver(pages).expand("https://grace.example.org/")

    assert found == [
        "https://x.com/grace",
        "https://scholar.google.com/citations?user=1",
        "https://github.com/ghopper",
        "https://mobile.twitter.com/grace",
    ]


def test_resolver_returns_profile_on_fetch_failure():
    resolver = IdentityResolver(FakePages(broken=True))
    assert resolver.expand("https://grace.example.org/") == ["https://grace.example.org/"]


def test_lookalike_code_host_is_harvested_as_website():
    pages = FakePages(texts={"https://notgithub.com/ghopper": "A mirror of someone else's repos."})
    harvester = EvidenceHarvester(FakeCodeHost(), pages, FakeNews(count=0))

    snippets = harvester.harvest("Grace", ["https://notgithub.com/ghopper"])

    assert [s.source for s in snippets] == ["website"]
    assert pages.fetched == ["https://notgithub.com/ghopper"]
