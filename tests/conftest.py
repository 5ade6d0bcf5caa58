from __future__ import annotations

from pathlib import Path

import pytest

from neural_feed.config import get_settings
from neural_feed.providers.feed_parser import FeedEntry
from neural_feed.providers.llm_client import LLMClient
from neural_feed.schemas import CandidateContentItem, SearchResult
from neural_feed.services.digest import DigestBuilder
from neural_feed.services.discoverer import CandidateDiscoverer
from neural_feed.services.feed_cache import FeedCache
from neural_feed.services.gatherer import ContentGatherer
from neural_feed.services.harvester import EvidenceHarvester, IdentityResolver
from neural_feed.services.pipeline import PipelineOrchestrator
from neural_feed.services.planner import QueryPlanner
from neural_feed.services.ranker import FeedRanker
from neural_feed.services.synthesizer import ProfileSynthesizer

_CLEARED_ENV = (
    "AI_PROVIDER",
    "OPENAI_API_KEY",
    "OPENAI_BASE_URL",
    "DEEPSEEK_API_KEY",
    "DEEPSEEK_BASE_URL",
    "GOOGLE_SEARCH_API_KEY",
    "GOOGLE_SEARCH_CX",
    "SEARCH_BACKEND",
    "GITHUB_TOKEN",
    "LLM_TIMEOUT_SECONDS",
    "LOG_LEVEL",
)


@pytest.fixture
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    env_path = tmp_path / ".env"
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("NEURAL_FEED_ENV_FILE", str(env_path))
    for key in _CLEARED_ENV:
        # Registered first so values loaded from .env files are undone after the test.
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    get_settings.cache_clear()
    yield env_path
    get_settings.cache_clear()


class _OfflineSearch:
    name = "offline"

    def search(self, query: str, limit: int = 10) -> list[SearchResult]:
        return [
            SearchResult(
                title="adalovelace · GitHub",
                url="https://github.com/adalovelace",
                description="Notes on the analytical engine and Bernoulli number programs.",
            ),
            SearchResult(
                title="Ada Lovelace - Essays",
                url="https://ada.example.org",
                description="Essays on computing machinery, poetical science and mathematics.",
            ),
            SearchResult(
                title="Ada Lovelace | LinkedIn",
                url="https://www.linkedin.com/in/ada",
                description="Professional profile.",
            ),
        ][:limit]


class _OfflinePages:
    def readable_text(self, url: str, limit: int = 1200) -> str:
        if "ada.example.org" in url:
            return "Ada writes about analytical engines, mathematics and poetical science."
        return ""

    def outbound_links(self, url: str) -> list[str]:
        return [
            "https://ada.example.org/",
            "https://x.com/ada",
            "https://www.linkedin.com/in/ada",
            "https://unrelated.example.com/page",
        ]


class _OfflineCodeHost:
    def user(self, username: str) -> dict:
        return {"name": "Ada Lovelace", "bio": "Analytical engine programmer", "followers": 1815, "public_repos": 2}

    def recent_repos(self, username: str, limit: int = 5) -> list[dict]:
        return [
            {
                "name": "bernoulli",
                "html_url": f"https://github.com/{username}/bernoulli",
                "description": "Computing Bernoulli numbers on the analytical engine",
                "stargazers_count": 42,
                "language": "Python",
            }
        ][:limit]


class _OfflineNews:
    def search(self, query: str, window: str = "7d", limit: int = 10) -> list[FeedEntry]:
        return [
            FeedEntry(
                entry_id="news-1",
                title="Remembering the first programmer",
                link="https://news.example.com/ada",
                summary="A retrospective on mathematics and analytical engines.",
                date="2024-10-08",
            )
        ][:limit]


class _OfflineCollector:
    def __init__(self, name: str, size: int = 3) -> None:
        self.name = name
        self.size = size

    def collect(self, query: str, count: int = 3) -> list[CandidateContentItem]:
        return [
            CandidateContentItem(
                id=f"{self.name}-{index}",
                source=self.name,
                title=f"{self.name} item {index}",
                snippet=f"Snippet about {query}",
                url=f"https://{self.name}.example.com/{index}",
                date="2024-10-01",
            )
            for index in range(self.size)
        ][:count]


def build_offline_orchestrator(cache: FeedCache | None = None, collectors: list | None = None) -> PipelineOrchestrator:
    llm = LLMClient(api_key=None, base_url=None)
    pages = _OfflinePages()
    return PipelineOrchestrator(
        discoverer=CandidateDiscoverer(_OfflineSearch(), llm),
        resolver=IdentityResolver(pages),
        harvester=EvidenceHarvester(_OfflineCodeHost(), pages, _OfflineNews()),
        synthesizer=ProfileSynthesizer(llm),
        planner=QueryPlanner(llm),
        gatherer=ContentGatherer(
            collectors or [_OfflineCollector("arxiv"), _OfflineCollector("hn"), _OfflineCollector("news")],
            max_workers=3,
        ),
        ranker=FeedRanker(llm),
        digest_builder=DigestBuilder(llm),
        cache=cache,
    )


@pytest.fixture
def offline_orchestrator() -> PipelineOrchestrator:
    return build_offline_orchestrator()


@pytest.fixture
def orchestrator_factory():
    return build_offline_orchestrator
