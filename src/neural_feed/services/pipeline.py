from __future__ import annotations

import logging
from collections.abc import Iterator

from ..config import Settings
from ..errors import ConfirmationRequiredError, InvalidNameError
from ..events import (
    AgentState,
    Event,
    candidate_pool_event,
    candidates_event,
    complete_event,
    error_event,
    feed_event,
    identity_label,
    log_event,
    profile_event,
    stage_event,
)
from ..logging_utils import level_from_string
from ..providers.code_host_provider import GitHubProvider
from ..providers.content_sources import ArxivCollector, DiscussionCollector, NewsCollector
from ..providers.feed_sources import ArxivProvider, GoogleNewsProvider
from ..providers.http_support import build_client
from ..providers.llm_client import LLMClient
from ..providers.page_fetcher import PageFetcher
from ..providers.web_search_provider import build_search_provider
from ..schemas import CandidateContentItem, DeepenDigest, FeedItem, FeedSplit, RankingResult
from .digest import DigestBuilder
from .discoverer import CandidateDiscoverer
from .feed_cache import FeedCache
from .gatherer import ContentGatherer
from .harvester import EvidenceHarvester, IdentityResolver
from .planner import QueryPlanner
from .ranker import FeedRanker, rebalance_feed, source_order
from .synthesizer import ProfileSynthesizer

logger = logging.getLogger(__name__)

MAX_EXPLOITATION = 8
MAX_EXPLORATION = 2
MAX_FEED = 10

_MODE_LABELS = {"cluster": "LLM clustering", "heuristic": "heuristic merge", "fallback": "fallback"}


def _as_content(item: FeedItem) -> CandidateContentItem:
    return CandidateContentItem(
        id=item.id,
        source=item.source,
        title=item.title,
        snippet=item.summary,
        url=item.url,
        date=item.date,
    )


def split_feed(ranking: RankingResult) -> FeedSplit:
    """Divide a ranking into the delivered feed, an exploration slice and the browseable remainder."""
    exploitation = ranking.exploitation[:MAX_EXPLOITATION]
    exploitation_ids = {item.id for item in exploitation}
    candidates = [item for item in ranking.leftovers if item.id not in exploitation_ids]
    order = source_order([*exploitation, *candidates])

    exploration = rebalance_feed(candidates, order, per_source_cap=1)[:MAX_EXPLORATION]
    exploration_ids = {item.id for item in exploration}

    core_pool = [*exploitation, *(item for item in candidates if item.id not in exploration_ids)]
    combined = rebalance_feed(core_pool, order, per_source_cap=3)[:MAX_FEED]
    combined_ids = {item.id for item in combined}

    remaining = [
        _as_content(item)
        for item in ranking.leftovers
        if item.id not in combined_ids and item.id not in exploration_ids
    ]
    return FeedSplit(
        items=combined,
        exploitation_count=len(exploitation),
        exploration=exploration,
        remaining=remaining,
    )


class PipelineOrchestrator:
    def __init__(
        self,
        discoverer: CandidateDiscoverer,
        resolver: IdentityResolver,
        harvester: EvidenceHarvester,
        synthesizer: ProfileSynthesizer,
        planner: QueryPlanner,
        gatherer: ContentGatherer,
        ranker: FeedRanker,
        digest_builder: DigestBuilder,
        cache: FeedCache | None = None,
    ) -> None:
        self.discoverer = discoverer
        self.resolver = resolver
        self.harvester = harvester
        self.synthesizer = synthesizer
        self.planner = planner
        self.gatherer = gatherer
        self.ranker = ranker
        self.digest_builder = digest_builder
        self.cache = cache or FeedCache()
        self._closeables: list = []

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineOrchestrator:
        client = build_client(settings.http_timeout_seconds)
        llm = LLMClient.from_settings(settings)
        search = build_search_provider(settings, client=client)
        pages = PageFetcher(client=client)
        news = GoogleNewsProvider(client=client)
        orchestrator = cls(
            discoverer=CandidateDiscoverer(search, llm),
            resolver=IdentityResolver(pages),
            harvester=EvidenceHarvester(GitHubProvider(settings.github_token, client=client), pages, news),
            synthesizer=ProfileSynthesizer(llm),
            planner=QueryPlanner(llm),
            gatherer=ContentGatherer(
                [
                    ArxivCollector(ArxivProvider(client=client)),
                    DiscussionCollector(search, pages),
                    NewsCollector(news),
                ],
                max_workers=settings.max_concurrency,
            ),
            ranker=FeedRanker(llm),
            digest_builder=DigestBuilder(llm),
            cache=FeedCache(ttl_seconds=settings.feed_cache_ttl_seconds),
        )
        orchestrator._closeables.append(client)
        return orchestrator

    def close(self) -> None:
        for resource in self._closeables:
            resource.close()
        self._closeables = []

    def _log(self, message: str, level: str = "info") -> Event:
        logger.log(level_from_string(level), message)
        return log_event(message, level)

    def discover_events(self, name: str) -> Iterator[Event]:
        try:
            normalized = _require_name(name)
            yield stage_event(AgentState.DISCOVER_CANDIDATES)
            yield self._log(f'Searching public web for "{normalized}"…')

            discovery = self.discoverer.discover(normalized)
            if discovery.mode == "cluster":
                extra = f" ({discovery.cluster_count} clusters from {discovery.search_results} search hits)"
            elif discovery.mode == "heuristic":
                extra = f" ({discovery.search_results} search hits heuristically mapped)"
            else:
                extra = ""
            yield self._log(
                f"Found {len(discovery.candidates)} candidate profiles via {_MODE_LABELS[discovery.mode]}{extra}.",
                "success",
            )
            if discovery.mode != "cluster":
                yield self._log(
                    "LLM clustering unavailable; showing best-effort matches. "
                    "Provide a direct URL if these look off.",
                    "warning",
                )
            yield candidates_event(discovery)
            yield stage_event(AgentState.AWAIT_USER_CONFIRM)
            yield complete_event("Discovery complete.")
        except Exception as exc:  # noqa: BLE001
            if not isinstance(exc, InvalidNameError):
                logger.exception("discovery failed")
            yield error_event(str(exc) or exc.__class__.__name__)

    def run_events(self, name: str, candidate_id: str | None) -> Iterator[Event]:
        try:
            yield from self._run(_require_name(name), candidate_id)
        except Exception as exc:  # noqa: BLE001
            if not isinstance(exc, (ConfirmationRequiredError, InvalidNameError)):
                logger.exception("pipeline run failed")
            yield error_event(str(exc) or exc.__class__.__name__)

    def _run(self, name: str, candidate_id: str | None) -> Iterator[Event]:
        yield stage_event(AgentState.RESOLVE_ENTITIES)
        if not candidate_id or not candidate_id.strip():
            raise ConfirmationRequiredError()

        yield self._log(f'Re-running discovery for "{name}" to confirm the selected candidate…')
        discovery = self.discoverer.discover(name)
        confirmed = next((c for c in discovery.candidates if c.id == candidate_id.strip()), None)
        if confirmed is None:
            raise ConfirmationRequiredError()
        yield self._log(f"Confirmed {identity_label(confirmed)}.", "success")

        yield self._log("Resolving linked identities (website, Scholar, X)…")
        identities = [confirmed.profile_url, *confirmed.support_urls, *self.resolver.expand(confirmed.profile_url)]
        identity_set = list(dict.fromkeys(identities))

        yield stage_event(AgentState.HARVEST_PUBLIC_DATA)
        yield self._log(f"Collected {len(identity_set)} linked identities.")
        yield self._log("Harvesting public data…")
        snippets = self.harvester.harvest(name, identity_set)
        yield self._log(f"Harvested {len(snippets)} documents.", "success")

        yield stage_event(AgentState.BUILD_PROFILE)
        yield self._log("Summarizing to profile…")
        result = self.synthesizer.build(name, snippets)
        profile = result.profile
        yield self._log(
            f"Profile card ready via {'LLM' if result.synthesis_mode == 'llm' else 'fallback'} synthesis. "
            f"Signals enriched via {'LLM' if result.augmentation_mode == 'llm' else 'heuristic'} augmentation.",
            "success",
        )
        yield profile_event(profile)

        yield stage_event(AgentState.FETCH_CANDIDATES)
        yield self._log("Planning source queries…")
        planned = self.planner.plan(profile)
        yield self._log("Fetching candidates (arXiv/HN/News)…")
        items = self.gatherer.gather(planned.plan)
        preview = " · ".join(
            f"{source}:{' | '.join(queries[:2])}" for source, queries in planned.plan.per_source.items()
        )
        plan_label = "LLM query plan" if planned.mode == "llm" else "keyword fallback plan"
        yield self._log(
            f"Fetched {len(items)} candidate items via {plan_label}{f' ({preview})' if preview else ''}."
        )
        yield candidate_pool_event(items, planned.plan, planned.mode)

        yield stage_event(AgentState.RANK_AND_EXPLAIN)
        yield self._log("Ranking & explaining…")
        ranking = self.ranker.rank(name, profile, items)
        split = split_feed(ranking)
        rank_label = "LLM ranking" if ranking.mode == "llm" else "fallback ranking"
        yield self._log(
            f"Ranking complete via {rank_label}. "
            f"Exploit {split.exploitation_count} + explore {len(split.exploration)}.",
            "success",
        )
        yield feed_event(split)

        self.cache.put_many([*split.items, *split.exploration], profile, name)
        yield complete_event("Run complete.")

    def deepen(self, item_id: str, name: str | None = None) -> DeepenDigest | None:
        entry = self.cache.get(item_id)
        if entry is None:
            return None
        return self.digest_builder.build(entry.profile, entry.item, (name or "").strip() or "You")


def _require_name(name: str | None) -> str:
    normalized = (name or "").strip()
    if not normalized:
        raise InvalidNameError()
    return normalized
