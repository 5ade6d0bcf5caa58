from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

CandidateSource = Literal["github", "site"]
DiscoveryMode = Literal["cluster", "heuristic", "fallback"]
PlanMode = Literal["llm", "fallback"]

CONTENT_SOURCES: tuple[str, ...] = ("arxiv", "hn", "news")


@dataclass(slots=True)
class SearchResult:
    title: str
    url: str
    description: str = ""


@dataclass(slots=True)
class MergedFrom:
    url: str
    title: str | None = None


@dataclass(slots=True)
class CandidateIdentity:
    id: str
    display_name: str
    source: CandidateSource
    summary: str
    avatar_ref: str
    profile_url: str
    support_urls: list[str] = field(default_factory=list)
    merged_from: list[MergedFrom] = field(default_factory=list)


@dataclass(slots=True)
class DiscoveryResult:
    candidates: list[CandidateIdentity]
    mode: DiscoveryMode
    search_results: int = 0
    cluster_count: int = 0


@dataclass(slots=True)
class EvidenceSnippet:
    source: str
    title: str
    text: str
    url: str


@dataclass(slots=True)
class KeywordWeight:
    keyword: str
    weight: float
    rationale: str | None = None


@dataclass(slots=True)
class Preferences:
    depth: str = "mixed"
    format: str = "mixed"
    novelty: str = "medium"


@dataclass(slots=True)
class EvidenceClaim:
    claim: str
    support_url: str


@dataclass(slots=True)
class ProfileCard:
    summary: str
    keywords: list[str] = field(default_factory=list)
    queries: list[str] = field(default_factory=list)
    preferences: Preferences = field(default_factory=Preferences)
    evidence: list[EvidenceClaim] = field(default_factory=list)
    keyword_weights: list[KeywordWeight] = field(default_factory=list)
    source_focus: dict[str, float] = field(default_factory=dict)
    preference_notes: str | None = None


@dataclass(slots=True)
class ProfileResult:
    profile: ProfileCard
    synthesis_mode: PlanMode
    augmentation_mode: PlanMode


@dataclass(slots=True)
class QueryPlan:
    per_source: dict[str, list[str]] = field(default_factory=dict)

    def queries_for(self, source: str) -> list[str]:
        return list(self.per_source.get(source, []))


@dataclass(slots=True)
class PlanResult:
    plan: QueryPlan
    mode: PlanMode


@dataclass(slots=True)
class CandidateContentItem:
    id: str
    source: str
    title: str
    snippet: str
    url: str
    date: str


@dataclass(slots=True)
class FeedItem:
    id: str
    source: str
    title: str
    summary: str
    because: str
    url: str
    date: str


@dataclass(slots=True)
class RankingResult:
    exploitation: list[FeedItem]
    leftovers: list[FeedItem]
    mode: PlanMode = "fallback"


@dataclass(slots=True)
class FeedSplit:
    items: list[FeedItem]
    exploitation_count: int
    exploration: list[FeedItem]
    remaining: list[CandidateContentItem]


@dataclass(slots=True)
class DeepenDigest:
    tldr: str
    why_me: str
    next_actions: list[str] = field(default_factory=list)


@dataclass(slots=True)
class CacheEntry:
    item: FeedItem
    profile: ProfileCard
    name: str
    expires_at: datetime
