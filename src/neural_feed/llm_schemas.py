from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _LLMOutput(BaseModel):
    model_config = ConfigDict(extra="ignore")


class ClusterCandidate(_LLMOutput):
    display_name: str = ""
    primary_url: str = Field(min_length=1)
    summary: str = ""
    support_urls: list[str] = Field(default_factory=list)


class ClusterOutput(_LLMOutput):
    candidates: list[ClusterCandidate]


class MergedCandidate(ClusterCandidate):
    source: str | None = None


class MergeOutput(_LLMOutput):
    candidates: list[MergedCandidate]


class PreferencesOutput(_LLMOutput):
    depth: str = "mixed"
    format: str = "mixed"
    novelty: str = "medium"


class EvidenceOutput(_LLMOutput):
    claim: str
    support_url: str


class ProfileOutput(_LLMOutput):
    summary: str = Field(min_length=1)
    keywords: list[str]
    queries: list[str] = Field(default_factory=list)
    preferences: PreferencesOutput = Field(default_factory=PreferencesOutput)
    evidence: list[EvidenceOutput] = Field(default_factory=list)


class KeywordWeightOutput(_LLMOutput):
    keyword: str = Field(min_length=1)
    weight: float = Field(ge=0)
    rationale: str | None = None


class AugmentationOutput(_LLMOutput):
    keyword_weights: list[KeywordWeightOutput]
    additional_queries: list[str] = Field(default_factory=list)
    preference_notes: str | None = None


class QueryPlanOutput(_LLMOutput):
    arxiv: list[str] = Field(default_factory=list)
    hn: list[str] = Field(default_factory=list)
    news: list[str] = Field(default_factory=list)


class RankedEntry(_LLMOutput):
    id: str
    score: float | None = None
    novelty: str | None = None
    summary: str | None = None
    because: str | None = None


class RankOutput(_LLMOutput):
    top: list[RankedEntry]


class DigestOutput(_LLMOutput):
    tldr: str = Field(min_length=1)
    why_me: str = Field(min_length=1)
    next_actions: list[str] = Field(min_length=1)
