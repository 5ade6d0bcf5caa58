from __future__ import annotations

import json
from collections.abc import Sequence

from ..errors import LLMResponseError
from ..fallback import attempt
from ..llm_schemas import RankOutput
from ..providers.llm_client import LLMClient
from ..schemas import CONTENT_SOURCES, CandidateContentItem, FeedItem, ProfileCard, RankingResult
from ..text_utils import first_name, truncate

POOL_CAP = 30
MAX_RANKED = 10
PER_SOURCE_CAP = 3
CODE_HOST_SOURCE = "github"

_RANK_SYSTEM = (
    "You are ranking candidate content for a personalized AI feed. Return JSON with the schema "
    '{"top":[{"id":"","score":0.0,"novelty":"","summary":"","because":""}]} using only provided candidates.'
)


def source_order(items: Sequence[FeedItem | CandidateContentItem]) -> tuple[str, ...]:
    if any(item.source == CODE_HOST_SOURCE for item in items):
        return (*CONTENT_SOURCES, CODE_HOST_SOURCE)
    return CONTENT_SOURCES


def rebalance_feed(
    items: Sequence[FeedItem],
    sources: Sequence[str] | None = None,
    per_source_cap: int = PER_SOURCE_CAP,
) -> list[FeedItem]:
    """Interleave items so each source contributes at most ``per_source_cap`` to the head of the list.

    Order: capped slice of every source in priority order, then each source's overflow,
    then items from unrecognized sources. Output is cut to ``len(sources) * per_source_cap``.
    """
    order = tuple(sources) if sources is not None else source_order(items)
    buckets: dict[str, list[FeedItem]] = {source: [] for source in order}
    unknown: list[FeedItem] = []
    seen: set[str] = set()

    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        bucket = buckets.get(item.source)
        if bucket is None:
            unknown.append(item)
        else:
            bucket.append(item)

    balanced: list[FeedItem] = []
    for source in order:
        balanced.extend(buckets[source][:per_source_cap])
    for source in order:
        balanced.extend(buckets[source][per_source_cap:])
    balanced.extend(unknown)

    return balanced[: max(1, len(order) * per_source_cap)]


def to_feed_item(item: CandidateContentItem, because: str, summary: str | None = None) -> FeedItem:
    return FeedItem(
        id=item.id,
        source=item.source,
        title=item.title,
        summary=item.snippet if summary is None else summary,
        because=because,
        url=item.url,
        date=item.date,
    )


def build_fallback_feed(name: str, profile: ProfileCard, items: Sequence[CandidateContentItem]) -> list[FeedItem]:
    topic = profile.keywords[0] if profile.keywords else "the topic"
    because = f"Matches {first_name(name)}'s interest in {topic}."
    feed = [to_feed_item(item, because) for item in items[:POOL_CAP]]
    return rebalance_feed(feed)


def leftovers_for(items: Sequence[CandidateContentItem], chosen: Sequence[FeedItem]) -> list[FeedItem]:
    chosen_ids = {item.id for item in chosen}
    return [
        to_feed_item(item, f"Candidate from {item.source}.")
        for item in items
        if item.id not in chosen_ids
    ]


def _default_weights(profile: ProfileCard) -> list[dict[str, object]]:
    if profile.keyword_weights:
        return [
            {"keyword": entry.keyword, "weight": entry.weight, "rationale": entry.rationale}
            for entry in profile.keyword_weights
        ]
    weight = round(1 / max(len(profile.keywords), 1), 3)
    return [{"keyword": keyword, "weight": weight} for keyword in profile.keywords]


class FeedRanker:
    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    def rank(self, name: str, profile: ProfileCard, candidates: Sequence[CandidateContentItem]) -> RankingResult:
        exploitation, used_llm = attempt(
            lambda: self._llm_rank(name, profile, candidates),
            lambda: build_fallback_feed(name, profile, candidates),
            "feed ranking",
        )
        return RankingResult(
            exploitation=exploitation,
            leftovers=leftovers_for(candidates, exploitation),
            mode="llm" if used_llm else "fallback",
        )

    def _llm_rank(self, name: str, profile: ProfileCard, candidates: Sequence[CandidateContentItem]) -> list[FeedItem]:
        if not candidates:
            raise LLMResponseError("Nothing to rank.")

        profile_block = {
            "summary": profile.summary,
            "keywords": profile.keywords,
            "queries": profile.queries,
            "evidence": [{"claim": entry.claim, "support_url": entry.support_url} for entry in profile.evidence],
        }
        signals = {
            "keyword_weights": _default_weights(profile),
            "source_focus": profile.source_focus,
            "preferences": {
                "depth": profile.preferences.depth,
                "format": profile.preferences.format,
                "novelty": profile.preferences.novelty,
            },
            "preference_notes": profile.preference_notes or "",
        }
        listing = "\n\n".join(
            f"ID: {item.id}\nSource: {item.source}\nTitle: {item.title}\nSnippet: {item.snippet}\n"
            f"URL: {item.url}\nDate: {item.date}"
            for item in candidates
        )
        prompt = (
            f"Profile card:\n{json.dumps(profile_block, indent=2)}\n\n"
            f"Candidates:\n{listing}\n\n"
            f"Interest signals:\n{json.dumps(signals, indent=2)}\n\n"
            f"Select up to {MAX_RANKED} items aligned with the profile. Weight keyword matches by their weights "
            "and consider how frequently sources appear in the profile. Provide brief summaries (<=25 words) "
            f'and "because" lines (<=18 words). Limit to at most {PER_SOURCE_CAP} items per source and include '
            'every available source if quality permits. Use "stretch" or "core" or "comfort" for novelty. '
            "Return JSON only."
        )
        output = self.llm.complete_json(
            system=_RANK_SYSTEM,
            user=prompt,
            output_model=RankOutput,
            purpose="rank",
            temperature=0.5,
        )

        by_id = {item.id: item for item in candidates}
        ranked: list[FeedItem] = []
        for entry in output.top:
            item = by_id.get(entry.id)
            if item is None:
                continue
            ranked.append(
                to_feed_item(
                    item,
                    because=truncate(entry.because or f"Matches {first_name(name)}'s priorities.", 120),
                    summary=truncate(entry.summary or item.snippet, 200),
                )
            )
            if len(ranked) >= MAX_RANKED:
                break

        balanced = rebalance_feed(ranked)
        if not balanced:
            raise LLMResponseError("Ranking selected no known candidates.")
        return balanced
