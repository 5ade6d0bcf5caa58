from __future__ import annotations

import json

from ..errors import LLMResponseError
from ..fallback import attempt
from ..llm_schemas import QueryPlanOutput
from ..providers.llm_client import LLMClient
from ..schemas import CONTENT_SOURCES, PlanResult, ProfileCard, QueryPlan
from ..text_utils import dedupe_strings

MAX_QUERIES_PER_SOURCE = 4

# Suffixes appended to keywords and to profile queries respectively.
_SOURCE_PHRASES: dict[str, tuple[str, str]] = {
    "arxiv": ("arxiv", "paper"),
    "hn": ("discussion", "project news"),
    "news": ("interview", "blog post"),
}

_PLAN_SYSTEM = (
    "You generate targeted search queries for different content sources (arxiv, hn, news) based on a profile."
)


def top_keywords(profile: ProfileCard, limit: int = 6) -> list[str]:
    if profile.keyword_weights:
        ranked = sorted(profile.keyword_weights, key=lambda entry: entry.weight, reverse=True)
        return [entry.keyword for entry in ranked][:limit]
    return list(profile.keywords[:limit])


def fallback_plan(profile: ProfileCard) -> QueryPlan:
    keywords = top_keywords(profile)
    hints = profile.queries[:6]
    primary = keywords or [profile.summary]

    per_source: dict[str, list[str]] = {}
    for source in CONTENT_SOURCES:
        keyword_phrase, query_phrase = _SOURCE_PHRASES[source]
        per_source[source] = dedupe_strings(
            [f"{keyword} {keyword_phrase}" for keyword in primary] + [f"{query} {query_phrase}" for query in hints],
            MAX_QUERIES_PER_SOURCE,
        )
    return QueryPlan(per_source=per_source)


class QueryPlanner:
    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    def plan(self, profile: ProfileCard) -> PlanResult:
        plan, used_llm = attempt(
            lambda: self._llm_plan(profile),
            lambda: fallback_plan(profile),
            "query planning",
        )
        return PlanResult(plan=plan, mode="llm" if used_llm else "fallback")

    def _llm_plan(self, profile: ProfileCard) -> QueryPlan:
        context = {
            "summary": profile.summary,
            "keywords": top_keywords(profile, limit=12),
            "preferences": {
                "depth": profile.preferences.depth,
                "format": profile.preferences.format,
                "novelty": profile.preferences.novelty,
            },
            "evidence": [
                {"claim": entry.claim, "support_url": entry.support_url} for entry in profile.evidence[:4]
            ],
        }
        prompt = (
            "Given the profile below, craft focused search queries for each source so we retrieve "
            f"high-signal items. Keep each array to at most {MAX_QUERIES_PER_SOURCE} entries. "
            'Return JSON only in the schema:\n{"arxiv": ["..."], "hn": ["..."], "news": ["..."]}\n\n'
            f"Profile:\n{json.dumps(context, indent=2)}"
        )
        output = self.llm.complete_json(
            system=_PLAN_SYSTEM,
            user=prompt,
            output_model=QueryPlanOutput,
            purpose="rank",
            temperature=0.2,
        )
        per_source = {
            "arxiv": dedupe_strings(output.arxiv, MAX_QUERIES_PER_SOURCE),
            "hn": dedupe_strings(output.hn, MAX_QUERIES_PER_SOURCE),
            "news": dedupe_strings(output.news, MAX_QUERIES_PER_SOURCE),
        }
        if not any(per_source.values()):
            raise LLMResponseError("Query plan contained no queries.")
        return QueryPlan(per_source=per_source)
