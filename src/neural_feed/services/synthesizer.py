from __future__ import annotations

import json
import math
from collections import Counter

from ..fallback import attempt
from ..llm_schemas import AugmentationOutput, KeywordWeightOutput, ProfileOutput
from ..providers.llm_client import LLMClient
from ..schemas import (
    EvidenceClaim,
    EvidenceSnippet,
    KeywordWeight,
    Preferences,
    ProfileCard,
    ProfileResult,
)
from ..text_utils import cut_text, dedupe_strings, split_words, truncate

MAX_FALLBACK_KEYWORDS = 8
MAX_MERGED_KEYWORDS = 12
MAX_ADDITIONAL_QUERIES = 4

_PROFILE_SYSTEM = (
    "You are an analyst turning harvested public data into a profile card. "
    "Be factual, avoid speculation, and respect the schema exactly."
)
_PROFILE_SCHEMA = """{
  "summary": "string. a comprehensive paragraph",
  "keywords": ["k1","k2","k3"],
  "queries": ["q1","q2","q3"],
  "preferences": {"depth":"theory|practice|mixed","format":"code|essay|video|mixed","novelty":"low|medium|high"},
  "evidence": [{"claim":"string","support_url":"url"}]
}"""
_AUGMENT_SYSTEM = "You synthesize profile signals, outputting strict JSON with weighted keywords and concise notes."
_AUGMENT_SCHEMA = """{
  "keyword_weights": [{"keyword": "...", "weight": 0.32, "rationale": "..."}],
  "additional_queries": ["..."],
  "preference_notes": "..."
}"""


def compute_source_focus(snippets: list[EvidenceSnippet]) -> dict[str, float]:
    counts = Counter(snippet.source.lower() for snippet in snippets)
    total = sum(counts.values()) or 1
    return {source: round(count / total, 3) for source, count in counts.items()}


def compute_keyword_counts(keywords: list[str], snippets: list[EvidenceSnippet]) -> dict[str, int]:
    counts = {keyword: 0 for keyword in keywords}
    for snippet in snippets:
        text = f"{snippet.title} {snippet.text}".lower()
        for keyword in keywords:
            if keyword and keyword.lower() in text:
                counts[keyword] += 1
    return counts


def uniform_weights(keywords: list[str]) -> list[KeywordWeight]:
    if not keywords:
        return []
    weight = round(1 / len(keywords), 3)
    return [KeywordWeight(keyword=keyword, weight=weight) for keyword in keywords]


def default_keyword_weighting(keywords: list[str], counts: dict[str, int]) -> list[KeywordWeight]:
    total = sum(counts.get(keyword, 0) for keyword in keywords)
    if total <= 0:
        return uniform_weights(keywords)
    return [KeywordWeight(keyword=keyword, weight=round(counts.get(keyword, 0) / total, 3)) for keyword in keywords]


def normalize_keyword_weights(
    weights: list[KeywordWeightOutput],
    fallback_keywords: list[str],
) -> list[KeywordWeight]:
    filtered = [
        entry
        for entry in weights
        if entry.keyword.strip() and math.isfinite(entry.weight) and entry.weight >= 0
    ][:MAX_MERGED_KEYWORDS]
    total = sum(entry.weight for entry in filtered)
    if not filtered or total <= 0:
        return uniform_weights(fallback_keywords)
    return [
        KeywordWeight(keyword=entry.keyword.strip(), weight=round(entry.weight / total, 3), rationale=entry.rationale)
        for entry in filtered
    ]


def fallback_keywords(snippets: list[EvidenceSnippet], limit: int = MAX_FALLBACK_KEYWORDS) -> list[str]:
    counts: Counter[str] = Counter()
    for snippet in snippets:
        for word in split_words(snippet.text):
            if len(word) > 4:
                counts[word.lower()] += 1
    return [word.replace("_", " ") for word, _ in counts.most_common(limit)]


def fallback_profile(name: str, snippets: list[EvidenceSnippet]) -> ProfileCard:
    sources = list(dict.fromkeys(snippet.source for snippet in snippets))
    activity = ", ".join(sources) if sources else "no harvested sources"
    return ProfileCard(
        summary=cut_text(
            f"{name} has public activity across {activity}. "
            "This profile is built from harvested public documents and may require manual refinement.",
            280,
        ),
        keywords=fallback_keywords(snippets),
        queries=[f"{name} latest", f"{name} interview", f"{name} github"],
        preferences=Preferences(),
        evidence=[
            EvidenceClaim(claim=truncate(snippet.title, 90), support_url=snippet.url) for snippet in snippets[:3]
        ],
    )


class ProfileSynthesizer:
    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    def build(self, name: str, snippets: list[EvidenceSnippet]) -> ProfileResult:
        profile, synthesized = self._synthesize(name, snippets)
        augmented = self.augment(name, profile, snippets)
        return ProfileResult(
            profile=profile,
            synthesis_mode="llm" if synthesized else "fallback",
            augmentation_mode="llm" if augmented else "fallback",
        )

    def synthesize(self, name: str, snippets: list[EvidenceSnippet]) -> ProfileCard:
        return self._synthesize(name, snippets)[0]

    def _synthesize(self, name: str, snippets: list[EvidenceSnippet]) -> tuple[ProfileCard, bool]:
        return attempt(
            lambda: self._llm_profile(name, snippets),
            lambda: fallback_profile(name, snippets),
            "profile synthesis",
        )

    def augment(self, name: str, profile: ProfileCard, snippets: list[EvidenceSnippet]) -> bool:
        """Enrich ``profile`` in place with weights, source focus and queries; True when the model produced them."""
        source_focus = compute_source_focus(snippets)
        counts = compute_keyword_counts(profile.keywords, snippets)

        def _fallback() -> tuple[list[KeywordWeight], list[str], str | None]:
            return default_keyword_weighting(profile.keywords, counts), dedupe_strings(profile.queries, 6), None

        (weights, queries, notes), used_llm = attempt(
            lambda: self._llm_augmentation(name, profile, snippets, counts, source_focus),
            _fallback,
            "profile signal augmentation",
        )

        profile.keywords = dedupe_strings([*profile.keywords, *(entry.keyword for entry in weights)], MAX_MERGED_KEYWORDS)
        profile.keyword_weights = weights
        profile.source_focus = source_focus
        profile.preference_notes = notes
        profile.queries = queries
        return used_llm

    def _llm_profile(self, name: str, snippets: list[EvidenceSnippet]) -> ProfileCard:
        blocks = "\n\n".join(
            f"### Document {index}\nSource: {snippet.source}\nTitle: {snippet.title}\nURL: {snippet.url}\nSnippet: {snippet.text}"
            for index, snippet in enumerate(snippets, start=1)
        )
        prompt = (
            f'Build a profile card for "{name}" using the harvested documents below. '
            f"Return JSON only, no commentary. Respect the schema:\n{_PROFILE_SCHEMA}\n\nDocuments:\n{blocks}"
        )
        output = self.llm.complete_json(
            system=_PROFILE_SYSTEM,
            user=prompt,
            output_model=ProfileOutput,
            purpose="profile",
            temperature=0.5,
        )
        return ProfileCard(
            summary=output.summary.strip(),
            keywords=dedupe_strings(output.keywords),
            queries=dedupe_strings(output.queries),
            preferences=Preferences(
                depth=output.preferences.depth,
                format=output.preferences.format,
                novelty=output.preferences.novelty,
            ),
            evidence=[
                EvidenceClaim(claim=entry.claim, support_url=entry.support_url) for entry in output.evidence
            ],
        )

    def _llm_augmentation(
        self,
        name: str,
        profile: ProfileCard,
        snippets: list[EvidenceSnippet],
        counts: dict[str, int],
        source_focus: dict[str, float],
    ) -> tuple[list[KeywordWeight], list[str], str | None]:
        digest = "\n\n".join(
            f"Doc {index}: [{snippet.source}] {snippet.title}\nSnippet: {truncate(snippet.text, 260)}\nURL: {snippet.url}"
            for index, snippet in enumerate(snippets[:6], start=1)
        )
        context = {
            "existing_keywords": profile.keywords,
            "existing_queries": profile.queries,
            "keyword_counts": counts,
            "source_focus": source_focus,
        }
        prompt = (
            f"Expand the interest signals for {name}. Use the documents and current profile to assign weights "
            f"to keywords (normalized 0-1), recommend up to {MAX_ADDITIONAL_QUERIES} fresh queries, and capture "
            f"any preference notes. Return JSON exactly matching:\n{_AUGMENT_SCHEMA}\n\n"
            f"Documents:\n{digest}\n\nCurrent signals:\n{json.dumps(context, indent=2)}\n\n"
            f"Profile summary:\n{profile.summary}"
        )
        output = self.llm.complete_json(
            system=_AUGMENT_SYSTEM,
            user=prompt,
            output_model=AugmentationOutput,
            purpose="profile",
            temperature=0.2,
        )
        weights = normalize_keyword_weights(output.keyword_weights, profile.keywords)
        queries = dedupe_strings([*profile.queries, *output.additional_queries[:MAX_ADDITIONAL_QUERIES]], 8)
        notes = (output.preference_notes or "").strip() or None
        return weights, queries, notes
