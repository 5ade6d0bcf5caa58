from __future__ import annotations

import json

from ..fallback import attempt
from ..llm_schemas import DigestOutput
from ..providers.llm_client import LLMClient
from ..schemas import DeepenDigest, FeedItem, ProfileCard
from ..text_utils import cut_text, dedupe_strings, first_name

_DIGEST_SYSTEM = "You craft tailored digests for the user. Return JSON only, no prose."
FALLBACK_ACTIONS = (
    "Skim the linked resource.",
    "Capture one actionable takeaway.",
    "Flag anything to revisit in the next refresh.",
)


def fallback_digest(profile: ProfileCard, item: FeedItem, name: str) -> DeepenDigest:
    return DeepenDigest(
        tldr=cut_text(f"{item.title}: {item.summary}", 160),
        why_me=f"It aligns with {first_name(name)}'s profile.",
        next_actions=list(FALLBACK_ACTIONS),
    )


class DigestBuilder:
    def __init__(self, llm: LLMClient) -> None:
        self.llm = llm

    def build(self, profile: ProfileCard, item: FeedItem, name: str) -> DeepenDigest:
        digest, _ = attempt(
            lambda: self._llm_digest(profile, item, name),
            lambda: fallback_digest(profile, item, name),
            "deepen digest",
        )
        return digest

    def _llm_digest(self, profile: ProfileCard, item: FeedItem, name: str) -> DeepenDigest:
        profile_block = {
            "summary": profile.summary,
            "keywords": profile.keywords,
            "preference_notes": profile.preference_notes,
        }
        item_block = {
            "title": item.title,
            "source": item.source,
            "summary": item.summary,
            "because": item.because,
            "url": item.url,
        }
        prompt = (
            f"Reader: {name}\n\n"
            f"Profile card:\n{json.dumps(profile_block, indent=2)}\n\n"
            f"Feed item:\n{json.dumps(item_block, indent=2)}\n\n"
            "Produce JSON with keys tldr (<=40 words), why_me (<=20 words), next_actions (3 concise imperatives)."
        )
        output = self.llm.complete_json(
            system=_DIGEST_SYSTEM,
            user=prompt,
            output_model=DigestOutput,
            purpose="deepen",
            temperature=0.2,
        )
        return DeepenDigest(
            tldr=output.tldr.strip(),
            why_me=output.why_me.strip(),
            next_actions=dedupe_strings(output.next_actions, 3),
        )
