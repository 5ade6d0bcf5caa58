from __future__ import annotations

import dataclasses
import logging
from urllib.parse import quote

from ..fallback import attempt
from ..llm_schemas import ClusterOutput, MergeOutput
from ..providers.http_support import describe_error
from ..providers.llm_client import LLMClient
from ..providers.web_search_provider import WebSearchProvider
from ..schemas import CandidateIdentity, CandidateSource, DiscoveryResult, MergedFrom, SearchResult
from ..text_utils import (
    first_name,
    first_path_segment,
    host_matches,
    host_of,
    initials,
    normalize_url,
    short_id,
    slugify,
    truncate,
)

logger = logging.getLogger(__name__)

BLOCKED_DOMAINS = ("linkedin.com",)
CODE_HOST_DOMAINS = ("github.com",)
MAX_SEARCH_RESULTS = 12
MAX_CANDIDATES = 6
MAX_SUPPORT_URLS = 6

_CLUSTER_SYSTEM = (
    "You cluster search results referring to the same individual. "
    "Provide concise factual summaries and ensure URLs remain accurate."
)
_MERGE_SYSTEM = "You merge candidate web identities into distinct people with concise factual summaries."


def is_blocked_url(url: str) -> bool:
    return host_matches(host_of(url), BLOCKED_DOMAINS)


def tag_for_url(url: str) -> CandidateSource:
    if host_matches(host_of(url), CODE_HOST_DOMAINS):
        return "github"
    return "site"


def generated_avatar(name: str, seed: str | None = None) -> str:
    return f"https://avatar.vercel.sh/{quote(seed or name, safe='')}.png?text={quote(initials(name), safe='')}"


def avatar_for_url(name: str, url: str) -> str:
    if host_matches(host_of(url), CODE_HOST_DOMAINS):
        username = first_path_segment(url)
        if username:
            return f"https://avatars.githubusercontent.com/{username}"
    return generated_avatar(name)


def candidate_id(url: str, source: str) -> str:
    return f"{short_id(url, 10)}-{source}"


def fallback_candidates(name: str) -> list[CandidateIdentity]:
    base = slugify(name)
    github_url = f"https://github.com/{base}"
    site_url = f"https://{base}.com"
    return [
        CandidateIdentity(
            id=f"{base}-gh",
            display_name=f"{name} (GitHub)",
            source="github",
            summary="Fallback GitHub guess derived from the entered name.",
            avatar_ref=generated_avatar(name),
            profile_url=github_url,
            support_urls=[github_url],
        ),
        CandidateIdentity(
            id=f"{base}-site",
            display_name=f"{name} (Website)",
            source="site",
            summary="Fallback personal site guess derived from the entered name.",
            avatar_ref=generated_avatar(name, seed=f"{name}-site"),
            profile_url=site_url,
            support_urls=[site_url],
        ),
    ]


def dedupe_candidates(candidates: list[CandidateIdentity]) -> list[CandidateIdentity]:
    """Collapse entries sharing a profile URL (case-insensitive) and suffix colliding ids."""
    unique: list[CandidateIdentity] = []
    by_url: dict[str, CandidateIdentity] = {}
    seen_ids: set[str] = set()

    for candidate in candidates:
        url_key = candidate.profile_url.lower()
        kept = by_url.get(url_key)
        if kept is not None:
            known = {entry.url for entry in kept.merged_from}
            for entry in candidate.merged_from:
                if entry.url not in known:
                    kept.merged_from.append(entry)
                    known.add(entry.url)
            for url in candidate.support_urls:
                if url not in kept.support_urls:
                    kept.support_urls.append(url)
            continue

        new_id = candidate.id
        suffix = 1
        while new_id in seen_ids:
            suffix += 1
            new_id = f"{candidate.id}-{suffix}"
        seen_ids.add(new_id)

        copy = dataclasses.replace(
            candidate,
            id=new_id,
            support_urls=list(candidate.support_urls),
            merged_from=list(candidate.merged_from),
        )
        by_url[url_key] = copy
        unique.append(copy)

    return unique


class CandidateDiscoverer:
    def __init__(
        self,
        search: WebSearchProvider,
        llm: LLMClient,
        max_results: int = MAX_SEARCH_RESULTS,
        max_candidates: int = MAX_CANDIDATES,
    ) -> None:
        self.search = search
        self.llm = llm
        self.max_results = max_results
        self.max_candidates = max_candidates

    def search_results(self, name: str) -> list[SearchResult]:
        try:
            raw = self.search.search(name, limit=10)
        except Exception as exc:  # noqa: BLE001
            logger.warning("web search for %r failed: %s", name, describe_error(exc))
            return []

        unique: dict[str, SearchResult] = {}
        for result in raw:
            normalized = normalize_url(result.url)
            if not normalized or is_blocked_url(normalized):
                continue
            if normalized not in unique:
                unique[normalized] = SearchResult(
                    title=result.title or normalized,
                    url=normalized,
                    description=result.description or "",
                )
            if len(unique) >= self.max_results:
                break
        return list(unique.values())

    def discover(self, name: str) -> DiscoveryResult:
        results = self.search_results(name)
        if not results:
            return DiscoveryResult(candidates=fallback_candidates(name), mode="fallback")

        clustered, _ = attempt(
            lambda: self._cluster(name, results),
            lambda: [],
            "candidate clustering",
        )
        if clustered:
            return DiscoveryResult(
                candidates=dedupe_candidates(clustered),
                mode="cluster",
                search_results=len(results),
                cluster_count=len(clustered),
            )

        heuristics = self._heuristic_candidates(name, results)
        if not heuristics:
            return DiscoveryResult(
                candidates=fallback_candidates(name),
                mode="fallback",
                search_results=len(results),
            )

        merged, _ = attempt(
            lambda: self._merge(name, heuristics),
            lambda: [],
            "heuristic candidate merge",
        )
        chosen = merged or heuristics
        return DiscoveryResult(
            candidates=dedupe_candidates(chosen),
            mode="heuristic",
            search_results=len(results),
            cluster_count=len(chosen),
        )

    def _cluster(self, name: str, results: list[SearchResult]) -> list[CandidateIdentity]:
        listing = "\n\n".join(
            f"Result {index}:\nTitle: {result.title}\nURL: {result.url}\nSnippet: {result.description}"
            for index, result in enumerate(results, start=1)
        )
        prompt = (
            f'You are helping cluster search results for the person named "{name}". '
            "Group the URLs that appear to describe the same individual. If the results obviously belong "
            "to different people, create separate entries. Prefer GitHub or personal sites as primary URLs. "
            f"Output up to {self.max_candidates} candidates.\n\n"
            "Return JSON ONLY in the form:\n"
            '{"candidates": [{"display_name": "...", "primary_url": "...", '
            '"summary": "short factual summary <=30 words", "support_urls": ["..."]}]}\n\n'
            "Use only URLs from the list. Discard LinkedIn URLs in the output."
        )
        output = self.llm.complete_json(
            system=_CLUSTER_SYSTEM,
            user=f"{listing}\n\n{prompt}",
            output_model=ClusterOutput,
            purpose="profile",
            temperature=0.1,
        )

        mapped: list[CandidateIdentity] = []
        for cluster in output.candidates[: self.max_candidates]:
            primary = normalize_url(cluster.primary_url)
            if not primary or is_blocked_url(primary):
                continue
            source = tag_for_url(primary)
            display = cluster.display_name.strip() or f"{first_name(name)} ({'GitHub' if source == 'github' else 'Site'})"
            support = [url for url in cluster.support_urls if url and not is_blocked_url(url)]
            mapped.append(
                CandidateIdentity(
                    id=candidate_id(primary, source),
                    display_name=display,
                    source=source,
                    summary=truncate(cluster.summary, 240),
                    avatar_ref=avatar_for_url(display, primary),
                    profile_url=primary,
                    support_urls=[primary, *[url for url in support if url != primary]][:MAX_SUPPORT_URLS],
                    merged_from=[
                        MergedFrom(url=primary, title=cluster.summary or None),
                        *[MergedFrom(url=url) for url in support if url != primary],
                    ],
                )
            )
        return mapped

    def _heuristic_candidates(self, name: str, results: list[SearchResult]) -> list[CandidateIdentity]:
        candidates: list[CandidateIdentity] = []
        for result in results:
            source = tag_for_url(result.url)
            if source == "github":
                display = f"{first_path_segment(result.url) or name} (GitHub)"
            else:
                display = result.title or f"{name} (Site)"
            candidates.append(
                CandidateIdentity(
                    id=candidate_id(result.url, source),
                    display_name=display,
                    source=source,
                    summary=truncate(result.description, 220),
                    avatar_ref=avatar_for_url(display, result.url),
                    profile_url=result.url,
                    support_urls=[result.url],
                    merged_from=[MergedFrom(url=result.url, title=result.title or None)],
                )
            )
            if len(candidates) >= self.max_candidates:
                break
        return candidates

    def _merge(self, name: str, heuristics: list[CandidateIdentity]) -> list[CandidateIdentity]:
        summary = "\n\n".join(
            f"Candidate {index}:\nPrimary: {candidate.profile_url}\nSource: {candidate.source}\n"
            f"Summary: {candidate.summary or candidate.display_name}\n"
            f"Support URLs: {[entry.url for entry in candidate.merged_from]}"
            for index, candidate in enumerate(heuristics, start=1)
        )
        prompt = (
            f'You will merge candidate profiles that refer to the same person named "{name}".\n'
            "The candidates come from web search results. Merge those that clearly describe the same "
            "individual and retain distinct ones otherwise.\n"
            "Return JSON only:\n"
            '{"candidates": [{"display_name": "...", "primary_url": "...", "summary": "short summary", '
            '"support_urls": ["..."], "source": "github|site"}]}\n'
            "Prefer GitHub URLs as primary when present. Include all distinct support URLs."
        )
        output = self.llm.complete_json(
            system=_MERGE_SYSTEM,
            user=f"{summary}\n\n{prompt}",
            output_model=MergeOutput,
            purpose="profile",
            temperature=0.1,
        )

        merged: list[CandidateIdentity] = []
        for entry in output.candidates[: self.max_candidates]:
            primary = normalize_url(entry.primary_url)
            if not primary or is_blocked_url(primary):
                continue
            source: CandidateSource = entry.source if entry.source in {"github", "site"} else tag_for_url(primary)
            display = entry.display_name.strip() or f"{first_name(name)} ({'GitHub' if source == 'github' else 'Site'})"
            urls = [primary, *[url for url in entry.support_urls if url and not is_blocked_url(url)]]
            support: list[str] = []
            for url in urls:
                if url not in support:
                    support.append(url)
            merged.append(
                CandidateIdentity(
                    id=candidate_id(primary, source),
                    display_name=display,
                    source=source,
                    summary=truncate(entry.summary, 240),
                    avatar_ref=avatar_for_url(display, primary),
                    profile_url=primary,
                    support_urls=support[:MAX_SUPPORT_URLS],
                    merged_from=[MergedFrom(url=url) for url in support],
                )
            )
        return merged
