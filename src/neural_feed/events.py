from __future__ import annotations

import dataclasses
import json
from enum import Enum
from typing import Any

from .schemas import (
    CandidateContentItem,
    CandidateIdentity,
    DiscoveryResult,
    FeedSplit,
    ProfileCard,
    QueryPlan,
)


class AgentState(str, Enum):
    DISCOVER_CANDIDATES = "DiscoverCandidates"
    AWAIT_USER_CONFIRM = "AwaitUserConfirm"
    RESOLVE_ENTITIES = "ResolveEntities"
    HARVEST_PUBLIC_DATA = "HarvestPublicData"
    BUILD_PROFILE = "BuildProfile"
    FETCH_CANDIDATES = "FetchCandidates"
    RANK_AND_EXPLAIN = "RankAndExplain"


LOG_LEVELS = ("info", "success", "warning", "error")

Event = dict[str, Any]


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_wire(value: Any) -> Any:
    """Convert dataclasses into JSON-ready values with camelCase field names.

    Only dataclass field names are renamed; plain dict keys (source names, etc.) are kept.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        if isinstance(value, QueryPlan):
            return {source: list(queries) for source, queries in value.per_source.items()}
        return {_camel(f.name): to_wire(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {key: to_wire(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_wire(item) for item in value]
    if isinstance(value, Enum):
        return value.value
    return value


def stage_event(state: AgentState) -> Event:
    return {"type": "stage", "state": state.value}


def log_event(message: str, level: str = "info") -> Event:
    if level not in LOG_LEVELS:
        level = "info"
    return {"type": "log", "message": message, "level": level}


def candidates_event(discovery: DiscoveryResult) -> Event:
    return {
        "type": "candidates",
        "candidates": to_wire(discovery.candidates),
        "meta": {
            "mode": discovery.mode,
            "searchResults": discovery.search_results,
            "clusterCount": discovery.cluster_count,
        },
    }


def profile_event(profile: ProfileCard) -> Event:
    return {"type": "profile", "profileCard": to_wire(profile)}


def candidate_pool_event(items: list[CandidateContentItem], plan: QueryPlan, mode: str) -> Event:
    return {"type": "candidate_pool", "items": to_wire(items), "plan": to_wire(plan), "mode": mode}


def feed_event(split: FeedSplit) -> Event:
    return {
        "type": "feed",
        "items": to_wire(split.items),
        "exploitationCount": split.exploitation_count,
        "explorationCount": len(split.exploration),
        "explorationItems": to_wire(split.exploration),
        "remaining": to_wire(split.remaining),
    }


def error_event(message: str) -> Event:
    return {"type": "error", "message": message}


def complete_event(message: str) -> Event:
    return {"type": "complete", "message": message}


def encode_event(event: Event) -> str:
    return json.dumps(event, ensure_ascii=False)


def encode_sse(event: Event) -> str:
    return f"data: {encode_event(event)}\n\n"


def identity_label(candidate: CandidateIdentity) -> str:
    badge = "GitHub" if candidate.source == "github" else "Site"
    return f"{badge}:{candidate.profile_url}"
