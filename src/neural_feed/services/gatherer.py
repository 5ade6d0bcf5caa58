from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed

from ..providers.content_sources import ContentCollector
from ..schemas import CandidateContentItem, QueryPlan

logger = logging.getLogger(__name__)

POOL_CAP = 30
ITEMS_PER_QUERY = 3
MAX_QUERIES_PER_SOURCE = 4


class ContentGatherer:
    """Runs every planned query against its source collector concurrently and merges the results."""

    def __init__(
        self,
        collectors: Iterable[ContentCollector],
        max_workers: int = 6,
        items_per_query: int = ITEMS_PER_QUERY,
        pool_cap: int = POOL_CAP,
    ) -> None:
        self.collectors = {collector.name: collector for collector in collectors}
        self.max_workers = max(1, max_workers)
        self.items_per_query = items_per_query
        self.pool_cap = pool_cap

    def gather(self, plan: QueryPlan) -> list[CandidateContentItem]:
        calls: list[tuple[ContentCollector, str]] = []
        for source, collector in self.collectors.items():
            for query in plan.queries_for(source)[:MAX_QUERIES_PER_SOURCE]:
                calls.append((collector, query))
        if not calls:
            return []

        batches: dict[int, list[CandidateContentItem]] = {}
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(calls))) as executor:
            futures = {
                executor.submit(collector.collect, query, self.items_per_query): index
                for index, (collector, query) in enumerate(calls)
            }
            for future in as_completed(futures):
                index = futures[future]
                collector, query = calls[index]
                try:
                    batches[index] = future.result()
                except Exception as exc:  # noqa: BLE001
                    logger.warning("collector %s failed for %r: %s", collector.name, query, exc)
                    batches[index] = []

        items: list[CandidateContentItem] = []
        seen: set[str] = set()
        for index in range(len(calls)):
            for item in batches.get(index, []):
                if item.id in seen:
                    continue
                seen.add(item.id)
                items.append(item)
        return items[: self.pool_cap]
