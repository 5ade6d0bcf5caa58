from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta

from ..schemas import CacheEntry, FeedItem, ProfileCard
from ..time_utils import utc_now

DEFAULT_TTL_SECONDS = 15 * 60


class FeedCache:
    """In-memory feed item store with a fixed lifetime, swept lazily on every access."""

    def __init__(
        self,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def sweep(self) -> int:
        with self._lock:
            return self._sweep_locked(self.clock())

    def _sweep_locked(self, now: datetime) -> int:
        expired = [key for key, entry in self._entries.items() if entry.expires_at < now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def put_many(self, items: Iterable[FeedItem], profile: ProfileCard, name: str) -> None:
        with self._lock:
            now = self.clock()
            self._sweep_locked(now)
            expires_at = now + self.ttl
            for item in items:
                self._entries[item.id] = CacheEntry(item=item, profile=profile, name=name, expires_at=expires_at)

    def get(self, item_id: str) -> CacheEntry | None:
        with self._lock:
            self._sweep_locked(self.clock())
        # Reads after the sweep are plain dict lookups.
        return self._entries.get(item_id)
