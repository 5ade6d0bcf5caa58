from __future__ import annotations

from datetime import datetime, timedelta, timezone

from neural_feed.schemas import FeedItem, ProfileCard
from neural_feed.services.feed_cache import FeedCache


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 10, 18, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _item(item_id: str) -> FeedItem:
    return FeedItem(
        id=item_id,
        source="arxiv",
        title="Paper",
        summary="summary",
        because="because",
        url="https://arxiv.org/abs/1",
        date="2024-10-01",
    )


def test_entry_lives_for_fifteen_minutes():
    clock = FakeClock()
    cache = FeedCache(clock=clock)
    cache.put_many([_item("a")], ProfileCard(summary="s"), "Grace")

    clock.advance(minutes=14, seconds=59)
    entry = cache.get("a")
    assert entry is not None
    assert entry.name == "Grace"

    clock.advance(seconds=2)
    assert cache.get("a") is None
    assert len(cache) == 0


def test_writes_sweep_expired_entries():
    clock = FakeClock()
    cache = FeedCache(ttl_seconds=60, clock=clock)
    cache.put_many([_item("old")], ProfileCard(summary="s"), "Grace")

    clock.advance(minutes=2)
    cache.put_many([_item("new")], ProfileCard(summary="s"), "Grace")

    assert len(cache) == 1
    assert cache.get("new") is not None


def test_rewrite_refreshes_expiry():
    clock = FakeClock()
    cache = FeedCache(ttl_seconds=60, clock=clock)
    profile = ProfileCard(summary="s")
    cache.put_many([_item("a")], profile, "Grace")

    clock.advance(seconds=50)
    cache.put_many([_item("a")], profile, "Grace")
    clock.advance(seconds=50)

    assert cache.get("a") is not None
    assert cache.get("missing") is None


def test_sweep_reports_removed_entries():
    clock = FakeClock()
    cache = FeedCache(ttl_seconds=60, clock=clock)
    cache.put_many([_item("a"), _item("b")], ProfileCard(summary="s"), "Grace")

    assert cache.sweep() == 0
    clock.advance(minutes=5)
    assert cache.sweep() == 2
