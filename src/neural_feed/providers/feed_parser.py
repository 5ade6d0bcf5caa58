from __future__ import annotations

from dataclasses import dataclass

import feedparser

from ..text_utils import strip_html
from ..time_utils import struct_to_iso_date


@dataclass(slots=True)
class FeedEntry:
    entry_id: str
    title: str
    link: str
    summary: str
    date: str | None


def _entry_link(entry) -> str:
    for link in entry.get("links") or []:
        if link.get("rel") == "alternate" and link.get("href"):
            return str(link["href"]).strip()
    return str(entry.get("link") or "").strip()


def _entry_date(entry) -> str | None:
    for key in ("updated_parsed", "published_parsed"):
        candidate = struct_to_iso_date(entry.get(key))
        if candidate is not None:
            return candidate
    raw = str(entry.get("updated") or entry.get("published") or "").strip()
    if len(raw) >= 10 and raw[4] == "-":
        return raw[:10]
    return None


def parse_feed(content: str | bytes) -> list[FeedEntry]:
    """Parse an RSS or Atom document, returning an empty list for anything unparseable."""
    parsed = feedparser.parse(content)

    results: list[FeedEntry] = []
    for entry in parsed.entries:
        link = _entry_link(entry)
        entry_id = str(entry.get("id") or "").strip() or link
        if not link and not entry_id:
            continue
        results.append(
            FeedEntry(
                entry_id=entry_id,
                title=strip_html(str(entry.get("title") or "")),
                link=link or entry_id,
                summary=strip_html(str(entry.get("summary") or entry.get("description") or "")),
                date=_entry_date(entry),
            )
        )
    return results
