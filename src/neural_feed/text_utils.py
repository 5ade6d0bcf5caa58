from __future__ import annotations

import hashlib
import html
import re
from collections.abc import Iterable
from urllib.parse import urljoin, urlsplit, urlunsplit

_TAG_RE = re.compile(r"<[^>]+>")
_SCRIPT_STYLE_RE = re.compile(r"<(script|style|noscript)[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL)
_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_SPACE_RE = re.compile(r"\s+")
_WORD_SPLIT_RE = re.compile(r"\W+")


def sanitize_whitespace(value: str) -> str:
    return _SPACE_RE.sub(" ", value or "").strip()


def strip_html(raw: str) -> str:
    text = _SCRIPT_STYLE_RE.sub(" ", raw or "")
    text = _COMMENT_RE.sub(" ", text)
    text = _TAG_RE.sub(" ", text)
    return sanitize_whitespace(html.unescape(text))


def truncate(value: str, limit: int = 400) -> str:
    """Collapse whitespace and cut to at most ``limit`` characters, ellipsis included."""
    clean = sanitize_whitespace(value)
    if len(clean) <= limit:
        return clean
    return f"{clean[: limit - 1]}…"


def cut_text(value: str, limit: int) -> str:
    clean = sanitize_whitespace(value)
    if len(clean) <= limit:
        return clean
    return f"{clean[:limit]}…"


def first_name(name: str) -> str:
    parts = (name or "").split()
    return parts[0] if parts else name


def initials(name: str) -> str:
    return "".join(part[:1] for part in (name or "").split(" "))[:2]


def slugify(name: str) -> str:
    return _SPACE_RE.sub("-", (name or "").lower())


def dedupe_strings(values: Iterable[str], limit: int | None = None) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        trimmed = (value or "").strip()
        if not trimmed:
            continue
        key = trimmed.lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(trimmed)
        if limit and len(out) >= limit:
            break
    return out


def split_words(text: str) -> list[str]:
    return [word for word in _WORD_SPLIT_RE.split(text or "") if word]


def short_id(value: str, length: int = 10) -> str:
    return hashlib.sha1(value.encode("utf-8")).hexdigest()[:length]


def normalize_url(raw: str, base: str | None = None) -> str | None:
    value = (raw or "").strip()
    if not value:
        return None
    if base:
        value = urljoin(base, value)
    try:
        parts = urlsplit(value)
    except ValueError:
        return None
    if parts.scheme.lower() not in {"http", "https"} or not parts.hostname:
        return None
    netloc = parts.netloc.lower() if "@" not in parts.netloc else parts.netloc
    path = parts.path or "/"
    return urlunsplit((parts.scheme.lower(), netloc, path, parts.query, parts.fragment))


def host_of(url: str) -> str:
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


def host_matches(host: str, domains: Iterable[str]) -> bool:
    """True when ``host`` is one of ``domains`` or a subdomain of one."""
    host = (host or "").lower().rstrip(".")
    return any(host == domain or host.endswith("." + domain) for domain in domains)


def first_path_segment(url: str) -> str | None:
    try:
        segments = [part for part in urlsplit(url).path.split("/") if part]
    except ValueError:
        return None
    return segments[0] if segments else None
