from __future__ import annotations

from neural_feed.text_utils import (
    cut_text,
    dedupe_strings,
    first_name,
    host_matches,
    initials,
    normalize_url,
    short_id,
    slugify,
    strip_html,
    truncate,
)


def test_strip_html_drops_scripts_and_entities():
    raw = "<html><script>var x = 1;</script><p>Fish &amp; chips</p>\n<!-- note --><b>today</b></html>"
    assert strip_html(raw) == "Fish & chips today"


def test_truncate_keeps_limit_including_ellipsis():
    text = "word " * 100
    out = truncate(text, 20)
    assert len(out) == 20
    assert out.endswith("…")
    assert truncate("  short   text ", 20) == "short text"


def test_cut_text_appends_after_limit():
    assert cut_text("abcdef", 3) == "abc…"
    assert cut_text("abc", 3) == "abc"


def test_names_and_slugs():
    assert first_name("Ada Lovelace") == "Ada"
    assert initials("Ada Lovelace") == "AL"
    assert slugify("Ada  Lovelace") == "ada-lovelace"


def test_dedupe_strings_is_case_insensitive_and_capped():
    values = ["Rust", "rust", " ", "Go", "Zig", "GO"]
    assert dedupe_strings(values) == ["Rust", "Go", "Zig"]
    assert dedupe_strings(values, 2) == ["Rust", "Go"]


def test_normalize_url_rejects_non_http_and_resolves_relative():
    assert normalize_url("mailto:ada@example.org") is None
    assert normalize_url("javascript:void(0)") is None
    assert normalize_url("") is None
    assert normalize_url("HTTPS://Example.ORG") == "https://example.org/"
    assert normalize_url("/about", base="https://ada.example.org/blog/") == "https://ada.example.org/about"


def test_short_id_is_stable_and_distinguishes_shared_prefixes():
    first = short_id("https://news.example.com/a", 12)
    assert first == short_id("https://news.example.com/a", 12)
    assert first != short_id("https://news.example.com/b", 12)
    assert len(first) == 12


def test_host_matches_whole_labels_only():
    assert host_matches("x.com", ("x.com",))
    assert host_matches("mobile.x.com", ("x.com",))
    assert not host_matches("netflix.com", ("x.com",))
    assert not host_matches("dropbox.com", ("x.com",))
    assert not host_matches("", ("x.com",))
