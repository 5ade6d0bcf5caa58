from __future__ import annotations

import httpx

from neural_feed.providers.code_host_provider import GitHubProvider
from neural_feed.providers.feed_parser import parse_feed
from neural_feed.providers.feed_sources import ArxivProvider, GoogleNewsProvider
from neural_feed.providers.http_support import build_client, classify_error
from neural_feed.providers.page_fetcher import PageFetcher, extract_links
from neural_feed.providers.web_search_provider import (
    DuckDuckGoSearchProvider,
    GoogleSearchProvider,
    _decode_duck_href,
)

_DUCK_HTML = """
<div class="result">
  <a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fgithub.com%2Fghopper&rut=x">ghopper (Grace)</a>
  <a class="result__snippet" href="#">Compiler <b>tools</b></a>
</div>
<div class="result">
  <a class="result__a" href="https://grace.example.org/">Grace Hopper</a>
</div>
"""

_ATOM = b"""<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <entry>
    <id>http://arxiv.org/abs/2401.00001v1</id>
    <updated>2024-01-02T10:00:00Z</updated>
    <title>Garbage   collection for wasm</title>
    <summary>We study GC.</summary>
    <link rel="alternate" type="text/html" href="http://arxiv.org/abs/2401.00001v1"/>
    <link rel="related" type="application/pdf" href="http://arxiv.org/pdf/2401.00001v1"/>
  </entry>
</feed>
"""

_RSS = b"""<?xml version="1.0"?>
<rss version="2.0"><channel><title>News</title>
  <item><title>Compilers today</title><link>https://news.example.com/a</link>
    <description>&lt;p&gt;Story&lt;/p&gt;</description><pubDate>Tue, 08 Oct 2024 10:00:00 GMT</pubDate></item>
</channel></rss>
"""


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_decode_duck_href_unwraps_redirect():
    assert _decode_duck_href("//duckduckgo.com/l/?uddg=https%3A%2F%2Fa.example%2Fx") == "https://a.example/x"
    assert _decode_duck_href("https://b.example/") == "https://b.example/"


def test_duckduckgo_search_parses_results():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["body"] = request.content.decode()
        return httpx.Response(200, text=_DUCK_HTML)

    results = DuckDuckGoSearchProvider(client=_client(handler)).search("Grace Hopper", limit=5)

    assert seen["method"] == "POST"
    assert "q=Grace+Hopper" in seen["body"]
    assert [r.url for r in results] == ["https://github.com/ghopper", "https://grace.example.org/"]
    assert results[0].description == "Compiler tools"


def test_google_search_without_credentials_returns_nothing():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    assert GoogleSearchProvider(None, None, client=_client(handler)).search("x") == []


def test_google_search_caps_num_and_maps_items():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["num"] == "10"
        assert request.url.params["safe"] == "off"
        return httpx.Response(200, json={"items": [{"title": "T", "link": "https://t.example/", "snippet": "S"}, {}]})

    results = GoogleSearchProvider("key", "cx", client=_client(handler)).search("x", limit=25)

    assert len(results) == 1
    assert results[0].description == "S"


def test_parse_atom_prefers_alternate_link_and_updated_date():
    entries = parse_feed(_ATOM)

    assert len(entries) == 1
    assert entries[0].link == "http://arxiv.org/abs/2401.00001v1"
    assert entries[0].title == "Garbage collection for wasm"
    assert entries[0].date == "2024-01-02"


def test_parse_garbage_is_empty():
    assert parse_feed(b"not a feed") == []


def test_arxiv_and_news_providers_build_queries():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "export.arxiv.org":
            assert request.url.params["search_query"] == "all:wasm gc"
            return httpx.Response(200, content=_ATOM)
        assert request.url.params["q"] == "wasm when:7d"
        assert request.url.params["ceid"] == "US:en"
        return httpx.Response(200, content=_RSS)

    client = _client(handler)
    assert ArxivProvider(client=client).search("wasm gc", count=3)[0].entry_id.endswith("2401.00001v1")
    news = GoogleNewsProvider(client=client).search("wasm")
    assert news[0].summary == "Story"
    assert news[0].date == "2024-10-08"


def test_github_provider_sends_token():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"] == "Bearer ghp_test"
        if request.url.path.endswith("/repos"):
            assert request.url.params["sort"] == "updated"
            return httpx.Response(200, json=[{"name": "a"}, "junk", {"name": "b"}])
        return httpx.Response(200, json={"login": "ghopper"})

    provider = GitHubProvider("ghp_test", client=_client(handler))

    assert provider.user("ghopper") == {"login": "ghopper"}
    assert [repo["name"] for repo in provider.recent_repos("ghopper", limit=5)] == ["a", "b"]


def test_page_fetcher_text_and_links():
    html = '<html><body><a href="/about">About</a><a href="mailto:x@y">m</a><p>Hello <b>world</b></p></body></html>'

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/missing":
            return httpx.Response(404)
        return httpx.Response(200, text=html)

    pages = PageFetcher(client=_client(handler))

    assert pages.readable_text("https://grace.example.org/") == "About m Hello world"
    assert pages.readable_text("https://grace.example.org/missing") == ""
    assert pages.outbound_links("https://grace.example.org/") == ["https://grace.example.org/about"]
    assert extract_links('<a href="https://x.com/g">x</a>', "https://a.example/") == ["https://x.com/g"]


def test_classify_error_kinds():
    request = httpx.Request("GET", "https://a.example/")

    def status(code: int) -> httpx.HTTPStatusError:
        return httpx.HTTPStatusError("boom", request=request, response=httpx.Response(code, request=request))

    assert classify_error(status(403)) == ("BLOCKED", 403)
    assert classify_error(status(404)) == ("NOT_FOUND", 404)
    assert classify_error(status(502)) == ("HTTP_5XX", 502)
    assert classify_error(httpx.ReadTimeout("slow")) == ("TIMEOUT", None)
    assert classify_error(httpx.ConnectError("down")) == ("NETWORK", None)
    assert classify_error(ValueError("x")) == ("UNKNOWN", None)


def test_shared_client_identifies_itself():
    with build_client(8) as client:
        assert client.headers["User-Agent"] == "NeuralFeed/0.1"
        assert client.timeout.read == 8
