from __future__ import annotations

import httpx

USER_AGENT = "NeuralFeed/0.1"
HTML_ACCEPT = "text/html,application/xhtml+xml"
FEED_ACCEPT = "application/rss+xml,application/atom+xml,text/xml"


def build_client(timeout_seconds: float) -> httpx.Client:
    return httpx.Client(
        timeout=timeout_seconds,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


def classify_error(exc: Exception) -> tuple[str, int | None]:
    if isinstance(exc, httpx.TimeoutException):
        return "TIMEOUT", None
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        if code in {401, 403, 429}:
            return "BLOCKED", code
        if code == 404:
            return "NOT_FOUND", code
        if 400 <= code < 500:
            return "HTTP_4XX", code
        if 500 <= code < 600:
            return "HTTP_5XX", code
        return "HTTP_ERROR", code
    if isinstance(exc, httpx.RequestError):
        return "NETWORK", None
    return "UNKNOWN", None


def describe_error(exc: Exception) -> str:
    kind, code = classify_error(exc)
    if code is not None:
        return f"{kind}({code}): {exc}"
    return f"{kind}: {exc}"
