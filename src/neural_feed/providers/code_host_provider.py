from __future__ import annotations

from typing import Any

import httpx

from .http_support import build_client

GITHUB_API_URL = "https://api.github.com"


class GitHubProvider:
    name = "github"

    def __init__(
        self,
        token: str | None = None,
        timeout_seconds: float = 8,
        client: httpx.Client | None = None,
    ) -> None:
        self.token = token
        self._owns_client = client is None
        self.client = client or build_client(timeout_seconds)

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _get_json(self, path: str, params: dict[str, str] | None = None) -> Any:
        response = self.client.get(f"{GITHUB_API_URL}{path}", params=params, headers=self._headers())
        response.raise_for_status()
        return response.json()

    def user(self, username: str) -> dict[str, Any]:
        payload = self._get_json(f"/users/{username}")
        return payload if isinstance(payload, dict) else {}

    def recent_repos(self, username: str, limit: int = 5) -> list[dict[str, Any]]:
        payload = self._get_json(
            f"/users/{username}/repos",
            params={"sort": "updated", "per_page": str(limit)},
        )
        if not isinstance(payload, list):
            return []
        return [repo for repo in payload if isinstance(repo, dict)][:limit]
