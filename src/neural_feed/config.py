from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_DEEPSEEK_BASE_URL = "https://api.deepseek.com"
MODEL_PURPOSES = ("profile", "rank", "deepen")


@dataclass(frozen=True)
class Settings:
    ai_provider: str
    openai_api_key: str | None
    openai_base_url: str | None
    openai_profile_model: str
    openai_rank_model: str
    openai_deepen_model: str
    deepseek_api_key: str | None
    deepseek_base_url: str
    deepseek_chat_model: str
    google_search_api_key: str | None
    google_search_cx: str | None
    search_backend: str
    github_token: str | None
    http_timeout_seconds: int
    llm_timeout_seconds: int
    max_concurrency: int
    feed_cache_ttl_seconds: int
    log_level: str

    def resolved_ai_provider(self) -> str:
        provider = self.ai_provider.strip().lower()
        if provider in {"openai", "deepseek", "none"}:
            return provider
        if self.openai_api_key:
            return "openai"
        if self.deepseek_api_key:
            return "deepseek"
        return "none"

    def resolved_api_key(self) -> str | None:
        provider = self.resolved_ai_provider()
        if provider == "openai":
            return self.openai_api_key
        if provider == "deepseek":
            return self.deepseek_api_key
        return None

    def resolved_base_url(self) -> str | None:
        provider = self.resolved_ai_provider()
        if provider == "openai":
            return self.openai_base_url
        if provider == "deepseek":
            return self.deepseek_base_url
        return None

    def resolved_model(self, purpose: str = "profile") -> str:
        provider = self.resolved_ai_provider()
        if provider == "openai":
            if purpose == "rank":
                return self.openai_rank_model
            if purpose == "deepen":
                return self.openai_deepen_model
            return self.openai_profile_model
        if provider == "deepseek":
            return self.deepseek_chat_model
        return "fallback"

    def resolved_search_backend(self) -> str:
        backend = self.search_backend.strip().lower()
        if backend == "google" and self.google_search_api_key and self.google_search_cx:
            return "google"
        if backend in {"duckduckgo", "none"}:
            return backend
        if self.google_search_api_key and self.google_search_cx:
            return "google"
        return "duckduckgo"


def _to_int(raw: str | None, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value <= 0:
        return default
    return value


def _log_level(raw: str | None) -> str:
    normalized = (raw or "").strip().upper()
    if normalized in {"DEBUG", "INFO", "WARNING", "ERROR"}:
        return normalized
    return "INFO"


def get_default_env_file() -> Path:
    custom_path = os.getenv("NEURAL_FEED_ENV_FILE", "").strip()
    if custom_path:
        return Path(custom_path).expanduser()

    xdg_root = os.getenv("XDG_CONFIG_HOME", "").strip()
    if xdg_root:
        return Path(xdg_root).expanduser() / "neural-feed" / ".env"
    return Path.home() / ".config" / "neural-feed" / ".env"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Prefer a local .env for development; fill missing values from global config.
    load_dotenv(override=False)
    load_dotenv(dotenv_path=get_default_env_file(), override=False)

    return Settings(
        ai_provider=os.getenv("AI_PROVIDER", "auto"),
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        openai_base_url=os.getenv("OPENAI_BASE_URL", DEFAULT_OPENAI_BASE_URL),
        openai_profile_model=os.getenv("OPENAI_PROFILE_MODEL", "gpt-4o-mini"),
        openai_rank_model=os.getenv("OPENAI_RANK_MODEL", "gpt-4o-mini"),
        openai_deepen_model=os.getenv("OPENAI_DEEPEN_MODEL", "gpt-4o-mini"),
        deepseek_api_key=os.getenv("DEEPSEEK_API_KEY") or None,
        deepseek_base_url=os.getenv("DEEPSEEK_BASE_URL", DEFAULT_DEEPSEEK_BASE_URL),
        deepseek_chat_model=os.getenv("DEEPSEEK_CHAT_MODEL", "deepseek-chat"),
        google_search_api_key=os.getenv("GOOGLE_SEARCH_API_KEY") or None,
        google_search_cx=os.getenv("GOOGLE_SEARCH_CX") or None,
        search_backend=os.getenv("SEARCH_BACKEND", "auto"),
        github_token=os.getenv("GITHUB_TOKEN") or None,
        http_timeout_seconds=_to_int(os.getenv("HTTP_TIMEOUT_SECONDS"), 8),
        llm_timeout_seconds=_to_int(os.getenv("LLM_TIMEOUT_SECONDS"), 8),
        max_concurrency=_to_int(os.getenv("MAX_CONCURRENCY"), 6),
        feed_cache_ttl_seconds=_to_int(os.getenv("FEED_CACHE_TTL_SECONDS"), 900),
        log_level=_log_level(os.getenv("LOG_LEVEL")),
    )
