from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from pathlib import Path
import re
from typing import Any

import typer

from .config import (
    DEFAULT_DEEPSEEK_BASE_URL,
    DEFAULT_OPENAI_BASE_URL,
    MODEL_PURPOSES,
    get_default_env_file,
    get_settings,
)
from .events import encode_event, to_wire
from .logging_utils import setup_logging
from .services.pipeline import PipelineOrchestrator
from .views.table_renderer import render_candidates, render_digest, render_feed

app = typer.Typer(help="Turn a person's name into a ranked, explainable content feed.", no_args_is_help=True)
config_app = typer.Typer(help="Configuration management")
app.add_typer(config_app, name="config")

_ENV_LINE_RE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_]*)\s*=(.*)$")


class OutputFormat(str, Enum):
    json = "json"
    table = "table"


def _build_orchestrator() -> PipelineOrchestrator:
    return PipelineOrchestrator.from_settings(get_settings())


@app.callback()
def _setup(
    log_level: str | None = typer.Option(None, "--log-level", help="DEBUG/INFO/WARNING/ERROR"),
) -> None:
    setup_logging(log_level or get_settings().log_level)


def _emit(events: Iterable[dict[str, Any]], output: OutputFormat) -> list[dict[str, Any]]:
    seen: list[dict[str, Any]] = []
    for event in events:
        seen.append(event)
        if output is OutputFormat.json:
            typer.echo(encode_event(event))
            continue

        kind = event.get("type")
        if kind == "candidates":
            typer.echo(render_candidates(event["candidates"], event["meta"]["mode"]), nl=False)
        elif kind == "feed":
            typer.echo(render_feed(event["items"], event["explorationItems"]), nl=False)
        elif kind == "stage":
            typer.echo(f"== {event['state']}")
        elif kind in {"complete", "error"}:
            typer.echo(event["message"], err=kind == "error")
    return seen


def _exit_code(events: list[dict[str, Any]]) -> int:
    if events and events[-1].get("type") == "error":
        return 1
    return 0


@app.command("discover")
def discover(
    name: str = typer.Argument(..., help="Person to look up"),
    output: OutputFormat = typer.Option(OutputFormat.json, "--format", "-f"),
) -> None:
    """Search the public web and list candidate identities for NAME."""

    orchestrator = _build_orchestrator()
    try:
        events = _emit(orchestrator.discover_events(name), output)
    finally:
        orchestrator.close()
    raise typer.Exit(code=_exit_code(events))


@app.command("run")
def run(
    name: str = typer.Argument(..., help="Person to build the feed for"),
    candidate_id: str | None = typer.Option(None, "--candidate-id", "-c", help="Identity id from `discover`"),
    output: OutputFormat = typer.Option(OutputFormat.json, "--format", "-f"),
    digest: bool = typer.Option(False, "--digest/--no-digest", help="Also print a digest of the top feed item"),
) -> None:
    """Build the profile and ranked feed for a confirmed identity."""

    orchestrator = _build_orchestrator()
    try:
        events = _emit(orchestrator.run_events(name, candidate_id), output)
        code = _exit_code(events)
        if digest and code == 0:
            _emit_digest(orchestrator, name, events, output)
    finally:
        orchestrator.close()
    raise typer.Exit(code=code)


def _emit_digest(
    orchestrator: PipelineOrchestrator,
    name: str,
    events: list[dict[str, Any]],
    output: OutputFormat,
) -> None:
    feed = next((event for event in events if event.get("type") == "feed"), None)
    items = (feed or {}).get("items") or []
    if not items:
        typer.echo("No feed item to digest.", err=True)
        return
    top = items[0]
    result = orchestrator.deepen(top["id"], name)
    if result is None:
        typer.echo("Feed item expired or unknown.", err=True)
        return
    if output is OutputFormat.json:
        typer.echo(encode_event({"type": "digest", "itemId": top["id"], **to_wire(result)}))
    else:
        typer.echo(render_digest(top["title"], result), nl=False)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8000, "--port", min=1, max=65535),
) -> None:
    """Serve the streaming feed endpoint over HTTP."""

    import uvicorn

    from .api import create_app

    uvicorn.run(create_app(), host=host, port=port, log_level=get_settings().log_level.lower())


def _read_env_values(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    values: dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        match = _ENV_LINE_RE.match(line)
        if not match:
            continue
        value = match.group(2).strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
            value = value[1:-1]
        values[match.group(1)] = value
    return values


def _serialize_env_value(value: str) -> str:
    if value == "":
        return ""
    if any(ch.isspace() for ch in value) or any(ch in value for ch in ['"', "'", "#"]):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return value


def _upsert_env_values(path: Path, updates: dict[str, str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    raw_lines = path.read_text(encoding="utf-8").splitlines() if path.exists() else []
    pending = dict(updates)
    out_lines: list[str] = []

    for line in raw_lines:
        match = _ENV_LINE_RE.match(line)
        if match and match.group(1) in pending:
            out_lines.append(f"{match.group(1)}={_serialize_env_value(pending.pop(match.group(1)))}")
        else:
            out_lines.append(line)

    if not raw_lines:
        out_lines.append("# neural-feed configuration")
    if pending:
        if out_lines and out_lines[-1].strip() != "":
            out_lines.append("")
        for key, value in pending.items():
            out_lines.append(f"{key}={_serialize_env_value(value)}")

    path.write_text("\n".join(out_lines).rstrip() + "\n", encoding="utf-8")


def _mask_secret(value: str | None) -> str:
    if not value:
        return "(not set)"
    if len(value) <= 8:
        return "********"
    return f"{value[:4]}...{value[-4:]}"


def _prompt_secret(current: dict[str, str], key: str) -> str | None:
    if current.get(key, "").strip():
        if not typer.confirm(f"{key} is already set. Replace it?", default=False):
            return None
        return typer.prompt(key, hide_input=True, confirmation_prompt=True).strip()
    return typer.prompt(f"{key} (optional)", default="", show_default=False, hide_input=True).strip()


@config_app.command("api")
def config_api() -> None:
    """Interactively configure the language model, search and code-host credentials."""

    env_path = get_default_env_file()
    current = _read_env_values(env_path)
    typer.echo(f"Config file: {env_path}")

    allowed = {"auto", "openai", "deepseek", "none"}
    provider_default = current.get("AI_PROVIDER", "auto").strip().lower() or "auto"
    provider = typer.prompt("AI_PROVIDER (auto/openai/deepseek/none)", default=provider_default).strip().lower()
    while provider not in allowed:
        typer.echo("Only auto/openai/deepseek/none are supported.")
        provider = typer.prompt("AI_PROVIDER (auto/openai/deepseek/none)", default="auto").strip().lower()

    updates: dict[str, str] = {"AI_PROVIDER": provider}
    if provider in {"auto", "openai"}:
        base = current.get("OPENAI_BASE_URL", DEFAULT_OPENAI_BASE_URL).strip() or DEFAULT_OPENAI_BASE_URL
        updates["OPENAI_BASE_URL"] = typer.prompt("OPENAI_BASE_URL", default=base).strip() or DEFAULT_OPENAI_BASE_URL
    if provider in {"auto", "deepseek"}:
        base = current.get("DEEPSEEK_BASE_URL", DEFAULT_DEEPSEEK_BASE_URL).strip() or DEFAULT_DEEPSEEK_BASE_URL
        updates["DEEPSEEK_BASE_URL"] = typer.prompt("DEEPSEEK_BASE_URL", default=base).strip() or DEFAULT_DEEPSEEK_BASE_URL

    secret_keys = ["GOOGLE_SEARCH_API_KEY", "GITHUB_TOKEN"]
    if provider in {"auto", "openai"}:
        secret_keys.insert(0, "OPENAI_API_KEY")
    if provider in {"auto", "deepseek"}:
        secret_keys.insert(0, "DEEPSEEK_API_KEY")
    for key in secret_keys:
        value = _prompt_secret(current, key)
        if value is not None:
            updates[key] = value
    updates["GOOGLE_SEARCH_CX"] = typer.prompt(
        "GOOGLE_SEARCH_CX (optional)", default=current.get("GOOGLE_SEARCH_CX", ""), show_default=False
    ).strip()

    _upsert_env_values(path=env_path, updates=updates)
    get_settings.cache_clear()
    refreshed = get_settings()
    typer.echo("Configuration saved.")
    typer.echo(f"AI provider: {refreshed.resolved_ai_provider()}")
    typer.echo(f"Search backend: {refreshed.resolved_search_backend()}")


@config_app.command("show")
def config_show() -> None:
    """Print the effective configuration with secrets masked."""

    env_path = get_default_env_file()
    get_settings.cache_clear()
    settings = get_settings()

    typer.echo(f"Config file: {env_path}{'' if env_path.exists() else ' (missing)'}")
    typer.echo(f"AI_PROVIDER={settings.ai_provider} (resolved: {settings.resolved_ai_provider()})")
    typer.echo(f"OPENAI_BASE_URL={settings.openai_base_url}")
    typer.echo(f"OPENAI_API_KEY={_mask_secret(settings.openai_api_key)}")
    typer.echo(f"DEEPSEEK_BASE_URL={settings.deepseek_base_url}")
    typer.echo(f"DEEPSEEK_API_KEY={_mask_secret(settings.deepseek_api_key)}")
    for purpose in MODEL_PURPOSES:
        typer.echo(f"model[{purpose}]={settings.resolved_model(purpose)}")
    typer.echo(f"SEARCH_BACKEND={settings.search_backend} (resolved: {settings.resolved_search_backend()})")
    typer.echo(f"GOOGLE_SEARCH_API_KEY={_mask_secret(settings.google_search_api_key)}")
    typer.echo(f"GOOGLE_SEARCH_CX={settings.google_search_cx or '(not set)'}")
    typer.echo(f"GITHUB_TOKEN={_mask_secret(settings.github_token)}")
    typer.echo(f"HTTP_TIMEOUT_SECONDS={settings.http_timeout_seconds}")
    typer.echo(f"LLM_TIMEOUT_SECONDS={settings.llm_timeout_seconds}")
    typer.echo(f"MAX_CONCURRENCY={settings.max_concurrency}")
    typer.echo(f"FEED_CACHE_TTL_SECONDS={settings.feed_cache_ttl_seconds}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
