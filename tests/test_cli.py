from __future__ import annotations

import json

from typer.testing import CliRunner

from neural_feed import cli
from neural_feed.cli import _mask_secret, _read_env_values, _upsert_env_values, app

runner = CliRunner()


def _json_lines(output: str) -> list[dict]:
    return [json.loads(line) for line in output.splitlines() if line.startswith("{")]


def _patch_pipeline(monkeypatch, orchestrator_factory):
    orchestrator = orchestrator_factory()
    monkeypatch.setattr(cli, "_build_orchestrator", lambda: orchestrator)
    return orchestrator


def test_discover_streams_json_events(isolated_env, monkeypatch, orchestrator_factory):
    _patch_pipeline(monkeypatch, orchestrator_factory)

    result = runner.invoke(app, ["discover", "Ada Lovelace"])

    assert result.exit_code == 0
    events = _json_lines(result.stdout)
    assert events[0] == {"type": "stage", "state": "DiscoverCandidates"}
    assert events[-1]["type"] == "complete"
    candidates = next(event for event in events if event["type"] == "candidates")["candidates"]
    assert len(candidates) == 2


def test_discover_table_format(isolated_env, monkeypatch, orchestrator_factory):
    _patch_pipeline(monkeypatch, orchestrator_factory)

    result = runner.invoke(app, ["discover", "Ada Lovelace", "--format", "table"])

    assert result.exit_code == 0
    assert "Discovery mode: heuristic" in result.stdout
    assert "== AwaitUserConfirm" in result.stdout


def test_run_without_candidate_exits_nonzero(isolated_env, monkeypatch, orchestrator_factory):
    _patch_pipeline(monkeypatch, orchestrator_factory)

    result = runner.invoke(app, ["run", "Ada Lovelace"])

    assert result.exit_code == 1
    assert _json_lines(result.stdout)[-1] == {"type": "error", "message": "Candidate confirmation is required."}


def test_run_with_digest(isolated_env, monkeypatch, orchestrator_factory):
    orchestrator = _patch_pipeline(monkeypatch, orchestrator_factory)
    discovery = list(orchestrator.discover_events("Ada Lovelace"))
    candidates = next(event for event in discovery if event["type"] == "candidates")["candidates"]

    result = runner.invoke(app, ["run", "Ada Lovelace", "-c", candidates[0]["id"], "--digest"])

    assert result.exit_code == 0
    events = _json_lines(result.stdout)
    kinds = [event["type"] for event in events]
    assert kinds.index("feed") < kinds.index("complete") < kinds.index("digest")
    digest = events[-1]
    assert digest["whyMe"] == "It aligns with Ada's profile."
    assert len(digest["nextActions"]) == 3


def test_config_show_masks_secrets(isolated_env):
    isolated_env.write_text("OPENAI_API_KEY=sk-1234567890abcdef\n", encoding="utf-8")

    result = runner.invoke(app, ["config", "show"])

    assert result.exit_code == 0
    assert "OPENAI_API_KEY=sk-1...cdef" in result.stdout
    assert "sk-1234567890abcdef" not in result.stdout
    assert "AI_PROVIDER=auto (resolved: openai)" in result.stdout


def test_env_file_upsert_keeps_comments_and_quotes(tmp_path):
    env_path = tmp_path / "nested" / ".env"
    _upsert_env_values(env_path, {"AI_PROVIDER": "deepseek", "GOOGLE_SEARCH_CX": "a b"})
    _upsert_env_values(env_path, {"AI_PROVIDER": "openai"})

    text = env_path.read_text(encoding="utf-8")
    assert text.startswith("# neural-feed configuration")
    assert _read_env_values(env_path) == {"AI_PROVIDER": "openai", "GOOGLE_SEARCH_CX": "a b"}


def test_mask_secret():
    assert _mask_secret(None) == "(not set)"
    assert _mask_secret("short") == "********"
