from __future__ import annotations

import re
from typing import Any

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..schemas import DeepenDigest


def _console() -> Console:
    return Console(
        force_terminal=True,
        color_system="standard",
        markup=False,
        highlight=False,
    )


def _base_table() -> Table:
    return Table(
        show_header=True,
        header_style="bold cyan",
        box=box.SQUARE,
        show_lines=True,
        pad_edge=True,
        expand=True,
    )


def _link_cell(title: str, url: str) -> Text | str:
    if not url:
        return title
    return Text(title, style=f"link {url}")


def _compact(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def render_candidates(candidates: list[dict[str, Any]], mode: str) -> str:
    console = _console()
    with console.capture() as capture:
        console.print(f"Discovery mode: {mode}")
        if not candidates:
            console.print("No candidate identities found.")
            return capture.get()
        table = _base_table()
        table.add_column("ID", width=18, overflow="fold")
        table.add_column("Source", width=7, no_wrap=True)
        table.add_column("Identity", ratio=3, overflow="fold")
        table.add_column("Summary", ratio=4, overflow="fold")
        table.add_column("Links", justify="right", width=5)
        for candidate in candidates:
            table.add_row(
                str(candidate.get("id", "")),
                str(candidate.get("source", "")),
                _link_cell(str(candidate.get("displayName", "")), str(candidate.get("profileUrl", ""))),
                _compact(str(candidate.get("summary", ""))),
                str(len(candidate.get("supportUrls") or [])),
            )
        console.print(table)
    return capture.get()


def render_feed(items: list[dict[str, Any]], exploration: list[dict[str, Any]] | None = None) -> str:
    console = _console()
    with console.capture() as capture:
        if not items and not exploration:
            console.print("The feed is empty.")
            return capture.get()
        for heading, rows in (("Feed", items), ("Exploration", exploration or [])):
            if not rows:
                continue
            console.print(heading)
            table = _base_table()
            table.add_column("#", justify="right", width=3, no_wrap=True)
            table.add_column("Source", width=6, no_wrap=True)
            table.add_column("Date", width=10, no_wrap=True)
            table.add_column("Title", ratio=3, overflow="fold")
            table.add_column("Why", ratio=3, overflow="fold")
            for index, item in enumerate(rows, start=1):
                table.add_row(
                    str(index),
                    str(item.get("source", "")),
                    str(item.get("date", "")),
                    _link_cell(str(item.get("title", "")), str(item.get("url", ""))),
                    _compact(str(item.get("because", ""))),
                )
            console.print(table)
    return capture.get()


def render_digest(title: str, digest: DeepenDigest) -> str:
    console = _console()
    with console.capture() as capture:
        console.print(title)
        console.print(f"TL;DR: {digest.tldr}")
        console.print(f"Why you: {digest.why_me}")
        for action in digest.next_actions:
            console.print(f"- {action}")
    return capture.get()
