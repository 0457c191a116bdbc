"""
CLI utility helpers: context construction and outcome rendering.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from jobdesk.core.enums import Capability
from jobdesk.core.settings import JobdeskSettings
from jobdesk.ops.context import Principal, ServerContext
from jobdesk.ops.outcome import Outcome, RawStream, StatusLevel, StatusLine

console = Console()
err_console = Console(stderr=True)

_LEVEL_STYLE = {
    StatusLevel.INFO: "cyan",
    StatusLevel.SUCCESS: "green",
    StatusLevel.WARNING: "yellow",
    StatusLevel.ERROR: "bold red",
}


# ── Context helpers ──────────────────────────────────────────────────────


def make_context(database: str | None = None, *, memory: bool = False) -> ServerContext:
    """Build a ``ServerContext`` for one CLI invocation.

    ``--database`` overrides ``JOBDESK_DATABASE_PATH``; ``memory`` swaps in
    a throwaway in-memory store.
    """
    overrides: dict[str, Any] = {}
    if database:
        overrides["database_path"] = database
    if memory:
        overrides["store_backend"] = "memory"
    return ServerContext.from_settings(JobdeskSettings(**overrides))


def make_principal(name: str, capabilities: str) -> Principal:
    return Principal(name=name, capabilities=Capability.parse_many(capabilities))


def parse_params(pairs: list[str]) -> dict[str, list[str]]:
    """``key=value`` pairs into a multi-valued mapping; repeated keys accumulate."""
    params: dict[str, list[str]] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            err_console.print(f"[bold red]Error[/bold red]: expected key=value, got {pair!r}")
            raise typer.Exit(code=2)
        params.setdefault(key.strip(), []).append(value)
    return params


# ── Output helpers ───────────────────────────────────────────────────────


def print_status_line(line: StatusLine) -> None:
    style = _LEVEL_STYLE[line.level]
    console.print(f"[{style}]{line.level.value.upper():<7}[/{style}] {line.message}")


class StatusPrinter:
    """Status listener that prints each line as a batch produces it."""

    def __init__(self) -> None:
        self.lines: list[StatusLine] = []

    def __call__(self, line: StatusLine) -> None:
        print_status_line(line)
        self.lines.append(line)

    def shown(self, line: StatusLine) -> bool:
        return any(line is printed for printed in self.lines)


def output_outcome(
    outcome: Outcome,
    *,
    as_json: bool = False,
    output: Path | None = None,
    printer: StatusPrinter | None = None,
) -> None:
    """Render an ``Outcome`` to the terminal; exits 1 when it carries errors.

    Lines *printer* already showed while the batch ran are not repeated.
    """
    if outcome.raw is not None:
        _write_raw(outcome.raw, output)
    elif as_json:
        console.print_json(json.dumps(outcome.to_dict(), default=str))
    else:
        for line in outcome.status_lines:
            if printer is None or not printer.shown(line):
                print_status_line(line)
        if outcome.body is not None:
            _print_body(outcome.body.to_dict())
        elif outcome.redirect is not None:
            console.print(f"[dim]→ {outcome.redirect.category}.{outcome.redirect.operation}[/dim]")

    if outcome.has_errors:
        raise typer.Exit(code=1)


def _write_raw(raw: RawStream, output: Path | None) -> None:
    content = raw.read_all()
    if output is not None:
        output.write_bytes(content)
        err_console.print(f"[green]Wrote {len(content)} bytes to {output}[/green]")
        return
    if not raw.content_type.startswith("text/"):
        err_console.print(
            f"[bold red]Error[/bold red]: {raw.content_type} output needs --output"
        )
        raise typer.Exit(code=1)
    typer.echo(content.decode("utf-8", errors="replace"), nl=False)


def _print_body(body: dict[str, Any]) -> None:
    kind = body.get("kind")
    if kind == "confirmation":
        console.print(f"[bold]{body['title']}[/bold]")
        console.print(body["prompt"])
        for link in body["links"]:
            console.print(f"  • {link['label']}")
        console.print("[dim]Re-run with --yes to proceed or --no to cancel.[/dim]")
    elif kind == "options":
        console.print(f"[bold]{body['title']}[/bold]")
        console.print(body["prompt"])
        if body["choices"]:
            _print_table(body["choices"])
        if body["inputs"]:
            _print_table(body["inputs"])
    elif kind == "access_denied":
        err_console.print(f"[bold red]Access denied[/bold red]: {body['message']}")
    elif kind == "authentication_required":
        err_console.print(f"[bold red]Authentication required[/bold red]: {body['message']}")
    else:
        _print_dict(body.get("data", {}), title=body.get("title", ""))


def _print_table(items: list[dict[str, Any]], *, title: str = "") -> None:
    """Render a list of dicts as a Rich table."""
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in items[0]:
        table.add_column(col, overflow="fold")
    for item in items:
        table.add_row(*(str(v) for v in item.values()))
    console.print(table)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a page's data: scalars as key-value pairs, row lists as tables."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        if isinstance(v, list) and v and all(isinstance(row, dict) for row in v):
            _print_table(v, title=k)
        else:
            console.print(f"  [cyan]{k}[/cyan]: {v}")
