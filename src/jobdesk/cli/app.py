"""
Root Typer application for the jobdesk CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from jobdesk import __version__
from jobdesk.cli import actions
from jobdesk.cli.serve import app as serve_app
from jobdesk.core.logging import configure_logging
from jobdesk.core.settings import JobdeskSettings

app = Typer(
    name="jobdesk",
    help="jobdesk: admin console for distributed load jobs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"jobdesk {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """jobdesk CLI: run admin operations and serve the API."""
    settings = JobdeskSettings()
    configure_logging(level=settings.log_level, json_format=settings.json_logs, to_stderr=True)


app.command("action")(actions.action)
app.command("status")(actions.status)
app.add_typer(serve_app, name="serve", help="Start the API server.")
