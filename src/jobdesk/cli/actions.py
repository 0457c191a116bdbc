"""
CLI: ``jobdesk action`` and ``jobdesk status``, run operations locally.

Examples::

    jobdesk action job view_real -p job_folder=Nightly
    jobdesk action job mass_op -p submit=Delete -p job_id=A -p job_id=B --yes
"""

from __future__ import annotations

from pathlib import Path

import typer

from jobdesk.cli.utils import StatusPrinter, make_context, make_principal, output_outcome, parse_params
from jobdesk.ops.context import Param, RequestContext
from jobdesk.ops.router import ActionRouter


def action(
    category: str = typer.Argument(..., help="Category (job, job_class, status, debug, report)"),
    operation: str = typer.Argument("", help="Operation within the category"),
    param: list[str] = typer.Option([], "--param", "-p", help="key=value, repeatable"),
    confirm: bool | None = typer.Option(None, "--yes/--no", help="Answer the confirmation prompt"),
    principal: str = typer.Option("cli", "--principal", help="Acting principal name"),
    capabilities: str = typer.Option("full-access", "--capabilities", "-c", help="Comma-separated capabilities"),
    database: str | None = typer.Option(None, "--database", "-d"),
    memory: bool = typer.Option(False, "--memory", help="Use a throwaway in-memory store"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write raw output to a file"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Run one admin operation."""
    params = parse_params(param)
    if confirm is not None:
        params[Param.CONFIRMED] = ["Yes" if confirm else "No"]

    ctx = make_context(database, memory=memory)
    printer = None if json_out else StatusPrinter()
    request = RequestContext.build(
        category,
        operation,
        params,
        principal=make_principal(principal, capabilities),
        status_listener=printer,
    )
    outcome = ActionRouter(ctx).route(request)
    output_outcome(outcome, as_json=json_out, output=output, printer=printer)


def status(
    principal: str = typer.Option("cli", "--principal"),
    capabilities: str = typer.Option("full-access", "--capabilities", "-c"),
    database: str | None = typer.Option(None, "--database", "-d"),
    memory: bool = typer.Option(False, "--memory", help="Use a throwaway in-memory store"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show server status counts."""
    ctx = make_context(database, memory=memory)
    request = RequestContext.build("status", "status", principal=make_principal(principal, capabilities))
    output_outcome(ActionRouter(ctx).route(request), as_json=json_out)
