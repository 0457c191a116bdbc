"""
Server status, log access and request debugging.

``status_as_text`` and ``view_log`` are raw operations: they bypass the
page wrapper and stream plain text.
"""

from __future__ import annotations

from collections import deque
from pathlib import Path

from jobdesk import __version__
from jobdesk.core.enums import Capability
from jobdesk.core.logging import get_logger
from jobdesk.ops.access import requires
from jobdesk.ops.context import Param, RequestContext, ServerContext
from jobdesk.ops.jobs import COMPLETED_STATES, PENDING_STATES, RUNNING_STATES
from jobdesk.ops.lookup import required
from jobdesk.ops.outcome import Outcome, PageBody, RawStream

logger = get_logger(__name__)

_STATUS_DENIED = "You do not have permission to view the server status."


def _format_uptime(seconds: int) -> str:
    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{days}d {hours:02d}:{minutes:02d}:{seconds:02d}"


def collect_status(ctx: ServerContext) -> dict[str, object]:
    """Counts and runtime facts shown on the status page."""
    uptime = max(0, int((ctx.clock() - ctx.started_at).total_seconds()))
    return {
        "version": __version__,
        "started_at": ctx.started_at.isoformat(),
        "uptime": _format_uptime(uptime),
        "store_backend": ctx.settings.store_backend,
        "access_control_enabled": ctx.settings.access_control_enabled,
        "read_only_mode": ctx.settings.read_only_mode,
        "pending_jobs": len(required(ctx.store.list_jobs(states=PENDING_STATES))),
        "running_jobs": len(required(ctx.store.list_jobs(states=RUNNING_STATES))),
        "completed_jobs": len(required(ctx.store.list_jobs(states=COMPLETED_STATES))),
        "optimizing_jobs": len(required(ctx.store.list_optimizing_jobs())),
        "job_folders": len(required(ctx.store.list_folders())),
        "virtual_folders": len(required(ctx.store.list_virtual_folders())),
        "job_classes": len(required(ctx.store.list_job_classes())),
        "report_generators": sorted(ctx.report_generators),
    }


@requires(Capability.VIEW_STATUS, message=_STATUS_DENIED)
def status(ctx: ServerContext, request: RequestContext) -> Outcome:
    return Outcome.page(PageBody(view="status", title="Server Status", data=collect_status(ctx)))


@requires(Capability.VIEW_STATUS, message=_STATUS_DENIED)
def status_as_text(ctx: ServerContext, request: RequestContext) -> Outcome:
    data = collect_status(ctx)
    text = "\n".join(f"{key}: {value}" for key, value in data.items())
    return Outcome.stream(RawStream.text(text + "\n"))


@requires(Capability.VIEW_STATUS, message=_STATUS_DENIED)
def view_log(ctx: ServerContext, request: RequestContext) -> Outcome:
    """Tail of the server log; ``view_all`` streams the whole file."""
    log_file = ctx.settings.log_file
    if not log_file:
        return Outcome.stream(RawStream.text("No log file configured.\n"))
    path = Path(log_file)
    if not path.is_file():
        return Outcome.stream(RawStream.text(f"Log file {path} does not exist.\n"))

    with path.open(encoding="utf-8", errors="replace") as handle:
        if request.flag(Param.VIEW_ALL):
            lines = list(handle)
        else:
            count = max(1, request.int_param(Param.VIEW_LINES, ctx.settings.log_view_lines))
            lines = list(deque(handle, maxlen=count))
    logger.debug("log_viewed", path=str(path), lines=len(lines))
    return Outcome.stream(RawStream(content_type="text/plain", chunks=[line.encode("utf-8") for line in lines]))


@requires(Capability.FULL_ACCESS, message="You do not have permission to view debugging information.")
def debug_request(ctx: ServerContext, request: RequestContext) -> Outcome:
    principal = request.principal
    data = {
        "request_id": request.request_id,
        "category": request.category,
        "operation": request.operation,
        "sub_operation": request.sub_operation,
        "params": {name: list(values) for name, values in request.params.items()},
        "principal": principal.name if principal else None,
        "capabilities": sorted(c.value for c in principal.capabilities) if principal else [],
        "settings": ctx.settings.model_dump(mode="json"),
    }
    return Outcome.page(PageBody(view="debug", title="Request Debugging Information", data=data))


__all__ = ["status", "status_as_text", "view_log", "debug_request", "collect_status"]
