"""
Action router.

Resolves a request's (category, operation) pair to an
:class:`OperationKey` and runs the one handler registered for it.

Routing Flow:
    ::

        RequestContext
              │
              ▼
        authenticated? ──no──► AuthenticationRequired
              │
              ▼
        resolve_key() ── unknown op ──► category default view
              │
              ▼
        HANDLERS[key](ctx, request)
              │
              ├── raises ──► status line (logged)
              ▼
        Outcome ── redirect ──► follow natural list view, prepend lines

The router never raises to the transport.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from jobdesk.core.errors import JobdeskError, StoreUnavailableError, categorize_error
from jobdesk.core.logging import LogContext, get_logger
from jobdesk.ops import analysis, job_classes, jobs, mass, optimizing, reports, status
from jobdesk.ops.context import RequestContext, ServerContext
from jobdesk.ops.outcome import AuthenticationRequired, Outcome, StatusLine

logger = get_logger(__name__)

Handler = Callable[[ServerContext, RequestContext], Outcome]

MAX_REDIRECTS = 3


class OperationKey(str, Enum):
    """Every operation the console exposes, as ``"<category>.<operation>"``."""

    # job
    VIEW_JOB = "job.view_job"
    VIEW_JOB_AS_TEXT = "job.view_job_as_text"
    VIEW_PENDING = "job.view_pending"
    VIEW_RUNNING = "job.view_running"
    VIEW_COMPLETED = "job.view_completed"
    VIEW_REAL = "job.view_real"
    LIST_REAL_FOLDERS = "job.list_real_folders"
    VIEW_VIRTUAL = "job.view_virtual"
    LIST_VIRTUAL_FOLDERS = "job.list_virtual_folders"
    VIEW_LOG_MESSAGES = "job.view_log_messages"
    CANCEL_JOB = "job.cancel_job"
    CANCEL_AND_DELETE = "job.cancel_and_delete"
    DELETE_JOB = "job.delete_job"
    DISABLE_JOB = "job.disable_job"
    ENABLE_JOB = "job.enable_job"
    CLONE_JOB = "job.clone_job"
    EDIT_COMMENTS = "job.edit_comments"
    MASS_OP = "job.mass_op"
    VIEW_OPTIMIZING = "job.view_optimizing"
    VIEW_OPTIMIZING_AS_TEXT = "job.view_optimizing_as_text"
    CANCEL_OPTIMIZING = "job.cancel_optimizing"
    PAUSE_OPTIMIZING = "job.pause_optimizing"
    UNPAUSE_OPTIMIZING = "job.unpause_optimizing"
    DELETE_OPTIMIZING = "job.delete_optimizing"
    MOVE_OPTIMIZING = "job.move_optimizing"
    EDIT_OPTIMIZING_COMMENTS = "job.edit_optimizing_comments"
    MASS_OPTIMIZING = "job.mass_optimizing"
    VIEW_GRAPH = "job.view_graph"
    GRAPH = "job.graph"
    GENERATE_REPORT = "job.generate_report"
    # job_class
    VIEW_CLASSES = "job_class.view_classes"
    ADD_JOB_CLASS = "job_class.add_job_class"
    DELETE_JOB_CLASS = "job_class.delete_job_class"
    # status
    STATUS = "status.status"
    STATUS_AS_TEXT = "status.status_as_text"
    VIEW_LOG = "status.view_log"
    # debug
    DEBUG_REQUEST = "debug.debug_request"
    # report
    REPORT = "report.generate_report"

    @property
    def category(self) -> str:
        return self.value.split(".", 1)[0]

    @property
    def operation(self) -> str:
        return self.value.split(".", 1)[1]


CATEGORY_DEFAULTS: dict[str, OperationKey] = {
    "job": OperationKey.VIEW_REAL,
    "job_class": OperationKey.VIEW_CLASSES,
    "status": OperationKey.STATUS,
    "debug": OperationKey.DEBUG_REQUEST,
    "report": OperationKey.REPORT,
}

LANDING = OperationKey.STATUS

# Operations that skip the page wrapper and stream their own content type.
RAW_KEYS: frozenset[OperationKey] = frozenset(
    {
        OperationKey.VIEW_JOB_AS_TEXT,
        OperationKey.VIEW_OPTIMIZING_AS_TEXT,
        OperationKey.GRAPH,
        OperationKey.STATUS_AS_TEXT,
        OperationKey.VIEW_LOG,
    }
)

HANDLERS: dict[OperationKey, Handler] = {
    OperationKey.VIEW_JOB: jobs.view_job,
    OperationKey.VIEW_JOB_AS_TEXT: jobs.view_job_as_text,
    OperationKey.VIEW_PENDING: jobs.view_pending,
    OperationKey.VIEW_RUNNING: jobs.view_running,
    OperationKey.VIEW_COMPLETED: jobs.view_completed,
    OperationKey.VIEW_REAL: jobs.view_real,
    OperationKey.LIST_REAL_FOLDERS: jobs.list_real_folders,
    OperationKey.VIEW_VIRTUAL: jobs.view_virtual,
    OperationKey.LIST_VIRTUAL_FOLDERS: jobs.list_virtual_folders,
    OperationKey.VIEW_LOG_MESSAGES: jobs.view_log_messages,
    OperationKey.CANCEL_JOB: jobs.cancel_job,
    OperationKey.CANCEL_AND_DELETE: jobs.cancel_and_delete,
    OperationKey.DELETE_JOB: jobs.delete_job,
    OperationKey.DISABLE_JOB: jobs.disable_job,
    OperationKey.ENABLE_JOB: jobs.enable_job,
    OperationKey.CLONE_JOB: jobs.clone_job,
    OperationKey.EDIT_COMMENTS: jobs.edit_comments,
    OperationKey.MASS_OP: mass.mass_op,
    OperationKey.VIEW_OPTIMIZING: optimizing.view_optimizing,
    OperationKey.VIEW_OPTIMIZING_AS_TEXT: optimizing.view_optimizing_as_text,
    OperationKey.CANCEL_OPTIMIZING: optimizing.cancel_optimizing,
    OperationKey.PAUSE_OPTIMIZING: optimizing.pause_optimizing,
    OperationKey.UNPAUSE_OPTIMIZING: optimizing.unpause_optimizing,
    OperationKey.DELETE_OPTIMIZING: optimizing.delete_optimizing,
    OperationKey.MOVE_OPTIMIZING: optimizing.move_optimizing,
    OperationKey.EDIT_OPTIMIZING_COMMENTS: optimizing.edit_optimizing_comments,
    OperationKey.MASS_OPTIMIZING: optimizing.mass_optimizing,
    OperationKey.VIEW_GRAPH: analysis.view_graph,
    OperationKey.GRAPH: analysis.graph,
    OperationKey.GENERATE_REPORT: reports.generate_report,
    OperationKey.VIEW_CLASSES: job_classes.view_classes,
    OperationKey.ADD_JOB_CLASS: job_classes.add_job_class,
    OperationKey.DELETE_JOB_CLASS: job_classes.delete_job_class,
    OperationKey.STATUS: status.status,
    OperationKey.STATUS_AS_TEXT: status.status_as_text,
    OperationKey.VIEW_LOG: status.view_log,
    OperationKey.DEBUG_REQUEST: status.debug_request,
    OperationKey.REPORT: reports.generate_report,
}


def resolve_key(category: str, operation: str) -> OperationKey:
    """Map a (category, operation) pair onto an operation key.

    Examples:
        >>> resolve_key("job", "delete_job")
        <OperationKey.DELETE_JOB: 'job.delete_job'>
        >>> resolve_key("job", "")
        <OperationKey.VIEW_REAL: 'job.view_real'>
        >>> resolve_key("nonsense", "x")
        <OperationKey.STATUS: 'status.status'>
    """
    default = CATEGORY_DEFAULTS.get(category)
    if default is None:
        return LANDING
    try:
        return OperationKey(f"{category}.{operation}")
    except ValueError:
        return default


class ActionRouter:
    """Dispatches requests to handlers and composes their outcomes."""

    def __init__(self, ctx: ServerContext) -> None:
        self.ctx = ctx

    def route(self, request: RequestContext) -> Outcome:
        principal = request.principal.name if request.principal else None
        with LogContext(request_id=request.request_id, principal=principal, operation=request.operation_name):
            settings = self.ctx.settings
            if settings.access_control_enabled and not settings.read_only_mode and request.principal is None:
                logger.info("authentication_required")
                return Outcome.page(AuthenticationRequired(login_url=settings.login_url))
            return self._dispatch(request, depth=0)

    def _dispatch(self, request: RequestContext, depth: int) -> Outcome:
        key = resolve_key(request.category, request.operation)
        request.raw_output = key in RAW_KEYS
        outcome = self._invoke(key, request)

        if outcome.redirect is None or request.raw_output:
            return outcome
        if depth >= MAX_REDIRECTS:
            logger.warning("redirect_limit_reached", key=key.value, depth=depth)
            return outcome
        followed = self._dispatch(request.follow(outcome.redirect), depth + 1)
        return followed.after(outcome.status_lines)

    def _invoke(self, key: OperationKey, request: RequestContext) -> Outcome:
        handler = HANDLERS[key]
        logger.debug("operation_dispatched", key=key.value, raw=request.raw_output)
        try:
            return handler(self.ctx, request)
        except StoreUnavailableError as e:
            logger.error("store_unavailable", key=key.value, error=e.message)
            return Outcome(status_lines=[StatusLine.error(f"The entity store is unavailable: {e.message}")])
        except JobdeskError as e:
            logger.warning("operation_failed", key=key.value, error=e.message, category=e.category.value)
            return Outcome(status_lines=[StatusLine.error(e.message)])
        except Exception as e:
            logger.exception(
                "operation_crashed",
                key=key.value,
                error_type=type(e).__name__,
                category=categorize_error(e).value,
            )
            return Outcome(
                status_lines=[StatusLine.error(f"An unexpected error occurred while processing the request: {e}")]
            )


__all__ = [
    "OperationKey",
    "CATEGORY_DEFAULTS",
    "RAW_KEYS",
    "HANDLERS",
    "resolve_key",
    "ActionRouter",
]
