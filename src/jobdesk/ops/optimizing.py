"""
Optimizing-job operations.

An optimizing job groups the iterations an optimization run produced.
Delete, move and publish can include those iterations; each iteration
is then handled independently and the optimizing job record is still
processed when one of them fails.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum

from jobdesk.core.enums import Capability
from jobdesk.core.errors import not_found
from jobdesk.core.logging import get_logger
from jobdesk.core.models import OptimizingJob
from jobdesk.core.result import Err, Ok, Result
from jobdesk.ops import folders, reports
from jobdesk.ops.access import Denied, access_denied, require, requires, visible
from jobdesk.ops.analysis import job_summary
from jobdesk.ops.batch import apply_batch
from jobdesk.ops.confirmation import confirm_batch, optimizing_job_link
from jobdesk.ops.context import Param, RequestContext, ServerContext
from jobdesk.ops.lookup import checked, error_message, natural_list_view, optimizing_job_view
from jobdesk.ops.outcome import Outcome, PageBody, RawStream, Redirect, StatusLine

logger = get_logger(__name__)

Handler = Callable[[ServerContext, RequestContext], Outcome]

_VIEW_DENIED = "You do not have permission to view optimizing jobs."


class MassOptimizingAction(str, Enum):
    """Submit-button labels accepted by ``job.mass_optimizing``."""

    DELETE = "Delete"
    MOVE = "Move"
    PUBLISH = "Publish"
    DEPUBLISH = "De-Publish"
    GENERATE_REPORT = "Generate Report"


def _fetch_visible(ctx: ServerContext, optimizing_job_id: str) -> Result[OptimizingJob]:
    result = checked(ctx.store.get_optimizing_job(optimizing_job_id))
    match result:
        case Ok(optimizing_job) if not visible(ctx, optimizing_job):
            return Err(not_found("optimizing_job", optimizing_job_id))
    return result


# =============================================================================
# VIEWS
# =============================================================================


@requires(Capability.VIEW_JOB, message=_VIEW_DENIED)
def view_optimizing(ctx: ServerContext, request: RequestContext) -> Outcome:
    view = natural_list_view(request)
    optimizing_job_id = request.param(Param.OPTIMIZING_JOB_ID)
    if not optimizing_job_id:
        return Outcome.failure("No optimizing job ID was provided.", redirect=view)
    match _fetch_visible(ctx, optimizing_job_id):
        case Err(error):
            return Outcome.failure(error_message(error), redirect=view)
        case Ok(optimizing_job):
            pass

    lines: list[StatusLine] = []
    iterations = []
    for iteration_id in optimizing_job.all_iteration_ids():
        match checked(ctx.store.get_job(iteration_id)):
            case Ok(job):
                iterations.append(job_summary(job))
            case Err(error):
                lines.append(StatusLine.info(f"Iteration {iteration_id}: {error_message(error)}", iteration_id))

    body = PageBody(
        view="optimizing_job",
        title=f"Optimizing Job {optimizing_job_id}",
        data={
            "optimizing_job_id": optimizing_job.optimizing_job_id,
            "job_class": optimizing_job.job_class,
            "folder": optimizing_job.folder,
            "description": optimizing_job.description,
            "comments": optimizing_job.comments,
            "state": optimizing_job.state.value,
            "paused": optimizing_job.paused,
            "display_in_read_only": optimizing_job.display_in_read_only,
            "rerun_iteration_id": optimizing_job.rerun_iteration_id,
            "iterations": iterations,
        },
    )
    return Outcome.page(body, lines)


@requires(Capability.VIEW_JOB, message=_VIEW_DENIED)
def view_optimizing_as_text(ctx: ServerContext, request: RequestContext) -> Outcome:
    optimizing_job_id = request.param(Param.OPTIMIZING_JOB_ID)
    if not optimizing_job_id:
        return Outcome.stream(RawStream.text("No optimizing job ID was provided.\n"))
    match _fetch_visible(ctx, optimizing_job_id):
        case Err(error):
            return Outcome.stream(RawStream.text(f"{error_message(error)}\n"))
        case Ok(o):
            pass
    text = "\n".join(
        [
            f"Optimizing Job ID: {o.optimizing_job_id}",
            f"Job Class: {o.job_class}",
            f"Folder: {o.folder}",
            f"State: {o.state.label}{' (paused)' if o.paused else ''}",
            f"Description: {o.description}",
            f"Iterations: {', '.join(o.iteration_ids)}",
            f"Re-Run Iteration: {o.rerun_iteration_id or ''}",
            f"Comments: {o.comments}",
        ]
    )
    return Outcome.stream(RawStream.text(text + "\n"))


# =============================================================================
# ACTIONS
# =============================================================================


def delete_optimizing_job(
    ctx: ServerContext,
    optimizing_job_id: str,
    request: RequestContext,
    *,
    include_iterations: bool,
) -> list[StatusLine]:
    """Delete the record and, optionally, every iteration and the re-run iteration."""
    match ctx.store.get_optimizing_job(optimizing_job_id):
        case Err(error):
            return [StatusLine.error(error_message(error), optimizing_job_id)]
        case Ok(optimizing_job):
            pass

    lines: list[StatusLine] = []
    if include_iterations:
        lines += apply_batch(
            optimizing_job.all_iteration_ids(),
            lambda job_id: ctx.store.remove_job(job_id).map(lambda _: f"Deleted iteration {job_id}"),
            request,
        )
    match ctx.store.remove_optimizing_job(optimizing_job_id):
        case Ok(_):
            logger.info("optimizing_job_deleted", optimizing_job_id=optimizing_job_id, iterations=include_iterations)
            lines.append(StatusLine.success(f"Deleted optimizing job {optimizing_job_id}", optimizing_job_id))
        case Err(error):
            lines.append(StatusLine.error(error_message(error), optimizing_job_id))
    return lines


def move_optimizing_job(
    ctx: ServerContext,
    optimizing_job_id: str,
    folder_name: str,
    request: RequestContext,
    *,
    include_iterations: bool,
) -> list[StatusLine]:
    match ctx.store.get_optimizing_job(optimizing_job_id):
        case Err(error):
            return [StatusLine.error(error_message(error), optimizing_job_id)]
        case Ok(optimizing_job):
            pass

    lines: list[StatusLine] = []
    if include_iterations:
        lines += apply_batch(
            optimizing_job.all_iteration_ids(),
            lambda job_id: folders.move_job(ctx.store, job_id, folder_name),
            request,
        )
    match folders.move_optimizing_job(ctx.store, optimizing_job_id, folder_name):
        case Ok(message):
            lines.append(StatusLine.success(message, optimizing_job_id))
        case Err(error):
            lines.append(StatusLine.error(error_message(error), optimizing_job_id))
    return lines


def publish_optimizing_job(
    ctx: ServerContext,
    optimizing_job_id: str,
    request: RequestContext,
    *,
    published: bool,
    include_iterations: bool,
) -> list[StatusLine]:
    match ctx.store.get_optimizing_job(optimizing_job_id):
        case Err(error):
            return [StatusLine.error(error_message(error), optimizing_job_id)]
        case Ok(optimizing_job):
            pass

    lines = apply_batch(
        [optimizing_job_id],
        lambda oid: folders.set_optimizing_job_published(ctx.store, oid, published),
        request,
    )
    if include_iterations:
        lines += apply_batch(
            optimizing_job.all_iteration_ids(),
            lambda job_id: folders.set_job_published(ctx.store, job_id, published),
            request,
        )
    return lines


def run_optimizing_action(
    ctx: ServerContext,
    request: RequestContext,
    *,
    capability: Capability,
    denied_message: str,
    title: str,
    prompt: str,
    per_item: Callable[[str], list[StatusLine]],
    list_view: Redirect,
    carry: tuple[str, ...] = (),
    validate: Callable[[RequestContext], str | None] | None = None,
) -> Outcome:
    """Gate, validate and confirm an action over the request's optimizing job IDs."""
    decision = require(ctx, request, capability)
    if isinstance(decision, Denied):
        return access_denied(decision, denied_message, request)

    ids = request.params_list(Param.OPTIMIZING_JOB_ID)
    if ids and validate is not None:
        problem = validate(request)
        if problem is not None:
            return Outcome.failure(problem, redirect=list_view)

    return confirm_batch(
        request,
        ids=ids,
        id_param=Param.OPTIMIZING_JOB_ID,
        title=title,
        prompt=prompt,
        execute=lambda selected: [line for oid in selected for line in per_item(oid)],
        list_view=list_view,
        empty_message="No optimizing jobs were selected.",
        link=optimizing_job_link,
        carry=carry,
    )


def _require_new_folder(request: RequestContext) -> str | None:
    if not request.param(Param.NEW_FOLDER):
        return "No destination folder was specified"
    return None


def _single_view(request: RequestContext) -> Redirect:
    optimizing_job_id = request.param(Param.OPTIMIZING_JOB_ID)
    return optimizing_job_view(optimizing_job_id) if optimizing_job_id else natural_list_view(request)


def _scheduler_action(
    verb: str,
    past: str,
    call: Callable[[ServerContext, str], Result[None]],
) -> Handler:
    def handler(ctx: ServerContext, request: RequestContext) -> Outcome:
        def per_item(optimizing_job_id: str) -> list[StatusLine]:
            return apply_batch(
                [optimizing_job_id],
                lambda oid: call(ctx, oid).map(lambda _: f"{past.capitalize()} optimizing job {oid}"),
                request,
            )

        return run_optimizing_action(
            ctx,
            request,
            capability=Capability.CANCEL_JOB,
            denied_message="You do not have permission to control optimizing jobs.",
            title=f"{verb.title()} Optimizing Job",
            prompt=f"Are you sure that you want to {verb} the following optimizing job?",
            per_item=per_item,
            list_view=_single_view(request),
        )

    return handler


cancel_optimizing = _scheduler_action("cancel", "cancelled", lambda ctx, oid: ctx.scheduler.cancel_optimizing_job(oid))
pause_optimizing = _scheduler_action("pause", "paused", lambda ctx, oid: ctx.scheduler.pause_optimizing_job(oid))
unpause_optimizing = _scheduler_action("unpause", "unpaused", lambda ctx, oid: ctx.scheduler.unpause_optimizing_job(oid))


def delete_optimizing(ctx: ServerContext, request: RequestContext) -> Outcome:
    include = request.flag(Param.INCLUDE_ITERATIONS)
    return run_optimizing_action(
        ctx,
        request,
        capability=Capability.DELETE_JOB,
        denied_message="You do not have permission to delete optimizing jobs.",
        title="Delete Optimizing Jobs",
        prompt=(
            "Are you sure that you want to delete the following optimizing jobs"
            + (" and all of their iterations?" if include else "?")
        ),
        per_item=lambda oid: delete_optimizing_job(ctx, oid, request, include_iterations=include),
        list_view=natural_list_view(request),
        carry=(Param.INCLUDE_ITERATIONS,),
    )


def move_optimizing(ctx: ServerContext, request: RequestContext) -> Outcome:
    include = request.flag(Param.INCLUDE_ITERATIONS)
    target = request.param(Param.NEW_FOLDER) or ""
    return run_optimizing_action(
        ctx,
        request,
        capability=Capability.MANAGE_FOLDERS,
        denied_message="You do not have permission to move optimizing jobs.",
        title="Move Optimizing Jobs",
        prompt=f"Are you sure that you want to move the following optimizing jobs to {target}?",
        per_item=lambda oid: move_optimizing_job(ctx, oid, target, request, include_iterations=include),
        list_view=natural_list_view(request),
        carry=(Param.NEW_FOLDER, Param.INCLUDE_ITERATIONS),
        validate=_require_new_folder,
    )


def _publish(published: bool) -> Handler:
    def handler(ctx: ServerContext, request: RequestContext) -> Outcome:
        include = request.flag(Param.INCLUDE_ITERATIONS)
        word = "publish" if published else "de-publish"
        return run_optimizing_action(
            ctx,
            request,
            capability=Capability.MANAGE_FOLDERS,
            denied_message=f"You do not have permission to {word} optimizing jobs.",
            title=f"{word.title()} Optimizing Jobs",
            prompt=f"Are you sure that you want to {word} the following optimizing jobs?",
            per_item=lambda oid: publish_optimizing_job(
                ctx, oid, request, published=published, include_iterations=include
            ),
            list_view=natural_list_view(request),
            carry=(Param.INCLUDE_ITERATIONS,),
        )

    return handler


@requires(Capability.SCHEDULE_JOB, message="You do not have permission to edit optimizing jobs.")
def edit_optimizing_comments(ctx: ServerContext, request: RequestContext) -> Outcome:
    view = natural_list_view(request)
    optimizing_job_id = request.param(Param.OPTIMIZING_JOB_ID)
    if not optimizing_job_id:
        return Outcome.failure("No optimizing job ID was provided.", redirect=view)
    match checked(ctx.store.get_optimizing_job(optimizing_job_id)):
        case Err(error):
            return Outcome.failure(error_message(error), redirect=view)
        case Ok(optimizing_job):
            pass

    if not request.has(Param.COMMENTS):
        return Outcome.page(
            PageBody(
                view="edit_comments",
                title=f"Edit Comments for Optimizing Job {optimizing_job_id}",
                data={
                    "entity_kind": "optimizing_job",
                    "optimizing_job_id": optimizing_job_id,
                    "comments": optimizing_job.comments,
                },
            )
        )
    optimizing_job.comments = "\n".join(request.params[Param.COMMENTS]).strip()
    match checked(ctx.store.put_optimizing_job(optimizing_job)):
        case Ok(_):
            line = StatusLine.success(f"Updated the comments for optimizing job {optimizing_job_id}")
        case Err(error):
            line = StatusLine.error(error_message(error), optimizing_job_id)
    return Outcome.redirect_to(optimizing_job_view(optimizing_job_id), [line])


def _generate_report(ctx: ServerContext, request: RequestContext) -> Outcome:
    return reports.generate_report(ctx, request)


MASS_OPTIMIZING_HANDLERS: dict[MassOptimizingAction, Handler] = {
    MassOptimizingAction.DELETE: delete_optimizing,
    MassOptimizingAction.MOVE: move_optimizing,
    MassOptimizingAction.PUBLISH: _publish(True),
    MassOptimizingAction.DEPUBLISH: _publish(False),
    MassOptimizingAction.GENERATE_REPORT: _generate_report,
}


def mass_optimizing(ctx: ServerContext, request: RequestContext) -> Outcome:
    """Dispatch a multi-optimizing-job form submission by its submit label."""
    submit = request.param(Param.SUBMIT)
    try:
        action = MassOptimizingAction(submit)
    except ValueError:
        logger.warning("unknown_mass_optimizing_action", submit=submit)
        return Outcome.failure(f"Unrecognized optimizing job operation {submit!r}.", redirect=natural_list_view(request))
    return MASS_OPTIMIZING_HANDLERS[action](ctx, request)


__all__ = [
    "MassOptimizingAction",
    "MASS_OPTIMIZING_HANDLERS",
    "view_optimizing",
    "view_optimizing_as_text",
    "cancel_optimizing",
    "pause_optimizing",
    "unpause_optimizing",
    "delete_optimizing",
    "move_optimizing",
    "edit_optimizing_comments",
    "mass_optimizing",
    "delete_optimizing_job",
    "move_optimizing_job",
    "publish_optimizing_job",
]
