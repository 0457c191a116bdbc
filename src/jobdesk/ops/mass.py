"""
Multi-job ("mass") operations.

``mass_op`` reads the submit button's label, resolves it to a
:class:`MassAction` and dispatches through ``MASS_HANDLERS``. Job batch
actions are described once in ``JOB_ACTIONS`` and reused by the
single-job handlers in :mod:`jobdesk.ops.jobs`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum

from jobdesk.core.enums import Capability, JobState
from jobdesk.core.errors import BusinessRuleError, ErrorContext
from jobdesk.core.logging import get_logger
from jobdesk.core.result import Err, Ok, Result
from jobdesk.ops import analysis, folders, reports
from jobdesk.ops.access import Denied, access_denied, require_all, requires
from jobdesk.ops.batch import Mutation, Prefilter, apply_batch
from jobdesk.ops.confirmation import (
    confirm_batch,
    folder_link,
    virtual_folder_link,
)
from jobdesk.ops.context import Param, RequestContext, ServerContext
from jobdesk.ops.lookup import error_message, natural_list_view
from jobdesk.ops.outcome import Outcome, Redirect, StatusLine

logger = get_logger(__name__)

Handler = Callable[[ServerContext, RequestContext], Outcome]
ListView = Callable[[RequestContext], Redirect]


class MassAction(str, Enum):
    """Submit-button labels accepted by ``job.mass_op``."""

    CANCEL = "Cancel"
    CANCEL_AND_DELETE = "Cancel and Delete"
    CLONE = "Clone"
    DELETE = "Delete"
    DISABLE = "Disable"
    ENABLE = "Enable"
    MOVE = "Move"
    PUBLISH = "Publish"
    DEPUBLISH = "De-Publish"
    ADD_TO_VIRTUAL_FOLDER = "Add to Virtual Folder"
    REMOVE_FROM_VIRTUAL_FOLDER = "Remove from Virtual Folder"
    COMPARE = "Compare"
    EXPORT = "Export"
    GENERATE_REPORT = "Generate Report"
    CREATE_FOLDER = "Create Folder"
    DELETE_FOLDER = "Delete Folder"
    CREATE_VIRTUAL_FOLDER = "Create Virtual Folder"
    DELETE_VIRTUAL_FOLDER = "Delete Virtual Folder"
    EDIT_DESCRIPTION = "Edit Description"
    PUBLISH_FOLDER = "Publish Folder"
    PUBLISH_FOLDER_AND_JOBS = "Publish Folder and Jobs"
    DEPUBLISH_FOLDER = "De-Publish Folder"
    DEPUBLISH_FOLDER_AND_JOBS = "De-Publish Folder and Jobs"


# =============================================================================
# JOB MUTATIONS
# =============================================================================


def _cancel(ctx: ServerContext, request: RequestContext) -> Mutation:
    def mutate(job_id: str) -> Result[str]:
        return ctx.scheduler.cancel_job(job_id).map(
            lambda state: f"Cancelled job {job_id} (now {state.label.lower()})"
        )

    return mutate


def _remove_unless_running(ctx: ServerContext, job_id: str) -> Result[str]:
    match ctx.store.get_job(job_id):
        case Err() as err:
            return err.map(lambda _: "")
        case Ok(job):
            if job.state.is_running:
                return Err(
                    BusinessRuleError(
                        f"Job {job_id} is running and must be cancelled before it can be deleted",
                        context=ErrorContext(entity_id=job_id, entity_kind="job"),
                    )
                )
    return ctx.store.remove_job(job_id).map(lambda _: f"Deleted job {job_id}")


def _delete(ctx: ServerContext, request: RequestContext) -> Mutation:
    return lambda job_id: _remove_unless_running(ctx, job_id)


def _cancel_and_delete(ctx: ServerContext, request: RequestContext) -> Mutation:
    def mutate(job_id: str) -> Result[str]:
        match ctx.store.get_job(job_id):
            case Err() as err:
                return err.map(lambda _: "")
            case Ok(job):
                pass
        if not job.state.is_terminal:
            cancelled = ctx.scheduler.cancel_job(job_id)
            if cancelled.is_err():
                return cancelled.map(lambda _: "")
        return ctx.store.remove_job(job_id).map(lambda _: f"Cancelled and deleted job {job_id}")

    return mutate


def _tied_to_optimizing_job(ctx: ServerContext) -> Prefilter:
    """Skip jobs that are iterations of a still-existing optimizing job."""

    def prefilter(job_id: str) -> str | None:
        match ctx.store.get_job(job_id):
            case Ok(job) if job.optimizing_job_id:
                if ctx.store.get_optimizing_job(job.optimizing_job_id).is_ok():
                    return (
                        f"Job {job_id} is an iteration of optimizing job {job.optimizing_job_id} "
                        "and will not be removed"
                    )
        return None

    return prefilter


def _transition(expected: JobState, target: JobState, verb: str) -> Callable[[ServerContext, RequestContext], Mutation]:
    def factory(ctx: ServerContext, request: RequestContext) -> Mutation:
        def mutate(job_id: str) -> Result[str]:
            match ctx.store.get_job(job_id):
                case Err() as err:
                    return err.map(lambda _: "")
                case Ok(job):
                    pass
            if job.state is not expected:
                return Err(
                    BusinessRuleError(
                        f"Job {job_id} is {job.state.label.lower()}; only {expected.label.lower()} jobs can be {verb}",
                        context=ErrorContext(entity_id=job_id, entity_kind="job"),
                    )
                )
            job.state = target
            return ctx.store.put_job(job).map(lambda _: f"{verb.capitalize()} job {job_id}")

        return mutate

    return factory


def _clone(ctx: ServerContext, request: RequestContext) -> Mutation:
    interdependent = request.flag(Param.MAKE_INTERDEPENDENT)
    initial_state = JobState.DISABLED if ctx.settings.clone_disabled_by_default else JobState.NOT_YET_STARTED
    previous: list[str] = []

    def mutate(job_id: str) -> Result[str]:
        match ctx.store.get_job(job_id):
            case Err() as err:
                return err.map(lambda _: "")
            case Ok(job):
                pass
        dependencies = [previous[-1]] if interdependent and previous else list(job.dependencies)
        clone = replace(
            job,
            job_id=ctx.new_job_id(),
            state=initial_state,
            optimizing_job_id=None,
            stat_trackers={},
            dependencies=dependencies,
            actual_start_time=None,
            actual_stop_time=None,
            log_messages=[],
            parameters=dict(job.parameters),
        )
        saved = ctx.store.put_job(clone)
        if saved.is_ok():
            previous.append(clone.job_id)
        return saved.map(lambda c: f"Cloned job {job_id} as {c.job_id}")

    return mutate


def _move(ctx: ServerContext, request: RequestContext) -> Mutation:
    target = request.param(Param.NEW_FOLDER) or ""
    return lambda job_id: folders.move_job(ctx.store, job_id, target)


def _publish(published: bool) -> Callable[[ServerContext, RequestContext], Mutation]:
    def factory(ctx: ServerContext, request: RequestContext) -> Mutation:
        return lambda job_id: folders.set_job_published(ctx.store, job_id, published)

    return factory


def _require_new_folder(request: RequestContext) -> str | None:
    if not request.param(Param.NEW_FOLDER):
        return "No destination folder was specified"
    return None


def _require_target_virtual_folder(request: RequestContext) -> str | None:
    if not request.param(Param.TARGET_VIRTUAL_FOLDER):
        return "No virtual folder was specified"
    return None


def _require_current_virtual_folder(request: RequestContext) -> str | None:
    if not request.param(Param.VIRTUAL_JOB_FOLDER):
        return "Jobs can only be removed from a virtual folder while viewing it"
    return None


# =============================================================================
# ACTION TABLE
# =============================================================================

Executor = Callable[[ServerContext, RequestContext, list[str]], list[StatusLine]]


def batch_of(
    factory: Callable[[ServerContext, RequestContext], Mutation],
    prefilter: Callable[[ServerContext], Prefilter] | None = None,
) -> Executor:
    def execute(ctx: ServerContext, request: RequestContext, ids: list[str]) -> list[StatusLine]:
        return apply_batch(ids, factory(ctx, request), request, prefilter(ctx) if prefilter else None)

    return execute


def _add_to_virtual(ctx: ServerContext, request: RequestContext, ids: list[str]) -> list[StatusLine]:
    return folders.add_to_virtual_folder(ctx.store, request.param(Param.TARGET_VIRTUAL_FOLDER) or "", ids, request)


def _remove_from_virtual(ctx: ServerContext, request: RequestContext, ids: list[str]) -> list[StatusLine]:
    return folders.remove_from_virtual_folder(ctx.store, request.param(Param.VIRTUAL_JOB_FOLDER) or "", ids, request)


@dataclass(frozen=True)
class JobAction:
    """A confirmation-gated batch action over job IDs."""

    capabilities: tuple[Capability, ...]
    denied_message: str
    title: str
    prompt: str
    execute: Executor
    carry: tuple[str, ...] = ()
    validate: Callable[[RequestContext], str | None] | None = None


JOB_ACTIONS: dict[MassAction, JobAction] = {
    MassAction.CANCEL: JobAction(
        capabilities=(Capability.CANCEL_JOB,),
        denied_message="You do not have permission to cancel jobs.",
        title="Cancel Jobs",
        prompt="Are you sure that you want to cancel the following jobs?",
        execute=batch_of(_cancel),
    ),
    MassAction.CANCEL_AND_DELETE: JobAction(
        capabilities=(Capability.CANCEL_JOB, Capability.DELETE_JOB),
        denied_message="You do not have permission to cancel and delete jobs.",
        title="Cancel and Delete Jobs",
        prompt="Are you sure that you want to cancel and delete the following jobs?",
        execute=batch_of(_cancel_and_delete, _tied_to_optimizing_job),
    ),
    MassAction.CLONE: JobAction(
        capabilities=(Capability.SCHEDULE_JOB,),
        denied_message="You do not have permission to schedule jobs.",
        title="Clone Jobs",
        prompt="Are you sure that you want to clone the following jobs?",
        execute=batch_of(_clone),
        carry=(Param.MAKE_INTERDEPENDENT,),
    ),
    MassAction.DELETE: JobAction(
        capabilities=(Capability.DELETE_JOB,),
        denied_message="You do not have permission to delete jobs.",
        title="Delete Jobs",
        prompt="Are you sure that you want to delete the following jobs?",
        execute=batch_of(_delete),
    ),
    MassAction.DISABLE: JobAction(
        capabilities=(Capability.SCHEDULE_JOB,),
        denied_message="You do not have permission to disable jobs.",
        title="Disable Jobs",
        prompt="Are you sure that you want to disable the following jobs?",
        execute=batch_of(_transition(JobState.NOT_YET_STARTED, JobState.DISABLED, "disabled")),
    ),
    MassAction.ENABLE: JobAction(
        capabilities=(Capability.SCHEDULE_JOB,),
        denied_message="You do not have permission to enable jobs.",
        title="Enable Jobs",
        prompt="Are you sure that you want to enable the following jobs?",
        execute=batch_of(_transition(JobState.DISABLED, JobState.NOT_YET_STARTED, "enabled")),
    ),
    MassAction.MOVE: JobAction(
        capabilities=(Capability.MANAGE_FOLDERS,),
        denied_message="You do not have permission to move jobs between folders.",
        title="Move Jobs",
        prompt="Are you sure that you want to move the following jobs?",
        execute=batch_of(_move),
        carry=(Param.NEW_FOLDER,),
        validate=_require_new_folder,
    ),
    MassAction.PUBLISH: JobAction(
        capabilities=(Capability.MANAGE_FOLDERS,),
        denied_message="You do not have permission to publish jobs.",
        title="Publish Jobs",
        prompt="Are you sure that you want to publish the following jobs for read-only access?",
        execute=batch_of(_publish(True)),
    ),
    MassAction.DEPUBLISH: JobAction(
        capabilities=(Capability.MANAGE_FOLDERS,),
        denied_message="You do not have permission to de-publish jobs.",
        title="De-Publish Jobs",
        prompt="Are you sure that you want to remove read-only access to the following jobs?",
        execute=batch_of(_publish(False)),
    ),
    MassAction.ADD_TO_VIRTUAL_FOLDER: JobAction(
        capabilities=(Capability.MANAGE_FOLDERS,),
        denied_message="You do not have permission to manage virtual folders.",
        title="Add Jobs to Virtual Folder",
        prompt="Are you sure that you want to add the following jobs to the virtual folder?",
        execute=_add_to_virtual,
        carry=(Param.TARGET_VIRTUAL_FOLDER,),
        validate=_require_target_virtual_folder,
    ),
    MassAction.REMOVE_FROM_VIRTUAL_FOLDER: JobAction(
        capabilities=(Capability.MANAGE_FOLDERS,),
        denied_message="You do not have permission to manage virtual folders.",
        title="Remove Jobs from Virtual Folder",
        prompt="Are you sure that you want to remove the following jobs from the virtual folder?",
        execute=_remove_from_virtual,
        validate=_require_current_virtual_folder,
    ),
}


def run_job_action(
    ctx: ServerContext,
    request: RequestContext,
    action: JobAction,
    *,
    list_view: ListView = natural_list_view,
) -> Outcome:
    """Gate, validate and run *action* over the request's job IDs."""
    decision = require_all(ctx, request, action.capabilities)
    if isinstance(decision, Denied):
        return access_denied(decision, action.denied_message, request)

    ids = request.params_list(Param.JOB_ID)
    view = list_view(request)
    if ids and action.validate is not None:
        problem = action.validate(request)
        if problem is not None:
            return Outcome.failure(problem, redirect=view)

    return confirm_batch(
        request,
        ids=ids,
        id_param=Param.JOB_ID,
        title=action.title,
        prompt=action.prompt,
        execute=lambda selected: action.execute(ctx, request, selected),
        list_view=view,
        empty_message="No jobs were selected.",
        carry=action.carry,
    )


def job_action_handler(action: MassAction, *, list_view: ListView = natural_list_view) -> Handler:
    job_action = JOB_ACTIONS[action]

    def handler(ctx: ServerContext, request: RequestContext) -> Outcome:
        return run_job_action(ctx, request, job_action, list_view=list_view)

    handler.__name__ = f"{action.name.lower()}_jobs"
    return handler


# =============================================================================
# FOLDER ACTIONS
# =============================================================================

_FOLDERS_DENIED = "You do not have permission to manage job folders."


def _single_step(result: Result[str], success_view: Redirect, failure_view: Redirect) -> Outcome:
    match result:
        case Ok(message):
            return Outcome.redirect_to(success_view, [StatusLine.success(message)])
        case Err(error):
            return Outcome.failure(error_message(error), redirect=failure_view)


@requires(Capability.MANAGE_FOLDERS, message=_FOLDERS_DENIED)
def create_folder(ctx: ServerContext, request: RequestContext) -> Outcome:
    name = request.param(Param.NEW_FOLDER)
    result = folders.create_folder(ctx.store, name, request.param(Param.DESCRIPTION, "") or "")
    return _single_step(
        result,
        Redirect.to("job", "view_real", **{Param.JOB_FOLDER: name}),
        natural_list_view(request),
    )


@requires(Capability.MANAGE_FOLDERS, message=_FOLDERS_DENIED)
def create_virtual_folder(ctx: ServerContext, request: RequestContext) -> Outcome:
    name = request.param(Param.NEW_FOLDER)
    result = folders.create_virtual_folder(ctx.store, name, request.param(Param.DESCRIPTION, "") or "")
    return _single_step(
        result,
        Redirect.to("job", "view_virtual", **{Param.VIRTUAL_JOB_FOLDER: name}),
        Redirect.to("job", "list_virtual_folders"),
    )


@requires(Capability.MANAGE_FOLDERS, message=_FOLDERS_DENIED)
def delete_folder(ctx: ServerContext, request: RequestContext) -> Outcome:
    name = request.param(Param.JOB_FOLDER)
    cascade = request.flag(Param.DELETE_FOLDER_CONTENTS)
    prompt = "Are you sure that you want to delete this job folder?"
    if cascade:
        prompt = "Are you sure that you want to delete this job folder and every job and optimizing job in it?"
    return confirm_batch(
        request,
        ids=[name] if name else [],
        id_param=Param.JOB_FOLDER,
        title="Delete Job Folder",
        prompt=prompt,
        execute=lambda selected: [
            line for folder in selected for line in folders.delete_folder(ctx.store, folder, request, cascade=cascade)
        ],
        list_view=Redirect.to("job", "list_real_folders"),
        empty_message="No job folder was specified.",
        link=folder_link,
        carry=(Param.DELETE_FOLDER_CONTENTS,),
    )


@requires(Capability.MANAGE_FOLDERS, message=_FOLDERS_DENIED)
def delete_virtual_folder(ctx: ServerContext, request: RequestContext) -> Outcome:
    name = request.param(Param.VIRTUAL_JOB_FOLDER)

    def execute(selected: list[str]) -> list[StatusLine]:
        return apply_batch(selected, lambda n: folders.delete_virtual_folder(ctx.store, n), request)

    return confirm_batch(
        request,
        ids=[name] if name else [],
        id_param=Param.VIRTUAL_JOB_FOLDER,
        title="Delete Virtual Job Folder",
        prompt="Are you sure that you want to delete this virtual folder? The jobs it references are not removed.",
        execute=execute,
        list_view=Redirect.to("job", "list_virtual_folders"),
        empty_message="No virtual job folder was specified.",
        link=virtual_folder_link,
    )


@requires(Capability.MANAGE_FOLDERS, message=_FOLDERS_DENIED)
def edit_description(ctx: ServerContext, request: RequestContext) -> Outcome:
    virtual_name = request.param(Param.VIRTUAL_JOB_FOLDER)
    name = virtual_name or request.param(Param.JOB_FOLDER)
    view = natural_list_view(request)
    if not name:
        return Outcome.failure("No job folder was specified.", redirect=view)
    if not request.has(Param.DESCRIPTION):
        return Outcome.failure("No description was provided.", redirect=view)
    description = (request.params[Param.DESCRIPTION] or [""])[0].strip()
    result = folders.edit_description(ctx.store, name, description, virtual=virtual_name is not None)
    return _single_step(result, view, view)


def _folder_publication(published: bool, cascade: bool) -> Handler:
    @requires(Capability.MANAGE_FOLDERS, message=_FOLDERS_DENIED)
    def handler(ctx: ServerContext, request: RequestContext) -> Outcome:
        virtual_name = request.param(Param.VIRTUAL_JOB_FOLDER)
        name = virtual_name or request.param(Param.JOB_FOLDER)
        view = natural_list_view(request)
        if not name:
            return Outcome.failure("No job folder was specified.", redirect=view)
        lines = folders.set_folder_published(
            ctx.store,
            name,
            request,
            published=published,
            virtual=virtual_name is not None,
            cascade=cascade,
        )
        return Outcome.redirect_to(view, lines)

    return handler


# =============================================================================
# DISPATCH
# =============================================================================

MASS_HANDLERS: dict[MassAction, Handler] = {
    **{action: job_action_handler(action) for action in JOB_ACTIONS},
    MassAction.COMPARE: analysis.compare_jobs,
    MassAction.EXPORT: analysis.export_jobs,
    MassAction.GENERATE_REPORT: reports.generate_report,
    MassAction.CREATE_FOLDER: create_folder,
    MassAction.DELETE_FOLDER: delete_folder,
    MassAction.CREATE_VIRTUAL_FOLDER: create_virtual_folder,
    MassAction.DELETE_VIRTUAL_FOLDER: delete_virtual_folder,
    MassAction.EDIT_DESCRIPTION: edit_description,
    MassAction.PUBLISH_FOLDER: _folder_publication(True, cascade=False),
    MassAction.PUBLISH_FOLDER_AND_JOBS: _folder_publication(True, cascade=True),
    MassAction.DEPUBLISH_FOLDER: _folder_publication(False, cascade=False),
    MassAction.DEPUBLISH_FOLDER_AND_JOBS: _folder_publication(False, cascade=True),
}


def mass_op(ctx: ServerContext, request: RequestContext) -> Outcome:
    """Dispatch a multi-job form submission by its submit label."""
    submit = request.param(Param.SUBMIT)
    try:
        action = MassAction(submit)
    except ValueError:
        logger.warning("unknown_mass_action", submit=submit)
        return Outcome.failure(f"Unrecognized mass operation {submit!r}.", redirect=natural_list_view(request))
    return MASS_HANDLERS[action](ctx, request)


__all__ = [
    "MassAction",
    "JobAction",
    "JOB_ACTIONS",
    "MASS_HANDLERS",
    "run_job_action",
    "job_action_handler",
    "mass_op",
]
