"""
Job views and single-job actions.

Single-job actions reuse the batch descriptions in
:data:`jobdesk.ops.mass.JOB_ACTIONS`; they differ from the mass form
only in where they return to once the job survives the action.
"""

from __future__ import annotations

from jobdesk.core.enums import Capability, JobState
from jobdesk.core.errors import not_found
from jobdesk.core.logging import get_logger
from jobdesk.core.models import UNCLASSIFIED_FOLDER, Job, OptimizingJob
from jobdesk.core.result import Err, Ok, Result
from jobdesk.ops.access import requires, visible
from jobdesk.ops.analysis import job_summary
from jobdesk.ops.context import Param, RequestContext, ServerContext
from jobdesk.ops.lookup import checked, error_message, job_view, natural_list_view, required
from jobdesk.ops.mass import MassAction, job_action_handler
from jobdesk.ops.outcome import Outcome, PageBody, RawStream, Redirect, StatusLine

logger = get_logger(__name__)

_VIEW_DENIED = "You do not have permission to view job information."

PENDING_STATES = [state for state in JobState if state.is_pending]
RUNNING_STATES = [state for state in JobState if state.is_running]
COMPLETED_STATES = [state for state in JobState if state.is_terminal]


def _row(job: Job) -> dict[str, object]:
    row = job_summary(job)
    row["folder"] = job.folder
    row["display_in_read_only"] = job.display_in_read_only
    return row


def _optimizing_row(optimizing_job: OptimizingJob) -> dict[str, object]:
    return {
        "optimizing_job_id": optimizing_job.optimizing_job_id,
        "job_class": optimizing_job.job_class,
        "description": optimizing_job.description,
        "state": optimizing_job.state.value,
        "paused": optimizing_job.paused,
        "iterations": len(optimizing_job.all_iteration_ids()),
        "display_in_read_only": optimizing_job.display_in_read_only,
    }


def _visible_job(ctx: ServerContext, job_id: str) -> Result[Job]:
    result = checked(ctx.store.get_job(job_id))
    match result:
        case Ok(job) if not visible(ctx, job):
            return Err(not_found("job", job_id))
    return result


def _job_or_list(request: RequestContext) -> Redirect:
    """The job's own page for actions the job survives."""
    job_id = request.param(Param.JOB_ID)
    return job_view(job_id) if job_id else natural_list_view(request)


# =============================================================================
# SINGLE JOB
# =============================================================================


@requires(Capability.VIEW_JOB, message=_VIEW_DENIED)
def view_job(ctx: ServerContext, request: RequestContext) -> Outcome:
    view = natural_list_view(request)
    job_id = request.param(Param.JOB_ID)
    if not job_id:
        return Outcome.failure("No job ID was provided.", redirect=view)
    match _visible_job(ctx, job_id):
        case Err(error):
            return Outcome.failure(error_message(error), redirect=view)
        case Ok(job):
            pass

    data = _row(job)
    data.update(
        {
            "comments": job.comments,
            "optimizing_job_id": job.optimizing_job_id,
            "parameters": dict(job.parameters),
            "dependencies": list(job.dependencies),
            "start_time": job.start_time.isoformat() if job.start_time else "",
            "stop_time": job.stop_time.isoformat() if job.stop_time else "",
            "duration": job.duration,
            "number_of_clients": job.number_of_clients,
            "threads_per_client": job.threads_per_client,
            "collection_interval": job.collection_interval,
            "trackers": job.tracker_names(),
            "log_message_count": len(job.log_messages),
        }
    )
    return Outcome.page(PageBody(view="job", title=f"Job {job_id}", data=data))


@requires(Capability.VIEW_JOB, message=_VIEW_DENIED)
def view_job_as_text(ctx: ServerContext, request: RequestContext) -> Outcome:
    job_id = request.param(Param.JOB_ID)
    if not job_id:
        return Outcome.stream(RawStream.text("No job ID was provided.\n"))
    match _visible_job(ctx, job_id):
        case Err(error):
            return Outcome.stream(RawStream.text(f"{error_message(error)}\n"))
        case Ok(job):
            pass

    lines = [
        f"Job ID: {job.job_id}",
        f"Job Class: {job.job_class}",
        f"Folder: {job.folder}",
        f"State: {job.state.label}",
        f"Description: {job.description}",
        f"Number of Clients: {job.number_of_clients}",
        f"Threads per Client: {job.threads_per_client}",
        f"Collection Interval: {job.collection_interval}",
    ]
    if job.actual_start_time is not None:
        lines.append(f"Actual Start Time: {job.actual_start_time.isoformat()}")
    if job.actual_stop_time is not None:
        lines.append(f"Actual Stop Time: {job.actual_stop_time.isoformat()}")
    lines += [f"Parameter {name}: {value}" for name, value in job.parameters.items()]
    lines.append(f"Comments: {job.comments}")
    return Outcome.stream(RawStream.text("\n".join(lines) + "\n"))


@requires(Capability.VIEW_JOB, message=_VIEW_DENIED)
def view_log_messages(ctx: ServerContext, request: RequestContext) -> Outcome:
    view = natural_list_view(request)
    job_id = request.param(Param.JOB_ID)
    if not job_id:
        return Outcome.failure("No job ID was provided.", redirect=view)
    match _visible_job(ctx, job_id):
        case Err(error):
            return Outcome.failure(error_message(error), redirect=view)
        case Ok(job):
            pass
    body = PageBody(
        view="log_messages",
        title=f"Log Messages for Job {job_id}",
        data={"job_id": job_id, "messages": list(job.log_messages)},
    )
    lines = [] if job.log_messages else [StatusLine.info(f"Job {job_id} has no log messages.", job_id)]
    return Outcome.page(body, lines)


@requires(Capability.SCHEDULE_JOB, message="You do not have permission to edit jobs.")
def edit_comments(ctx: ServerContext, request: RequestContext) -> Outcome:
    view = natural_list_view(request)
    job_id = request.param(Param.JOB_ID)
    if not job_id:
        return Outcome.failure("No job ID was provided.", redirect=view)
    match checked(ctx.store.get_job(job_id)):
        case Err(error):
            return Outcome.failure(error_message(error), redirect=view)
        case Ok(job):
            pass

    if not request.has(Param.COMMENTS):
        return Outcome.page(
            PageBody(
                view="edit_comments",
                title=f"Edit Comments for Job {job_id}",
                data={"entity_kind": "job", "job_id": job_id, "comments": job.comments},
            )
        )

    job.comments = "\n".join(request.params[Param.COMMENTS]).strip()
    match checked(ctx.store.put_job(job)):
        case Ok(_):
            logger.info("job_comments_updated", job_id=job_id)
            line = StatusLine.success(f"Updated the comments for job {job_id}", job_id)
        case Err(error):
            line = StatusLine.error(error_message(error), job_id)
    return Outcome.redirect_to(job_view(job_id), [line])


cancel_job = job_action_handler(MassAction.CANCEL, list_view=_job_or_list)
cancel_and_delete = job_action_handler(MassAction.CANCEL_AND_DELETE)
delete_job = job_action_handler(MassAction.DELETE)
disable_job = job_action_handler(MassAction.DISABLE, list_view=_job_or_list)
enable_job = job_action_handler(MassAction.ENABLE, list_view=_job_or_list)
clone_job = job_action_handler(MassAction.CLONE, list_view=_job_or_list)


# =============================================================================
# LISTINGS
# =============================================================================


def _state_listing(ctx: ServerContext, view: str, title: str, states: list[JobState]) -> Outcome:
    jobs = [job for job in required(ctx.store.list_jobs(states=states)) if visible(ctx, job)]
    return Outcome.page(PageBody(view=view, title=title, data={"jobs": [_row(job) for job in jobs]}))


@requires(Capability.VIEW_JOB, message=_VIEW_DENIED)
def view_pending(ctx: ServerContext, request: RequestContext) -> Outcome:
    return _state_listing(ctx, "pending_jobs", "Pending Jobs", PENDING_STATES)


@requires(Capability.VIEW_JOB, message=_VIEW_DENIED)
def view_running(ctx: ServerContext, request: RequestContext) -> Outcome:
    return _state_listing(ctx, "running_jobs", "Running Jobs", RUNNING_STATES)


@requires(Capability.VIEW_JOB, message=_VIEW_DENIED)
def view_completed(ctx: ServerContext, request: RequestContext) -> Outcome:
    return _state_listing(ctx, "completed_jobs", "Completed Jobs", COMPLETED_STATES)


@requires(Capability.VIEW_JOB, message=_VIEW_DENIED)
def view_real(ctx: ServerContext, request: RequestContext) -> Outcome:
    """Contents of one real folder; iterations appear under their optimizing job."""
    name = request.param(Param.JOB_FOLDER, UNCLASSIFIED_FOLDER)
    match checked(ctx.store.get_folder(name)):
        case Err(error):
            return Outcome.failure(error_message(error), redirect=Redirect.to("job", "list_real_folders"))
        case Ok(folder):
            pass
    if not visible(ctx, folder):
        return Outcome.failure(
            f"Job folder {name} is not available.", redirect=Redirect.to("job", "list_real_folders")
        )

    jobs = [
        job
        for job in required(ctx.store.list_jobs(folder_name=name))
        if job.optimizing_job_id is None and visible(ctx, job)
    ]
    optimizing_jobs = [o for o in required(ctx.store.list_optimizing_jobs(folder_name=name)) if visible(ctx, o)]
    body = PageBody(
        view="real_folder",
        title=f"Job Folder {name}",
        data={
            "folder": name,
            "description": folder.description,
            "display_in_read_only": folder.display_in_read_only,
            "jobs": [_row(job) for job in jobs],
            "optimizing_jobs": [_optimizing_row(o) for o in optimizing_jobs],
        },
    )
    return Outcome.page(body)


@requires(Capability.VIEW_JOB, message=_VIEW_DENIED)
def list_real_folders(ctx: ServerContext, request: RequestContext) -> Outcome:
    folders = [f for f in required(ctx.store.list_folders()) if visible(ctx, f)]
    body = PageBody(
        view="real_folders",
        title="Job Folders",
        data={
            "folders": [
                {"name": f.name, "description": f.description, "display_in_read_only": f.display_in_read_only}
                for f in folders
            ]
        },
    )
    return Outcome.page(body)


@requires(Capability.VIEW_JOB, message=_VIEW_DENIED)
def view_virtual(ctx: ServerContext, request: RequestContext) -> Outcome:
    """Jobs referenced by a virtual folder.

    References to jobs that no longer exist are skipped with an
    informational line; the folder itself is left as stored.
    """
    name = request.param(Param.VIRTUAL_JOB_FOLDER)
    listing = Redirect.to("job", "list_virtual_folders")
    if not name:
        return Outcome.failure("No virtual job folder was specified.", redirect=listing)
    match checked(ctx.store.get_virtual_folder(name)):
        case Err(error):
            return Outcome.failure(error_message(error), redirect=listing)
        case Ok(folder):
            pass
    if not visible(ctx, folder):
        return Outcome.failure(f"Virtual job folder {name} is not available.", redirect=listing)

    lines: list[StatusLine] = []
    jobs: list[Job] = []
    for job_id in sorted(folder.job_ids):
        match checked(ctx.store.get_job(job_id)):
            case Ok(job):
                if visible(ctx, job):
                    jobs.append(job)
            case Err(_):
                lines.append(StatusLine.info(f"Job {job_id} in virtual folder {name} no longer exists", job_id))
    if lines:
        logger.info("virtual_folder_dangling_references", folder=name, missing=len(lines))

    body = PageBody(
        view="virtual_folder",
        title=f"Virtual Job Folder {name}",
        data={
            "virtual_folder": name,
            "description": folder.description,
            "display_in_read_only": folder.display_in_read_only,
            "jobs": [_row(job) for job in jobs],
        },
    )
    return Outcome.page(body, lines)


@requires(Capability.VIEW_JOB, message=_VIEW_DENIED)
def list_virtual_folders(ctx: ServerContext, request: RequestContext) -> Outcome:
    folders = [f for f in required(ctx.store.list_virtual_folders()) if visible(ctx, f)]
    body = PageBody(
        view="virtual_folders",
        title="Virtual Job Folders",
        data={
            "folders": [
                {
                    "name": f.name,
                    "description": f.description,
                    "display_in_read_only": f.display_in_read_only,
                    "jobs": len(f.job_ids),
                }
                for f in folders
            ]
        },
    )
    return Outcome.page(body)


__all__ = [
    "view_job",
    "view_job_as_text",
    "view_log_messages",
    "edit_comments",
    "cancel_job",
    "cancel_and_delete",
    "delete_job",
    "disable_job",
    "enable_job",
    "clone_job",
    "view_pending",
    "view_running",
    "view_completed",
    "view_real",
    "list_real_folders",
    "view_virtual",
    "list_virtual_folders",
]
