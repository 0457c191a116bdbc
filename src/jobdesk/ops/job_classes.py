"""Job class registry operations."""

from __future__ import annotations

import re

from jobdesk.core.enums import Capability
from jobdesk.core.logging import get_logger
from jobdesk.core.result import Err, Ok
from jobdesk.ops.access import requires
from jobdesk.ops.batch import apply_batch
from jobdesk.ops.confirmation import confirm_batch, plain_link
from jobdesk.ops.context import Param, RequestContext, ServerContext
from jobdesk.ops.lookup import checked, error_message, required
from jobdesk.ops.outcome import Outcome, PageBody, Redirect, StatusLine

logger = get_logger(__name__)

# Dotted identifier, e.g. "loadgen.jobs.HttpGetJob".
_CLASS_NAME = re.compile(r"^[A-Za-z_][\w]*(\.[A-Za-z_][\w]*)*$")

CLASSES_VIEW = Redirect.to("job_class", "view_classes")


@requires(Capability.VIEW_JOB_CLASS, message="You do not have permission to view job classes.")
def view_classes(ctx: ServerContext, request: RequestContext) -> Outcome:
    classes = required(ctx.store.list_job_classes())
    return Outcome.page(PageBody(view="job_classes", title="Job Classes", data={"job_classes": classes}))


@requires(Capability.ADD_JOB_CLASS, message="You do not have permission to add job classes.")
def add_job_class(ctx: ServerContext, request: RequestContext) -> Outcome:
    class_name = request.param(Param.JOB_CLASS)
    if not class_name:
        return Outcome.page(
            PageBody(view="add_job_class", title="Add a Job Class", data={}),
            [StatusLine.error("No job class name was provided.")] if request.has(Param.JOB_CLASS) else [],
        )
    if not _CLASS_NAME.match(class_name):
        return Outcome.failure(f"{class_name!r} is not a valid job class name.", redirect=CLASSES_VIEW)

    match checked(ctx.store.add_job_class(class_name)):
        case Ok(_):
            logger.info("job_class_added", job_class=class_name)
            return Outcome.redirect_to(CLASSES_VIEW, [StatusLine.success(f"Added job class {class_name}")])
        case Err(error):
            return Outcome.failure(error_message(error), redirect=CLASSES_VIEW)


@requires(Capability.DELETE_JOB_CLASS, message="You do not have permission to delete job classes.")
def delete_job_class(ctx: ServerContext, request: RequestContext) -> Outcome:
    return confirm_batch(
        request,
        ids=request.params_list(Param.JOB_CLASS),
        id_param=Param.JOB_CLASS,
        title="Delete Job Class",
        prompt="Are you sure that you want to remove the following job classes? Existing jobs are not affected.",
        execute=lambda selected: apply_batch(
            selected,
            lambda name: ctx.store.remove_job_class(name).map(lambda _: f"Removed job class {name}"),
            request,
        ),
        list_view=CLASSES_VIEW,
        empty_message="No job class was specified.",
        link=plain_link,
    )


__all__ = ["view_classes", "add_job_class", "delete_job_class"]
