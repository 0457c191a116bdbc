"""
Compare, export and graph operations over job statistics.

All three share the same front half (resolve, drop statistic-less jobs,
partition by job class, order by actual start time) from
:mod:`jobdesk.ops.aggregate`; they differ in what they do with the
merged trackers.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime

from jobdesk.core.enums import Capability, ConfirmToken
from jobdesk.core.logging import get_logger
from jobdesk.core.models import Job
from jobdesk.ops.access import requires
from jobdesk.ops.aggregate import (
    common_tracker_names,
    homogenize,
    merged_for_job,
    partition_by_class,
    resolve_jobs,
    sort_by_start_time,
    tracker_table,
)
from jobdesk.ops.confirmation import carried_fields, routing_fields, with_options
from jobdesk.ops.context import Param, RequestContext, ServerContext
from jobdesk.ops.lookup import natural_list_view
from jobdesk.ops.outcome import FormChoice, HiddenField, OptionsForm, Outcome, PageBody, RawStream, StatusLine

logger = get_logger(__name__)

_VIEW_DENIED = "You do not have permission to view job information."
_EXPORT_DENIED = "You do not have permission to export job data."


def _iso(value: datetime | None) -> str:
    return value.isoformat() if value is not None else ""


def job_summary(job: Job) -> dict[str, object]:
    return {
        "job_id": job.job_id,
        "job_class": job.job_class,
        "description": job.description,
        "state": job.state.value,
        "actual_start_time": _iso(job.actual_start_time),
        "actual_stop_time": _iso(job.actual_stop_time),
        "actual_duration": job.actual_duration,
    }


# =============================================================================
# COMPARE
# =============================================================================


@requires(Capability.VIEW_JOB, message=_VIEW_DENIED)
def compare_jobs(ctx: ServerContext, request: RequestContext) -> Outcome:
    """Side-by-side statistics for two or more jobs of one job class."""
    view = natural_list_view(request)
    ids = request.params_list(Param.JOB_ID)
    if not ids:
        return Outcome.failure("No jobs were selected for comparison.", redirect=view)

    jobs, lines = resolve_jobs(ctx.store, ids)
    jobs, skipped = homogenize(jobs)
    lines += skipped
    if len(jobs) < 2:
        lines.append(StatusLine.error("At least two jobs with statistics are required for a comparison."))
        return Outcome.redirect_to(view, lines)

    ordered = sort_by_start_time(jobs)
    parameter_names = list(ordered[0].parameters)
    body = PageBody(
        view="compare",
        title=f"Compare {ordered[0].job_class} Jobs",
        data={
            "job_class": ordered[0].job_class,
            "jobs": [job_summary(job) for job in ordered],
            "parameters": [
                {"name": name, "values": [job.parameters.get(name, "") for job in ordered]}
                for name in parameter_names
            ],
            "trackers": [tracker_table(ordered, name).to_dict() for name in common_tracker_names(ordered)],
        },
    )
    logger.info("jobs_compared", count=len(ordered), skipped=len(lines))
    return Outcome.page(body, lines)


# =============================================================================
# EXPORT
# =============================================================================

EXPORT_FIELDS: dict[str, tuple[str, Callable[[Job], str]]] = {
    "job_id": ("Job ID", lambda j: j.job_id),
    "description": ("Description", lambda j: j.description),
    "start_time": ("Start Time", lambda j: _iso(j.actual_start_time)),
    "stop_time": ("Stop Time", lambda j: _iso(j.actual_stop_time)),
    "duration": ("Duration", lambda j: "" if j.actual_duration is None else str(j.actual_duration)),
    "clients": ("Number of Clients", lambda j: str(j.number_of_clients)),
    "threads": ("Threads per Client", lambda j: str(j.threads_per_client)),
    "interval": ("Collection Interval", lambda j: str(j.collection_interval)),
}


def _export_form(request: RequestContext, jobs: Sequence[Job]) -> OptionsForm:
    parameter_names: dict[str, None] = {}
    tracker_names: dict[str, None] = {}
    for job in jobs:
        parameter_names.update(dict.fromkeys(job.parameters))
        tracker_names.update(dict.fromkeys(job.tracker_names()))

    choices = [FormChoice(Param.EXPORT_FIELD, name, label, True) for name, (label, _) in EXPORT_FIELDS.items()]
    choices += [FormChoice(Param.EXPORT_PARAMETER, name, name, True) for name in parameter_names]
    choices += [FormChoice(Param.EXPORT_STAT, name, name, True) for name in tracker_names]
    hidden = routing_fields(request)
    hidden += [HiddenField(Param.JOB_ID, job.job_id) for job in jobs]
    hidden += carried_fields(request, ())
    return OptionsForm(
        title="Export Job Data",
        prompt="Choose the information to include in the export.",
        choices=choices,
        hidden=hidden,
    )


def _export_group(
    jobs: Sequence[Job],
    *,
    fields: Sequence[str],
    parameters: Sequence[str],
    stats: Sequence[str],
) -> list[str]:
    """Tab-separated rows for one job class; columns follow the first member."""
    first = jobs[0]
    group_parameters = [name for name in parameters if name in first.parameters]
    group_stats: list[tuple[str, list[str]]] = []
    for name in stats:
        merged = merged_for_job(first, name)
        if merged is not None:
            group_stats.append((name, merged.summary_labels()))

    header = [EXPORT_FIELDS[name][0] for name in fields]
    header += group_parameters
    header += [f"{name} {label}" for name, labels in group_stats for label in labels]
    rows = ["\t".join(header)]
    for job in jobs:
        row = [EXPORT_FIELDS[name][1](job) for name in fields]
        row += [job.parameters.get(name, "") for name in group_parameters]
        for name, labels in group_stats:
            merged = merged_for_job(job, name)
            row += merged.summary_data() if merged is not None else [""] * len(labels)
        rows.append("\t".join(row))
    return rows


@requires(Capability.EXPORT_JOB_DATA, message=_EXPORT_DENIED)
def export_jobs(ctx: ServerContext, request: RequestContext) -> Outcome:
    """Options form first, then the selected columns as tab-separated text."""
    view = natural_list_view(request)
    ids = request.params_list(Param.JOB_ID)
    if not ids:
        return Outcome.failure("No jobs were selected for export.", redirect=view)

    jobs, lines = resolve_jobs(ctx.store, ids)
    if not jobs:
        lines.append(StatusLine.error("None of the selected jobs has data that can be exported."))
        return Outcome.redirect_to(view, lines)

    def execute() -> Outcome:
        fields = [name for name in request.params_list(Param.EXPORT_FIELD) if name in EXPORT_FIELDS]
        parameters = request.params_list(Param.EXPORT_PARAMETER)
        stats = request.params_list(Param.EXPORT_STAT)
        groups = partition_by_class(jobs)
        output: list[str] = []
        for job_class, members in groups.items():
            if len(groups) > 1:
                if output:
                    output.append("")
                output.append(f"# {job_class}")
            output += _export_group(
                sort_by_start_time(members), fields=fields, parameters=parameters, stats=stats
            )
        logger.info("jobs_exported", jobs=len(jobs), groups=len(groups))
        raw = RawStream.text("\n".join(output) + "\n", filename="job_data.txt")
        return Outcome.stream(raw, lines)

    confirmed = request.confirmation() is ConfirmToken.YES
    outcome = with_options(
        request,
        ready=confirmed,
        form=lambda: _export_form(request, jobs),
        execute=execute,
        list_view=view,
    )
    return outcome if confirmed else outcome.after(lines)


# =============================================================================
# GRAPH
# =============================================================================


def _graph_jobs(ctx: ServerContext, request: RequestContext) -> tuple[list[Job], list[StatusLine]]:
    jobs, lines = resolve_jobs(ctx.store, request.params_list(Param.JOB_ID))
    jobs, skipped = homogenize(jobs)
    return sort_by_start_time(jobs), lines + skipped


@requires(Capability.VIEW_JOB, message=_VIEW_DENIED)
def view_graph(ctx: ServerContext, request: RequestContext) -> Outcome:
    """Page offering one graph per tracker shared by the selected jobs."""
    view = natural_list_view(request)
    if not request.params_list(Param.JOB_ID):
        return Outcome.failure("No jobs were selected for graphing.", redirect=view)
    jobs, lines = _graph_jobs(ctx, request)
    if not jobs:
        lines.append(StatusLine.error("None of the selected jobs has statistics to graph."))
        return Outcome.redirect_to(view, lines)

    job_ids = [job.job_id for job in jobs]
    width = request.int_param(Param.WIDTH, 640)
    height = request.int_param(Param.HEIGHT, 480)
    graphs = [
        {
            "tracker_name": name,
            "category": "job",
            "operation": "graph",
            "params": {
                Param.JOB_ID: job_ids,
                Param.STAT_NAME: [name],
                Param.WIDTH: [str(width)],
                Param.HEIGHT: [str(height)],
            },
        }
        for name in common_tracker_names(jobs)
    ]
    body = PageBody(
        view="graph",
        title="Graph Job Statistics",
        data={"jobs": [job_summary(job) for job in jobs], "graphs": graphs},
    )
    return Outcome.page(body, lines)


@requires(Capability.VIEW_JOB, message=_VIEW_DENIED)
def graph(ctx: ServerContext, request: RequestContext) -> Outcome:
    """Raw image of one tracker merged per job."""
    stat_name = request.param(Param.STAT_NAME)
    if not stat_name:
        return _raw_error("No statistic was specified for the graph.")
    if ctx.grapher is None:
        return _raw_error("No grapher is configured on this server.")

    jobs, lines = _graph_jobs(ctx, request)
    series = []
    for job in jobs:
        merged = merged_for_job(job, stat_name)
        if merged is not None:
            series.append((job.job_id, merged))
    if not series:
        return _raw_error(f"None of the selected jobs has statistics for {stat_name}.")

    image = ctx.grapher.render(
        stat_name,
        series,
        width=request.int_param(Param.WIDTH, 640),
        height=request.int_param(Param.HEIGHT, 480),
    )
    return Outcome.stream(RawStream(content_type=ctx.grapher.content_type, chunks=[image]), lines)


def _raw_error(message: str) -> Outcome:
    return Outcome.stream(RawStream.text(message), [StatusLine.error(message)])


__all__ = [
    "compare_jobs",
    "export_jobs",
    "view_graph",
    "graph",
    "EXPORT_FIELDS",
]
