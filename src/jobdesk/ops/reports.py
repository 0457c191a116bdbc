"""
Report generation.

Three round trips: pick a generator, fill in its parameters, confirm.
The generator registry lives on the :class:`ServerContext`; a fresh
generator instance serves each request.
"""

from __future__ import annotations

from jobdesk.core.enums import Capability, ConfirmToken
from jobdesk.core.logging import get_logger
from jobdesk.core.protocols import ReportGenerator
from jobdesk.core.result import Err, Ok
from jobdesk.ops.access import requires
from jobdesk.ops.confirmation import carried_fields, routing_fields, with_options
from jobdesk.ops.context import Param, RequestContext, ServerContext
from jobdesk.ops.lookup import checked, error_message, natural_list_view
from jobdesk.ops.outcome import FormChoice, HiddenField, OptionsForm, Outcome, RawStream, StatusLine

logger = get_logger(__name__)


def _selection_fields(request: RequestContext) -> list[HiddenField]:
    hidden = routing_fields(request)
    hidden += [HiddenField(Param.JOB_ID, v) for v in request.params_list(Param.JOB_ID)]
    hidden += [HiddenField(Param.OPTIMIZING_JOB_ID, v) for v in request.params_list(Param.OPTIMIZING_JOB_ID)]
    hidden += carried_fields(request, ())
    return hidden


def _generator_form(ctx: ServerContext, request: RequestContext) -> OptionsForm:
    return OptionsForm(
        title="Generate Report",
        prompt="Choose the report generator to use.",
        choices=[FormChoice(Param.REPORT_GENERATOR, name, name) for name in sorted(ctx.report_generators)],
        hidden=_selection_fields(request),
    )


def _parameter_form(request: RequestContext, name: str, generator: ReportGenerator) -> OptionsForm:
    hidden = _selection_fields(request)
    hidden.append(HiddenField(Param.REPORT_GENERATOR, name))
    inputs = [
        {
            "name": f"{Param.REPORT_PARAM_PREFIX}{p.name}",
            "label": p.label,
            "default": p.default,
            "required": p.required,
            "choices": list(p.choices),
        }
        for p in generator.parameters()
    ]
    return OptionsForm(
        title=f"Generate {name} Report",
        prompt="Provide the report options and confirm.",
        hidden=hidden,
        inputs=inputs,
    )


def _collect_values(request: RequestContext, generator: ReportGenerator) -> tuple[dict[str, str], list[str]]:
    values: dict[str, str] = {}
    missing: list[str] = []
    for p in generator.parameters():
        value = request.param(f"{Param.REPORT_PARAM_PREFIX}{p.name}", p.default or None)
        if value is None:
            if p.required:
                missing.append(p.label)
            continue
        values[p.name] = value
    return values, missing


def _run(ctx: ServerContext, request: RequestContext, generator: ReportGenerator) -> Outcome:
    view = natural_list_view(request)
    values, missing = _collect_values(request, generator)
    if missing:
        return Outcome.failure(f"Missing required report options: {', '.join(missing)}", redirect=view)
    generator.configure(values)

    lines: list[StatusLine] = []
    added = 0
    for job_id in request.params_list(Param.JOB_ID):
        match checked(ctx.store.get_job(job_id)):
            case Ok(job):
                generator.add_job_report(job)
                added += 1
            case Err(error):
                lines.append(StatusLine.warning(f"Skipping job {job_id}: {error_message(error)}", job_id))

    for optimizing_job_id in request.params_list(Param.OPTIMIZING_JOB_ID):
        match checked(ctx.store.get_optimizing_job(optimizing_job_id)):
            case Err(error):
                lines.append(
                    StatusLine.warning(
                        f"Skipping optimizing job {optimizing_job_id}: {error_message(error)}", optimizing_job_id
                    )
                )
                continue
            case Ok(optimizing_job):
                pass
        iterations = []
        for iteration_id in optimizing_job.all_iteration_ids():
            match checked(ctx.store.get_job(iteration_id)):
                case Ok(job):
                    iterations.append(job)
                case Err(error):
                    lines.append(StatusLine.warning(f"Skipping iteration {iteration_id}: {error_message(error)}"))
        generator.add_optimizing_job_report(optimizing_job, iterations)
        added += 1

    if not added:
        lines.append(StatusLine.error("None of the selected jobs could be included in the report."))
        return Outcome.redirect_to(view, lines)

    report = generator.generate_report()
    logger.info("report_generated", generator=generator.name, entries=added)
    return Outcome.stream(
        RawStream(content_type=report.content_type, chunks=[report.content], filename=report.filename),
        lines,
    )


@requires(Capability.VIEW_JOB, message="You do not have permission to generate reports.")
def generate_report(ctx: ServerContext, request: RequestContext) -> Outcome:
    view = natural_list_view(request)
    if not request.params_list(Param.JOB_ID) and not request.params_list(Param.OPTIMIZING_JOB_ID):
        return Outcome.failure("No jobs or optimizing jobs were selected for the report.", redirect=view)
    if not ctx.report_generators:
        return Outcome.failure("No report generators are available.", redirect=view)

    name = request.param(Param.REPORT_GENERATOR)
    if name is None:
        return with_options(
            request,
            ready=False,
            form=lambda: _generator_form(ctx, request),
            execute=lambda: Outcome(),
            list_view=view,
        )
    factory = ctx.report_generators.get(name)
    if factory is None:
        return Outcome.failure(f"Unknown report generator {name!r}.", redirect=view)

    generator = factory()
    return with_options(
        request,
        ready=request.confirmation() is ConfirmToken.YES,
        form=lambda: _parameter_form(request, name, generator),
        execute=lambda: _run(ctx, request, generator),
        list_view=view,
    )


__all__ = ["generate_report"]
