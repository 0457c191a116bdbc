"""
Reference plain-text report generator.

Registered by default so a freshly started server can produce a report;
deployments add their own generators through
``ServerContext.register_report_generator``.
"""

from __future__ import annotations

from jobdesk.core.models import Job, OptimizingJob
from jobdesk.core.protocols import GeneratedReport, ReportParameter


class TextReportGenerator:
    """Summarises jobs, their parameters and tracker summaries as text."""

    name = "Text"

    def __init__(self) -> None:
        self._title = "Job Report"
        self._include_parameters = True
        self._include_statistics = True
        self._sections: list[list[str]] = []

    def parameters(self) -> list[ReportParameter]:
        return [
            ReportParameter("title", "Report Title", default="Job Report"),
            ReportParameter("include_parameters", "Include Job Parameters", default="true", choices=("true", "false")),
            ReportParameter("include_statistics", "Include Statistics", default="true", choices=("true", "false")),
        ]

    def configure(self, values: dict[str, str]) -> None:
        self._title = values.get("title", self._title)
        self._include_parameters = values.get("include_parameters", "true").lower() == "true"
        self._include_statistics = values.get("include_statistics", "true").lower() == "true"

    def _job_lines(self, job: Job, indent: str = "") -> list[str]:
        lines = [
            f"{indent}Job {job.job_id} ({job.job_class})",
            f"{indent}  State: {job.state.label}",
        ]
        if job.description:
            lines.append(f"{indent}  Description: {job.description}")
        if job.actual_start_time is not None:
            lines.append(f"{indent}  Started: {job.actual_start_time.isoformat()}")
        if job.actual_duration is not None:
            lines.append(f"{indent}  Duration: {job.actual_duration} seconds")
        if self._include_parameters and job.parameters:
            lines.append(f"{indent}  Parameters:")
            lines += [f"{indent}    {name} = {value}" for name, value in job.parameters.items()]
        if self._include_statistics:
            for name in job.tracker_names():
                trackers = job.trackers(name)
                merged = trackers[0].new_instance()
                merged.aggregate(trackers)
                pairs = zip(merged.summary_labels(), merged.summary_data())
                lines.append(f"{indent}  {name}: " + ", ".join(f"{label}={value}" for label, value in pairs))
        return lines

    def add_job_report(self, job: Job) -> None:
        self._sections.append(self._job_lines(job))

    def add_optimizing_job_report(self, optimizing_job: OptimizingJob, iterations: list[Job]) -> None:
        section = [
            f"Optimizing Job {optimizing_job.optimizing_job_id} ({optimizing_job.job_class})",
            f"  State: {optimizing_job.state.label}",
            f"  Iterations: {len(iterations)}",
        ]
        for job in iterations:
            section += self._job_lines(job, indent="  ")
        self._sections.append(section)

    def generate_report(self) -> GeneratedReport:
        lines = [self._title, "=" * len(self._title), ""]
        for section in self._sections:
            lines += section
            lines.append("")
        return GeneratedReport(
            content="\n".join(lines).encode("utf-8"),
            content_type="text/plain",
            filename="report.txt",
        )
