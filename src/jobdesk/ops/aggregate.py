"""
Entity sorter/aggregator used by compare, export and graph.

Steps:
    1. ``resolve_jobs``: look up identifiers, dropping unknown or
       statistic-less jobs with one status line each.
    2. ``partition_by_class`` / ``homogenize``: group by job class.
    3. ``sort_by_start_time``: ascending actual start time.
    4. ``merge_trackers`` / ``tracker_table``: fold per-client tracker
       instances through the tracker's own ``aggregate``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from jobdesk.core.models import Job
from jobdesk.core.protocols import EntityStore, StatTracker
from jobdesk.core.result import Err, Ok
from jobdesk.ops.lookup import checked, error_message
from jobdesk.ops.outcome import StatusLine


def resolve_jobs(
    store: EntityStore,
    job_ids: Sequence[str],
    *,
    require_stats: bool = True,
) -> tuple[list[Job], list[StatusLine]]:
    """Fetch *job_ids* in order; unresolvable jobs become status lines."""
    jobs: list[Job] = []
    lines: list[StatusLine] = []
    for job_id in job_ids:
        match checked(store.get_job(job_id)):
            case Err(error):
                lines.append(StatusLine.warning(f"Skipping job {job_id}: {error_message(error)}", job_id))
            case Ok(job):
                if require_stats and not job.has_stats:
                    lines.append(StatusLine.warning(f"Skipping job {job_id}: it has no statistics", job_id))
                else:
                    jobs.append(job)
    return jobs, lines


def partition_by_class(jobs: Sequence[Job]) -> dict[str, list[Job]]:
    """Group jobs by job class, in order of first appearance."""
    groups: dict[str, list[Job]] = {}
    for job in jobs:
        groups.setdefault(job.job_class, []).append(job)
    return groups


def homogenize(jobs: Sequence[Job]) -> tuple[list[Job], list[StatusLine]]:
    """Keep jobs whose class matches the first job's; skip the rest."""
    if not jobs:
        return [], []
    job_class = jobs[0].job_class
    kept: list[Job] = []
    lines: list[StatusLine] = []
    for job in jobs:
        if job.job_class == job_class:
            kept.append(job)
        else:
            lines.append(
                StatusLine.warning(
                    f"Skipping job {job.job_id} because its job class ({job.job_class}) "
                    f"differs from {job_class}",
                    job.job_id,
                )
            )
    return kept, lines


def _starts_before(a: datetime | None, b: datetime | None) -> bool:
    if a is None:
        return False
    if b is None:
        return True
    return a < b


def sort_by_start_time(jobs: Sequence[Job]) -> list[Job]:
    """Selection sort on ``actual_start_time``; jobs without one go last.

    Only a strictly earlier start moves a job forward, so equal keys keep
    their submission order.
    """
    remaining = list(jobs)
    ordered: list[Job] = []
    while remaining:
        earliest = 0
        for i in range(1, len(remaining)):
            if _starts_before(remaining[i].actual_start_time, remaining[earliest].actual_start_time):
                earliest = i
        ordered.append(remaining.pop(earliest))
    return ordered


def common_tracker_names(jobs: Sequence[Job]) -> list[str]:
    """Tracker names present on every job, in the first job's order."""
    if not jobs:
        return []
    names = jobs[0].tracker_names()
    return [name for name in names if all(name in job.tracker_names() for job in jobs[1:])]


def merge_trackers(trackers: Sequence[StatTracker]) -> StatTracker | None:
    """Fold *trackers* into a fresh instance of the first one's type."""
    if not trackers:
        return None
    merged = trackers[0].new_instance()
    merged.aggregate(list(trackers))
    return merged


def merged_for_job(job: Job, tracker_name: str) -> StatTracker | None:
    return merge_trackers(job.trackers(tracker_name))


@dataclass
class TrackerTable:
    """Summary of one tracker across jobs: shared labels, one row per job."""

    tracker_name: str
    labels: list[str]
    rows: list[tuple[str, list[str]]]

    def to_dict(self) -> dict[str, object]:
        return {
            "tracker_name": self.tracker_name,
            "labels": list(self.labels),
            "rows": [{"job_id": job_id, "values": values} for job_id, values in self.rows],
        }


def tracker_table(jobs: Sequence[Job], tracker_name: str) -> TrackerTable:
    labels: list[str] = []
    rows: list[tuple[str, list[str]]] = []
    for job in jobs:
        merged = merged_for_job(job, tracker_name)
        if merged is None:
            continue
        if not labels:
            labels = merged.summary_labels()
        rows.append((job.job_id, merged.summary_data()))
    return TrackerTable(tracker_name=tracker_name, labels=labels, rows=rows)


__all__ = [
    "resolve_jobs",
    "partition_by_class",
    "homogenize",
    "sort_by_start_time",
    "common_tracker_names",
    "merge_trackers",
    "merged_for_job",
    "TrackerTable",
    "tracker_table",
]
