"""
Domain entities administered by the console.

Jobs and optimizing jobs are created by the scheduling subsystem; the
console moves, clones, publishes, cancels and deletes them. Real folders
own entities (through the entity's ``folder_name``); virtual folders only
reference job IDs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from jobdesk.core.enums import JobState

if TYPE_CHECKING:
    from jobdesk.core.protocols import StatTracker

UNCLASSIFIED_FOLDER = "Unclassified"


def folder_or_default(folder_name: str | None) -> str:
    """Map a missing folder reference to the unclassified folder."""
    return folder_name or UNCLASSIFIED_FOLDER


@dataclass
class Job:
    """A single schedulable unit of load-generation work."""

    job_id: str
    job_class: str
    state: JobState = JobState.NOT_YET_STARTED
    folder_name: str | None = None
    optimizing_job_id: str | None = None
    description: str = ""
    comments: str = ""
    parameters: dict[str, str] = field(default_factory=dict)
    stat_trackers: dict[str, list[StatTracker]] = field(default_factory=dict)
    dependencies: list[str] = field(default_factory=list)
    start_time: datetime | None = None
    stop_time: datetime | None = None
    duration: int | None = None
    number_of_clients: int = 1
    threads_per_client: int = 1
    collection_interval: int = 60
    actual_start_time: datetime | None = None
    actual_stop_time: datetime | None = None
    display_in_read_only: bool = False
    log_messages: list[str] = field(default_factory=list)

    @property
    def folder(self) -> str:
        return folder_or_default(self.folder_name)

    @property
    def has_stats(self) -> bool:
        return any(self.stat_trackers.values())

    @property
    def actual_duration(self) -> int | None:
        """Seconds between actual start and stop, when both are known."""
        if self.actual_start_time is None or self.actual_stop_time is None:
            return None
        return int((self.actual_stop_time - self.actual_start_time).total_seconds())

    def tracker_names(self) -> list[str]:
        """Display names of trackers that hold at least one instance."""
        return [name for name, trackers in self.stat_trackers.items() if trackers]

    def trackers(self, name: str) -> list[StatTracker]:
        return list(self.stat_trackers.get(name, []))

    @property
    def summary(self) -> str:
        return f"{self.job_id} ({self.job_class}{' - ' + self.description if self.description else ''})"


@dataclass
class OptimizingJob:
    """A group of Job iterations produced by an optimization process."""

    optimizing_job_id: str
    job_class: str
    iteration_ids: list[str] = field(default_factory=list)
    rerun_iteration_id: str | None = None
    folder_name: str | None = None
    description: str = ""
    comments: str = ""
    state: JobState = JobState.NOT_YET_STARTED
    paused: bool = False
    display_in_read_only: bool = False

    @property
    def folder(self) -> str:
        return folder_or_default(self.folder_name)

    def all_iteration_ids(self) -> list[str]:
        """Iteration IDs followed by the re-run iteration, if any."""
        ids = list(self.iteration_ids)
        if self.rerun_iteration_id:
            ids.append(self.rerun_iteration_id)
        return ids


@dataclass
class JobFolder:
    """A real (owning) folder."""

    name: str
    description: str = ""
    display_in_read_only: bool = False

    @property
    def is_reserved(self) -> bool:
        return self.name == UNCLASSIFIED_FOLDER


@dataclass
class VirtualFolder:
    """A named, non-owning set of job ID references."""

    name: str
    description: str = ""
    display_in_read_only: bool = False
    job_ids: set[str] = field(default_factory=set)

    def add(self, job_id: str) -> bool:
        """Add a reference; returns False when it was already present."""
        if job_id in self.job_ids:
            return False
        self.job_ids.add(job_id)
        return True

    def discard(self, job_id: str) -> bool:
        """Remove a reference; returns False when it was absent."""
        if job_id not in self.job_ids:
            return False
        self.job_ids.discard(job_id)
        return True


__all__ = [
    "UNCLASSIFIED_FOLDER",
    "folder_or_default",
    "Job",
    "OptimizingJob",
    "JobFolder",
    "VirtualFolder",
]
