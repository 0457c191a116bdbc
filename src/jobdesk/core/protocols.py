"""
Collaborator protocols consumed by the engine.

The engine never imports a concrete store, scheduler, grapher, tracker
or report generator; it talks to these structural interfaces so the
in-memory store used in tests and the SQLite store used by the CLI are
interchangeable.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │ EntityStore      get/put/remove/move/list → Result[...]      │
        │ Scheduler        cancel / pause / unpause   → Result[...]    │
        │ StatTracker      new_instance, aggregate, summary_*          │
        │ Grapher          render(trackers) → image bytes              │
        │ ReportGenerator  parameters, add_*_report, generate_report   │
        └──────────────────────────────────────────────────────────────┘

Every ``EntityStore`` method returns ``Ok(value)`` or
``Err(StoreError)``; none of them raise.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from jobdesk.core.enums import JobState
from jobdesk.core.models import Job, JobFolder, OptimizingJob, VirtualFolder
from jobdesk.core.result import Result


@runtime_checkable
class StatTracker(Protocol):
    """Statistic tracker collaborator (math lives in the tracker)."""

    display_name: str

    def new_instance(self) -> StatTracker:
        """Return an empty tracker of the same type and display name."""
        ...

    def aggregate(self, trackers: Sequence[StatTracker]) -> None:
        """Merge *trackers* into this (empty) tracker."""
        ...

    def summary_labels(self) -> list[str]: ...

    def summary_data(self) -> list[str]: ...


class EntityStore(Protocol):
    """Persistent entity store (external collaborator)."""

    # ── Jobs ─────────────────────────────────────────────────────────────
    def get_job(self, job_id: str) -> Result[Job]: ...

    def put_job(self, job: Job) -> Result[Job]: ...

    def remove_job(self, job_id: str) -> Result[None]: ...

    def move_job(self, job_id: str, folder_name: str) -> Result[Job]: ...

    def list_jobs(
        self,
        folder_name: str | None = None,
        states: Sequence[JobState] | None = None,
    ) -> Result[list[Job]]: ...

    # ── Optimizing jobs ──────────────────────────────────────────────────
    def get_optimizing_job(self, optimizing_job_id: str) -> Result[OptimizingJob]: ...

    def put_optimizing_job(self, optimizing_job: OptimizingJob) -> Result[OptimizingJob]: ...

    def remove_optimizing_job(self, optimizing_job_id: str) -> Result[None]: ...

    def move_optimizing_job(self, optimizing_job_id: str, folder_name: str) -> Result[OptimizingJob]: ...

    def list_optimizing_jobs(self, folder_name: str | None = None) -> Result[list[OptimizingJob]]: ...

    # ── Real folders ─────────────────────────────────────────────────────
    def get_folder(self, name: str) -> Result[JobFolder]: ...

    def put_folder(self, folder: JobFolder) -> Result[JobFolder]: ...

    def remove_folder(self, name: str) -> Result[None]: ...

    def list_folders(self) -> Result[list[JobFolder]]: ...

    # ── Virtual folders ──────────────────────────────────────────────────
    def get_virtual_folder(self, name: str) -> Result[VirtualFolder]: ...

    def put_virtual_folder(self, folder: VirtualFolder) -> Result[VirtualFolder]: ...

    def remove_virtual_folder(self, name: str) -> Result[None]: ...

    def list_virtual_folders(self) -> Result[list[VirtualFolder]]: ...

    # ── Job classes ──────────────────────────────────────────────────────
    def list_job_classes(self) -> Result[list[str]]: ...

    def add_job_class(self, class_name: str) -> Result[str]: ...

    def remove_job_class(self, class_name: str) -> Result[None]: ...


class Scheduler(Protocol):
    """Job-execution runtime (external collaborator)."""

    def cancel_job(self, job_id: str) -> Result[JobState]:
        """Request cancellation; returns the job's resulting state."""
        ...

    def cancel_optimizing_job(self, optimizing_job_id: str) -> Result[None]: ...

    def pause_optimizing_job(self, optimizing_job_id: str) -> Result[None]: ...

    def unpause_optimizing_job(self, optimizing_job_id: str) -> Result[None]: ...


class Grapher(Protocol):
    """Renders merged trackers to an image."""

    content_type: str

    def render(
        self,
        title: str,
        series: Sequence[tuple[str, StatTracker]],
        *,
        width: int,
        height: int,
    ) -> bytes: ...


@dataclass(frozen=True)
class ReportParameter:
    """One entry of a report generator's parameter schema."""

    name: str
    label: str
    default: str = ""
    required: bool = False
    choices: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class GeneratedReport:
    """Output of :meth:`ReportGenerator.generate_report`."""

    content: bytes
    content_type: str = "text/plain"
    filename: str | None = None


class ReportGenerator(Protocol):
    """Pluggable report generator. A fresh instance serves one request."""

    name: str

    def parameters(self) -> list[ReportParameter]: ...

    def configure(self, values: dict[str, str]) -> None: ...

    def add_job_report(self, job: Job) -> None: ...

    def add_optimizing_job_report(self, optimizing_job: OptimizingJob, iterations: list[Job]) -> None: ...

    def generate_report(self) -> GeneratedReport: ...


__all__ = [
    "StatTracker",
    "EntityStore",
    "Scheduler",
    "Grapher",
    "ReportParameter",
    "GeneratedReport",
    "ReportGenerator",
]
