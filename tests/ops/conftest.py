"""
Fixtures for operation-handler tests.

Every test gets a fresh :class:`InMemoryEntityStore` behind a
:class:`ServerContext` with a pinned clock, plus factories for jobs,
optimizing jobs and requests.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime
from typing import Any

import pytest

from jobdesk.core.enums import Capability, JobState
from jobdesk.core.errors import StoreError, StoreErrorKind
from jobdesk.core.models import Job, JobFolder, OptimizingJob
from jobdesk.core.result import Err, Result
from jobdesk.core.settings import JobdeskSettings
from jobdesk.core.store import InMemoryEntityStore
from jobdesk.core.trackers import ValueSummaryTracker
from jobdesk.ops.context import Principal, RequestContext, ServerContext


class FlakyStore(InMemoryEntityStore):
    """In-memory store that fails chosen calls.

    ``unavailable`` names methods that always answer UNAVAILABLE;
    ``failing_removals`` holds job IDs whose ``remove_job`` fails;
    ``unreachable`` holds optimizing job IDs whose lookup answers UNAVAILABLE.
    """

    def __init__(self) -> None:
        super().__init__()
        self.unavailable: set[str] = set()
        self.failing_removals: set[str] = set()
        self.unreachable: set[str] = set()

    def _down(self, method: str) -> Err[Any]:
        return Err(StoreError(f"{method} timed out", kind=StoreErrorKind.UNAVAILABLE))

    def list_jobs(self, folder_name=None, states=None) -> Result[list[Job]]:
        if "list_jobs" in self.unavailable:
            return self._down("list_jobs")
        return super().list_jobs(folder_name=folder_name, states=states)

    def get_job(self, job_id: str) -> Result[Job]:
        if "get_job" in self.unavailable:
            return self._down("get_job")
        return super().get_job(job_id)

    def get_folder(self, name: str) -> Result[JobFolder]:
        if "get_folder" in self.unavailable:
            return self._down("get_folder")
        return super().get_folder(name)

    def get_optimizing_job(self, optimizing_job_id: str) -> Result[OptimizingJob]:
        if optimizing_job_id in self.unreachable:
            return self._down("get_optimizing_job")
        return super().get_optimizing_job(optimizing_job_id)

    def remove_job(self, job_id: str) -> Result[None]:
        if job_id in self.failing_removals:
            return Err(StoreError(f"Job {job_id} is locked by another process", kind=StoreErrorKind.CONFLICT))
        return super().remove_job(job_id)


@pytest.fixture
def store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def ctx(store: FlakyStore, open_settings: JobdeskSettings, fixed_now: datetime) -> ServerContext:
    return ServerContext.from_settings(open_settings, store=store, clock=lambda: fixed_now)


@pytest.fixture
def secured_ctx(store: FlakyStore, open_settings: JobdeskSettings, fixed_now: datetime) -> ServerContext:
    settings = open_settings.model_copy(update={"access_control_enabled": True})
    return ServerContext.from_settings(settings, store=store, clock=lambda: fixed_now)


@pytest.fixture
def read_only_ctx(store: FlakyStore, open_settings: JobdeskSettings, fixed_now: datetime) -> ServerContext:
    settings = open_settings.model_copy(update={"access_control_enabled": True, "read_only_mode": True})
    return ServerContext.from_settings(settings, store=store, clock=lambda: fixed_now)


@pytest.fixture
def admin() -> Principal:
    return Principal("admin", frozenset({Capability.FULL_ACCESS}))


@pytest.fixture
def viewer() -> Principal:
    return Principal("viewer", frozenset({Capability.VIEW_JOB, Capability.VIEW_STATUS}))


@pytest.fixture
def make_request() -> Callable[..., RequestContext]:
    """``make_request("job", "delete_job", {"job_id": ["A", "B"]}, principal=...)``."""

    def _make(
        category: str,
        operation: str = "",
        params: dict[str, str | Iterable[str]] | None = None,
        **kwargs: Any,
    ) -> RequestContext:
        return RequestContext.build(category, operation, params, **kwargs)

    return _make


def _tracker(name: str, *values: float) -> ValueSummaryTracker:
    tracker = ValueSummaryTracker(display_name=name)
    for value in values:
        tracker.record(value)
    return tracker


@pytest.fixture
def tracker() -> Callable[..., ValueSummaryTracker]:
    return _tracker


@pytest.fixture
def make_job(store: FlakyStore) -> Callable[..., Job]:
    """Store a job, creating its folder when needed."""

    def _make(
        job_id: str,
        *,
        job_class: str = "loadgen.HttpGetJob",
        state: JobState = JobState.NOT_YET_STARTED,
        folder_name: str | None = None,
        with_stats: bool = False,
        **fields: Any,
    ) -> Job:
        if folder_name and store.get_folder(folder_name).is_err():
            store.put_folder(JobFolder(name=folder_name))
        if with_stats:
            fields.setdefault("stat_trackers", {"Response Time": [_tracker("Response Time", 10.0, 20.0)]})
        job = Job(job_id=job_id, job_class=job_class, state=state, folder_name=folder_name, **fields)
        store.put_job(job).unwrap()
        return job

    return _make


@pytest.fixture
def make_optimizing_job(store: FlakyStore, make_job: Callable[..., Job]) -> Callable[..., OptimizingJob]:
    """Store an optimizing job and one completed job per iteration ID."""

    def _make(
        optimizing_job_id: str,
        iteration_ids: list[str],
        *,
        rerun_iteration_id: str | None = None,
        folder_name: str | None = None,
        **fields: Any,
    ) -> OptimizingJob:
        for job_id in [*iteration_ids, *([rerun_iteration_id] if rerun_iteration_id else [])]:
            make_job(
                job_id,
                state=JobState.COMPLETED_SUCCESSFULLY,
                folder_name=folder_name,
                optimizing_job_id=optimizing_job_id,
            )
        optimizing_job = OptimizingJob(
            optimizing_job_id=optimizing_job_id,
            job_class="loadgen.HttpGetJob",
            iteration_ids=list(iteration_ids),
            rerun_iteration_id=rerun_iteration_id,
            folder_name=folder_name,
            **fields,
        )
        store.put_optimizing_job(optimizing_job).unwrap()
        return optimizing_job

    return _make
