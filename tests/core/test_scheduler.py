"""Tests for the store-backed scheduler."""

from __future__ import annotations

import pytest

from jobdesk.core.enums import JobState
from jobdesk.core.errors import BusinessRuleError, StoreErrorKind
from jobdesk.core.models import Job, OptimizingJob
from jobdesk.core.store import InMemoryEntityStore, StoreBackedScheduler


@pytest.fixture
def store():
    return InMemoryEntityStore()


@pytest.fixture
def scheduler(store):
    return StoreBackedScheduler(store)


class TestCancelJob:
    @pytest.mark.parametrize(
        ("state", "expected"),
        [
            (JobState.NOT_YET_STARTED, JobState.CANCELLED),
            (JobState.DISABLED, JobState.CANCELLED),
            (JobState.RUNNING, JobState.STOPPED_BY_USER),
        ],
    )
    def test_transitions(self, store, scheduler, state, expected):
        store.put_job(Job(job_id="J1", job_class="c", state=state))
        assert scheduler.cancel_job("J1").unwrap() is expected
        assert store.get_job("J1").unwrap().state is expected

    def test_finished_job_cannot_be_cancelled(self, store, scheduler):
        store.put_job(Job(job_id="J1", job_class="c", state=JobState.COMPLETED_SUCCESSFULLY))
        result = scheduler.cancel_job("J1")
        assert isinstance(result.error, BusinessRuleError)
        assert result.error.message == "Job J1 is completed successfully and cannot be cancelled"

    def test_missing_job(self, scheduler):
        assert scheduler.cancel_job("J9").error.kind is StoreErrorKind.NOT_FOUND


class TestOptimizingJobControl:
    def test_pause_then_unpause(self, store, scheduler):
        store.put_optimizing_job(OptimizingJob(optimizing_job_id="OJ", job_class="c", state=JobState.RUNNING))
        assert scheduler.pause_optimizing_job("OJ").is_ok()
        assert store.get_optimizing_job("OJ").unwrap().paused is True
        assert scheduler.pause_optimizing_job("OJ").error.message == "Optimizing job OJ is already paused"
        assert scheduler.unpause_optimizing_job("OJ").is_ok()
        assert store.get_optimizing_job("OJ").unwrap().paused is False

    def test_cancel_clears_pause(self, store, scheduler):
        store.put_optimizing_job(
            OptimizingJob(optimizing_job_id="OJ", job_class="c", state=JobState.RUNNING, paused=True)
        )
        assert scheduler.cancel_optimizing_job("OJ").is_ok()
        optimizing_job = store.get_optimizing_job("OJ").unwrap()
        assert optimizing_job.state is JobState.STOPPED_BY_USER
        assert optimizing_job.paused is False

    def test_finished_optimizing_job_is_refused(self, store, scheduler):
        store.put_optimizing_job(
            OptimizingJob(optimizing_job_id="OJ", job_class="c", state=JobState.COMPLETED_SUCCESSFULLY)
        )
        for call in (scheduler.cancel_optimizing_job, scheduler.pause_optimizing_job):
            assert call("OJ").error.message == "Optimizing job OJ has already finished"
