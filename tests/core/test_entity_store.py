"""
Behaviour shared by every EntityStore backend.

Each test runs against the in-memory store and against SQLite on
``:memory:``.
"""

from __future__ import annotations

import pytest

from jobdesk.core.enums import JobState
from jobdesk.core.errors import StoreErrorKind
from jobdesk.core.models import UNCLASSIFIED_FOLDER, Job, JobFolder, OptimizingJob, VirtualFolder
from jobdesk.core.result import Err, Ok
from jobdesk.core.store import InMemoryEntityStore, SqliteEntityStore


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    if request.param == "memory":
        yield InMemoryEntityStore()
    else:
        sqlite_store = SqliteEntityStore(":memory:")
        yield sqlite_store
        sqlite_store.close()


def _kind(result) -> StoreErrorKind:
    assert isinstance(result, Err), result
    return result.error.kind


class TestJobs:
    """get / put / remove / move / list for jobs."""

    def test_put_then_get(self, store):
        store.put_job(Job(job_id="J1", job_class="loadgen.HttpGetJob", description="smoke"))
        match store.get_job("J1"):
            case Ok(job):
                assert job.description == "smoke"
                assert job.folder == UNCLASSIFIED_FOLDER
            case Err(error):
                pytest.fail(str(error))

    def test_get_missing_is_not_found(self, store):
        result = store.get_job("missing")
        assert _kind(result) is StoreErrorKind.NOT_FOUND
        assert result.error.message == "No job with ID 'missing' exists"

    def test_put_into_missing_folder_is_invalid(self, store):
        result = store.put_job(Job(job_id="J1", job_class="c", folder_name="Nowhere"))
        assert _kind(result) is StoreErrorKind.INVALID
        assert store.get_job("J1").is_err()

    def test_returned_job_is_a_copy(self, store):
        store.put_job(Job(job_id="J1", job_class="c"))
        job = store.get_job("J1").unwrap()
        job.description = "changed locally"
        assert store.get_job("J1").unwrap().description == ""

    def test_remove(self, store):
        store.put_job(Job(job_id="J1", job_class="c"))
        assert store.remove_job("J1").is_ok()
        assert _kind(store.remove_job("J1")) is StoreErrorKind.NOT_FOUND

    def test_move(self, store):
        store.put_folder(JobFolder(name="Nightly"))
        store.put_job(Job(job_id="J1", job_class="c"))
        assert store.move_job("J1", "Nightly").unwrap().folder_name == "Nightly"
        assert store.get_job("J1").unwrap().folder == "Nightly"

    def test_move_to_missing_folder(self, store):
        store.put_job(Job(job_id="J1", job_class="c"))
        assert _kind(store.move_job("J1", "Nowhere")) is StoreErrorKind.INVALID
        assert store.get_job("J1").unwrap().folder == UNCLASSIFIED_FOLDER

    def test_list_sorted_and_filtered(self, store):
        store.put_folder(JobFolder(name="Nightly"))
        store.put_job(Job(job_id="J3", job_class="c", state=JobState.RUNNING))
        store.put_job(Job(job_id="J1", job_class="c"))
        store.put_job(Job(job_id="J2", job_class="c", folder_name="Nightly", state=JobState.RUNNING))

        assert [j.job_id for j in store.list_jobs().unwrap()] == ["J1", "J2", "J3"]
        assert [j.job_id for j in store.list_jobs(folder_name=UNCLASSIFIED_FOLDER).unwrap()] == ["J1", "J3"]
        assert [j.job_id for j in store.list_jobs(states=[JobState.RUNNING]).unwrap()] == ["J2", "J3"]
        assert store.list_jobs(folder_name="Nightly", states=[JobState.DISABLED]).unwrap() == []


class TestOptimizingJobs:
    def test_round_trip(self, store):
        store.put_optimizing_job(
            OptimizingJob(optimizing_job_id="OJ1", job_class="c", iteration_ids=["A", "B"], rerun_iteration_id="R")
        )
        optimizing_job = store.get_optimizing_job("OJ1").unwrap()
        assert optimizing_job.all_iteration_ids() == ["A", "B", "R"]

    def test_missing(self, store):
        assert _kind(store.get_optimizing_job("OJ9")) is StoreErrorKind.NOT_FOUND
        assert _kind(store.remove_optimizing_job("OJ9")) is StoreErrorKind.NOT_FOUND

    def test_move_and_list_by_folder(self, store):
        store.put_folder(JobFolder(name="Tuning"))
        store.put_optimizing_job(OptimizingJob(optimizing_job_id="OJ1", job_class="c"))
        store.move_optimizing_job("OJ1", "Tuning").unwrap()
        assert [o.optimizing_job_id for o in store.list_optimizing_jobs(folder_name="Tuning").unwrap()] == ["OJ1"]
        assert store.list_optimizing_jobs(folder_name=UNCLASSIFIED_FOLDER).unwrap() == []


class TestFolders:
    def test_unclassified_exists_from_the_start(self, store):
        assert [f.name for f in store.list_folders().unwrap()] == [UNCLASSIFIED_FOLDER]

    def test_put_get_remove(self, store):
        store.put_folder(JobFolder(name="Nightly", description="overnight runs"))
        assert store.get_folder("Nightly").unwrap().description == "overnight runs"
        assert store.remove_folder("Nightly").is_ok()
        assert _kind(store.get_folder("Nightly")) is StoreErrorKind.NOT_FOUND

    def test_virtual_folder_keeps_references(self, store):
        store.put_virtual_folder(VirtualFolder(name="Baselines", job_ids={"J2", "J1"}))
        assert store.get_virtual_folder("Baselines").unwrap().job_ids == {"J1", "J2"}
        assert [v.name for v in store.list_virtual_folders().unwrap()] == ["Baselines"]
        assert store.remove_virtual_folder("Baselines").is_ok()
        assert _kind(store.remove_virtual_folder("Baselines")) is StoreErrorKind.NOT_FOUND


class TestJobClasses:
    def test_add_list_remove(self, store):
        store.add_job_class("loadgen.b.Job")
        store.add_job_class("loadgen.a.Job")
        assert store.list_job_classes().unwrap() == ["loadgen.a.Job", "loadgen.b.Job"]
        assert store.remove_job_class("loadgen.a.Job").is_ok()
        assert store.list_job_classes().unwrap() == ["loadgen.b.Job"]

    def test_duplicate_is_conflict(self, store):
        store.add_job_class("loadgen.Job")
        assert _kind(store.add_job_class("loadgen.Job")) is StoreErrorKind.CONFLICT

    def test_remove_missing(self, store):
        assert _kind(store.remove_job_class("nope")) is StoreErrorKind.NOT_FOUND
