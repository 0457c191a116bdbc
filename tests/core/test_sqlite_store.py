"""SQLite entity store: persistence, tracker encoding and driver failures."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime

from jobdesk.core.enums import JobState
from jobdesk.core.errors import StoreErrorKind
from jobdesk.core.models import Job, JobFolder
from jobdesk.core.settings import JobdeskSettings
from jobdesk.core.store import InMemoryEntityStore, SqliteEntityStore, create_store
from jobdesk.core.trackers import ValueSummaryTracker


class TestPersistence:
    def test_entities_survive_reopen(self, tmp_path):
        path = str(tmp_path / "jobdesk.db")
        first = SqliteEntityStore(path)
        first.put_folder(JobFolder(name="Nightly", display_in_read_only=True))
        first.put_job(
            Job(
                job_id="J1",
                job_class="loadgen.HttpGetJob",
                folder_name="Nightly",
                state=JobState.COMPLETED_SUCCESSFULLY,
                parameters={"url": "http://target"},
                actual_start_time=datetime(2024, 1, 1, 8, 0, tzinfo=UTC),
            )
        )
        first.close()

        second = SqliteEntityStore(path)
        job = second.get_job("J1").unwrap()
        assert job.state is JobState.COMPLETED_SUCCESSFULLY
        assert job.parameters == {"url": "http://target"}
        assert job.actual_start_time == datetime(2024, 1, 1, 8, 0, tzinfo=UTC)
        assert second.get_folder("Nightly").unwrap().display_in_read_only is True
        second.close()

    def test_trackers_are_stored_as_json(self):
        store = SqliteEntityStore()
        tracker = ValueSummaryTracker(display_name="Response Time", client_id="c1")
        tracker.record(12.5)
        store.put_job(Job(job_id="J1", job_class="c", stat_trackers={"Response Time": [tracker]}))

        loaded = store.get_job("J1").unwrap().trackers("Response Time")
        assert len(loaded) == 1
        assert isinstance(loaded[0], ValueSummaryTracker)
        assert loaded[0].count == 1
        assert loaded[0].maximum == 12.5


class TestFailures:
    def test_closed_connection_is_unavailable(self):
        store = SqliteEntityStore()
        store.close()
        result = store.get_job("J1")
        assert result.is_err()
        assert result.error.kind is StoreErrorKind.UNAVAILABLE

    def test_unserializable_tracker_is_invalid(self):
        store = SqliteEntityStore()
        result = store.put_job(Job(job_id="J1", job_class="c", stat_trackers={"X": [object()]}))
        assert result.error.kind is StoreErrorKind.INVALID
        assert store.get_job("J1").is_err()


class TestConcurrency:
    def test_failed_writes_do_not_roll_back_other_threads(self, tmp_path):
        store = SqliteEntityStore(str(tmp_path / "shared.db"))
        store.put_folder(JobFolder(name="Nightly"))

        def work(n: int) -> None:
            store.put_job(Job(job_id=f"J{n}", job_class="c"))
            store.put_job(Job(job_id=f"X{n}", job_class="c", folder_name="Missing"))
            store.move_job(f"J{n}", "Nightly")

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(work, range(40)))

        jobs = store.list_jobs(folder_name="Nightly").unwrap()
        assert sorted(job.job_id for job in jobs) == sorted(f"J{n}" for n in range(40))
        assert store.get_job("X0").is_err()


class TestCreateStore:
    def test_memory_backend(self, tmp_path):
        store = create_store(JobdeskSettings(store_backend="memory", data_dir=tmp_path))
        assert isinstance(store, InMemoryEntityStore)

    def test_sqlite_backend_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "jobs.db"
        store = create_store(JobdeskSettings(store_backend="sqlite", database_path=str(path)))
        assert isinstance(store, SqliteEntityStore)
        assert path.parent.is_dir()
        store.close()

    def test_default_database_path_is_under_data_dir(self, tmp_path):
        settings = JobdeskSettings(data_dir=tmp_path)
        assert settings.resolved_database_path() == str(tmp_path / "jobdesk.db")
