"""In-memory entity store.

Holds entities in dicts and hands out deep copies, so callers must
``put_*`` a modified entity back just as they would against a real
store. Used by tests and by ``store_backend="memory"``.
"""

from __future__ import annotations

import copy
from collections.abc import Sequence

from jobdesk.core.enums import JobState
from jobdesk.core.errors import StoreError, StoreErrorKind, not_found
from jobdesk.core.models import (
    UNCLASSIFIED_FOLDER,
    Job,
    JobFolder,
    OptimizingJob,
    VirtualFolder,
    folder_or_default,
)
from jobdesk.core.result import Err, Ok, Result


class InMemoryEntityStore:
    """Dict-backed :class:`~jobdesk.core.protocols.EntityStore`."""

    def __init__(self) -> None:
        self._jobs: dict[str, Job] = {}
        self._optimizing_jobs: dict[str, OptimizingJob] = {}
        self._folders: dict[str, JobFolder] = {
            UNCLASSIFIED_FOLDER: JobFolder(name=UNCLASSIFIED_FOLDER),
        }
        self._virtual_folders: dict[str, VirtualFolder] = {}
        self._job_classes: list[str] = []

    def _missing_folder(self, folder_name: str | None) -> StoreError | None:
        name = folder_or_default(folder_name)
        if name not in self._folders:
            return StoreError(f"Job folder {name!r} does not exist", kind=StoreErrorKind.INVALID)
        return None

    # ── Jobs ─────────────────────────────────────────────────────────────

    def get_job(self, job_id: str) -> Result[Job]:
        job = self._jobs.get(job_id)
        if job is None:
            return Err(not_found("job", job_id))
        return Ok(copy.deepcopy(job))

    def put_job(self, job: Job) -> Result[Job]:
        if (error := self._missing_folder(job.folder_name)) is not None:
            return Err(error)
        self._jobs[job.job_id] = copy.deepcopy(job)
        return Ok(job)

    def remove_job(self, job_id: str) -> Result[None]:
        if self._jobs.pop(job_id, None) is None:
            return Err(not_found("job", job_id))
        return Ok(None)

    def move_job(self, job_id: str, folder_name: str) -> Result[Job]:
        job = self._jobs.get(job_id)
        if job is None:
            return Err(not_found("job", job_id))
        if (error := self._missing_folder(folder_name)) is not None:
            return Err(error)
        job.folder_name = folder_name
        return Ok(copy.deepcopy(job))

    def list_jobs(
        self,
        folder_name: str | None = None,
        states: Sequence[JobState] | None = None,
    ) -> Result[list[Job]]:
        jobs = [
            copy.deepcopy(job)
            for job in self._jobs.values()
            if (folder_name is None or job.folder == folder_or_default(folder_name))
            and (states is None or job.state in states)
        ]
        jobs.sort(key=lambda j: j.job_id)
        return Ok(jobs)

    # ── Optimizing jobs ──────────────────────────────────────────────────

    def get_optimizing_job(self, optimizing_job_id: str) -> Result[OptimizingJob]:
        optimizing_job = self._optimizing_jobs.get(optimizing_job_id)
        if optimizing_job is None:
            return Err(not_found("optimizing_job", optimizing_job_id))
        return Ok(copy.deepcopy(optimizing_job))

    def put_optimizing_job(self, optimizing_job: OptimizingJob) -> Result[OptimizingJob]:
        if (error := self._missing_folder(optimizing_job.folder_name)) is not None:
            return Err(error)
        self._optimizing_jobs[optimizing_job.optimizing_job_id] = copy.deepcopy(optimizing_job)
        return Ok(optimizing_job)

    def remove_optimizing_job(self, optimizing_job_id: str) -> Result[None]:
        if self._optimizing_jobs.pop(optimizing_job_id, None) is None:
            return Err(not_found("optimizing_job", optimizing_job_id))
        return Ok(None)

    def move_optimizing_job(self, optimizing_job_id: str, folder_name: str) -> Result[OptimizingJob]:
        optimizing_job = self._optimizing_jobs.get(optimizing_job_id)
        if optimizing_job is None:
            return Err(not_found("optimizing_job", optimizing_job_id))
        if (error := self._missing_folder(folder_name)) is not None:
            return Err(error)
        optimizing_job.folder_name = folder_name
        return Ok(copy.deepcopy(optimizing_job))

    def list_optimizing_jobs(self, folder_name: str | None = None) -> Result[list[OptimizingJob]]:
        items = [
            copy.deepcopy(o)
            for o in self._optimizing_jobs.values()
            if folder_name is None or o.folder == folder_or_default(folder_name)
        ]
        items.sort(key=lambda o: o.optimizing_job_id)
        return Ok(items)

    # ── Real folders ─────────────────────────────────────────────────────

    def get_folder(self, name: str) -> Result[JobFolder]:
        folder = self._folders.get(name)
        if folder is None:
            return Err(not_found("folder", name))
        return Ok(copy.deepcopy(folder))

    def put_folder(self, folder: JobFolder) -> Result[JobFolder]:
        self._folders[folder.name] = copy.deepcopy(folder)
        return Ok(folder)

    def remove_folder(self, name: str) -> Result[None]:
        if self._folders.pop(name, None) is None:
            return Err(not_found("folder", name))
        return Ok(None)

    def list_folders(self) -> Result[list[JobFolder]]:
        return Ok([copy.deepcopy(f) for _, f in sorted(self._folders.items())])

    # ── Virtual folders ──────────────────────────────────────────────────

    def get_virtual_folder(self, name: str) -> Result[VirtualFolder]:
        folder = self._virtual_folders.get(name)
        if folder is None:
            return Err(not_found("virtual_folder", name))
        return Ok(copy.deepcopy(folder))

    def put_virtual_folder(self, folder: VirtualFolder) -> Result[VirtualFolder]:
        self._virtual_folders[folder.name] = copy.deepcopy(folder)
        return Ok(folder)

    def remove_virtual_folder(self, name: str) -> Result[None]:
        if self._virtual_folders.pop(name, None) is None:
            return Err(not_found("virtual_folder", name))
        return Ok(None)

    def list_virtual_folders(self) -> Result[list[VirtualFolder]]:
        return Ok([copy.deepcopy(f) for _, f in sorted(self._virtual_folders.items())])

    # ── Job classes ──────────────────────────────────────────────────────

    def list_job_classes(self) -> Result[list[str]]:
        return Ok(sorted(self._job_classes))

    def add_job_class(self, class_name: str) -> Result[str]:
        if class_name in self._job_classes:
            return Err(StoreError(f"Job class {class_name!r} is already defined", kind=StoreErrorKind.CONFLICT))
        self._job_classes.append(class_name)
        return Ok(class_name)

    def remove_job_class(self, class_name: str) -> Result[None]:
        if class_name not in self._job_classes:
            return Err(not_found("job_class", class_name))
        self._job_classes.remove(class_name)
        return Ok(None)
