"""Entity <-> plain-dict codec used by persistent stores."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from jobdesk.core.enums import JobState
from jobdesk.core.models import Job, JobFolder, OptimizingJob, VirtualFolder
from jobdesk.core.trackers import ValueSummaryTracker

TRACKER_TYPES: dict[str, Any] = {
    ValueSummaryTracker.type_name: ValueSummaryTracker,
}


def register_tracker_type(type_name: str, cls: Any) -> None:
    """Register a tracker class that implements ``to_dict``/``from_dict``."""
    TRACKER_TYPES[type_name] = cls


def _dt(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def encode_tracker(tracker: Any) -> dict[str, Any]:
    if not hasattr(tracker, "to_dict"):
        raise TypeError(f"Tracker {type(tracker).__name__} cannot be serialized")
    return tracker.to_dict()


def decode_tracker(data: dict[str, Any]) -> Any:
    cls = TRACKER_TYPES.get(data.get("type", ""))
    if cls is None:
        raise ValueError(f"Unknown tracker type {data.get('type')!r}")
    return cls.from_dict(data)


def job_to_dict(job: Job) -> dict[str, Any]:
    return {
        "job_id": job.job_id,
        "job_class": job.job_class,
        "state": job.state.value,
        "folder_name": job.folder_name,
        "optimizing_job_id": job.optimizing_job_id,
        "description": job.description,
        "comments": job.comments,
        "parameters": dict(job.parameters),
        "stat_trackers": {
            name: [encode_tracker(t) for t in trackers]
            for name, trackers in job.stat_trackers.items()
        },
        "dependencies": list(job.dependencies),
        "start_time": _dt(job.start_time),
        "stop_time": _dt(job.stop_time),
        "duration": job.duration,
        "number_of_clients": job.number_of_clients,
        "threads_per_client": job.threads_per_client,
        "collection_interval": job.collection_interval,
        "actual_start_time": _dt(job.actual_start_time),
        "actual_stop_time": _dt(job.actual_stop_time),
        "display_in_read_only": job.display_in_read_only,
        "log_messages": list(job.log_messages),
    }


def job_from_dict(data: dict[str, Any]) -> Job:
    return Job(
        job_id=data["job_id"],
        job_class=data["job_class"],
        state=JobState(data.get("state", JobState.NOT_YET_STARTED.value)),
        folder_name=data.get("folder_name"),
        optimizing_job_id=data.get("optimizing_job_id"),
        description=data.get("description", ""),
        comments=data.get("comments", ""),
        parameters=dict(data.get("parameters", {})),
        stat_trackers={
            name: [decode_tracker(t) for t in trackers]
            for name, trackers in data.get("stat_trackers", {}).items()
        },
        dependencies=list(data.get("dependencies", [])),
        start_time=_parse_dt(data.get("start_time")),
        stop_time=_parse_dt(data.get("stop_time")),
        duration=data.get("duration"),
        number_of_clients=data.get("number_of_clients", 1),
        threads_per_client=data.get("threads_per_client", 1),
        collection_interval=data.get("collection_interval", 60),
        actual_start_time=_parse_dt(data.get("actual_start_time")),
        actual_stop_time=_parse_dt(data.get("actual_stop_time")),
        display_in_read_only=bool(data.get("display_in_read_only", False)),
        log_messages=list(data.get("log_messages", [])),
    )


def optimizing_job_to_dict(optimizing_job: OptimizingJob) -> dict[str, Any]:
    return {
        "optimizing_job_id": optimizing_job.optimizing_job_id,
        "job_class": optimizing_job.job_class,
        "iteration_ids": list(optimizing_job.iteration_ids),
        "rerun_iteration_id": optimizing_job.rerun_iteration_id,
        "folder_name": optimizing_job.folder_name,
        "description": optimizing_job.description,
        "comments": optimizing_job.comments,
        "state": optimizing_job.state.value,
        "paused": optimizing_job.paused,
        "display_in_read_only": optimizing_job.display_in_read_only,
    }


def optimizing_job_from_dict(data: dict[str, Any]) -> OptimizingJob:
    return OptimizingJob(
        optimizing_job_id=data["optimizing_job_id"],
        job_class=data["job_class"],
        iteration_ids=list(data.get("iteration_ids", [])),
        rerun_iteration_id=data.get("rerun_iteration_id"),
        folder_name=data.get("folder_name"),
        description=data.get("description", ""),
        comments=data.get("comments", ""),
        state=JobState(data.get("state", JobState.NOT_YET_STARTED.value)),
        paused=bool(data.get("paused", False)),
        display_in_read_only=bool(data.get("display_in_read_only", False)),
    )


def folder_to_dict(folder: JobFolder) -> dict[str, Any]:
    return {
        "name": folder.name,
        "description": folder.description,
        "display_in_read_only": folder.display_in_read_only,
    }


def folder_from_dict(data: dict[str, Any]) -> JobFolder:
    return JobFolder(
        name=data["name"],
        description=data.get("description", ""),
        display_in_read_only=bool(data.get("display_in_read_only", False)),
    )


def virtual_folder_to_dict(folder: VirtualFolder) -> dict[str, Any]:
    return {
        "name": folder.name,
        "description": folder.description,
        "display_in_read_only": folder.display_in_read_only,
        "job_ids": sorted(folder.job_ids),
    }


def virtual_folder_from_dict(data: dict[str, Any]) -> VirtualFolder:
    return VirtualFolder(
        name=data["name"],
        description=data.get("description", ""),
        display_in_read_only=bool(data.get("display_in_read_only", False)),
        job_ids=set(data.get("job_ids", [])),
    )
