"""
Enumerations shared across the engine.

Job states mirror the lifecycle the scheduler reports; capabilities are
the permission names the access gate evaluates.
"""

from __future__ import annotations

from enum import Enum


class JobState(str, Enum):
    """Lifecycle state of a Job.

    ``NOT_YET_STARTED`` and ``DISABLED`` are *pending*; ``RUNNING`` is
    *active*; everything else is *terminal*.
    """

    NOT_YET_STARTED = "NotYetStarted"
    DISABLED = "Disabled"
    RUNNING = "Running"
    CANCELLED = "Cancelled"
    STOPPED_BY_USER = "StoppedByUser"
    COMPLETED_SUCCESSFULLY = "CompletedSuccessfully"
    COMPLETED_WITH_ERRORS = "CompletedWithErrors"
    STOPPED_DUE_TO_DURATION = "StoppedDueToDuration"
    STOPPED_DUE_TO_STOP_TIME = "StoppedDueToStopTime"
    STOPPED_DUE_TO_ERROR = "StoppedDueToError"
    STOPPED_BY_SHUTDOWN = "StoppedByShutdown"

    @property
    def is_pending(self) -> bool:
        return self in (JobState.NOT_YET_STARTED, JobState.DISABLED)

    @property
    def is_running(self) -> bool:
        return self is JobState.RUNNING

    @property
    def is_terminal(self) -> bool:
        return not (self.is_pending or self.is_running)

    @property
    def label(self) -> str:
        """Human-readable label (``"Completed Successfully"``)."""
        return _STATE_LABELS[self]


_STATE_LABELS: dict[JobState, str] = {
    JobState.NOT_YET_STARTED: "Not Yet Started",
    JobState.DISABLED: "Disabled",
    JobState.RUNNING: "Running",
    JobState.CANCELLED: "Cancelled",
    JobState.STOPPED_BY_USER: "Stopped by User",
    JobState.COMPLETED_SUCCESSFULLY: "Completed Successfully",
    JobState.COMPLETED_WITH_ERRORS: "Completed With Errors",
    JobState.STOPPED_DUE_TO_DURATION: "Stopped Due to Duration",
    JobState.STOPPED_DUE_TO_STOP_TIME: "Stopped Due to Stop Time",
    JobState.STOPPED_DUE_TO_ERROR: "Stopped Due to Error",
    JobState.STOPPED_BY_SHUTDOWN: "Stopped by Shutdown",
}


class Capability(str, Enum):
    """Capabilities a principal may hold."""

    FULL_ACCESS = "full-access"
    VIEW_STATUS = "view-status"
    VIEW_JOB = "view-job"
    SCHEDULE_JOB = "schedule-job"
    CANCEL_JOB = "cancel-job"
    DELETE_JOB = "delete-job"
    MANAGE_FOLDERS = "manage-folders"
    EXPORT_JOB_DATA = "export-job-data"
    VIEW_JOB_CLASS = "view-job-class"
    ADD_JOB_CLASS = "add-job-class"
    DELETE_JOB_CLASS = "delete-job-class"

    @classmethod
    def parse_many(cls, raw: str | None) -> frozenset[Capability]:
        """Parse a comma-separated capability list, ignoring unknown names."""
        if not raw:
            return frozenset()
        known = {c.value: c for c in cls}
        names = (part.strip().lower() for part in raw.split(","))
        return frozenset(known[n] for n in names if n in known)


class ConfirmToken(str, Enum):
    """Value of the confirmation discriminator on a two-phase request."""

    ABSENT = "absent"
    YES = "Yes"
    NO = "No"
