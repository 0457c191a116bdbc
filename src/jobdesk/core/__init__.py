"""jobdesk core -- domain-agnostic primitives for the operation layer.

Architecture::

    Layer 1 -- Type System & Errors
        errors.py          Structured error hierarchy (JobdeskError, StoreError)
        result.py          Result[T] envelope (Ok / Err / try_result)
        enums.py           JobState, Capability, ConfirmToken
        protocols.py       EntityStore, Scheduler, StatTracker, ReportGenerator, Grapher

    Layer 2 -- Domain & Storage
        models.py          Job, OptimizingJob, JobFolder, VirtualFolder
        trackers.py        Reference StatTracker implementation
        reports.py         Reference plain-text ReportGenerator
        store/             In-memory and SQLite entity stores, store-backed scheduler

    Layer 3 -- Runtime
        settings.py        pydantic-settings configuration
        logging.py         structlog configuration and LogContext
"""

from jobdesk.core.errors import (
    BusinessRuleError,
    ErrorCategory,
    JobdeskError,
    PerItemFailure,
    StoreError,
    StoreErrorKind,
    StoreUnavailableError,
    ValidationError,
)
from jobdesk.core.result import Err, Ok, Result

__all__ = [
    "BusinessRuleError",
    "ErrorCategory",
    "JobdeskError",
    "PerItemFailure",
    "StoreError",
    "StoreErrorKind",
    "StoreUnavailableError",
    "ValidationError",
    "Err",
    "Ok",
    "Result",
]
