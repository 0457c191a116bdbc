"""Non-batch store reads and natural list views.

Outside a batch, an unavailable store aborts the whole request: these
helpers raise :class:`StoreUnavailableError` so the router can turn it
into a status line. Ordinary failures (not found, invalid) stay values.
"""

from __future__ import annotations

from typing import TypeVar

from jobdesk.core.errors import StoreError, StoreUnavailableError
from jobdesk.core.models import UNCLASSIFIED_FOLDER
from jobdesk.core.result import Err, Ok, Result
from jobdesk.ops.context import Param, RequestContext
from jobdesk.ops.outcome import Redirect

T = TypeVar("T")


def checked(result: Result[T]) -> Result[T]:
    """Pass *result* through, raising when the store is unavailable."""
    if isinstance(result, Err) and isinstance(result.error, StoreError) and result.error.is_unavailable:
        raise StoreUnavailableError(result.error.message, cause=result.error)
    return result


def required(result: Result[T]) -> T:
    """Unwrap a listing; any failure aborts the request."""
    match result:
        case Ok(value):
            return value
        case Err(error):
            raise StoreUnavailableError(error_message(error), cause=error)


def error_message(error: Exception) -> str:
    return getattr(error, "message", None) or str(error)


def natural_list_view(request: RequestContext) -> Redirect:
    """The folder listing the request came from."""
    virtual = request.param(Param.VIRTUAL_JOB_FOLDER)
    if virtual:
        return Redirect.to("job", "view_virtual", **{Param.VIRTUAL_JOB_FOLDER: virtual})
    folder = request.param(Param.JOB_FOLDER, UNCLASSIFIED_FOLDER)
    return Redirect.to("job", "view_real", **{Param.JOB_FOLDER: folder})


def job_view(job_id: str) -> Redirect:
    return Redirect.to("job", "view_job", **{Param.JOB_ID: job_id})


def optimizing_job_view(optimizing_job_id: str) -> Redirect:
    return Redirect.to("job", "view_optimizing", **{Param.OPTIMIZING_JOB_ID: optimizing_job_id})


__all__ = [
    "checked",
    "required",
    "error_message",
    "natural_list_view",
    "job_view",
    "optimizing_job_view",
]
