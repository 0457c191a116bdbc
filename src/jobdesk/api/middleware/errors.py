"""
Error handlers: map uncaught exceptions to RFC 7807 responses.

The router already turns handler failures into status lines, so these
only fire for transport-level problems (bad form encoding, a crash while
building the request context).
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from jobdesk.api.schemas import ProblemDetail
from jobdesk.core.errors import ErrorCategory, JobdeskError
from jobdesk.core.logging import get_logger

logger = get_logger(__name__)

CATEGORY_TO_STATUS: dict[ErrorCategory, int] = {
    ErrorCategory.VALIDATION: 400,
    ErrorCategory.BUSINESS_RULE: 409,
    ErrorCategory.STORE: 503,
    ErrorCategory.BATCH: 500,
    ErrorCategory.INTERNAL: 500,
}


def problem_response(*, status: int, title: str, detail: str = "", instance: str = "") -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(title=title, status=status, detail=detail, instance=instance)
    return JSONResponse(status_code=status, content=body.model_dump())


async def jobdesk_error_handler(request: Request, exc: JobdeskError) -> JSONResponse:
    status = CATEGORY_TO_STATUS.get(exc.category, 500)
    logger.warning("api_error", status=status, **exc.to_dict())
    return problem_response(
        status=status,
        title=exc.category.value.replace("_", " ").title(),
        detail=exc.message,
        instance=str(request.url),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: 500 with a ProblemDetail body."""
    logger.exception("api_unhandled_exception", path=request.url.path, error_type=type(exc).__name__)
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail=str(exc) if request.app.state.settings.debug else "An unexpected error occurred.",
        instance=str(request.url),
    )
