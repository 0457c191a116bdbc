"""
Admin action endpoint.

Endpoints:
    GET  /admin    Run an operation named by query fields
    POST /admin    Run an operation named by form fields (query fields merge in)

The fronting authenticator identifies the caller through ``X-Principal``
and the comma-separated ``X-Capabilities`` header. Raw operations come
back as a streamed body with the operation's own content type; every
other operation returns an :class:`~jobdesk.api.schemas.ActionResponse`.
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette.concurrency import run_in_threadpool

from jobdesk.api.deps import Router
from jobdesk.core.enums import Capability
from jobdesk.core.logging import get_logger
from jobdesk.ops.context import Principal, RequestContext
from jobdesk.ops.outcome import Outcome

logger = get_logger(__name__)

router = APIRouter()

PRINCIPAL_HEADER = "X-Principal"
CAPABILITIES_HEADER = "X-Capabilities"


def principal_from_headers(request: Request) -> Principal | None:
    name = request.headers.get(PRINCIPAL_HEADER, "").strip()
    if not name:
        return None
    return Principal(name=name, capabilities=Capability.parse_many(request.headers.get(CAPABILITIES_HEADER)))


async def collect_fields(request: Request) -> dict[str, list[str]]:
    """Query and form fields as a multi-valued mapping, query first."""
    fields: dict[str, list[str]] = {}
    for name, value in request.query_params.multi_items():
        fields.setdefault(name, []).append(value)
    if request.method == "POST":
        form = await request.form()
        for name, value in form.multi_items():
            if isinstance(value, str):
                fields.setdefault(name, []).append(value)
    return fields


STATUS_COUNT_HEADER = "X-Jobdesk-Status-Lines"
ERROR_COUNT_HEADER = "X-Jobdesk-Status-Errors"


def render(outcome: Outcome, action: RequestContext) -> Response:
    if outcome.raw is not None:
        # Raw bodies carry no envelope.
        for line in outcome.status_lines:
            logger.info(
                "raw_status_line",
                operation=action.operation_name,
                level=line.level.value,
                message=line.message,
            )
        headers = {
            STATUS_COUNT_HEADER: str(len(outcome.status_lines)),
            ERROR_COUNT_HEADER: str(sum(1 for line in outcome.status_lines if line.is_error)),
        }
        if outcome.raw.filename:
            headers["Content-Disposition"] = f'attachment; filename="{outcome.raw.filename}"'
        return StreamingResponse(iter(outcome.raw), media_type=outcome.raw.content_type, headers=headers)
    content = {"request_id": action.request_id, "operation": action.operation_name, **outcome.to_dict()}
    return JSONResponse(content=content)


@router.api_route("/admin", methods=["GET", "POST"], response_model=None)
async def admin_action(request: Request, action_router: Router) -> Response:
    fields = await collect_fields(request)
    action = RequestContext.from_fields(
        fields,
        principal=principal_from_headers(request),
        request_id=getattr(request.state, "request_id", None) or str(uuid.uuid4()),
    )
    logger.debug("admin_request", operation=action.operation_name, method=request.method)
    outcome = await run_in_threadpool(action_router.route, action)
    return render(outcome, action)
