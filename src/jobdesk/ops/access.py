"""
Access gate.

``require`` answers whether the request's principal holds a capability;
``requires`` wraps a handler so that check is the first thing it does.
A denied handler returns the fixed access-denied body and touches no
data.

Rules, in order:
    1. Access control disabled → every check is allowed.
    2. Read-only mode → only ``view-job`` is allowed, for anyone.
    3. No principal → denied.
    4. ``full-access`` or the named capability → allowed.
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from jobdesk.core.enums import Capability
from jobdesk.core.logging import get_logger
from jobdesk.ops.context import RequestContext, ServerContext
from jobdesk.ops.outcome import AccessDeniedBody, Outcome

logger = get_logger(__name__)

Handler = Callable[[ServerContext, RequestContext], Outcome]


@dataclass(frozen=True)
class Allowed:
    pass


@dataclass(frozen=True)
class Denied:
    reason: str
    capability: Capability


Decision = Allowed | Denied


def require(ctx: ServerContext, request: RequestContext, capability: Capability) -> Decision:
    """Evaluate *capability* for the request's principal."""
    settings = ctx.settings
    if not settings.access_control_enabled:
        return Allowed()
    if settings.read_only_mode:
        if capability is Capability.VIEW_JOB:
            return Allowed()
        return Denied("The server is running in read-only mode", capability)
    principal = request.principal
    if principal is None:
        return Denied("No authenticated principal", capability)
    if principal.has(capability):
        return Allowed()
    return Denied(f"{principal.name} does not hold the {capability.value} capability", capability)


def require_all(ctx: ServerContext, request: RequestContext, capabilities: Iterable[Capability]) -> Decision:
    """First denial among *capabilities*, or ``Allowed``."""
    for capability in capabilities:
        decision = require(ctx, request, capability)
        if isinstance(decision, Denied):
            return decision
    return Allowed()


def access_denied(denied: Denied, message: str, request: RequestContext | None = None) -> Outcome:
    """The fixed body a handler returns when its capability check fails."""
    logger.warning(
        "access_denied",
        capability=denied.capability.value,
        reason=denied.reason,
        operation=request.operation_name if request else None,
    )
    return Outcome.page(AccessDeniedBody(capability=denied.capability.value, message=message))


def requires(*capabilities: Capability, message: str) -> Callable[[Handler], Handler]:
    """Decorate a handler so the capability check runs before anything else.

    Example:
        @requires(Capability.DELETE_JOB, message="You do not have permission to delete jobs.")
        def delete_job(ctx, request):
            ...
    """

    def decorator(handler: Handler) -> Handler:
        @functools.wraps(handler)
        def wrapper(ctx: ServerContext, request: RequestContext) -> Outcome:
            decision = require_all(ctx, request, capabilities)
            if isinstance(decision, Denied):
                return access_denied(decision, message, request)
            return handler(ctx, request)

        wrapper.required_capabilities = capabilities  # type: ignore[attr-defined]
        return wrapper

    return decorator


def visible(ctx: ServerContext, entity: object) -> bool:
    """Whether *entity* may be listed (read-only mode hides unpublished entities)."""
    if not ctx.settings.read_only_mode:
        return True
    return bool(getattr(entity, "display_in_read_only", False))


__all__ = [
    "Allowed",
    "Denied",
    "Decision",
    "require",
    "require_all",
    "access_denied",
    "requires",
    "visible",
]
