"""
FastAPI dependency injection: settings singleton and the action router.

Usage in routers::

    from jobdesk.api.deps import Router

    @router.get("/things")
    def things(action_router: Router):
        ...

The :class:`~jobdesk.ops.context.ServerContext` is built once by
``create_app`` and kept on ``app.state``; per-request state travels in
the ``RequestContext`` the endpoint builds.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Request

from jobdesk.api.settings import JobdeskAPISettings
from jobdesk.ops.context import ServerContext
from jobdesk.ops.router import ActionRouter


@lru_cache(maxsize=1)
def get_settings() -> JobdeskAPISettings:
    """Cached settings, loaded once per process."""
    return JobdeskAPISettings()


def get_server_context(request: Request) -> ServerContext:
    return request.app.state.server_context


def get_action_router(request: Request) -> ActionRouter:
    return request.app.state.action_router


Settings = Annotated[JobdeskAPISettings, Depends(get_settings)]
Context = Annotated[ServerContext, Depends(get_server_context)]
Router = Annotated[ActionRouter, Depends(get_action_router)]
