"""
FastAPI application factory.

``create_app()`` wires middleware, routers, error handlers and lifespan
events into a single ``FastAPI`` instance, and builds the one
:class:`~jobdesk.ops.context.ServerContext` the process uses.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from jobdesk.api.deps import get_settings
from jobdesk.api.middleware.errors import jobdesk_error_handler, unhandled_exception_handler
from jobdesk.api.middleware.request_id import RequestIDMiddleware
from jobdesk.api.settings import JobdeskAPISettings
from jobdesk.core.errors import JobdeskError
from jobdesk.core.logging import get_logger
from jobdesk.ops.context import ServerContext
from jobdesk.ops.router import ActionRouter

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup / shutdown hooks."""
    ctx: ServerContext = app.state.server_context
    logger.info("jobdesk_api_starting", version=app.version, store_backend=ctx.settings.store_backend)
    yield
    close = getattr(ctx.store, "close", None)
    if callable(close):
        close()
    logger.info("jobdesk_api_stopped")


def create_app(
    *,
    settings: JobdeskAPISettings | None = None,
    server_context: ServerContext | None = None,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    settings : JobdeskAPISettings | None
        Override settings (useful for testing). When ``None`` the cached
        singleton from :func:`get_settings` is used.
    server_context : ServerContext | None
        Pre-built collaborators (tests pass one backed by an in-memory
        store). Built from *settings* when omitted.
    """
    settings = settings or get_settings()
    ctx = server_context or ServerContext.from_settings(settings)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    app.state.settings = settings
    app.state.server_context = ctx
    app.state.action_router = ActionRouter(ctx)
    app.dependency_overrides[get_settings] = lambda: settings

    # ── Middleware (outermost → innermost) ────────────────────────────
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(JobdeskError, jobdesk_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    from jobdesk.api.routers import actions, health

    app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
    app.include_router(actions.router, prefix=settings.api_prefix, tags=["admin"])

    return app
