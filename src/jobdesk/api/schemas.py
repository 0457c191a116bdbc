"""
API schemas: the action response envelope and RFC 7807 errors.

Every ``/admin`` call that does not stream returns
:class:`ActionResponse`; transport failures return
:class:`ProblemDetail`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs»."""

    type: str = Field(default="about:blank", description="URI identifying the problem type")
    title: str = Field(description="Short human-readable summary")
    status: int = Field(description="HTTP status code")
    detail: str = Field(default="", description="Explanation specific to this occurrence")
    instance: str = Field(default="", description="URI of the request that failed")


class StatusLineSchema(BaseModel):
    """One progress or result message shown above the page."""

    level: str = Field(description="'info' | 'success' | 'warning' | 'error'")
    message: str
    entity_id: str | None = None


class RedirectSchema(BaseModel):
    """A view the caller should show next when the router did not follow it."""

    category: str
    operation: str
    params: dict[str, list[str]] = Field(default_factory=dict)


class ActionResponse(BaseModel):
    """Non-streaming result of an admin action.

    ``body`` is the structured page for the rendering layer; its ``kind``
    field tells a page apart from a confirmation form, an options form,
    an access-denied notice or an authentication challenge.
    """

    request_id: str
    operation: str
    status: list[StatusLineSchema] = Field(default_factory=list)
    body: dict[str, Any] | None = None
    redirect: RedirectSchema | None = None


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str
    store_backend: str
