"""
API-specific settings.

Extends :class:`~jobdesk.core.settings.JobdeskSettings` with the knobs
that govern the REST transport (prefix, OpenAPI metadata, CORS).
"""

from __future__ import annotations

from pydantic import Field

from jobdesk import __version__
from jobdesk.core.settings import JobdeskSettings


class JobdeskAPISettings(JobdeskSettings):
    """Settings for the jobdesk HTTP server.

    Order of precedence (highest → lowest):
        1. Environment variables (``JOBDESK_API_PREFIX``, etc.)
        2. ``.env`` file
        3. Defaults below
    """

    # ── API ──────────────────────────────────────────────────────────────
    api_prefix: str = Field(default="/api/v1", description="URL prefix for all endpoints")
    api_title: str = Field(default="jobdesk API", description="OpenAPI title")
    api_version: str = Field(default=__version__, description="OpenAPI version string")

    # ── CORS ─────────────────────────────────────────────────────────────
    cors_origins: list[str] = Field(default=["*"], description="Allowed CORS origins")
