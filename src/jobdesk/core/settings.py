"""Settings for the jobdesk engine.

``JobdeskBaseSettings`` holds what every jobdesk process shares (host,
port, log level, data directory); ``JobdeskSettings`` adds the engine
knobs the router and access gate read.

Order of precedence (highest → lowest):
    1. Environment variables (``JOBDESK_ACCESS_CONTROL_ENABLED`` ...)
    2. ``.env`` file
    3. Defaults below

Examples:
    >>> from jobdesk.core.settings import JobdeskSettings
    >>> settings = JobdeskSettings(access_control_enabled=False)
    >>> settings.read_only_mode
    False
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class JobdeskBaseSettings(BaseSettings):
    """Common settings shared by the API server and the CLI.

    Fields
    ──────
    host         : Bind address for the HTTP transport
    port         : Bind port for the HTTP transport
    debug        : Enable debug mode (verbose logging, error detail)
    log_level    : Structlog log level
    data_dir     : Persistent data directory
    """

    model_config = SettingsConfigDict(
        env_prefix="JOBDESK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Network ──────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 8080

    # ── Observability ────────────────────────────────────────────
    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Storage ──────────────────────────────────────────────────
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".jobdesk",
        description="Persistent data directory",
    )


class JobdeskSettings(JobdeskBaseSettings):
    """Engine settings consumed through :class:`~jobdesk.ops.context.ServerContext`."""

    # ── Access control ───────────────────────────────────────────
    access_control_enabled: bool = Field(
        default=True,
        description="When False every capability check is allowed",
    )
    read_only_mode: bool = Field(
        default=False,
        description="Grant only view-job and hide unpublished entities",
    )
    login_url: str = Field(default="/login", description="Authentication collaborator URL")

    # ── Store ────────────────────────────────────────────────────
    store_backend: str = Field(default="sqlite", description="'sqlite' or 'memory'")
    database_path: str | None = Field(
        default=None,
        description="SQLite file for the entity store (defaults to data_dir/jobdesk.db)",
    )

    # ── Operations ───────────────────────────────────────────────
    clone_disabled_by_default: bool = Field(default=True)
    log_file: str | None = Field(default=None, description="Server log streamed by status.view_log")
    log_view_lines: int = Field(default=100, ge=1, description="Default tail size for view_log")

    def resolved_database_path(self) -> str:
        """Return the SQLite path, falling back to ``data_dir/jobdesk.db``."""
        if self.database_path:
            return self.database_path
        return str(Path(self.data_dir).expanduser() / "jobdesk.db")
