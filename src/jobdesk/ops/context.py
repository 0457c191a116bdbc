"""
Request- and server-scoped context for operation handlers.

Every handler receives a :class:`ServerContext` (built once at startup
and injected into the router) and a :class:`RequestContext` (one per
invocation). Nothing is read from module globals.
"""

from __future__ import annotations

import itertools
import uuid
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from jobdesk.core.enums import Capability, ConfirmToken
from jobdesk.core.protocols import EntityStore, Grapher, ReportGenerator, Scheduler
from jobdesk.core.settings import JobdeskSettings

if TYPE_CHECKING:
    from jobdesk.ops.outcome import Redirect, StatusLine


class Param:
    """Form field names shared by every handler and transport."""

    CATEGORY = "category"
    OPERATION = "operation"
    SUB_OPERATION = "sub_operation"
    SUBMIT = "submit"
    CONFIRMED = "confirmed"

    JOB_ID = "job_id"
    OPTIMIZING_JOB_ID = "optimizing_job_id"
    JOB_FOLDER = "job_folder"
    VIRTUAL_JOB_FOLDER = "virtual_job_folder"
    NEW_FOLDER = "new_folder"
    TARGET_VIRTUAL_FOLDER = "target_virtual_folder"
    DESCRIPTION = "description"
    COMMENTS = "comments"
    JOB_CLASS = "job_class"

    INCLUDE_ITERATIONS = "include_iterations"
    DELETE_FOLDER_CONTENTS = "delete_folder_contents"
    MAKE_INTERDEPENDENT = "make_interdependent"

    STAT_NAME = "stat_name"
    WIDTH = "width"
    HEIGHT = "height"

    REPORT_GENERATOR = "report_generator"
    REPORT_PARAM_PREFIX = "report_param_"

    EXPORT_FIELD = "export_field"
    EXPORT_PARAMETER = "export_parameter"
    EXPORT_STAT = "export_stat"

    VIEW_LINES = "view_lines"
    VIEW_ALL = "view_all"


_TRUE_VALUES = frozenset({"1", "on", "true", "yes"})


@dataclass(frozen=True)
class Principal:
    """The authenticated caller and the capabilities it holds."""

    name: str
    capabilities: frozenset[Capability] = frozenset()

    def has(self, capability: Capability) -> bool:
        return Capability.FULL_ACCESS in self.capabilities or capability in self.capabilities


class JobIdFactory:
    """Generates ``YYYYMMDDHHMMSS-NNNNNNN`` job IDs from a clock."""

    def __init__(self, clock: Callable[[], datetime]) -> None:
        self._clock = clock
        self._counter = itertools.count(1)

    def __call__(self) -> str:
        return f"{self._clock():%Y%m%d%H%M%S}-{next(self._counter):07d}"


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class ServerContext:
    """Process-wide collaborators, constructed explicitly at startup.

    Attributes:
        store: Entity store client.
        scheduler: Job-execution runtime.
        settings: Engine settings (access control, read-only mode, log file).
        report_generators: Registry of generator factories keyed by name.
        grapher: Optional renderer for the raw graph operation.
        clock: Time source; injected so tests can pin it.
        job_id_factory: Produces IDs for cloned jobs.
    """

    store: EntityStore
    scheduler: Scheduler
    settings: JobdeskSettings = field(default_factory=JobdeskSettings)
    report_generators: dict[str, Callable[[], ReportGenerator]] = field(default_factory=dict)
    grapher: Grapher | None = None
    clock: Callable[[], datetime] = _utcnow
    job_id_factory: Callable[[], str] = field(init=False)
    started_at: datetime = field(init=False)

    def __post_init__(self) -> None:
        self.job_id_factory = JobIdFactory(self.clock)
        self.started_at = self.clock()

    @classmethod
    def from_settings(cls, settings: JobdeskSettings, **overrides: Any) -> ServerContext:
        """Build a context whose store and scheduler follow *settings*."""
        from jobdesk.core.reports import TextReportGenerator
        from jobdesk.core.store import StoreBackedScheduler, create_store

        store = overrides.pop("store", None) or create_store(settings)
        scheduler = overrides.pop("scheduler", None) or StoreBackedScheduler(store)
        ctx = cls(store=store, scheduler=scheduler, settings=settings, **overrides)
        ctx.report_generators.setdefault(TextReportGenerator.name, TextReportGenerator)
        return ctx

    def new_job_id(self) -> str:
        return self.job_id_factory()

    def register_report_generator(self, name: str, factory: Callable[[], ReportGenerator]) -> None:
        self.report_generators[name] = factory


@dataclass
class RequestContext:
    """One inbound action request.

    ``params`` is multi-valued: a field submitted several times (one
    ``job_id`` per selected checkbox) keeps every value in order.
    """

    category: str = ""
    operation: str = ""
    sub_operation: str = ""
    params: dict[str, list[str]] = field(default_factory=dict)
    principal: Principal | None = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    raw_output: bool = False
    status_listener: Callable[[StatusLine], None] | None = None

    @classmethod
    def build(
        cls,
        category: str = "",
        operation: str = "",
        params: Mapping[str, str | Iterable[str]] | None = None,
        **kwargs: Any,
    ) -> RequestContext:
        """Normalise single values and iterables into ``dict[str, list[str]]``."""
        normalised: dict[str, list[str]] = {}
        for name, value in (params or {}).items():
            if isinstance(value, str):
                normalised[name] = [value]
            else:
                normalised[name] = [str(v) for v in value]
        return cls(category=category, operation=operation, params=normalised, **kwargs)

    @classmethod
    def from_fields(cls, fields: Mapping[str, Iterable[str]], **kwargs: Any) -> RequestContext:
        """Build from raw form/query fields; routing fields are lifted out of ``params``."""
        params = {name: [str(v) for v in values] for name, values in fields.items()}

        def routing(name: str) -> str:
            values = [v.strip() for v in params.pop(name, []) if v.strip()]
            return values[0] if values else ""

        return cls(
            category=routing(Param.CATEGORY),
            operation=routing(Param.OPERATION),
            sub_operation=routing(Param.SUB_OPERATION),
            params=params,
            **kwargs,
        )

    def has(self, name: str) -> bool:
        return name in self.params

    def param(self, name: str, default: str | None = None) -> str | None:
        """First non-blank value of *name*, stripped."""
        for value in self.params.get(name, []):
            if value.strip():
                return value.strip()
        return default

    def params_list(self, name: str) -> list[str]:
        """Every non-blank value of *name*, de-duplicated in submission order."""
        seen: dict[str, None] = {}
        for value in self.params.get(name, []):
            if value.strip():
                seen.setdefault(value.strip(), None)
        return list(seen)

    def flag(self, name: str) -> bool:
        return any(v.strip().lower() in _TRUE_VALUES for v in self.params.get(name, []))

    def int_param(self, name: str, default: int) -> int:
        raw = self.param(name)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            return default

    def confirmation(self) -> ConfirmToken:
        value = self.param(Param.CONFIRMED)
        if value is None:
            return ConfirmToken.ABSENT
        if value.lower() == ConfirmToken.YES.value.lower():
            return ConfirmToken.YES
        return ConfirmToken.NO

    @property
    def operation_name(self) -> str:
        return f"{self.category}.{self.operation}" if self.operation else self.category

    def emit(self, line: StatusLine) -> None:
        if self.status_listener is not None:
            self.status_listener(line)

    def follow(self, redirect: Redirect) -> RequestContext:
        """A new request for *redirect*'s view, keeping principal and request ID."""
        return replace(
            self,
            category=redirect.category,
            operation=redirect.operation,
            sub_operation="",
            params={name: list(values) for name, values in redirect.params.items()},
            raw_output=False,
        )


__all__ = [
    "Param",
    "Principal",
    "JobIdFactory",
    "ServerContext",
    "RequestContext",
]
