"""
Handler return values.

Handlers never write into a shared buffer: each one returns an
:class:`Outcome` and the caller (router, transport) composes them.

Architecture:
    ::

        Outcome
        ├── status_lines : list[StatusLine]    progressive messages
        ├── body         : PageBody | ConfirmationForm | OptionsForm
        │                  | AccessDeniedBody | AuthenticationRequired
        ├── redirect     : Redirect            natural list view to show next
        └── raw          : RawStream           no page wrapper, explicit content type

Bodies are structured data for the rendering layer; nothing here
produces markup.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


class StatusLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class StatusLine:
    """One line of user-visible status."""

    level: StatusLevel
    message: str
    entity_id: str | None = None

    @classmethod
    def info(cls, message: str, entity_id: str | None = None) -> StatusLine:
        return cls(StatusLevel.INFO, message, entity_id)

    @classmethod
    def success(cls, message: str, entity_id: str | None = None) -> StatusLine:
        return cls(StatusLevel.SUCCESS, message, entity_id)

    @classmethod
    def warning(cls, message: str, entity_id: str | None = None) -> StatusLine:
        return cls(StatusLevel.WARNING, message, entity_id)

    @classmethod
    def error(cls, message: str, entity_id: str | None = None) -> StatusLine:
        return cls(StatusLevel.ERROR, message, entity_id)

    @property
    def is_error(self) -> bool:
        return self.level is StatusLevel.ERROR

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"level": self.level.value, "message": self.message}
        if self.entity_id is not None:
            result["entity_id"] = self.entity_id
        return result


# ── Bodies ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class EntityLink:
    """A link to an entity's view (``job.view_job?job_id=...``)."""

    label: str
    category: str
    operation: str
    params: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class HiddenField:
    name: str
    value: str


@dataclass(frozen=True)
class FormChoice:
    """A selectable option on an options form (checkbox or select entry)."""

    name: str
    value: str
    label: str
    selected: bool = False


@dataclass
class PageBody:
    """A named view with the data the rendering layer needs."""

    view: str
    title: str
    data: dict[str, Any] = field(default_factory=dict)
    kind: str = "page"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ConfirmationForm:
    """Yes/No prompt that carries the original selection across the round trip."""

    title: str
    prompt: str
    links: list[EntityLink] = field(default_factory=list)
    hidden: list[HiddenField] = field(default_factory=list)
    answers: tuple[str, ...] = ("Yes", "No")
    kind: str = "confirmation"

    def hidden_values(self, name: str) -> list[str]:
        return [h.value for h in self.hidden if h.name == name]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class OptionsForm:
    """First step of an options-gated flow (export fields, report generator)."""

    title: str
    prompt: str
    choices: list[FormChoice] = field(default_factory=list)
    hidden: list[HiddenField] = field(default_factory=list)
    inputs: list[dict[str, Any]] = field(default_factory=list)
    kind: str = "options"

    def hidden_values(self, name: str) -> list[str]:
        return [h.value for h in self.hidden if h.name == name]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AccessDeniedBody:
    capability: str
    message: str
    kind: str = "access_denied"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AuthenticationRequired:
    login_url: str
    message: str = "You must authenticate before accessing the administrative interface."
    kind: str = "authentication_required"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


Body = PageBody | ConfirmationForm | OptionsForm | AccessDeniedBody | AuthenticationRequired


# ── Navigation and raw output ────────────────────────────────────────────


@dataclass(frozen=True)
class Redirect:
    """Where to go after a mutation: a list view plus its parameters."""

    category: str
    operation: str
    params: dict[str, list[str]] = field(default_factory=dict)

    @classmethod
    def to(cls, category: str, operation: str, **params: str | list[str] | None) -> Redirect:
        values: dict[str, list[str]] = {}
        for name, value in params.items():
            if value is None:
                continue
            values[name] = [value] if isinstance(value, str) else list(value)
        return cls(category, operation, values)

    def to_dict(self) -> dict[str, Any]:
        return {"category": self.category, "operation": self.operation, "params": self.params}


@dataclass
class RawStream:
    """Output sent without the page wrapper."""

    content_type: str
    chunks: Iterable[bytes]
    filename: str | None = None

    @classmethod
    def text(cls, text: str, *, content_type: str = "text/plain", filename: str | None = None) -> RawStream:
        return cls(content_type=content_type, chunks=[text.encode("utf-8")], filename=filename)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self.chunks)

    def read_all(self) -> bytes:
        return b"".join(self.chunks)


@dataclass
class Outcome:
    """What a handler produced."""

    status_lines: list[StatusLine] = field(default_factory=list)
    body: Body | None = None
    redirect: Redirect | None = None
    raw: RawStream | None = None

    @classmethod
    def page(cls, body: Body, status_lines: Iterable[StatusLine] = ()) -> Outcome:
        return cls(status_lines=list(status_lines), body=body)

    @classmethod
    def redirect_to(cls, redirect: Redirect, status_lines: Iterable[StatusLine] = ()) -> Outcome:
        return cls(status_lines=list(status_lines), redirect=redirect)

    @classmethod
    def stream(cls, raw: RawStream, status_lines: Iterable[StatusLine] = ()) -> Outcome:
        return cls(status_lines=list(status_lines), raw=raw)

    @classmethod
    def failure(cls, message: str, redirect: Redirect | None = None) -> Outcome:
        return cls(status_lines=[StatusLine.error(message)], redirect=redirect)

    def after(self, status_lines: Iterable[StatusLine]) -> Outcome:
        """Return this outcome with *status_lines* placed in front of its own."""
        return Outcome(
            status_lines=[*status_lines, *self.status_lines],
            body=self.body,
            redirect=self.redirect,
            raw=self.raw,
        )

    @property
    def has_errors(self) -> bool:
        return any(line.is_error for line in self.status_lines)

    def messages(self) -> list[str]:
        return [line.message for line in self.status_lines]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"status": [line.to_dict() for line in self.status_lines]}
        if self.body is not None:
            result["body"] = self.body.to_dict()
        if self.redirect is not None:
            result["redirect"] = self.redirect.to_dict()
        return result


__all__ = [
    "StatusLevel",
    "StatusLine",
    "EntityLink",
    "HiddenField",
    "FormChoice",
    "PageBody",
    "ConfirmationForm",
    "OptionsForm",
    "AccessDeniedBody",
    "AuthenticationRequired",
    "Body",
    "Redirect",
    "RawStream",
    "Outcome",
]
