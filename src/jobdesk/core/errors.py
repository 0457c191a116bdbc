"""
Structured error types for the jobdesk engine.

Provides the typed error hierarchy used by every operation handler.
Instead of generic exceptions that lose context, JobdeskError and its
subclasses carry a category, structured context, and a chained cause.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure kind the console
      reports differently (validation, per-item, store).
    - **Errors as values at the store seam:** the entity store returns
      ``Err(StoreError)`` instead of raising; ``StoreErrorKind`` tells a
      per-item failure apart from an unavailable store.
    - **Rich Context:** Errors carry entity IDs and operation keys for logs.
    - **Error Chaining:** The original exception is kept as ``cause``.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       JobdeskError                               │
        │              (category, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ValidationError                         StoreError             │
        │  (VALIDATION)                            (STORE, kind=...)      │
        │                          │                   │                   │
        │                   BusinessRuleError   StoreUnavailableError     │
        │                   (BUSINESS_RULE)     (kind=UNAVAILABLE)        │
        │                                                                  │
        │  PerItemFailure  (BATCH): recorded by the batch executor,      │
        │                            never raised past it                 │
        └─────────────────────────────────────────────────────────────────┘

Propagation:
    - ValidationError: resolved at the boundary of the handler that
      detected it (rendered as a status line).
    - PerItemFailure: never escapes the batch executor.
    - StoreUnavailableError: the only error allowed to abort a multi-step
      flow; the router turns it into a status line.

Tags:
    error-handling, exception-hierarchy, error-context, jobdesk
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and logging.

    Examples:
        >>> ErrorCategory.VALIDATION.value
        'VALIDATION'
        >>> StoreError("gone", kind=StoreErrorKind.NOT_FOUND).category
        <ErrorCategory.STORE: 'STORE'>
    """

    VALIDATION = "VALIDATION"
    BUSINESS_RULE = "BUSINESS_RULE"
    STORE = "STORE"
    BATCH = "BATCH"
    INTERNAL = "INTERNAL"


class StoreErrorKind(str, Enum):
    """Why an entity store call failed.

    ``UNAVAILABLE`` is the only kind that aborts a whole request when it
    happens outside of a batch; every other kind is an ordinary, reportable
    failure for a single entity.
    """

    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INVALID = "INVALID"
    UNAVAILABLE = "UNAVAILABLE"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        operation: Operation key being executed (``"job.delete_job"``).
        entity_id: Identifier of the entity the error concerns.
        entity_kind: ``"job"``, ``"optimizing_job"``, ``"folder"``, ...
        request_id: Request the error was raised in.
        metadata: Any additional key/value pairs.
    """

    operation: str | None = None
    entity_id: str | None = None
    entity_kind: str | None = None
    request_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Return all non-None fields merged with metadata."""
        result: dict[str, Any] = {}
        for key in ("operation", "entity_id", "entity_kind", "request_id"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class JobdeskError(Exception):
    """
    Base exception for all jobdesk errors.

    Every error carries:
    - **category:** ErrorCategory for classification
    - **context:** ErrorContext with structured metadata
    - **cause:** Optional underlying exception for chaining

    Subclasses set ``default_category``.

    Examples:
        >>> error = JobdeskError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> error = ValidationError("No jobs selected")
        >>> error.with_context(operation="job.mass_op").context.operation
        'job.mass_op'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> JobdeskError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION
# =============================================================================


class ValidationError(JobdeskError):
    """A required parameter is missing or invalid."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str, *, field: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.field = field

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        return result


class BusinessRuleError(ValidationError):
    """The entity exists but its current state forbids the mutation."""

    default_category = ErrorCategory.BUSINESS_RULE


# =============================================================================
# STORE
# =============================================================================


class StoreError(JobdeskError):
    """An entity store call failed.

    Returned inside ``Err`` by every store method; never raised by the
    store itself.
    """

    default_category = ErrorCategory.STORE

    def __init__(
        self,
        message: str,
        *,
        kind: StoreErrorKind = StoreErrorKind.UNAVAILABLE,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.kind = kind

    @property
    def is_unavailable(self) -> bool:
        return self.kind is StoreErrorKind.UNAVAILABLE

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["kind"] = self.kind.value
        return result


class StoreUnavailableError(StoreError):
    """The store failed on a non-batch read; the request is aborted."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("kind", StoreErrorKind.UNAVAILABLE)
        super().__init__(message, **kwargs)


def not_found(entity_kind: str, entity_id: str) -> StoreError:
    """Build the standard NOT_FOUND store error."""
    return StoreError(
        f"No {entity_kind.replace('_', ' ')} with ID {entity_id!r} exists",
        kind=StoreErrorKind.NOT_FOUND,
        context=ErrorContext(entity_id=entity_id, entity_kind=entity_kind),
    )


# =============================================================================
# BATCH
# =============================================================================


class PerItemFailure(JobdeskError):
    """One identifier's mutation failed inside a batch."""

    default_category = ErrorCategory.BATCH

    def __init__(self, entity_id: str, reason: str, **kwargs: Any):
        super().__init__(f"{entity_id}: {reason}", **kwargs)
        self.entity_id = entity_id
        self.reason = reason


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, JobdeskError):
        return error.category
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    if isinstance(error, (ConnectionError, OSError)):
        return ErrorCategory.STORE
    return ErrorCategory.INTERNAL


__all__ = [
    "ErrorCategory",
    "StoreErrorKind",
    "ErrorContext",
    "JobdeskError",
    "ValidationError",
    "BusinessRuleError",
    "StoreError",
    "StoreUnavailableError",
    "PerItemFailure",
    "not_found",
    "categorize_error",
]
