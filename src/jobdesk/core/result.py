"""
Result envelope for entity store calls.

Every :class:`~jobdesk.core.protocols.EntityStore` method returns
``Ok(value)`` on success or ``Err(StoreError)`` on failure, so a handler
decides between "report this one entity as failed" and "abort the whole
request" by inspecting ``StoreError.kind`` instead of guessing from an
exception type.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     Result[T]                                │
        ├─────────────────┬─────────────────┬─────────────────────────┤
        │     Ok[T]       │     Err[T]      │     Utilities           │
        ├─────────────────┼─────────────────┼─────────────────────────┤
        │ • value: T      │ • error: Exc    │ • try_result()          │
        │ • map()         │ • map()         │ • partition_results()   │
        │ • unwrap()      │ • unwrap()      │                         │
        └─────────────────┴─────────────────┴─────────────────────────┘

Examples:
    >>> from jobdesk.core.result import Ok, Err
    >>> match store.get_job("20240101-0000001"):
    ...     case Ok(job):
    ...         print(job.state)
    ...     case Err(error):
    ...         print(error.kind)

    >>> Ok(10).map(lambda x: x * 2).unwrap()
    20
    >>> Err(ValueError("oops")).map(lambda x: x * 2).is_err()
    True
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from jobdesk.core.errors import JobdeskError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """Transform the value if Ok."""
        return Ok(f(self.value))

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "value": self.value}

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """Failed result containing an error; ``map`` short-circuits."""

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def map(self, f: Callable[[T], U]) -> Result[U]:
        return Err(self.error)

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.error, JobdeskError):
            return {"ok": False, "error": self.error.to_dict()}
        return {
            "ok": False,
            "error": {
                "error_type": type(self.error).__name__,
                "message": str(self.error),
            },
        }

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


def try_result(f: Callable[[], T]) -> Result[T]:
    """Run *f* and wrap its return value or raised exception."""
    try:
        return Ok(f())
    except Exception as e:
        return Err(e)


def partition_results(
    results: list[Result[T]],
) -> tuple[list[T], list[Exception]]:
    """Split results into successful values and errors.

    Used for partial-success reporting, where every item is kept
    regardless of its siblings' outcomes.

    >>> values, errors = partition_results([Ok(1), Err(ValueError("a")), Ok(2)])
    >>> values
    [1, 2]
    >>> len(errors)
    1
    """
    values = []
    errors = []
    for result in results:
        match result:
            case Ok(value):
                values.append(value)
            case Err(error):
                errors.append(error)
    return values, errors


__all__ = [
    "Ok",
    "Err",
    "Result",
    "try_result",
    "partition_results",
]
