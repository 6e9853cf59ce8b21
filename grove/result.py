"""Tagged result values for fallible worktree and provider calls.

Callers pattern-match on ``Ok`` / ``Err`` (or use :func:`is_ok`) and decide
per call site whether a failure aborts the operation (``unwrap()``) or is
logged and skipped.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, NoReturn, TypeVar

from grove.exceptions import ErrorKind, GroveError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def map(self, fn: Callable[[T], U]) -> Ok[U]:
        return Ok(fn(self.value))


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying an error kind, message and optional exception."""

    kind: ErrorKind
    message: str
    error: GroveError | None = None

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self) -> NoReturn:
        """Raise the carried exception, or a GroveError built from the message."""
        if self.error is not None:
            raise self.error
        raise GroveError(self.message)

    def unwrap_or(self, default: T) -> T:
        return default

    def map(self, fn: Callable[[object], object]) -> Err:
        return self

    @classmethod
    def from_error(cls, error: GroveError) -> Err:
        return cls(kind=error.kind, message=error.message, error=error)


Result = Ok[T] | Err


def is_ok(result: Ok[T] | Err) -> bool:
    """Return True if *result* is an ``Ok``."""
    return isinstance(result, Ok)
