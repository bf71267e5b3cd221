"""Result and Option types used instead of exceptions for expected failures.

A ``Result`` is either ``Ok(value)`` or ``Err(error)``; an ``Option`` is either
``Some(value)`` or ``NOTHING``. Both are frozen dataclasses with
``__match_args__`` so callers can use structural pattern matching::

    match store.get(key):
        case Ok(Some(value)):
            ...
        case Ok(Nothing()):
            ...
        case Err(error):
            ...
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result carrying a value."""
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def map(self, fn: Callable[[T], U]) -> "Ok[U]":
        return Ok(fn(self.value))

    def map_err(self, fn: Callable) -> "Ok[T]":
        return self

    def and_then(self, fn: Callable[[T], "Result[U, E]"]) -> "Result[U, E]":
        return fn(self.value)

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed result carrying an error value."""
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def map(self, fn: Callable) -> "Err[E]":
        return self

    def map_err(self, fn: Callable[[E], F]) -> "Err[F]":
        return Err(fn(self.error))

    def and_then(self, fn: Callable) -> "Err[E]":
        return self

    def unwrap_or(self, default: T) -> T:
        return default


Result: TypeAlias = Ok[T] | Err[E]


@dataclass(frozen=True, slots=True)
class Some(Generic[T]):
    """Present optional value."""
    value: T

    def is_some(self) -> bool:
        return True

    def is_nothing(self) -> bool:
        return False

    def map(self, fn: Callable[[T], U]) -> "Some[U]":
        return Some(fn(self.value))

    def unwrap_or(self, default: T) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Nothing:
    """Absent optional value. Use the ``NOTHING`` singleton."""

    def is_some(self) -> bool:
        return False

    def is_nothing(self) -> bool:
        return True

    def map(self, fn: Callable) -> "Nothing":
        return self

    def unwrap_or(self, default: T) -> T:
        return default


NOTHING = Nothing()

Option: TypeAlias = Some[T] | Nothing


def from_optional(value: T | None) -> Option[T]:
    """Wrap a nullable value in an Option."""
    return NOTHING if value is None else Some(value)
