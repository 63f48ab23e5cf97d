"""Result type for explicit error handling.

Collaborators (git, the registry, the filesystem) fail often and in expected
ways. Instead of raising, every fallible operation returns either ``Ok(value)``
or ``Err(error)`` and the caller decides what to do, with ``isinstance`` or
``match``.

Usage:
    match resolve_tags(repo):
        case Ok(tags):
            print(f"{len(tags)} tags")
        case Err(error):
            print(f"cannot list tags: {error.message}")
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok[T]:
    """Successful outcome carrying ``value``."""

    value: T

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        """Transform the carried value."""
        return Ok(f(self.value))

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err[E]:
    """Failed outcome carrying ``error``."""

    error: E

    def map(self, f: Callable[[T], U]) -> Err[E]:
        """No-op: there is no value to transform."""
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


type Result[T, E] = Ok[T] | Err[E]
