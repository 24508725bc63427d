"""Filter definitions.

A filter is a closed tagged variant: ``FilterKind.SYNC`` or
``FilterKind.ASYNC``, plus an explicit argument-count contract. Both are
checked when a template is compiled, never inferred at render time.

Plain callables passed in ``filters={...}`` are normalized once, at
registration: coroutine functions become ASYNC, everything else SYNC, and
neither gets an arity constraint. Use the decorators to declare one:

    >>> @sync_filter(arity=1)
    ... def repeat(value, times):
    ...     return str(value) * int(times)

    >>> @async_filter(name="lookup")
    ... async def lookup_user(user_id):
    ...     return await db.fetch_name(user_id)
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class FilterKind(Enum):
    SYNC = "sync"
    ASYNC = "async"


@dataclass(frozen=True, slots=True)
class FilterDefinition:
    """A named filter and its calling contract.

    Attributes:
        name: Name used after ``|`` in templates.
        fn: ``fn(value, *args) -> value``; for ASYNC filters, returns an awaitable.
        kind: SYNC or ASYNC.
        arity: Exact number of raw arguments, or None for a range.
        min_args: Lower bound when ``arity`` is None.
        max_args: Upper bound when ``arity`` is None (None = unbounded).
        locale_aware: If True, ``fn`` also receives ``locale=`` (the
            compile-time or default locale) as a keyword argument.

    Equality and hashing compare ``fn`` by identity, so a definition can be
    part of a cache fingerprint.
    """

    name: str
    fn: Callable[..., Any]
    kind: FilterKind = FilterKind.SYNC
    arity: int | None = None
    min_args: int = 0
    max_args: int | None = None
    locale_aware: bool = False

    def __post_init__(self) -> None:
        if self.arity is not None and self.arity < 0:
            raise ValueError(f"Filter '{self.name}': arity must be >= 0")
        if self.max_args is not None and self.max_args < self.min_args:
            raise ValueError(f"Filter '{self.name}': max_args < min_args")

    @property
    def is_async(self) -> bool:
        return self.kind is FilterKind.ASYNC

    def accepts(self, count: int) -> bool:
        if self.arity is not None:
            return count == self.arity
        if count < self.min_args:
            return False
        return self.max_args is None or count <= self.max_args

    def describe_arity(self) -> str:
        """Human form of the contract: '2', '1-3', 'at least 1'."""
        if self.arity is not None:
            return str(self.arity)
        if self.max_args is None:
            return f"at least {self.min_args}"
        if self.min_args == self.max_args:
            return str(self.min_args)
        return f"{self.min_args}-{self.max_args}"

    def renamed(self, name: str) -> FilterDefinition:
        return replace(self, name=name)


def _make_decorator(kind: FilterKind, **contract: Any) -> Callable[[Callable[..., Any]], FilterDefinition]:
    name = contract.pop("name", None)

    def decorator(fn: Callable[..., Any]) -> FilterDefinition:
        return FilterDefinition(name=name or fn.__name__, fn=fn, kind=kind, **contract)

    return decorator


def sync_filter(
    *,
    name: str | None = None,
    arity: int | None = None,
    min_args: int = 0,
    max_args: int | None = None,
    locale_aware: bool = False,
) -> Callable[[Callable[..., Any]], FilterDefinition]:
    """Decorator turning a function into a SYNC ``FilterDefinition``."""
    return _make_decorator(
        FilterKind.SYNC,
        name=name,
        arity=arity,
        min_args=min_args,
        max_args=max_args,
        locale_aware=locale_aware,
    )


def async_filter(
    *,
    name: str | None = None,
    arity: int | None = None,
    min_args: int = 0,
    max_args: int | None = None,
    locale_aware: bool = False,
) -> Callable[[Callable[..., Any]], FilterDefinition]:
    """Decorator turning a coroutine function into an ASYNC ``FilterDefinition``."""
    return _make_decorator(
        FilterKind.ASYNC,
        name=name,
        arity=arity,
        min_args=min_args,
        max_args=max_args,
        locale_aware=locale_aware,
    )


def as_definition(name: str, value: FilterDefinition | Callable[..., Any]) -> FilterDefinition:
    """Normalize a user-supplied filter to a ``FilterDefinition`` named ``name``."""
    if isinstance(value, FilterDefinition):
        return value if value.name == name else value.renamed(name)
    if not callable(value):
        raise TypeError(f"Filter '{name}' must be callable, got {type(value).__name__}")
    kind = FilterKind.ASYNC if inspect.iscoroutinefunction(value) else FilterKind.SYNC
    return FilterDefinition(name=name, fn=value, kind=kind)
