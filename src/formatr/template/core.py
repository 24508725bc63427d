"""Compiled templates.

``Template`` renders synchronously; ``AsyncTemplate.render`` is a
coroutine. Both are produced by ``formatr.compile`` / ``compile_async``
and are immutable: one instance can be rendered any number of times,
from any number of threads or tasks, with different contexts.

Render semantics:
- Literals are copied verbatim.
- A placeholder resolves its path, runs its filter chain left to right
  and converts the result with ``str()``.
- A path that does not resolve (or resolves to ``None``) goes to the
  missing-key policy instead of the filters.
- Any error aborts the whole render. There is never partial output.

Example:
    >>> template = compile("Hello {name|upper}!")
    >>> template({"name": "Alice"})
    'Hello ALICE!'
    >>> template.render(name="Bob")
    'Hello BOB!'
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Mapping
from typing import Any

from formatr.compiler import BoundFilter, BoundPlaceholder, Part
from formatr.environment.exceptions import (
    ErrorCode,
    FilterExecutionError,
    FormatrError,
    MissingKeyError,
    RenderError,
)
from formatr.environment.options import MissingPolicy
from formatr.template.helpers import is_missing, resolve


def _merge_context(context: Any, kwargs: dict[str, Any]) -> Any:
    if not kwargs:
        return {} if context is None else context
    if context is None:
        return kwargs
    if isinstance(context, Mapping):
        return {**context, **kwargs}
    raise TypeError("Keyword context values need a mapping (or no) positional context")


def _apply(bound: BoundFilter, part: BoundPlaceholder, value: Any) -> Any:
    try:
        return bound.fn(value, *bound.args)
    except FormatrError as err:
        err.locate(bound.call.start + 1, part.source)
        raise
    except Exception as exc:
        raise FilterExecutionError(
            bound.name,
            part.key,
            bound.args,
            exc,
            offset=bound.call.start + 1,
            source=part.source,
        ) from exc


async def _await_filter(bound: BoundFilter, part: BoundPlaceholder, pending: Any) -> Any:
    try:
        return await pending
    except FormatrError as err:
        err.locate(bound.call.start + 1, part.source)
        raise
    except Exception as exc:
        raise FilterExecutionError(
            bound.name,
            part.key,
            bound.args,
            exc,
            offset=bound.call.start + 1,
            source=part.source,
        ) from exc


class Template:
    """Synchronous compiled template.

    Attributes:
        source: The template source as passed to ``compile``.
        keys: Dotted paths of all placeholders, in order (includes expanded).
    """

    __slots__ = ("_on_missing", "_parts", "_source", "_strict_keys")

    def __init__(
        self,
        source: str,
        parts: tuple[Part, ...],
        *,
        on_missing: MissingPolicy = "keep",
        strict_keys: bool = False,
    ):
        self._source = source
        self._parts = parts
        self._on_missing = on_missing
        self._strict_keys = strict_keys

    @property
    def source(self) -> str:
        return self._source

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(p.key for p in self._parts if isinstance(p, BoundPlaceholder))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._source[:40]!r}>"

    def render(self, context: Any = None, /, **kwargs: Any) -> str:
        """Render with ``context`` (a mapping or object) and/or keyword values."""
        ctx = _merge_context(context, kwargs)
        out: list[str] = []
        for part in self._parts:
            if isinstance(part, str):
                out.append(part)
            else:
                out.append(self._render_placeholder(part, ctx))
        return "".join(out)

    __call__ = render

    def _render_placeholder(self, part: BoundPlaceholder, ctx: Any) -> str:
        value = resolve(ctx, part.path)
        if is_missing(value):
            replacement = self._missing(part)
            if inspect.isawaitable(replacement):
                if inspect.iscoroutine(replacement):
                    replacement.close()
                raise RenderError(
                    f"on_missing returned an awaitable for '{part.key}' in a synchronous template",
                    code=ErrorCode.MISSING_KEY,
                    offset=part.node.start,
                    source=part.source,
                    suggestion="Compile with compile_async() and await render()",
                )
            return str(replacement)
        for bound in part.filters:
            value = _apply(bound, part, value)
        return str(value)

    def _missing(self, part: BoundPlaceholder) -> Any:
        """Apply the missing-key policy. Callables may return awaitables
        (only ``AsyncTemplate`` awaits them)."""
        if self._strict_keys or self._on_missing == "error":
            raise MissingKeyError(part.key, offset=part.node.start, source=part.source)
        if self._on_missing == "keep":
            return part.raw
        return self._on_missing(part.key)


class AsyncTemplate(Template):
    """Compiled template whose ``render`` is a coroutine.

    Placeholders are evaluated concurrently; each filter chain runs in
    order, awaiting async filters as it goes. On the first failure the
    remaining placeholder tasks are cancelled and the error propagates.
    """

    __slots__ = ("_needs_await",)

    def __init__(self, source: str, parts: tuple[Part, ...], **kwargs: Any):
        super().__init__(source, parts, **kwargs)
        self._needs_await = callable(self._on_missing) or any(
            isinstance(p, BoundPlaceholder) and p.is_async for p in parts
        )

    async def render(self, context: Any = None, /, **kwargs: Any) -> str:  # type: ignore[override]
        ctx = _merge_context(context, kwargs)
        if not self._needs_await:
            return Template.render(self, ctx)

        tasks: dict[int, asyncio.Task[str]] = {
            i: asyncio.ensure_future(self._render_placeholder_async(part, ctx))
            for i, part in enumerate(self._parts)
            if not isinstance(part, str)
        }
        try:
            await asyncio.gather(*tasks.values())
        except BaseException:
            for task in tasks.values():
                task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)
            raise
        return "".join(
            part if isinstance(part, str) else tasks[i].result() for i, part in enumerate(self._parts)
        )

    __call__ = render

    async def _render_placeholder_async(self, part: BoundPlaceholder, ctx: Any) -> str:
        value = resolve(ctx, part.path)
        if is_missing(value):
            result = self._missing(part)
            if inspect.isawaitable(result):
                result = await result
            return str(result)
        for bound in part.filters:
            value = _apply(bound, part, value)
            if inspect.isawaitable(value):
                value = await _await_filter(bound, part, value)
        return str(value)
