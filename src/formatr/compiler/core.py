"""Compile a parsed template into a flat render plan.

Compilation does everything that can fail without a context:

1. Parse the source (``ParseError``).
2. Expand ``{> name}`` includes from the partial registry
   (``IncludeError`` for unknown partials and include cycles).
3. Look up every filter and check its argument count
   (``UnknownFilterError``, ``FilterArityError``).
4. Reject async filters in sync templates (``AsyncFilterError``).
5. Bind the locale into locale-aware filters.
6. Merge adjacent literals.

The result is a tuple of parts: plain ``str`` literals and
``BoundPlaceholder`` objects. Render loops only dispatch on these two.

Thread-Safety:
A ``Compiler`` is used for one compile call. Its output is immutable.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from difflib import get_close_matches
from functools import partial
from typing import Any

from formatr.environment.exceptions import (
    AsyncFilterError,
    ErrorCode,
    FilterArityError,
    IncludeError,
    UnknownFilterError,
)
from formatr.environment.registry import FilterRegistry
from formatr.filters import FilterDefinition
from formatr.nodes import FilterCall, Include, Literal, Node, Placeholder
from formatr.parser import parse

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BoundFilter:
    """A filter call resolved against the registry."""

    definition: FilterDefinition
    call: FilterCall
    fn: Callable[..., Any]

    @property
    def name(self) -> str:
        return self.call.name

    @property
    def args(self) -> tuple[str, ...]:
        return self.call.args


@dataclass(frozen=True, slots=True)
class BoundPlaceholder:
    """A placeholder ready to render.

    ``source`` is the text the node was parsed from: the template itself,
    or the partial it was included from. Error positions refer to it.
    """

    node: Placeholder
    source: str
    filters: tuple[BoundFilter, ...]

    @property
    def path(self) -> tuple[str, ...]:
        return self.node.path

    @property
    def key(self) -> str:
        return self.node.key

    @property
    def raw(self) -> str:
        return self.node.raw(self.source)

    @property
    def is_async(self) -> bool:
        return any(f.definition.is_async for f in self.filters)


Part = str | BoundPlaceholder


def expand_includes(
    nodes: tuple[Node, ...],
    source: str,
    partials: Mapping[str, str],
) -> Iterator[tuple[Node, str]]:
    """Yield ``(node, source)`` pairs with every ``Include`` replaced by
    the nodes of its partial, depth first."""
    stack: list[tuple[Iterator[Node], str, tuple[str, ...]]] = [(iter(nodes), source, ())]
    while stack:
        pending, current_source, chain = stack[-1]
        node = next(pending, None)
        if node is None:
            stack.pop()
            continue
        if not isinstance(node, Include):
            yield node, current_source
            continue

        name = node.name
        if name in chain:
            cycle = (*chain, name)
            raise IncludeError(
                f"Circular include: {' -> '.join(cycle)}",
                chain=cycle,
                code=ErrorCode.CIRCULAR_INCLUDE,
                offset=node.start,
                source=current_source,
            )
        partial_source = partials.get(name)
        if partial_source is None:
            matches = get_close_matches(name, list(partials), n=1)
            raise IncludeError(
                f"Unknown template '{name}'",
                chain=chain,
                offset=node.start,
                source=current_source,
                suggestion=f"Did you mean '{matches[0]}'?" if matches else "Register it with register_template()",
            )
        stack.append((iter(parse(partial_source).nodes), partial_source, (*chain, name)))


class Compiler:
    """Turns template source into a tuple of render parts.

    Example:
        >>> Compiler(FilterRegistry(), {}).compile("Hi {name|upper}!")
        ('Hi ', BoundPlaceholder(...), '!')
    """

    __slots__ = ("_allow_async", "_locale", "_partials", "_registry")

    def __init__(
        self,
        registry: FilterRegistry,
        partials: Mapping[str, str],
        *,
        locale: str | None = None,
        allow_async: bool = False,
    ):
        self._registry = registry
        self._partials = partials
        self._locale = locale
        self._allow_async = allow_async

    def compile(self, source: str) -> tuple[Part, ...]:
        root = parse(source)
        parts: list[Part] = []
        for node, node_source in expand_includes(root.nodes, source, self._partials):
            if isinstance(node, Literal):
                if parts and isinstance(parts[-1], str):
                    parts[-1] += node.text
                else:
                    parts.append(node.text)
            elif isinstance(node, Placeholder):
                parts.append(self._bind_placeholder(node, node_source))
        logger.debug("Compiled template (%d parts, async=%s)", len(parts), self._allow_async)
        return tuple(parts)

    def _bind_placeholder(self, node: Placeholder, source: str) -> BoundPlaceholder:
        bound = tuple(self._bind_filter(call, source) for call in node.filters)
        return BoundPlaceholder(node, source, bound)

    def _bind_filter(self, call: FilterCall, source: str) -> BoundFilter:
        # Point at the filter name, just after '|'.
        offset = call.start + 1
        definition = self._registry.get(call.name)
        if definition is None:
            raise UnknownFilterError(
                call.name,
                self._registry.suggest(call.name),
                offset=offset,
                source=source,
            )
        if not definition.accepts(len(call.args)):
            raise FilterArityError(
                call.name,
                definition.describe_arity(),
                len(call.args),
                offset=offset,
                source=source,
            )
        if definition.is_async and not self._allow_async:
            raise AsyncFilterError(call.name, offset=offset, source=source)
        fn = definition.fn
        if definition.locale_aware:
            fn = partial(fn, locale=self._locale)
        return BoundFilter(definition, call, fn)
