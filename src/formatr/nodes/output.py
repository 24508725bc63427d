"""Output nodes: literal text, placeholders, filter calls, includes."""

from __future__ import annotations

from dataclasses import dataclass

from formatr.nodes.base import Node


@dataclass(frozen=True, slots=True)
class Literal(Node):
    """Static text copied verbatim into the output.

    ``text`` is already decoded: a ``{{`` escape in the source becomes a
    single ``{`` here, so ``text`` may be shorter than the span.
    """

    text: str


@dataclass(frozen=True, slots=True)
class FilterCall(Node):
    """One ``|name:arg,arg`` step of a filter chain.

    Arguments stay raw strings; each filter interprets its own grammar.
    """

    name: str
    args: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Placeholder(Node):
    """``{path|filter...}`` substitution."""

    path: tuple[str, ...]
    filters: tuple[FilterCall, ...] = ()

    @property
    def key(self) -> str:
        """Dotted path, as handed to missing-key callbacks."""
        return ".".join(self.path)


@dataclass(frozen=True, slots=True)
class Include(Node):
    """``{> name}`` reference to a registered partial template."""

    name: str


@dataclass(frozen=True, slots=True)
class TemplateNode:
    """Root of a parsed template: nodes in source order."""

    nodes: tuple[Node, ...]

    @property
    def placeholders(self) -> tuple[Placeholder, ...]:
        return tuple(n for n in self.nodes if isinstance(n, Placeholder))
