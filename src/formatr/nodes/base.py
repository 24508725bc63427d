"""Base node class for the formatr AST."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Node:
    """Base class for all AST nodes.

    Nodes carry the half-open ``[start, end)`` character span they were
    parsed from, so errors and diagnostics can point back at the source.
    Nodes are immutable for thread-safety.
    """

    start: int
    end: int

    def raw(self, source: str) -> str:
        """Exact source text this node was parsed from."""
        return source[self.start : self.end]
