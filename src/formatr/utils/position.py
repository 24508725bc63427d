"""Source offset to line/column mapping.

Nodes store character offsets. Errors and diagnostics report 1-based
``(line, column)`` pairs. ``LineIndex`` precomputes line starts once per
source so each lookup is a binary search.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Position:
    """1-based line/column pair."""

    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True, slots=True)
class Range:
    """Start/end positions of a source span (end is exclusive)."""

    start: Position
    end: Position


class LineIndex:
    """Offset → Position lookup for one source string.

    Example:
        >>> index = LineIndex("Hello\\n{name}")
        >>> index.position(6)
        Position(line=2, column=1)
    """

    __slots__ = ("_starts",)

    def __init__(self, source: str):
        starts = [0]
        find = source.find
        i = find("\n")
        while i != -1:
            starts.append(i + 1)
            i = find("\n", i + 1)
        self._starts = starts

    def position(self, offset: int) -> Position:
        line = bisect_right(self._starts, offset) - 1
        return Position(line + 1, offset - self._starts[line] + 1)

    def range(self, start: int, end: int) -> Range:
        return Range(self.position(start), self.position(end))


def offset_to_position(source: str, offset: int) -> Position:
    """One-shot lookup for callers that do not keep a LineIndex."""
    return LineIndex(source).position(offset)
