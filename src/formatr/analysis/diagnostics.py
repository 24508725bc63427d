"""Diagnostic records produced by the analyzer."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from formatr.environment import terminal
from formatr.utils.position import Range

Severity = Literal["error", "warning", "info"]


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """One finding, positioned in the source.

    Attributes:
        code: Stable kebab-case code, shared with ``ErrorCode`` values.
        message: Human-readable description.
        severity: ``error``, ``warning`` or ``info``.
        range: 1-based start/end positions (end exclusive).
        data: Structured details (filter name, arity, suggestions, path).
    """

    code: str
    message: str
    severity: Severity
    range: Range
    data: Mapping[str, Any] = field(default_factory=dict)

    @property
    def line(self) -> int:
        return self.range.start.line

    @property
    def column(self) -> int:
        return self.range.start.column


@dataclass(frozen=True, slots=True)
class AnalysisReport:
    """Diagnostics for one source, in source order."""

    messages: tuple[Diagnostic, ...] = ()

    def __iter__(self):
        return iter(self.messages)

    def __len__(self) -> int:
        return len(self.messages)

    def __bool__(self) -> bool:
        return bool(self.messages)

    @property
    def errors(self) -> tuple[Diagnostic, ...]:
        return tuple(m for m in self.messages if m.severity == "error")

    @property
    def warnings(self) -> tuple[Diagnostic, ...]:
        return tuple(m for m in self.messages if m.severity == "warning")

    @property
    def has_errors(self) -> bool:
        return any(m.severity == "error" for m in self.messages)

    def by_code(self, code: str) -> tuple[Diagnostic, ...]:
        return tuple(m for m in self.messages if m.code == code)

    def format(self, source: str | None = None, name: str = "<template>") -> str:
        """Terminal listing, one block per diagnostic.

        Format::

            error[unknown-filter]: Unknown filter 'uper'. Did you mean 'upper'?
              --> <template>:1:9
               |
              1 | Hi {name|uper}
               |         ^
        """
        blocks = []
        for m in self.messages:
            lines = [
                f"{terminal.severity(m.severity)}[{terminal.code(m.code)}]: {m.message}",
                f"  --> {terminal.location(f'{name}:{m.range.start}')}",
            ]
            if source is not None:
                text = terminal.snippet(source, m.line, m.column)
                if text:
                    lines.append(text)
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)
