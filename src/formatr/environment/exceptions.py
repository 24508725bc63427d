"""Exceptions for the formatr template system.

Exception Hierarchy:
FormatrError (base)
├── CompileError               # Raised by compile()/compile_async(), never at render time
│   ├── ParseError             # Malformed source
│   ├── UnknownFilterError     # Filter name not in the registry
│   ├── FilterArityError       # Wrong number of filter arguments
│   ├── AsyncFilterError       # Async filter bound into a sync template
│   └── IncludeError           # Unknown or circular {> partial}
├── RenderError                # Raised by render(); aborts the whole render
│   ├── MissingKeyError        # on_missing="error" / strict_keys
│   ├── LocaleFormatError      # Invalid locale-filter argument or value
│   └── FilterExecutionError   # Any other exception escaping a filter
└── PluginError                # Bad plugin, unmet dependency, async hook in a sync pipeline

Error Messages:
Every error carries an ``ErrorCode`` and, when the AST allows it, a
1-based ``Position``. When the template source is known the message ends
with the offending line and a caret:

    ```
    MissingKeyError: Missing key 'name'
      --> <template>:1:7
       |
      1 | Hello {name}!
       |       ^
    ```

"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import Any

from formatr.environment import terminal
from formatr.utils.position import Position, offset_to_position


class ErrorCode(Enum):
    """Stable, searchable codes shared by exceptions and analyzer diagnostics."""

    # Parse errors
    UNTERMINATED_PLACEHOLDER = "unterminated-placeholder"
    INVALID_IDENTIFIER = "invalid-identifier"
    EMPTY_PLACEHOLDER = "empty-placeholder"
    UNEXPECTED_CHARACTER = "unexpected-character"
    UNTERMINATED_STRING = "unterminated-string"
    INVALID_ESCAPE = "invalid-escape"

    # Compile-time validation
    UNKNOWN_FILTER = "unknown-filter"
    FILTER_ARITY_MISMATCH = "filter-arity-mismatch"
    ASYNC_FILTER = "async-filter-in-sync-template"
    UNKNOWN_TEMPLATE = "unknown-template"
    CIRCULAR_INCLUDE = "circular-include"

    # Render-time
    MISSING_KEY = "missing-key"
    LOCALE_FORMAT_ERROR = "locale-format-error"
    FILTER_ERROR = "filter-error"

    # Analyzer-only
    SUSPICIOUS_FILTER = "suspicious-filter"

    # Plugins
    PLUGIN_ERROR = "plugin-error"

    @property
    def category(self) -> str:
        """Coarse grouping: 'parse', 'compile', 'render', 'lint' or 'plugin'."""
        if self in _PARSE_CODES:
            return "parse"
        if self in _RENDER_CODES:
            return "render"
        if self is ErrorCode.SUSPICIOUS_FILTER:
            return "lint"
        if self is ErrorCode.PLUGIN_ERROR:
            return "plugin"
        return "compile"


_PARSE_CODES = frozenset(
    {
        ErrorCode.UNTERMINATED_PLACEHOLDER,
        ErrorCode.INVALID_IDENTIFIER,
        ErrorCode.EMPTY_PLACEHOLDER,
        ErrorCode.UNEXPECTED_CHARACTER,
        ErrorCode.UNTERMINATED_STRING,
        ErrorCode.INVALID_ESCAPE,
    }
)
_RENDER_CODES = frozenset(
    {ErrorCode.MISSING_KEY, ErrorCode.LOCALE_FORMAT_ERROR, ErrorCode.FILTER_ERROR}
)


class FormatrError(Exception):
    """Base exception for all formatr errors.

    Attributes:
        message: Error description without location decoration.
        code: ErrorCode identifying the failure.
        offset: 0-based character offset into ``source``, if known.
        position: 1-based ``Position`` derived from ``offset``, if known.
        source: Template source, used to render a snippet.
        suggestion: Optional actionable hint.
    """

    code: ErrorCode = ErrorCode.FILTER_ERROR

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        offset: int | None = None,
        source: str | None = None,
        suggestion: str | None = None,
    ):
        self.message = message
        if code is not None:
            self.code = code
        self.offset = offset
        self.source = source
        self.suggestion = suggestion
        super().__init__(self._format_message())

    @property
    def position(self) -> Position | None:
        if self.offset is None or self.source is None:
            return None
        return offset_to_position(self.source, self.offset)

    def locate(self, offset: int, source: str) -> FormatrError:
        """Attach a source location if the error does not have one yet."""
        if self.offset is None:
            self.offset = offset
            self.source = source
            self.args = (self._format_message(),)
        return self

    def _format_message(self) -> str:
        position = self.position
        if position is None:
            return self.message
        parts = [self.message, f"  --> <template>:{position}"]
        if self.source is not None:
            text = terminal.strip_colors(terminal.snippet(self.source, position.line, position.column))
            if text:
                parts.append(text)
        if self.suggestion:
            parts.append(f"  Hint: {self.suggestion}")
        return "\n".join(parts)

    def format_compact(self) -> str:
        """Colourised one-screen summary for terminal display.

        Format::

            missing-key: Missing key 'name'
              --> <template>:1:7
               |
              1 | Hello {name}!
               |       ^
        """
        parts = [f"{terminal.code(self.code.value)}: {self.message}"]
        position = self.position
        if position is not None:
            parts.append(f"  --> {terminal.location(f'<template>:{position}')}")
            if self.source is not None:
                text = terminal.snippet(self.source, position.line, position.column)
                if text:
                    parts.append(text)
        if self.suggestion:
            parts.append(f"  {terminal.hint('Hint:')} {self.suggestion}")
        return "\n".join(parts)


class CompileError(FormatrError):
    """Template could not be compiled. No partial template is ever returned."""


class ParseError(CompileError):
    """Malformed template source.

    The ``code`` distinguishes the failure (unterminated placeholder,
    invalid identifier, ...). ``offset`` points at the offending character,
    or at the opening ``{`` for unterminated placeholders.
    """

    code = ErrorCode.INVALID_IDENTIFIER

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        offset: int,
        source: str,
        *,
        end: int | None = None,
        suggestion: str | None = None,
    ):
        self.end = end if end is not None else offset + 1
        super().__init__(message, code=code, offset=offset, source=source, suggestion=suggestion)


class UnknownFilterError(CompileError):
    """Placeholder references a filter that is not registered.

    Example:
        >>> compile("{name|uper}")
        UnknownFilterError: Unknown filter 'uper'. Did you mean 'upper'?
    """

    code = ErrorCode.UNKNOWN_FILTER

    def __init__(self, name: str, suggestions: Sequence[str] = (), **kwargs: Any):
        self.name = name
        self.suggestions = tuple(suggestions)
        message = f"Unknown filter '{name}'"
        if self.suggestions:
            message += f". Did you mean '{self.suggestions[0]}'?"
        super().__init__(message, **kwargs)


class FilterArityError(CompileError):
    """Filter called with an argument count it does not accept."""

    code = ErrorCode.FILTER_ARITY_MISMATCH

    def __init__(self, name: str, expected: str, got: int, **kwargs: Any):
        self.name = name
        self.expected = expected
        self.got = got
        noun = "argument" if expected == "1" else "arguments"
        super().__init__(
            f"Filter '{name}' expects {expected} {noun}, got {got}",
            **kwargs,
        )


class AsyncFilterError(CompileError):
    """Async filter used in a template compiled with ``compile()``."""

    code = ErrorCode.ASYNC_FILTER

    def __init__(self, name: str, **kwargs: Any):
        self.name = name
        super().__init__(
            f"Filter '{name}' is async and cannot run in a synchronous template",
            suggestion="Compile with compile_async() and await render()",
            **kwargs,
        )


class IncludeError(CompileError):
    """``{> name}`` names an unregistered partial or forms a cycle."""

    code = ErrorCode.UNKNOWN_TEMPLATE

    def __init__(self, message: str, chain: Sequence[str] = (), **kwargs: Any):
        self.chain = tuple(chain)
        super().__init__(message, **kwargs)


class RenderError(FormatrError):
    """Render call failed. Render is all-or-nothing: no partial output."""


class MissingKeyError(RenderError):
    """Placeholder path did not resolve and the policy is ``error``."""

    code = ErrorCode.MISSING_KEY

    def __init__(self, key: str, **kwargs: Any):
        self.key = key
        kwargs.setdefault(
            "suggestion",
            f"Pass '{key}' in the context, or compile with on_missing='keep'",
        )
        super().__init__(f"Missing key '{key}'", **kwargs)


class LocaleFormatError(RenderError):
    """Locale-aware filter got an invalid argument or value.

    Raised for unknown currency codes, unknown locales or time zones,
    unparseable dates and malformed JSON option strings.
    """

    code = ErrorCode.LOCALE_FORMAT_ERROR


class FilterExecutionError(RenderError):
    """Wraps an arbitrary exception raised inside a filter.

    The original exception is chained as ``__cause__``.
    """

    code = ErrorCode.FILTER_ERROR

    def __init__(
        self,
        filter_name: str,
        key: str,
        args: Sequence[str],
        cause: BaseException,
        **kwargs: Any,
    ):
        self.filter_name = filter_name
        self.key = key
        self.filter_args = tuple(args)
        self.cause = cause
        super().__init__(
            f"Error in filter '{filter_name}' in placeholder '{{{key}}}': "
            f"{type(cause).__name__}: {cause}",
            **kwargs,
        )


class PluginError(FormatrError):
    """Plugin could not be registered, or one of its hooks misbehaved.

    Covers invalid names and versions, duplicate registration, unmet or
    circular dependencies, filter conflicts under ``on_conflict="error"``
    and async hooks reached from a synchronous pipeline.
    """

    code = ErrorCode.PLUGIN_ERROR

    def __init__(self, message: str, plugin: str | None = None, **kwargs: Any):
        self.plugin = plugin
        super().__init__(message, **kwargs)
