"""Single-pass template parser.

Grammar (informal):

    template     := (text | '{{' | '}}' | placeholder | include)*
    placeholder  := '{' path ('|' filter)* '}'
    include      := '{' '>' ws* path ws* '}'
    path         := ident ('.' ident)*
    filter       := ident (':' arg (',' arg)*)?
    arg          := quoted | [^,|}]*
    ident        := [A-Za-z_][A-Za-z0-9_]*

The scan is one left-to-right pass. Paths, filter chains and argument
lists are gathered with loops, so deeply chained placeholders never grow
the Python stack.

Thread-Safety:
A ``Parser`` holds per-call state and is not shared. ``parse()`` builds a
fresh one on every call.
"""

from __future__ import annotations

import string

from formatr.environment.exceptions import ErrorCode, ParseError
from formatr.nodes import FilterCall, Include, Literal, Node, Placeholder, TemplateNode
from formatr.utils.constants import ARG_ESCAPES

_ID_START = frozenset(string.ascii_letters + "_")
_ID_CONT = _ID_START | frozenset(string.digits)
_ARG_END = frozenset(",|}")
_QUOTES = frozenset("\"'")
_BLANK = frozenset(" \t")

_CLOSE_HINT = "Add '}' to close the placeholder, or write '{{' for a literal brace"


class Parser:
    """Parse template source into a ``TemplateNode``.

    With ``recover=True`` the parser records each ``ParseError`` in
    ``errors``, skips past the next ``}`` and keeps going, so one pass
    reports every independent mistake. Otherwise the first error is raised.
    """

    __slots__ = ("_length", "_recover", "_source", "errors")

    def __init__(self, source: str, *, recover: bool = False):
        self._source = source
        self._length = len(source)
        self._recover = recover
        self.errors: list[ParseError] = []

    def parse(self) -> TemplateNode:
        source = self._source
        n = self._length
        nodes: list[Node] = []
        pieces: list[str] = []
        literal_start = chunk_start = i = 0

        while i < n:
            ch = source[i]
            if ch == "}":
                if i + 1 < n and source[i + 1] == "}":
                    pieces.append(source[chunk_start:i] + "}")
                    i += 2
                    chunk_start = i
                else:
                    i += 1
                continue
            if ch != "{":
                i += 1
                continue
            if i + 1 < n and source[i + 1] == "{":
                pieces.append(source[chunk_start:i] + "{")
                i += 2
                chunk_start = i
                continue

            pieces.append(source[chunk_start:i])
            if literal_start < i:
                nodes.append(Literal(literal_start, i, "".join(pieces)))
            pieces = []

            try:
                node = self._placeholder(i)
            except ParseError as err:
                if not self._recover:
                    raise
                self.errors.append(err)
                resume = self._resume_point(err)
                if resume is None:
                    literal_start = chunk_start = i = n
                    break
                literal_start = chunk_start = i = resume
                continue

            nodes.append(node)
            literal_start = chunk_start = i = node.end

        pieces.append(source[chunk_start:n])
        if literal_start < n:
            nodes.append(Literal(literal_start, n, "".join(pieces)))
        return TemplateNode(tuple(nodes))

    # -- placeholders ----------------------------------------------------

    def _placeholder(self, start: int) -> Node:
        source = self._source
        n = self._length
        i = start + 1
        if i >= n:
            raise self._unterminated(start)
        if source[i] == "}":
            raise ParseError(
                "Empty placeholder",
                ErrorCode.EMPTY_PLACEHOLDER,
                start,
                source,
                end=i + 1,
                suggestion="Write '{{}}' for literal braces",
            )
        if source[i] == ">":
            return self._include(start, i + 1)

        path, i = self._path(start, i)
        filters: list[FilterCall] = []
        while i < n and source[i] == "|":
            call, i = self._filter(start, i)
            filters.append(call)
        if i >= n:
            raise self._unterminated(start)
        if source[i] != "}":
            raise self._unexpected(start, i)
        return Placeholder(start, i + 1, tuple(path), tuple(filters))

    def _include(self, start: int, i: int) -> Include:
        source = self._source
        i = self._skip_blank(i)
        path, i = self._path(start, i)
        i = self._skip_blank(i)
        if i >= self._length:
            raise self._unterminated(start)
        if source[i] != "}":
            raise self._unexpected(start, i)
        return Include(start, i + 1, ".".join(path))

    def _path(self, start: int, i: int) -> tuple[list[str], int]:
        segments: list[str] = []
        while True:
            name, i = self._identifier(start, i)
            segments.append(name)
            if i < self._length and self._source[i] == ".":
                i += 1
                continue
            return segments, i

    def _identifier(self, start: int, i: int) -> tuple[str, int]:
        source = self._source
        n = self._length
        if i >= n:
            raise self._unterminated(start)
        if source[i] not in _ID_START:
            raise self._located(
                start,
                i,
                ErrorCode.INVALID_IDENTIFIER,
                f"Expected identifier, found {source[i]!r}",
                suggestion="Identifiers start with a letter or underscore",
            )
        j = i + 1
        while j < n and source[j] in _ID_CONT:
            j += 1
        return source[i:j], j

    # -- filters ---------------------------------------------------------

    def _filter(self, start: int, i: int) -> tuple[FilterCall, int]:
        call_start = i
        name, i = self._identifier(start, i + 1)
        args: list[str] = []
        if i < self._length and self._source[i] == ":":
            i += 1
            while True:
                arg, i = self._argument(start, i)
                args.append(arg)
                if i < self._length and self._source[i] == ",":
                    i += 1
                    continue
                break
        return FilterCall(call_start, i, name, tuple(args)), i

    def _argument(self, start: int, i: int) -> tuple[str, int]:
        source = self._source
        n = self._length
        i = self._skip_blank(i)
        if i < n and source[i] in _QUOTES:
            return self._quoted(i)
        j = i
        while j < n and source[j] not in _ARG_END:
            j += 1
        if j >= n:
            raise self._unterminated(start)
        return source[i:j].strip(), j

    def _quoted(self, i: int) -> tuple[str, int]:
        source = self._source
        n = self._length
        quote = source[i]
        buf: list[str] = []
        j = i + 1
        while j < n:
            ch = source[j]
            if ch == "\\" and j + 1 < n:
                escaped = source[j + 1]
                if escaped not in ARG_ESCAPES:
                    raise ParseError(
                        f"Invalid escape sequence '\\{escaped}'",
                        ErrorCode.INVALID_ESCAPE,
                        j,
                        source,
                        end=j + 2,
                        suggestion="Supported escapes: \\\" \\' \\\\ \\, \\:",
                    )
                buf.append(ARG_ESCAPES[escaped])
                j += 2
                continue
            if ch == quote:
                return "".join(buf), self._skip_blank(j + 1)
            buf.append(ch)
            j += 1
        raise ParseError(
            "Unterminated string in filter argument",
            ErrorCode.UNTERMINATED_STRING,
            i,
            source,
            end=n,
            suggestion=f"Close the string with {quote}",
        )

    # -- errors ----------------------------------------------------------

    def _skip_blank(self, i: int) -> int:
        while i < self._length and self._source[i] in _BLANK:
            i += 1
        return i

    def _unterminated(self, start: int) -> ParseError:
        return ParseError(
            "Unterminated placeholder",
            ErrorCode.UNTERMINATED_PLACEHOLDER,
            start,
            self._source,
            end=self._length,
            suggestion=_CLOSE_HINT,
        )

    def _unexpected(self, start: int, i: int) -> ParseError:
        return self._located(
            start,
            i,
            ErrorCode.UNEXPECTED_CHARACTER,
            f"Unexpected character {self._source[i]!r} in placeholder",
        )

    def _located(
        self,
        start: int,
        i: int,
        code: ErrorCode,
        message: str,
        *,
        suggestion: str | None = None,
    ) -> ParseError:
        # With no '}' left in the source the real problem is the open brace.
        if self._source.find("}", i) == -1:
            return self._unterminated(start)
        return ParseError(message, code, i, self._source, suggestion=suggestion)

    def _resume_point(self, err: ParseError) -> int | None:
        if err.code is ErrorCode.EMPTY_PLACEHOLDER:
            return err.end
        if err.code is ErrorCode.UNTERMINATED_PLACEHOLDER:
            return None
        close = self._source.find("}", err.offset)
        return None if close == -1 else close + 1


def parse(source: str) -> TemplateNode:
    """Parse ``source``, raising ``ParseError`` on the first problem.

    Example:
        >>> parse("Hi {name|upper}").nodes
        (Literal(start=0, end=3, text='Hi '), Placeholder(start=3, end=15, ...))
    """
    return Parser(source).parse()


def parse_recovering(source: str) -> tuple[TemplateNode, list[ParseError]]:
    """Parse ``source`` without raising; return the nodes that did parse
    together with every error encountered."""
    parser = Parser(source, recover=True)
    return parser.parse(), parser.errors
