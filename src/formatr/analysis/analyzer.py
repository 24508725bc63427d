"""Static template analyzer.

Walks the AST without rendering and reports everything ``compile`` would
reject, plus lint-level findings, as ``Diagnostic`` records. It never
raises on template content: parse errors become diagnostics and the scan
resumes after the next ``}``.

Checks:
- parse errors (every ``ParseError`` code)
- unknown filters, with "did you mean" suggestions
- filter argument counts
- includes naming unregistered partials
- missing keys, when a sample context is given
- suspicious filter use, judged from placeholder names

Thread-Safety:
Stateless. Each call builds its own registry view and result objects.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from formatr.analysis.diagnostics import AnalysisReport, Diagnostic, Severity
from formatr.environment.exceptions import ErrorCode
from formatr.environment.loaders import PARTIALS
from formatr.environment.options import AnalyzeOptions
from formatr.environment.registry import FilterRegistry
from formatr.nodes import FilterCall, Include, Placeholder
from formatr.parser import parse_recovering
from formatr.template.helpers import MISSING, is_missing, resolve
from formatr.utils.constants import NUMERIC_KEY_HINTS, TEXT_KEY_HINTS
from formatr.utils.position import LineIndex

logger = logging.getLogger(__name__)

# Built-ins that expect a number, and ones that only make sense on text.
NUMERIC_FILTERS = frozenset({"number", "percent", "currency", "plural", "duration"})
TEXT_FILTERS = frozenset({"upper", "lower", "trim", "capitalize", "title", "slice", "truncate", "replace"})

# Usage shown with arity errors for built-ins.
EXAMPLES = {
    "pad": "{code|pad:8,left,0}",
    "slice": "{text|slice:0,10}",
    "truncate": "{text|truncate:20}",
    "replace": "{text|replace:-,_}",
    "plural": "{count|plural:item,items}",
    "number": "{value|number:2}",
    "percent": "{ratio|percent:1}",
    "currency": "{price|currency:USD}",
    "date": "{when|date:long}",
    "format_date": "{when|format_date:yyyy-MM-dd}",
    "timezone": "{when|timezone:Europe/Paris}",
}

_WORD_RE = re.compile(r"[A-Z]?[a-z]+|[A-Z]+(?![a-z])|\d+")


def key_kind(key: str) -> str | None:
    """Guess whether a placeholder holds a number or text from its name.

    Example:
        >>> key_kind("user.totalPrice"), key_kind("username"), key_kind("xyz")
        ('number', 'string', None)
    """
    leaf = key.rsplit(".", 1)[-1]
    words = {leaf.lower(), *(w.lower() for w in _WORD_RE.findall(leaf))}
    if words & NUMERIC_KEY_HINTS:
        return "number"
    if words & TEXT_KEY_HINTS:
        return "string"
    return None


class Analyzer:
    """Collects diagnostics for one source.

    Example:
        >>> report = Analyzer(AnalyzeOptions()).run("Hi {name|uper}")
        >>> [m.code for m in report.messages]
        ['unknown-filter']
    """

    __slots__ = ("_index", "_messages", "_options", "_registry", "_source")

    def __init__(self, options: AnalyzeOptions):
        self._options = options
        self._registry: FilterRegistry = options.registry()

    def run(self, source: str) -> AnalysisReport:
        self._source = source
        self._index = LineIndex(source)
        self._messages: list[tuple[int, Diagnostic]] = []

        root, errors = parse_recovering(source)
        for err in errors:
            self._add(err.code.value, err.message, err.offset, err.end)

        for node in root.nodes:
            if isinstance(node, Include):
                self._check_include(node)
            elif isinstance(node, Placeholder):
                self._check_placeholder(node)

        # Stable: equal offsets keep discovery order.
        self._messages.sort(key=lambda item: item[0])
        report = AnalysisReport(tuple(m for _, m in self._messages))
        logger.debug("Analyzed template: %d diagnostics", len(report))
        return report

    def _add(
        self,
        code: str,
        message: str,
        start: int,
        end: int,
        severity: Severity = "error",
        **data: Any,
    ) -> None:
        diagnostic = Diagnostic(code, message, severity, self._index.range(start, end), data)
        self._messages.append((start, diagnostic))

    def _check_include(self, node: Include) -> None:
        if not PARTIALS.has(node.name):
            self._add(
                ErrorCode.UNKNOWN_TEMPLATE.value,
                f"Unknown template '{node.name}'",
                node.start,
                node.end,
                name=node.name,
            )

    def _check_placeholder(self, node: Placeholder) -> None:
        for call in node.filters:
            self._check_filter(node, call)
        if self._options.context is not None:
            self._check_missing(node)

    def _check_filter(self, node: Placeholder, call: FilterCall) -> None:
        definition = self._registry.get(call.name)
        if definition is None:
            suggestions = self._registry.suggest(call.name)
            message = f"Unknown filter '{call.name}'"
            if suggestions:
                message += f". Did you mean '{suggestions[0]}'?"
            self._add(
                ErrorCode.UNKNOWN_FILTER.value,
                message,
                call.start,
                call.end,
                filter=call.name,
                suggestions=suggestions,
            )
            return

        got = len(call.args)
        if not definition.accepts(got):
            expected = definition.describe_arity()
            noun = "argument" if expected == "1" else "arguments"
            message = f"Filter '{call.name}' expects {expected} {noun}, got {got}"
            if call.name in EXAMPLES and not self._is_custom(call.name):
                message += f" (e.g. {EXAMPLES[call.name]})"
            self._add(
                ErrorCode.FILTER_ARITY_MISMATCH.value,
                message,
                call.start,
                call.end,
                filter=call.name,
                expected=expected,
                got=got,
            )

        if not self._is_custom(call.name):
            self._check_suspicious(node, call)

    def _check_suspicious(self, node: Placeholder, call: FilterCall) -> None:
        kind = key_kind(node.key)
        if call.name in NUMERIC_FILTERS and kind == "string":
            expected = "number"
        elif call.name in TEXT_FILTERS and kind == "number":
            expected = "string"
        else:
            return
        self._add(
            ErrorCode.SUSPICIOUS_FILTER.value,
            f"Filter '{call.name}' expects a {expected}, but '{node.key}' looks like a {kind}",
            call.start,
            call.end,
            "warning",
            filter=call.name,
            placeholder=node.key,
            expected_type=expected,
        )

    def _check_missing(self, node: Placeholder) -> None:
        extra: dict[str, Any] = {}
        try:
            value = resolve(self._options.context, node.path)
        except Exception as exc:
            # A raising property or mapping counts as unresolved here.
            logger.debug("Sample context lookup for '%s' raised %r", node.key, exc)
            value = MISSING
            extra["error"] = f"{type(exc).__name__}: {exc}"
        if not is_missing(value):
            return
        options = self._options
        if options.strict_keys or options.on_missing == "error":
            severity: Severity = "error"
        elif options.on_missing == "keep":
            severity = "warning"
        else:
            severity = "info"
        self._add(
            ErrorCode.MISSING_KEY.value,
            f"Missing key '{node.key}'",
            node.start,
            node.end,
            severity,
            path=list(node.path),
            **extra,
        )

    def _is_custom(self, name: str) -> bool:
        return any(custom == name for custom, _ in self._registry.custom)


def analyze(source: str, options: AnalyzeOptions | None = None) -> AnalysisReport:
    """Analyze ``source`` and return its diagnostics in source order."""
    return Analyzer(options or AnalyzeOptions()).run(source)
