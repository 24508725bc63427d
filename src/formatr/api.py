"""Public entry points: compile, compile_async, analyze, parse.

Compilation goes through one process-wide ``TemplateCache``. The cache
key covers the source and every option that changes the compiled result
(see ``CompileOptions.fingerprint``), so two compiles that could behave
differently never share an entry.

Thread-Safety:
All functions may be called concurrently. The cache takes a lock per
operation; two threads racing on the same cold fingerprint may both
compile, and the later ``put`` wins. Both results are equivalent.
"""

from __future__ import annotations

import logging
from typing import Any

from formatr.analysis import AnalysisReport
from formatr.analysis import analyze as _analyze
from formatr.compiler import Compiler
from formatr.environment.loaders import PARTIALS
from formatr.environment.options import AnalyzeOptions, CompileOptions, merge_options
from formatr.nodes import TemplateNode
from formatr.parser import parse as _parse
from formatr.template import AsyncTemplate, Template
from formatr.utils.constants import DEFAULT_CACHE_SIZE
from formatr.utils.lru_cache import CacheInfo, TemplateCache

logger = logging.getLogger(__name__)

_CACHE: TemplateCache[Template] = TemplateCache(DEFAULT_CACHE_SIZE)


def _compile(mode: str, source: str, options: CompileOptions | None, overrides: dict[str, Any]) -> Template:
    if not isinstance(source, str):
        raise TypeError(f"Template source must be str, got {type(source).__name__}")
    opts = merge_options(CompileOptions, options, overrides)
    registry = opts.registry()
    generation, partials = PARTIALS.snapshot()

    _CACHE.resize(opts.cache_size)
    key = None
    if opts.cache_size:
        key = opts.fingerprint(mode, source, registry, generation)
        try:
            hash(key)
        except TypeError:
            logger.debug("Unhashable filter or on_missing callable, compiling uncached: %.40r", source)
            key = None
    if key is not None:
        cached = _CACHE.get(key)
        if cached is not None:
            logger.debug("Template cache hit (%s): %.40r", mode, source)
            return cached
        logger.debug("Template cache miss (%s): %.40r", mode, source)

    is_async = mode == "async"
    parts = Compiler(registry, partials, locale=opts.locale, allow_async=is_async).compile(source)
    cls = AsyncTemplate if is_async else Template
    template = cls(source, parts, on_missing=opts.on_missing, strict_keys=opts.strict_keys)
    if key is not None:
        _CACHE.put(key, template)
    return template


def compile(source: str, options: CompileOptions | None = None, /, **overrides: Any) -> Template:
    """Compile ``source`` into a reusable synchronous ``Template``.

    Args:
        source: Template text.
        options: Optional ``CompileOptions``.
        **overrides: ``CompileOptions`` fields, applied over ``options``.

    Raises:
        CompileError: Parse, unknown filter, arity, async filter or
            include problems. Never returns a partially compiled template.

    Example:
        >>> compile("Hello {name|upper}!")({"name": "Alice"})
        'Hello ALICE!'
    """
    return _compile("sync", source, options, overrides)


def compile_async(source: str, options: CompileOptions | None = None, /, **overrides: Any) -> AsyncTemplate:
    """Compile ``source`` into an ``AsyncTemplate`` (``await t.render(ctx)``).

    Async filters are allowed here and only here.
    """
    template = _compile("async", source, options, overrides)
    assert isinstance(template, AsyncTemplate)
    return template


def analyze(source: str, options: AnalyzeOptions | None = None, /, **overrides: Any) -> AnalysisReport:
    """Report problems in ``source`` without raising or rendering.

    Example:
        >>> [m.code for m in analyze("Hello {name").messages]
        ['unterminated-placeholder']
    """
    return _analyze(source, merge_options(AnalyzeOptions, options, overrides))


def parse(source: str) -> TemplateNode:
    """Parse ``source`` into its AST, raising ``ParseError`` on bad input."""
    return _parse(source)


def cache_info() -> CacheInfo:
    """Hit/miss counters and occupancy of the shared compile cache."""
    return _CACHE.info()


def clear_cache() -> None:
    """Drop all cached templates and reset the counters."""
    _CACHE.clear()
