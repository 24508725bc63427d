"""formatr: a small placeholder templating language.

Templates are plain text with ``{path|filter:arg,arg|filter2}``
placeholders. A template is compiled once into a reusable callable and
rendered many times with different contexts.

Quickstart:
    >>> import formatr
    >>> greet = formatr.compile("Hello {name|upper}!")
    >>> greet({"name": "Alice"})
    'Hello ALICE!'

    >>> formatr.compile("{count|plural:message,messages}")({"count": 5})
    '5 messages'

    >>> formatr.compile("{total|currency:USD}")({"total": 1234.5})
    '$1,234.50'

Architecture:
Template Source → Parser → AST → Compiler → Template (cached)

Pipeline stages:
1. **Parser**: One left-to-right pass into immutable AST nodes
2. **Compiler**: Expands ``{> partial}`` includes, binds and checks
   filters, binds the locale and the missing-key policy
3. **Template**: ``render()`` resolves paths and runs filter chains
4. **Analyzer**: Reports the same problems (and lint findings) as
   diagnostics, without raising

Syntax:
- ``{name}``, ``{user.address.city}``: dotted paths into mappings/objects
- ``{name|upper|pad:10,left}``: filter chains, applied left to right
- ``{text|replace:", ","; "}``: quoted arguments keep ``,`` ``:`` ``|`` ``}``
- ``{> footer}``: include a registered partial
- ``{{`` and ``}}``: literal braces

Missing Keys:
``on_missing="keep"`` (default) leaves the placeholder text in place,
``"error"`` or ``strict_keys=True`` raises ``MissingKeyError``, and a
callable supplies a replacement.

Thread-Safety:
Compiled templates are immutable and safe to render concurrently. The
compile cache, the partial registry and the native backend switch are
the only shared state; each is lock-guarded or copy-on-write.

Plugins:
``PluginManager`` bundles custom filters with before/after/error render
hooks; ``manager.render(source, ctx)`` runs them around compile and render.

"""

from formatr.analysis import AnalysisReport, Diagnostic
from formatr.api import analyze, cache_info, clear_cache, compile, compile_async, parse
from formatr.backend import (
    BackendState,
    disable_backend,
    enable_backend,
    init_backend,
    init_backend_async,
    is_backend_enabled,
)
from formatr.environment.exceptions import (
    AsyncFilterError,
    CompileError,
    ErrorCode,
    FilterArityError,
    FilterExecutionError,
    FormatrError,
    IncludeError,
    LocaleFormatError,
    MissingKeyError,
    ParseError,
    PluginError,
    RenderError,
    UnknownFilterError,
)
from formatr.environment.loaders import (
    clear_templates,
    get_template,
    has_template,
    list_templates,
    register_template,
)
from formatr.environment.options import AnalyzeOptions, CompileOptions
from formatr.filters import FilterDefinition, FilterKind, async_filter, sync_filter
from formatr.plugins import Plugin, PluginContext, PluginManager, RenderCall
from formatr.template import AsyncTemplate, Template
from formatr.utils import CacheInfo, Position, Range

__version__ = "0.3.0"

__all__ = [
    "AnalysisReport",
    "AnalyzeOptions",
    "AsyncFilterError",
    "AsyncTemplate",
    "BackendState",
    "CacheInfo",
    "CompileError",
    "CompileOptions",
    "Diagnostic",
    "ErrorCode",
    "FilterArityError",
    "FilterDefinition",
    "FilterExecutionError",
    "FilterKind",
    "FormatrError",
    "IncludeError",
    "LocaleFormatError",
    "MissingKeyError",
    "ParseError",
    "Plugin",
    "PluginContext",
    "PluginError",
    "PluginManager",
    "Position",
    "Range",
    "RenderCall",
    "RenderError",
    "Template",
    "UnknownFilterError",
    "__version__",
    "analyze",
    "async_filter",
    "cache_info",
    "clear_cache",
    "clear_templates",
    "compile",
    "compile_async",
    "disable_backend",
    "enable_backend",
    "get_template",
    "has_template",
    "init_backend",
    "init_backend_async",
    "is_backend_enabled",
    "list_templates",
    "parse",
    "register_template",
    "sync_filter",
]
