"""Plugin manager: versioned bundles of filters and render hooks.

A ``Plugin`` contributes custom filters and up to three render hooks.
``PluginManager.compile`` merges every registered plugin's filters under
the caller's own ``filters=``, so they reach the ``FilterRegistry`` like
any other custom filter. ``PluginManager.render`` wraps compile and
render in the hook pipeline:

1. ``before_render(call)`` in registration order. Returning a new
   ``RenderCall`` replaces the call; a non-None ``call.cached`` stops the
   pipeline and becomes the output.
2. Compile and render ``call.source`` with ``call.context``.
3. ``after_render(output, call)`` in reverse registration order.
   Returning a string replaces the output.
4. On any exception, ``on_error(error, call)`` in registration order.
   A returned or raised exception replaces the error.

Example:
    >>> money = Plugin("money", "1.0.0", filters={"cents": lambda v: f"{int(v) / 100:.2f}"})
    >>> plugins = PluginManager()
    >>> plugins.register(money)
    >>> plugins.render("{total|cents}", {"total": 1999})
    '19.99'

Thread-Safety:
Registration is serialized by a lock and swaps in a new plugin dict
(copy-on-write). Render pipelines iterate over the dict they started
with, so concurrent (un)registration never changes a running pipeline.
"""

from __future__ import annotations

import inspect
import logging
import re
import threading
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Literal

from formatr import api
from formatr.environment.exceptions import PluginError
from formatr.environment.options import CompileOptions, FilterMap, merge_options
from formatr.plugins.version import VERSION_RE, satisfies
from formatr.template import AsyncTemplate, Template

logger = logging.getLogger(__name__)

NAME_RE = re.compile(r"^[A-Za-z0-9_-]+$")

ConflictPolicy = Literal["last-wins", "error"]
CONFLICT_POLICIES = ("last-wins", "error")


@dataclass(frozen=True, slots=True)
class RenderCall:
    """One pass through the render pipeline, as seen by hooks.

    Hooks never mutate a call; they return ``dataclasses.replace(call, ...)``.
    """

    source: str
    context: Any = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    cached: str | None = None


@dataclass(frozen=True, slots=True, eq=False)
class Plugin:
    """A named, versioned bundle of filters and hooks.

    Attributes:
        name: Letters, digits, ``-`` and ``_``.
        version: ``MAJOR.MINOR.PATCH[-pre]``.
        dependencies: Plugin name to version range (``^1.0.0``, ``>=2.1.0``...).
        filters: Filters contributed to every compile done through the manager.
        before_render: ``(call) -> RenderCall | None``
        after_render: ``(output, call) -> str | None``
        on_error: ``(error, call) -> Exception | None``
        setup: ``(PluginContext) -> None``, run on registration.
        teardown: ``(PluginContext) -> None``, run on unregistration.

    Any hook or lifecycle callback may be a coroutine function; those
    plugins are then only usable through the ``*_async`` methods.
    """

    name: str
    version: str
    description: str = ""
    author: str | None = None
    dependencies: Mapping[str, str] = field(default_factory=dict)
    filters: FilterMap = field(default_factory=dict)
    before_render: Callable[..., Any] | None = None
    after_render: Callable[..., Any] | None = None
    on_error: Callable[..., Any] | None = None
    setup: Callable[..., Any] | None = None
    teardown: Callable[..., Any] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not NAME_RE.match(self.name):
            raise PluginError(
                f"Invalid plugin name {self.name!r}: use letters, digits, '-' and '_'",
                plugin=str(self.name),
            )
        if not isinstance(self.version, str) or not VERSION_RE.match(self.version):
            raise PluginError(
                f"Plugin '{self.name}' has invalid version {self.version!r}",
                plugin=self.name,
                suggestion="Use semantic versioning, e.g. '1.0.0' or '2.1.0-beta.1'",
            )
        if not isinstance(self.filters, Mapping):
            raise PluginError(f"Plugin '{self.name}' filters must be a mapping", plugin=self.name)

    def __repr__(self) -> str:
        return f"<Plugin {self.name}@{self.version}>"


@dataclass(slots=True)
class PluginContext:
    """Handed to ``setup`` and ``teardown``.

    ``state`` is private to the plugin and lives as long as its registration.
    """

    plugin: Plugin
    manager: PluginManager
    options: Any = None
    state: dict[str, Any] = field(default_factory=dict)

    def get_plugin(self, name: str) -> Plugin | None:
        return self.manager.get(name)


def _reject_async(plugin: Plugin, hook: str, alternative: str) -> None:
    raise PluginError(
        f"Plugin '{plugin.name}' has an async {hook} hook",
        plugin=plugin.name,
        suggestion=f"Use {alternative}",
    )


def _sync_result(plugin: Plugin, hook: str, result: Any, alternative: str) -> Any:
    if inspect.isawaitable(result):
        if inspect.iscoroutine(result):
            result.close()
        raise PluginError(
            f"Plugin '{plugin.name}' {hook} hook returned an awaitable",
            plugin=plugin.name,
            suggestion=f"Use {alternative}",
        )
    return result


def _call_sync(plugin: Plugin, hook: str, fn: Callable[..., Any], *args: Any, alternative: str) -> Any:
    if inspect.iscoroutinefunction(fn):
        _reject_async(plugin, hook, alternative)
    return _sync_result(plugin, hook, fn(*args), alternative)


async def _call_async(fn: Callable[..., Any], *args: Any) -> Any:
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class PluginManager:
    """Registry of plugins plus the render pipeline that runs their hooks.

    Args:
        on_conflict: ``"last-wins"`` (default) lets a later plugin's filter
            shadow an earlier one with a warning; ``"error"`` refuses to
            register the later plugin.
    """

    __slots__ = ("_lock", "_on_conflict", "_plugins")

    def __init__(self, on_conflict: ConflictPolicy = "last-wins"):
        if on_conflict not in CONFLICT_POLICIES:
            raise ValueError(f"on_conflict must be 'last-wins' or 'error', got {on_conflict!r}")
        self._on_conflict = on_conflict
        self._plugins: dict[str, PluginContext] = {}
        self._lock = threading.Lock()

    # ─────────────────────────────────────────────────────────────────────
    # Registration
    # ─────────────────────────────────────────────────────────────────────

    def register(self, plugin: Plugin, options: Any = None) -> None:
        """Register ``plugin`` and run its ``setup``.

        Raises:
            PluginError: Duplicate name, unmet or circular dependency,
                filter conflict under ``on_conflict="error"``, or an async
                ``setup`` (use ``register_async``).
        """
        if plugin.setup is not None and inspect.iscoroutinefunction(plugin.setup):
            _reject_async(plugin, "setup", "await register_async()")
        ctx = self._add(plugin, options)
        if plugin.setup is None:
            return
        try:
            _sync_result(plugin, "setup", plugin.setup(ctx), "await register_async()")
        except BaseException:
            self._discard(plugin.name)
            raise

    async def register_async(self, plugin: Plugin, options: Any = None) -> None:
        """Like ``register``, awaiting an async ``setup``."""
        ctx = self._add(plugin, options)
        if plugin.setup is None:
            return
        try:
            await _call_async(plugin.setup, ctx)
        except BaseException:
            self._discard(plugin.name)
            raise

    def unregister(self, name: str) -> None:
        """Run ``teardown`` and forget ``name``. Unknown names are ignored."""
        ctx = self._plugins.get(name)
        if ctx is None:
            return
        teardown = ctx.plugin.teardown
        if teardown is not None:
            _call_sync(ctx.plugin, "teardown", teardown, ctx, alternative="await unregister_async()")
        self._discard(name)

    async def unregister_async(self, name: str) -> None:
        ctx = self._plugins.get(name)
        if ctx is None:
            return
        if ctx.plugin.teardown is not None:
            await _call_async(ctx.plugin.teardown, ctx)
        self._discard(name)

    def clear(self) -> None:
        """Unregister every plugin, most recent first."""
        for name in reversed(list(self._plugins)):
            self.unregister(name)

    async def clear_async(self) -> None:
        for name in reversed(list(self._plugins)):
            await self.unregister_async(name)

    def _add(self, plugin: Plugin, options: Any) -> PluginContext:
        if not isinstance(plugin, Plugin):
            raise TypeError(f"Expected Plugin, got {type(plugin).__name__}")
        with self._lock:
            plugins = self._plugins
            if plugin.name in plugins:
                raise PluginError(f"Plugin '{plugin.name}' is already registered", plugin=plugin.name)
            self._check_cycles(plugin, plugins)
            self._check_dependencies(plugin, plugins)
            self._check_conflicts(plugin, plugins)
            ctx = PluginContext(plugin, self, options)
            updated = plugins.copy()
            updated[plugin.name] = ctx
            self._plugins = updated
        logger.debug("Registered plugin %s@%s", plugin.name, plugin.version)
        return ctx

    def _discard(self, name: str) -> None:
        with self._lock:
            if name not in self._plugins:
                return
            updated = self._plugins.copy()
            del updated[name]
            self._plugins = updated
        logger.debug("Unregistered plugin %s", name)

    def _check_dependencies(self, plugin: Plugin, plugins: Mapping[str, PluginContext]) -> None:
        for dep, spec in plugin.dependencies.items():
            found = plugins.get(dep)
            if found is None:
                raise PluginError(
                    f"Plugin '{plugin.name}' requires '{dep}' but it is not registered",
                    plugin=plugin.name,
                    suggestion=f"Register '{dep}' before '{plugin.name}'",
                )
            if not satisfies(found.plugin.version, spec):
                raise PluginError(
                    f"Plugin '{plugin.name}' requires '{dep}@{spec}' but found version {found.plugin.version}",
                    plugin=plugin.name,
                )

    def _check_cycles(self, plugin: Plugin, plugins: Mapping[str, PluginContext]) -> None:
        graph = {name: ctx.plugin.dependencies for name, ctx in plugins.items()}
        graph[plugin.name] = plugin.dependencies
        path: list[str] = []
        done: set[str] = set()

        def visit(name: str) -> None:
            if name in path:
                cycle = " -> ".join([*path[path.index(name) :], name])
                raise PluginError(f"Circular dependency detected: {cycle}", plugin=plugin.name)
            if name in done or name not in graph:
                return
            path.append(name)
            for dep in graph[name]:
                visit(dep)
            path.pop()
            done.add(name)

        visit(plugin.name)

    def _check_conflicts(self, plugin: Plugin, plugins: Mapping[str, PluginContext]) -> None:
        for name, ctx in plugins.items():
            shared = sorted(set(ctx.plugin.filters) & set(plugin.filters))
            if not shared:
                continue
            if self._on_conflict == "error":
                raise PluginError(
                    f"Plugin '{plugin.name}' redefines filter '{shared[0]}' from plugin '{name}'",
                    plugin=plugin.name,
                    suggestion="Rename the filter or use PluginManager(on_conflict='last-wins')",
                )
            for filter_name in shared:
                logger.warning(
                    "Filter %r from plugin %r overrides the one from plugin %r",
                    filter_name,
                    plugin.name,
                    name,
                )

    # ─────────────────────────────────────────────────────────────────────
    # Lookup
    # ─────────────────────────────────────────────────────────────────────

    def has(self, name: str) -> bool:
        return name in self._plugins

    def get(self, name: str) -> Plugin | None:
        ctx = self._plugins.get(name)
        return ctx.plugin if ctx is not None else None

    def names(self) -> list[str]:
        return list(self._plugins)

    def __contains__(self, name: object) -> bool:
        return name in self._plugins

    def __iter__(self) -> Iterator[Plugin]:
        return iter([ctx.plugin for ctx in self._plugins.values()])

    def __len__(self) -> int:
        return len(self._plugins)

    def __repr__(self) -> str:
        return f"<PluginManager {self.names()!r}>"

    def filters(self) -> dict[str, Any]:
        """All plugin filters; a later plugin wins a name clash."""
        merged: dict[str, Any] = {}
        for ctx in self._plugins.values():
            merged.update(ctx.plugin.filters)
        return merged

    # ─────────────────────────────────────────────────────────────────────
    # Compile and render
    # ─────────────────────────────────────────────────────────────────────

    def _options(self, options: CompileOptions | None, overrides: dict[str, Any]) -> CompileOptions:
        opts = merge_options(CompileOptions, options, overrides)
        plugin_filters = self.filters()
        if not plugin_filters:
            return opts
        return replace(opts, filters={**plugin_filters, **(opts.filters or {})})

    def compile(self, source: str, options: CompileOptions | None = None, /, **overrides: Any) -> Template:
        """``formatr.compile`` with plugin filters added under ``filters=``."""
        return api.compile(source, self._options(options, overrides))

    def compile_async(
        self, source: str, options: CompileOptions | None = None, /, **overrides: Any
    ) -> AsyncTemplate:
        return api.compile_async(source, self._options(options, overrides))

    def render(
        self,
        source: str,
        context: Any = None,
        options: CompileOptions | None = None,
        /,
        metadata: Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> str:
        """Compile and render ``source`` through every plugin's hooks.

        Raises:
            PluginError: A hook is async or returned an awaitable.
            FormatrError: Compile and render errors, after ``on_error``.
        """
        plugins = list(self._plugins.values())
        alternative = "await render_async()"
        call = RenderCall(source, context, dict(metadata or {}))
        try:
            for ctx in plugins:
                if ctx.plugin.before_render is None:
                    continue
                result = _call_sync(
                    ctx.plugin, "before_render", ctx.plugin.before_render, call, alternative=alternative
                )
                if result is not None:
                    call = result
                if call.cached is not None:
                    logger.debug("Plugin %r served a cached render", ctx.plugin.name)
                    return call.cached
            output = self.compile(call.source, options, **overrides).render(call.context)
            for ctx in reversed(plugins):
                if ctx.plugin.after_render is None:
                    continue
                result = _call_sync(
                    ctx.plugin, "after_render", ctx.plugin.after_render, output, call, alternative=alternative
                )
                if result is not None:
                    output = result
            return output
        except Exception as exc:
            final = exc
            for ctx in plugins:
                hook = ctx.plugin.on_error
                if hook is None:
                    continue
                if inspect.iscoroutinefunction(hook):
                    _reject_async(ctx.plugin, "on_error", alternative)
                try:
                    result = hook(final, call)
                except Exception as replacement:
                    result = replacement
                result = _sync_result(ctx.plugin, "on_error", result, alternative)
                if isinstance(result, BaseException):
                    final = result
            if final is exc:
                raise
            raise final from exc

    async def render_async(
        self,
        source: str,
        context: Any = None,
        options: CompileOptions | None = None,
        /,
        metadata: Mapping[str, Any] | None = None,
        **overrides: Any,
    ) -> str:
        """Async ``render``: hooks may be coroutine functions, filters may be async."""
        plugins = list(self._plugins.values())
        call = RenderCall(source, context, dict(metadata or {}))
        try:
            for ctx in plugins:
                if ctx.plugin.before_render is None:
                    continue
                result = await _call_async(ctx.plugin.before_render, call)
                if result is not None:
                    call = result
                if call.cached is not None:
                    logger.debug("Plugin %r served a cached render", ctx.plugin.name)
                    return call.cached
            output = await self.compile_async(call.source, options, **overrides).render(call.context)
            for ctx in reversed(plugins):
                if ctx.plugin.after_render is None:
                    continue
                result = await _call_async(ctx.plugin.after_render, output, call)
                if result is not None:
                    output = result
            return output
        except Exception as exc:
            final = exc
            for ctx in plugins:
                if ctx.plugin.on_error is None:
                    continue
                try:
                    result = await _call_async(ctx.plugin.on_error, final, call)
                except Exception as replacement:
                    result = replacement
                if isinstance(result, BaseException):
                    final = result
            if final is exc:
                raise
            raise final from exc
