"""Plugin manager: registration, dependencies, filters and render hooks."""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import replace

import pytest

import formatr
from formatr import (
    ErrorCode,
    MissingKeyError,
    Plugin,
    PluginError,
    PluginManager,
    RenderCall,
    UnknownFilterError,
)
from formatr.plugins import Version, parse_version, satisfies

# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────


def cents(value):
    return f"{int(value) / 100:.2f}"


def wrap(left: str, right: str):
    def hook(output, call):
        return f"{left}{output}{right}"

    return hook


# ─────────────────────────────────────────────────────────────────────────────
# Tests
# ─────────────────────────────────────────────────────────────────────────────


class TestVersions:
    def test_parse(self) -> None:
        version = parse_version("1.2.3-beta.1")
        assert version == Version(1, 2, 3, "beta.1")
        assert str(version) == "1.2.3-beta.1"
        assert str(parse_version(" 4.5.6 ")) == "4.5.6"

    @pytest.mark.parametrize("text", ["1.0", "v1.0.0", "1.0.0-", "", "a.b.c"])
    def test_parse_rejects(self, text: str) -> None:
        with pytest.raises(ValueError):
            parse_version(text)

    def test_prerelease_sorts_first(self) -> None:
        assert parse_version("1.0.0-rc.1").compare(parse_version("1.0.0")) == -1
        assert parse_version("1.0.0-alpha").compare(parse_version("1.0.0-beta")) == -1
        assert parse_version("1.0.0").compare(parse_version("1.0.0")) == 0
        assert parse_version("1.10.0").compare(parse_version("1.9.0")) == 1

    @pytest.mark.parametrize(
        ("version", "spec", "expected"),
        [
            ("3.1.4", "*", True),
            ("3.1.4", "", True),
            ("1.4.0", "^1.2.0", True),
            ("1.1.9", "^1.2.0", False),
            ("2.0.0", "^1.2.0", False),
            ("1.2.9", "~1.2.3", True),
            ("1.2.2", "~1.2.3", False),
            ("1.3.0", "~1.2.3", False),
            ("1.0.0", ">=1.0.0", True),
            ("1.0.0", ">1.0.0", False),
            ("1.0.0", "<=1.0.0", True),
            ("0.9.9", "<1.0.0", True),
            ("1.0.0-beta", "<1.0.0", True),
            ("1.0.0", "=1.0.0", True),
            ("1.0.0", "1.0.0", True),
            ("1.0.1", "1.0.0", False),
        ],
    )
    def test_satisfies(self, version: str, spec: str, expected: bool) -> None:
        assert satisfies(version, spec) is expected

    @pytest.mark.parametrize(("version", "spec"), [("1.0.0", "^x"), ("1.0.0", "1.x"), ("nope", "*")])
    def test_unparseable_never_satisfies(self, version: str, spec: str) -> None:
        assert satisfies(version, spec) is False


class TestRegistration:
    def test_lookup(self) -> None:
        plugins = PluginManager()
        first = Plugin("first", "1.0.0")
        plugins.register(first)
        plugins.register(Plugin("second", "2.0.0"))
        assert plugins.has("first")
        assert "second" in plugins
        assert plugins.get("first") is first
        assert plugins.get("third") is None
        assert plugins.names() == ["first", "second"]
        assert [p.name for p in plugins] == ["first", "second"]
        assert len(plugins) == 2
        assert repr(first) == "<Plugin first@1.0.0>"

    def test_duplicate_name(self) -> None:
        plugins = PluginManager()
        plugins.register(Plugin("dup", "1.0.0"))
        with pytest.raises(PluginError) as exc_info:
            plugins.register(Plugin("dup", "1.1.0"))
        err = exc_info.value
        assert err.code is ErrorCode.PLUGIN_ERROR
        assert err.code.category == "plugin"
        assert err.plugin == "dup"
        assert "already registered" in err.message

    @pytest.mark.parametrize("name", ["", "has space", "dot.ted", "slash/y"])
    def test_invalid_name(self, name: str) -> None:
        with pytest.raises(PluginError):
            Plugin(name, "1.0.0")

    @pytest.mark.parametrize("version", ["1", "1.0", "latest", "1.0.0-"])
    def test_invalid_version(self, version: str) -> None:
        with pytest.raises(PluginError) as exc_info:
            Plugin("ok", version)
        assert "semantic versioning" in exc_info.value.suggestion

    def test_not_a_plugin(self) -> None:
        with pytest.raises(TypeError):
            PluginManager().register("plugin")  # type: ignore[arg-type]

    def test_bad_conflict_policy(self) -> None:
        with pytest.raises(ValueError):
            PluginManager(on_conflict="first-wins")  # type: ignore[arg-type]


class TestDependencies:
    def test_satisfied(self) -> None:
        plugins = PluginManager()
        plugins.register(Plugin("base", "1.5.0"))
        plugins.register(Plugin("extra", "1.0.0", dependencies={"base": "^1.2.0"}))
        assert plugins.names() == ["base", "extra"]

    def test_missing(self) -> None:
        with pytest.raises(PluginError) as exc_info:
            PluginManager().register(Plugin("extra", "1.0.0", dependencies={"base": "*"}))
        assert exc_info.value.message == "Plugin 'extra' requires 'base' but it is not registered"

    def test_wrong_version(self) -> None:
        plugins = PluginManager()
        plugins.register(Plugin("base", "1.5.0"))
        with pytest.raises(PluginError) as exc_info:
            plugins.register(Plugin("extra", "1.0.0", dependencies={"base": "^2.0.0"}))
        assert exc_info.value.message == "Plugin 'extra' requires 'base@^2.0.0' but found version 1.5.0"
        assert not plugins.has("extra")

    def test_self_dependency(self) -> None:
        with pytest.raises(PluginError) as exc_info:
            PluginManager().register(Plugin("loop", "1.0.0", dependencies={"loop": "*"}))
        assert exc_info.value.message == "Circular dependency detected: loop -> loop"


class TestLifecycle:
    def test_setup_and_teardown(self) -> None:
        events = []

        def setup(ctx):
            ctx.state["opened"] = ctx.options["path"]
            events.append(("setup", ctx.plugin.name))

        def teardown(ctx):
            events.append(("teardown", ctx.state["opened"]))

        plugins = PluginManager()
        plugins.register(Plugin("store", "1.0.0", setup=setup, teardown=teardown), {"path": "/tmp/x"})
        plugins.unregister("store")
        assert events == [("setup", "store"), ("teardown", "/tmp/x")]
        assert not plugins.has("store")

    def test_context_sees_other_plugins(self) -> None:
        seen = []
        plugins = PluginManager()
        plugins.register(Plugin("base", "1.0.0"))
        plugins.register(Plugin("extra", "1.0.0", setup=lambda ctx: seen.append(ctx.get_plugin("base"))))
        assert seen == [plugins.get("base")]

    def test_failed_setup_rolls_back(self) -> None:
        def setup(ctx):
            raise RuntimeError("no database")

        plugins = PluginManager()
        with pytest.raises(RuntimeError):
            plugins.register(Plugin("db", "1.0.0", setup=setup))
        assert not plugins.has("db")

    def test_unknown_unregister_is_ignored(self) -> None:
        PluginManager().unregister("ghost")

    def test_clear_runs_in_reverse(self) -> None:
        order = []
        plugins = PluginManager()
        for name in ("a", "b", "c"):
            plugins.register(Plugin(name, "1.0.0", teardown=lambda ctx: order.append(ctx.plugin.name)))
        plugins.clear()
        assert order == ["c", "b", "a"]
        assert len(plugins) == 0

    def test_async_setup_needs_register_async(self) -> None:
        async def setup(ctx):
            ctx.state["ready"] = True

        plugins = PluginManager()
        with pytest.raises(PluginError) as exc_info:
            plugins.register(Plugin("remote", "1.0.0", setup=setup))
        assert "register_async" in exc_info.value.suggestion
        assert not plugins.has("remote")

    @pytest.mark.asyncio
    async def test_register_async(self) -> None:
        states = []

        async def setup(ctx):
            await asyncio.sleep(0)
            ctx.state["ready"] = True
            states.append(ctx.state)

        async def teardown(ctx):
            await asyncio.sleep(0)
            ctx.state["ready"] = False

        plugins = PluginManager()
        await plugins.register_async(Plugin("remote", "1.0.0", setup=setup, teardown=teardown))
        assert states == [{"ready": True}]
        await plugins.clear_async()
        assert states == [{"ready": False}]
        assert not plugins.has("remote")

    def test_async_teardown_needs_unregister_async(self) -> None:
        async def teardown(ctx):
            pass

        plugins = PluginManager()
        plugins.register(Plugin("remote", "1.0.0", teardown=teardown))
        with pytest.raises(PluginError):
            plugins.unregister("remote")
        assert plugins.has("remote")


class TestFilters:
    def test_plugin_filter_renders(self) -> None:
        plugins = PluginManager()
        plugins.register(Plugin("money", "1.0.0", filters={"cents": cents}))
        assert plugins.render("Total: {total|cents}", {"total": 1999}) == "Total: 19.99"
        assert plugins.compile("{t|cents|upper}").render(t=5) == "0.05"

    def test_not_visible_to_plain_compile(self) -> None:
        plugins = PluginManager()
        plugins.register(Plugin("money", "1.0.0", filters={"cents": cents}))
        with pytest.raises(UnknownFilterError):
            formatr.compile("{t|cents}")

    def test_caller_filters_win(self) -> None:
        plugins = PluginManager()
        plugins.register(Plugin("tags", "1.0.0", filters={"tag": lambda v: "plugin"}))
        template = plugins.compile("{v|tag}", filters={"tag": lambda v: "caller"})
        assert template.render(v=1) == "caller"

    def test_overrides_builtin(self) -> None:
        plugins = PluginManager()
        plugins.register(Plugin("loud", "1.0.0", filters={"upper": lambda v: f"{v}!!"}))
        assert plugins.render("{v|upper}", {"v": "hi"}) == "hi!!"

    def test_compiles_are_cached(self) -> None:
        plugins = PluginManager()
        plugins.register(Plugin("money", "1.0.0", filters={"cents": cents}))
        assert plugins.compile("{t|cents}") is plugins.compile("{t|cents}")

    def test_last_wins_warns(self, caplog: pytest.LogCaptureFixture) -> None:
        plugins = PluginManager()
        plugins.register(Plugin("first", "1.0.0", filters={"tag": lambda v: "first"}))
        with caplog.at_level(logging.WARNING, logger="formatr.plugins.manager"):
            plugins.register(Plugin("second", "1.0.0", filters={"tag": lambda v: "second"}))
        assert "'tag'" in caplog.text
        assert plugins.render("{v|tag}", {"v": 1}) == "second"

    def test_conflict_error(self) -> None:
        plugins = PluginManager(on_conflict="error")
        plugins.register(Plugin("first", "1.0.0", filters={"tag": str}))
        with pytest.raises(PluginError) as exc_info:
            plugins.register(Plugin("second", "1.0.0", filters={"tag": str}))
        assert "redefines filter 'tag'" in exc_info.value.message
        assert plugins.names() == ["first"]

    def test_unregister_drops_filters(self) -> None:
        plugins = PluginManager()
        plugins.register(Plugin("money", "1.0.0", filters={"cents": cents}))
        plugins.unregister("money")
        assert plugins.filters() == {}
        with pytest.raises(UnknownFilterError):
            plugins.compile("{t|cents}")


class TestHooks:
    def test_before_render_changes_context(self) -> None:
        def defaults(call):
            return replace(call, context={"name": "guest", **call.context})

        plugins = PluginManager()
        plugins.register(Plugin("defaults", "1.0.0", before_render=defaults))
        assert plugins.render("Hi {name}", {}) == "Hi guest"
        assert plugins.render("Hi {name}", {"name": "Ada"}) == "Hi Ada"

    def test_before_render_order(self) -> None:
        seen = []
        plugins = PluginManager()
        for name in ("a", "b"):
            plugins.register(Plugin(name, "1.0.0", before_render=lambda call, n=name: seen.append(n)))
        plugins.render("x")
        assert seen == ["a", "b"]

    def test_cached_result_short_circuits(self) -> None:
        seen = []
        plugins = PluginManager()
        plugins.register(Plugin("cache", "1.0.0", before_render=lambda call: replace(call, cached="hit")))
        plugins.register(
            Plugin(
                "later",
                "1.0.0",
                before_render=lambda call: seen.append("before"),
                after_render=lambda output, call: seen.append("after"),
            )
        )
        # The source does not parse; it is never compiled.
        assert plugins.render("{oops") == "hit"
        assert seen == []

    def test_after_render_runs_in_reverse(self) -> None:
        plugins = PluginManager()
        plugins.register(Plugin("square", "1.0.0", after_render=wrap("[", "]")))
        plugins.register(Plugin("round", "1.0.0", after_render=wrap("(", ")")))
        assert plugins.render("{v}", {"v": "x"}) == "[(x)]"

    def test_metadata_reaches_hooks(self) -> None:
        calls: list[RenderCall] = []
        plugins = PluginManager()
        plugins.register(Plugin("spy", "1.0.0", after_render=lambda output, call: calls.append(call)))
        plugins.render("{v}", {"v": 1}, metadata={"request_id": "r-1"})
        assert calls[0].metadata == {"request_id": "r-1"}
        assert calls[0].source == "{v}"

    def test_error_passes_through(self) -> None:
        seen = []
        plugins = PluginManager()
        plugins.register(Plugin("log", "1.0.0", on_error=lambda error, call: seen.append(type(error))))
        with pytest.raises(MissingKeyError):
            plugins.render("{a}", {}, on_missing="error")
        assert seen == [MissingKeyError]

    def test_error_is_replaced(self) -> None:
        plugins = PluginManager()
        plugins.register(Plugin("wrap", "1.0.0", on_error=lambda error, call: LookupError(call.source)))
        with pytest.raises(LookupError) as exc_info:
            plugins.render("{a}", {}, on_missing="error")
        assert str(exc_info.value) == "{a}"
        assert isinstance(exc_info.value.__cause__, MissingKeyError)

    def test_raising_hook_replaces_error(self) -> None:
        seen = []

        def convert(error, call):
            raise KeyError("converted")

        plugins = PluginManager()
        plugins.register(Plugin("convert", "1.0.0", on_error=convert))
        plugins.register(Plugin("log", "1.0.0", on_error=lambda error, call: seen.append(type(error))))
        with pytest.raises(KeyError):
            plugins.render("{a|nope}")
        assert seen == [KeyError]

    def test_async_hook_in_sync_render(self) -> None:
        async def before(call):
            return call

        plugins = PluginManager()
        plugins.register(Plugin("remote", "1.0.0", before_render=before))
        with pytest.raises(PluginError) as exc_info:
            plugins.render("x")
        assert "render_async" in exc_info.value.suggestion

    def test_awaitable_result_in_sync_render(self) -> None:
        pending = []

        async def later(output):
            return output

        def after(output, call):
            pending.append(later(output))
            return pending[-1]

        plugins = PluginManager()
        plugins.register(Plugin("sneaky", "1.0.0", after_render=after))
        with pytest.raises(PluginError):
            plugins.render("x")
        assert inspect.getcoroutinestate(pending[0]) == inspect.CORO_CLOSED


class TestAsyncPipeline:
    @pytest.mark.asyncio
    async def test_async_hooks_and_filters(self) -> None:
        async def lookup(value):
            await asyncio.sleep(0)
            return {1: "Ada"}[value]

        async def before(call):
            await asyncio.sleep(0)
            return replace(call, context={**call.context, "id": 1})

        async def after(output, call):
            return output.upper()

        plugins = PluginManager()
        plugins.register(Plugin("users", "1.0.0", filters={"lookup": lookup}, before_render=before))
        plugins.register(Plugin("shout", "1.0.0", after_render=after))
        assert await plugins.render_async("Hi {id|lookup}", {}) == "HI ADA"

    @pytest.mark.asyncio
    async def test_sync_hooks_work_too(self) -> None:
        plugins = PluginManager()
        plugins.register(Plugin("square", "1.0.0", after_render=wrap("[", "]")))
        assert await plugins.render_async("{v}", {"v": 2}) == "[2]"

    @pytest.mark.asyncio
    async def test_cached_result(self) -> None:
        async def before(call):
            return replace(call, cached="hit")

        plugins = PluginManager()
        plugins.register(Plugin("cache", "1.0.0", before_render=before))
        assert await plugins.render_async("{oops") == "hit"

    @pytest.mark.asyncio
    async def test_async_error_hook(self) -> None:
        async def on_error(error, call):
            await asyncio.sleep(0)
            return RuntimeError(f"wrapped {error.code.value}")

        plugins = PluginManager()
        plugins.register(Plugin("wrap", "1.0.0", on_error=on_error))
        with pytest.raises(RuntimeError, match="wrapped missing-key") as exc_info:
            await plugins.render_async("{a}", {}, on_missing="error")
        assert isinstance(exc_info.value.__cause__, MissingKeyError)
