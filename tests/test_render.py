"""End-to-end compile and render behaviour."""

from __future__ import annotations

import inspect
from dataclasses import dataclass

import pytest

import formatr
from formatr import (
    AsyncFilterError,
    CompileOptions,
    ErrorCode,
    FilterArityError,
    FilterExecutionError,
    LocaleFormatError,
    MissingKeyError,
    ParseError,
    RenderError,
    UnknownFilterError,
    async_filter,
    sync_filter,
)


@dataclass
class Product:
    name: str
    price: float


class TestBasics:
    def test_literal_only(self) -> None:
        assert formatr.compile("no placeholders").render() == "no placeholders"

    def test_single_placeholder(self) -> None:
        assert formatr.compile("Hello {name}!")({"name": "Alice"}) == "Hello Alice!"

    def test_escaped_braces(self) -> None:
        assert formatr.compile("{{literal}} {x}").render(x=1) == "{literal} 1"

    def test_repeated_renders(self) -> None:
        template = formatr.compile("{a}-{b}")
        assert template.render(a=1, b=2) == "1-2"
        assert template.render(a="x", b="y") == "x-y"

    def test_nested_path(self) -> None:
        ctx = {"user": {"profile": {"name": "Ada"}}}
        assert formatr.compile("{user.profile.name}").render(ctx) == "Ada"

    def test_object_context(self) -> None:
        template = formatr.compile("{item.name}: {item.price|number:2}")
        assert template.render(item=Product("Tea", 3.5)) == "Tea: 3.50"

    def test_keywords_override_mapping(self) -> None:
        assert formatr.compile("{a}").render({"a": 1}, a=2) == "2"

    def test_keywords_need_mapping_context(self) -> None:
        with pytest.raises(TypeError):
            formatr.compile("{a}").render(Product("x", 1), a=2)

    def test_values_are_stringified(self) -> None:
        template = formatr.compile("{a} {b} {c}")
        assert template.render(a=1.5, b=True, c=[1]) == "1.5 True [1]"

    def test_keys_and_repr(self) -> None:
        template = formatr.compile("{a} {b.c|upper}")
        assert template.keys == ("a", "b.c")
        assert template.source == "{a} {b.c|upper}"
        assert "Template" in repr(template)

    def test_non_string_source(self) -> None:
        with pytest.raises(TypeError):
            formatr.compile(b"{x}")  # type: ignore[arg-type]


class TestMissingKeys:
    def test_keep_emits_placeholder_text(self) -> None:
        template = formatr.compile("Hello {user.name|upper}!")
        assert template.render() == "Hello {user.name|upper}!"

    def test_keep_is_default(self) -> None:
        assert formatr.compile("{x}").render({}) == "{x}"

    def test_none_counts_as_missing(self) -> None:
        assert formatr.compile("[{x}]").render(x=None) == "[{x}]"

    @pytest.mark.parametrize("value", [0, "", False, 0.0])
    def test_falsy_values_are_present(self, value) -> None:
        assert formatr.compile("[{x}]", on_missing="error").render(x=value) == f"[{value}]"

    def test_error_policy(self) -> None:
        template = formatr.compile("Hi {name}", on_missing="error")
        with pytest.raises(MissingKeyError) as exc_info:
            template.render()
        err = exc_info.value
        assert err.key == "name"
        assert err.code is ErrorCode.MISSING_KEY
        assert err.offset == 3
        assert (err.position.line, err.position.column) == (1, 4)

    def test_strict_keys_overrides_keep(self) -> None:
        template = formatr.compile("{a}", on_missing="keep", strict_keys=True)
        with pytest.raises(MissingKeyError):
            template.render()

    def test_callable_policy(self) -> None:
        template = formatr.compile("{a} and {b.c}", on_missing=lambda key: f"<{key}>")
        assert template.render(a=1) == "1 and <b.c>"

    def test_callable_result_skips_filters(self) -> None:
        template = formatr.compile("{a|upper}", on_missing=lambda key: "fallback")
        assert template.render() == "fallback"

    def test_async_callable_policy_in_sync_template(self) -> None:
        pending = []

        async def lookup(key):
            return key

        def policy(key):
            pending.append(lookup(key))
            return pending[-1]

        template = formatr.compile("Hi {name}", on_missing=policy)
        with pytest.raises(RenderError) as exc_info:
            template.render()
        err = exc_info.value
        assert err.code is ErrorCode.MISSING_KEY
        assert err.offset == 3
        assert "compile_async()" in err.suggestion
        assert inspect.getcoroutinestate(pending[0]) == inspect.CORO_CLOSED

    def test_render_is_all_or_nothing(self) -> None:
        template = formatr.compile("{a}{b}{c}", on_missing="error")
        with pytest.raises(MissingKeyError) as exc_info:
            template.render(a=1, c=3)
        assert exc_info.value.key == "b"

    def test_invalid_policy(self) -> None:
        with pytest.raises(ValueError):
            formatr.compile("{a}", on_missing="ignore")


class TestCustomFilters:
    def test_plain_callable(self) -> None:
        template = formatr.compile("{v|shout}", filters={"shout": lambda v: f"{v}!"})
        assert template.render(v="hey") == "hey!"

    def test_callable_receives_raw_arguments(self) -> None:
        seen = []

        def record(value, *args):
            seen.append(args)
            return value

        formatr.compile("{v|record:1, two ,'3,4'}", filters={"record": record}).render(v=0)
        assert seen == [("1", "two", "3,4")]

    def test_declared_arity(self) -> None:
        @sync_filter(arity=1)
        def repeat(value, times):
            return str(value) * int(times)

        template = formatr.compile("{v|repeat:3}", filters={"repeat": repeat})
        assert template.render(v="ab") == "ababab"
        with pytest.raises(FilterArityError) as exc_info:
            formatr.compile("{v|repeat}", filters={"repeat": repeat})
        assert exc_info.value.expected == "1"
        assert exc_info.value.got == 0

    def test_override_is_scoped_to_compile(self) -> None:
        custom = formatr.compile("{v|upper}", filters={"upper": lambda v: "custom"})
        builtin = formatr.compile("{v|upper}")
        assert custom.render(v="x") == "custom"
        assert builtin.render(v="x") == "X"

    def test_definition_registered_under_other_name(self) -> None:
        @sync_filter()
        def exclaim(value):
            return f"{value}!"

        template = formatr.compile("{v|bang}", filters={"bang": exclaim})
        assert template.render(v="go") == "go!"

    def test_non_callable_filter(self) -> None:
        with pytest.raises(TypeError):
            formatr.compile("{v}", filters={"bad": 42})

    def test_options_object_and_overrides(self) -> None:
        options = CompileOptions(locale="de-DE", on_missing="error")
        assert formatr.compile("{n|number:2}", options).render(n=1.5) == "1,50"
        assert formatr.compile("{n|number:2}", options, locale="en-US").render(n=1.5) == "1.50"


class TestCompileErrors:
    def test_parse_error(self) -> None:
        with pytest.raises(ParseError):
            formatr.compile("Hello {name")

    def test_unknown_filter_suggestion(self) -> None:
        with pytest.raises(UnknownFilterError) as exc_info:
            formatr.compile("{name|uper}")
        err = exc_info.value
        assert err.name == "uper"
        assert "upper" in err.suggestions
        assert "Did you mean 'upper'?" in str(err)
        assert err.offset == 6

    def test_unknown_filter_without_suggestion(self) -> None:
        with pytest.raises(UnknownFilterError) as exc_info:
            formatr.compile("{name|zzzzzz}")
        assert exc_info.value.suggestions == ()

    def test_arity_mismatch(self) -> None:
        with pytest.raises(FilterArityError) as exc_info:
            formatr.compile("{v|pad:1,2,3,4}")
        err = exc_info.value
        assert (err.name, err.expected, err.got) == ("pad", "1-3", 4)
        assert "expects 1-3 arguments, got 4" in err.message

    def test_async_filter_in_sync_template(self) -> None:
        @async_filter()
        async def fetch(value):
            return value

        with pytest.raises(AsyncFilterError) as exc_info:
            formatr.compile("{v|fetch}", filters={"fetch": fetch})
        assert exc_info.value.code is ErrorCode.ASYNC_FILTER
        assert "compile_async" in exc_info.value.suggestion

    def test_plain_coroutine_function_is_async(self) -> None:
        async def fetch(value):
            return value

        with pytest.raises(AsyncFilterError):
            formatr.compile("{v|fetch}", filters={"fetch": fetch})


class TestRenderErrors:
    def test_filter_exception_is_wrapped(self) -> None:
        def explode(value):
            raise ZeroDivisionError("boom")

        template = formatr.compile("x {v|explode}", filters={"explode": explode})
        with pytest.raises(FilterExecutionError) as exc_info:
            template.render(v=1)
        err = exc_info.value
        assert isinstance(err.__cause__, ZeroDivisionError)
        assert err.filter_name == "explode"
        assert err.key == "v"
        assert err.offset == 5
        assert "ZeroDivisionError: boom" in str(err)

    def test_locale_error_gets_position(self) -> None:
        template = formatr.compile("Total: {p|currency:NOPE}")
        with pytest.raises(LocaleFormatError) as exc_info:
            template.render(p=5)
        assert exc_info.value.offset == 10
        assert "<template>:1:11" in str(exc_info.value)


class TestOptionsValidation:
    @pytest.mark.parametrize("size", [-1, -100])
    def test_negative_cache_size(self, size: int) -> None:
        with pytest.raises(ValueError):
            CompileOptions(cache_size=size)

    @pytest.mark.parametrize("size", [1.5, "10", True])
    def test_non_integer_cache_size(self, size) -> None:
        with pytest.raises(TypeError):
            CompileOptions(cache_size=size)

    def test_locale_type(self) -> None:
        with pytest.raises(TypeError):
            CompileOptions(locale=123)  # type: ignore[arg-type]

    def test_wrong_options_type(self) -> None:
        with pytest.raises(TypeError):
            formatr.compile("{a}", formatr.AnalyzeOptions())  # type: ignore[arg-type]
