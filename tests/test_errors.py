"""Error objects: codes, positions, snippets and terminal output."""

from __future__ import annotations

import pytest

import formatr
from formatr import CompileError, ErrorCode, FormatrError, MissingKeyError, ParseError, RenderError
from formatr.environment import terminal


def _catch(fn, *args, **kwargs) -> FormatrError:
    with pytest.raises(FormatrError) as exc_info:
        fn(*args, **kwargs)
    return exc_info.value


class TestHierarchy:
    def test_compile_errors(self) -> None:
        assert isinstance(_catch(formatr.compile, "{"), CompileError)
        assert isinstance(_catch(formatr.compile, "{a|nope}"), CompileError)

    def test_render_errors(self) -> None:
        err = _catch(formatr.compile("{a}", on_missing="error").render)
        assert isinstance(err, RenderError)
        assert not isinstance(err, CompileError)

    @pytest.mark.parametrize("code", list(ErrorCode))
    def test_codes_are_kebab_case(self, code: ErrorCode) -> None:
        assert code.value == code.value.lower()
        assert " " not in code.value and "_" not in code.value


class TestMessages:
    def test_message_includes_location_and_snippet(self) -> None:
        err = _catch(formatr.parse, "Hello {name")
        text = str(err)
        assert text.startswith("Unterminated placeholder")
        assert "--> <template>:1:7" in text
        assert "Hello {name" in text
        assert "Hint:" in text

    def test_message_attribute_is_undecorated(self) -> None:
        err = _catch(formatr.parse, "Hello {name")
        assert err.message == "Unterminated placeholder"

    def test_no_position_without_offset(self) -> None:
        err = MissingKeyError("k")
        assert err.position is None
        assert str(err) == "Missing key 'k'"

    def test_locate_only_once(self) -> None:
        err = MissingKeyError("k")
        err.locate(2, "ab{k}")
        err.locate(0, "other")
        assert err.offset == 2
        assert err.source == "ab{k}"
        assert "<template>:1:3" in str(err)

    def test_parse_error_end(self) -> None:
        err = _catch(formatr.parse, r"{x|pad:'\n'}")
        assert isinstance(err, ParseError)
        assert (err.offset, err.end) == (8, 10)


class TestCompactFormat:
    def test_plain(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(terminal, "_ENABLED", False)
        err = _catch(formatr.compile("Hi {name}!", on_missing="error").render)
        lines = err.format_compact().splitlines()
        assert lines[0] == "missing-key: Missing key 'name'"
        assert lines[1] == "  --> <template>:1:4"
        assert lines[-2].endswith("^")
        assert lines[-1].startswith("  Hint:")

    def test_coloured(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(terminal, "_ENABLED", True)
        err = _catch(formatr.compile, "{a|uper}")
        text = err.format_compact()
        assert "\033[36m" in text
        assert terminal.strip_colors(text).startswith("unknown-filter: Unknown filter 'uper'")


class TestTerminal:
    def test_paint_disabled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(terminal, "_ENABLED", False)
        assert terminal.paint("x", "red") == "x"
        assert not terminal.supports_color()

    def test_paint_enabled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(terminal, "_ENABLED", True)
        assert terminal.paint("x", "red", "bold") == "\033[31m\033[1mx\033[0m"

    def test_strip_colors(self) -> None:
        assert terminal.strip_colors("\033[91m\033[1merror\033[0m") == "error"

    def test_snippet_caret(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(terminal, "_ENABLED", False)
        text = terminal.snippet("one\ntwo {x", 2, 5)
        assert text.splitlines() == ["   |", "  2 | two {x", "   |     ^"]

    def test_snippet_out_of_range(self) -> None:
        assert terminal.snippet("one", 3) == ""

    @pytest.mark.parametrize(
        ("force", "no_color", "expected"),
        [("1", "", True), ("1", "1", True), ("", "1", False)],
    )
    def test_detection(self, monkeypatch: pytest.MonkeyPatch, force: str, no_color: str, expected: bool) -> None:
        monkeypatch.setenv("FORCE_COLOR", force)
        monkeypatch.setenv("NO_COLOR", no_color)
        assert terminal._detect() is expected
