"""ANSI colouring for error messages and analyzer reports.

Colours are applied only when stdout is a TTY. ``NO_COLOR`` disables them
(https://no-color.org/) and ``FORCE_COLOR`` forces them on, taking
precedence over ``NO_COLOR``.
"""

from __future__ import annotations

import os
import re
import sys
from typing import Literal

_CODES = {
    "reset": "\033[0m",
    "bold": "\033[1m",
    "dim": "\033[2m",
    "red": "\033[31m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "cyan": "\033[36m",
    "bright_red": "\033[91m",
    "bright_green": "\033[92m",
}

Style = Literal["reset", "bold", "dim", "red", "yellow", "blue", "cyan", "bright_red", "bright_green"]

_ANSI_RE = re.compile(r"\x1B\[[0-?]*[ -/]*[@-~]")


def _detect() -> bool:
    if os.environ.get("FORCE_COLOR"):
        return True
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty()


_ENABLED = _detect()


def supports_color() -> bool:
    return _ENABLED


def paint(text: str, *styles: Style) -> str:
    """Wrap ``text`` in the given styles, or return it unchanged."""
    if not _ENABLED or not styles:
        return text
    return "".join(_CODES[s] for s in styles) + text + _CODES["reset"]


def strip_colors(text: str) -> str:
    return _ANSI_RE.sub("", text)


_SEVERITY_STYLES: dict[str, tuple[Style, ...]] = {
    "error": ("bright_red", "bold"),
    "warning": ("yellow", "bold"),
    "info": ("blue",),
}


def severity(label: str) -> str:
    """Colour a diagnostic severity label (error/warning/info)."""
    return paint(label, *_SEVERITY_STYLES.get(label, ()))


def code(text: str) -> str:
    return paint(text, "cyan")


def location(text: str) -> str:
    return paint(text, "bold")


def hint(text: str) -> str:
    return paint(text, "bright_green")


def gutter(text: str = "") -> str:
    return paint(f"   |{text}", "dim")


def snippet(source: str, line: int, column: int | None = None) -> str:
    """Render one source line with a line-number gutter and optional caret.

    ``column`` is 1-based, matching ``Position``.
    """
    lines = source.splitlines() or [""]
    if not 0 < line <= len(lines):
        return ""
    parts = [gutter(), f"{paint(f'{line:>3}', 'dim')} | {lines[line - 1]}"]
    if column is not None:
        parts.append(f"{gutter()} {' ' * (column - 1)}{paint('^', 'bright_red')}")
    return "\n".join(parts)
