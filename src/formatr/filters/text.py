"""Text filters.

Every filter coerces its input with ``str()`` first, so they accept any
value. Numeric arguments are parsed leniently: an unparseable length or
index falls back to the filter's default instead of failing the render.

``upper``, ``lower`` and ``trim`` go through the backend dispatcher and
use the native implementation when one is loaded and enabled.
"""

from __future__ import annotations

from typing import Any

from formatr.backend.dispatcher import BACKEND
from formatr.filters.base import sync_filter


def _to_int(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def _count_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


@sync_filter(arity=0)
def upper(value: Any) -> str:
    return BACKEND.call("upper", str(value))


@sync_filter(arity=0)
def lower(value: Any) -> str:
    return BACKEND.call("lower", str(value))


@sync_filter(arity=0)
def trim(value: Any) -> str:
    return BACKEND.call("trim", str(value))


@sync_filter(arity=0)
def capitalize(value: Any) -> str:
    """Upper-case the first character, leave the rest untouched."""
    text = str(value)
    return text[:1].upper() + text[1:]


@sync_filter(arity=0)
def title(value: Any) -> str:
    return str(value).title()


@sync_filter(min_args=1, max_args=3)
def pad(value: Any, length: str, direction: str = "right", char: str = " ") -> str:
    """Pad to ``length`` characters.

    ``direction`` is ``left``, ``right`` (default), ``both`` or ``center``;
    only the first character of ``char`` is used. Strings already at least
    ``length`` long are returned unchanged.

    Example:
        >>> pad.fn("42", "5", "left", "0")
        '00042'
    """
    text = str(value)
    width = _to_int(length)
    if width is None or len(text) >= width:
        return text
    fill = char[:1] or " "
    missing = width - len(text)
    direction = direction.strip()
    if direction == "left":
        return fill * missing + text
    if direction in ("both", "center"):
        left = missing // 2
        return fill * left + text + fill * (missing - left)
    return text + fill * missing


@sync_filter(name="slice", min_args=1, max_args=2)
def slice_(value: Any, start: str, end: str | None = None) -> str:
    """Python slice of the string; negative indices count from the end."""
    return str(value)[_to_int(start) or 0 : _to_int(end)]


@sync_filter(min_args=1, max_args=2)
def truncate(value: Any, length: str, ellipsis: str = "...") -> str:
    """Cut to at most ``length`` characters, ellipsis included."""
    text = str(value)
    limit = _to_int(length)
    if limit is None or len(text) <= limit:
        return text
    return text[: max(0, limit - len(ellipsis))] + ellipsis


@sync_filter(min_args=1, max_args=2)
def replace(value: Any, old: str, new: str = "") -> str:
    text = str(value)
    if not old:
        return text
    return text.replace(old, new)


@sync_filter(arity=2)
def plural(value: Any, singular: str, plural_form: str) -> str:
    """``"1 message"`` / ``"5 messages"``; non-numeric counts pass through.

    Example:
        >>> plural.fn(5, "message", "messages")
        '5 messages'
    """
    try:
        count = float(value)
    except (TypeError, ValueError):
        return str(value)
    if count != count or count in (float("inf"), float("-inf")):
        return str(value)
    word = singular if count == 1 else plural_form
    return f"{_count_text(value)} {word}"


TEXT_FILTERS = {
    f.name: f
    for f in (upper, lower, trim, capitalize, title, pad, slice_, truncate, replace, plural)
}
