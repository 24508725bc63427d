"""Pure runtime helpers used by compiled templates.

Thread-Safety:
All functions are stateless and safe for concurrent use.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence, Set
from typing import Any, Final


class _Missing:
    """Sentinel for a path that did not resolve. Distinct from ``None``."""

    __slots__ = ()
    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Final = _Missing()

# Leaf values: never looked into, even if they expose attributes.
_OPAQUE = (str, bytes, bytearray, int, float, complex, bool, Sequence, Set)


def resolve(context: Any, path: Sequence[str]) -> Any:
    """Walk ``path`` through nested mappings and objects.

    Mappings are searched by exact key; other objects by public attribute.
    Strings, numbers, ``None``, sequences and sets are leaves, so
    ``{name.upper}`` does not reach ``str.upper``. Any step that cannot be
    taken yields ``MISSING``.

    Example:
        >>> resolve({"user": {"name": "Ada"}}, ("user", "name"))
        'Ada'
        >>> resolve({"user": None}, ("user", "name"))
        MISSING
    """
    current = context
    for segment in path:
        if isinstance(current, Mapping):
            try:
                current = current[segment]
            except KeyError:
                return MISSING
            continue
        if current is None or isinstance(current, _OPAQUE) or segment.startswith("_"):
            return MISSING
        try:
            current = getattr(current, segment)
        except AttributeError:
            return MISSING
    return current


def is_missing(value: Any) -> bool:
    """Render-time test: unresolved paths and ``None`` both count as missing."""
    return value is MISSING or value is None
