"""Filter registry: built-ins plus per-compile custom filters.

Custom filters shadow same-named built-ins for the registry they were
added to and nowhere else; ``BUILTIN_FILTERS`` itself never changes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from difflib import get_close_matches
from typing import Any

from formatr.filters import BUILTIN_FILTERS, FilterDefinition, as_definition


class FilterRegistry:
    """Dict-like view of the filters visible to one compile.

    Supports:
        - registry['name'] -> FilterDefinition
        - registry['name'] = func_or_definition
        - registry.update({'name': func})
        - 'name' in registry

    All mutations use copy-on-write for thread-safety: readers holding the
    previous dict keep a consistent view.
    """

    __slots__ = ("_custom", "_filters")

    def __init__(self, custom: Mapping[str, FilterDefinition | Callable[..., Any]] | None = None):
        self._filters: dict[str, FilterDefinition] = dict(BUILTIN_FILTERS)
        self._custom: dict[str, FilterDefinition] = {}
        if custom:
            self.update(custom)

    def __getitem__(self, name: str) -> FilterDefinition:
        return self._filters[name]

    def __setitem__(self, name: str, value: FilterDefinition | Callable[..., Any]) -> None:
        self.update({name: value})

    def __contains__(self, name: object) -> bool:
        return name in self._filters

    def __iter__(self) -> Iterator[str]:
        return iter(self._filters)

    def __len__(self) -> int:
        return len(self._filters)

    def get(self, name: str, default: FilterDefinition | None = None) -> FilterDefinition | None:
        return self._filters.get(name, default)

    def update(self, mapping: Mapping[str, FilterDefinition | Callable[..., Any]]) -> None:
        """Add or override filters; plain callables are normalized here."""
        definitions = {name: as_definition(name, value) for name, value in mapping.items()}
        filters = self._filters.copy()
        filters.update(definitions)
        custom = self._custom.copy()
        custom.update(definitions)
        self._filters = filters
        self._custom = custom

    @property
    def custom(self) -> tuple[tuple[str, FilterDefinition], ...]:
        """Custom definitions sorted by name, suitable for a cache key."""
        return tuple(sorted(self._custom.items()))

    def suggest(self, name: str, n: int = 3) -> list[str]:
        """Registered names that look like ``name`` ("did you mean")."""
        return get_close_matches(name, list(self._filters), n=n, cutoff=0.6)
