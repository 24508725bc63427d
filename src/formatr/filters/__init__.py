"""Built-in filters and the filter definition API.

``BUILTIN_FILTERS`` maps every built-in name to its ``FilterDefinition``.
It is a process-wide constant; custom filters are layered over it per
compile by ``formatr.environment.registry.FilterRegistry``.
"""

from __future__ import annotations

from types import MappingProxyType

from formatr.filters.base import (
    FilterDefinition,
    FilterKind,
    as_definition,
    async_filter,
    sync_filter,
)
from formatr.filters.dates import DATE_FILTERS
from formatr.filters.duration import duration
from formatr.filters.numbers import NUMBER_FILTERS
from formatr.filters.text import TEXT_FILTERS

BUILTIN_FILTERS = MappingProxyType(
    {
        **TEXT_FILTERS,
        **NUMBER_FILTERS,
        **DATE_FILTERS,
        duration.name: duration,
    }
)

__all__ = [
    "BUILTIN_FILTERS",
    "FilterDefinition",
    "FilterKind",
    "as_definition",
    "async_filter",
    "sync_filter",
]
