"""Bounded LRU cache for compiled templates.

Keys are fingerprints (hashable tuples built by ``CompileOptions``), values
are compiled templates. Every hit promotes the entry to most-recently-used.
Inserting past ``maxsize`` evicts the least-recently-used entry.

Thread-Safety:
All operations take a single lock, so concurrent renders that compile
the same source never observe a half-updated ``OrderedDict``.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from collections.abc import Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass(frozen=True, slots=True)
class CacheInfo:
    """Snapshot of cache counters, in the spirit of ``functools.lru_cache``."""

    hits: int
    misses: int
    size: int
    maxsize: int


class TemplateCache(Generic[V]):
    """Strict least-recently-used mapping of fingerprint → compiled template.

    Example:
        >>> cache = TemplateCache(maxsize=1)
        >>> cache.put("a", 1)
        >>> cache.put("b", 2)
        >>> cache.get("a") is None
        True
    """

    __slots__ = ("_data", "_hits", "_lock", "_maxsize", "_misses")

    def __init__(self, maxsize: int):
        if maxsize < 0:
            raise ValueError(f"maxsize must be >= 0, got {maxsize}")
        self._data: OrderedDict[Hashable, V] = OrderedDict()
        self._lock = threading.Lock()
        self._maxsize = maxsize
        self._hits = 0
        self._misses = 0

    @property
    def maxsize(self) -> int:
        return self._maxsize

    def get(self, key: Hashable) -> V | None:
        with self._lock:
            try:
                value = self._data[key]
            except KeyError:
                self._misses += 1
                return None
            self._data.move_to_end(key)
            self._hits += 1
            return value

    def put(self, key: Hashable, value: V) -> None:
        with self._lock:
            if self._maxsize == 0:
                return
            self._data[key] = value
            self._data.move_to_end(key)
            self._evict_locked()

    def resize(self, maxsize: int) -> None:
        """Change capacity, evicting LRU entries that no longer fit."""
        if maxsize < 0:
            raise ValueError(f"maxsize must be >= 0, got {maxsize}")
        with self._lock:
            if maxsize == self._maxsize:
                return
            logger.debug("Resizing template cache %d -> %d", self._maxsize, maxsize)
            self._maxsize = maxsize
            self._evict_locked()

    def clear(self) -> None:
        with self._lock:
            self._data.clear()
            self._hits = 0
            self._misses = 0

    def info(self) -> CacheInfo:
        with self._lock:
            return CacheInfo(self._hits, self._misses, len(self._data), self._maxsize)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def _evict_locked(self) -> None:
        while len(self._data) > self._maxsize:
            evicted, _ = self._data.popitem(last=False)
            logger.debug("Evicted template from cache: %.60r", evicted)
