"""Partial templates for ``{> name}`` includes.

Partials live in one process-wide registry. Includes are expanded when
the including template is compiled, so changing a partial affects only
templates compiled afterwards. Every mutation bumps ``generation``, which
is part of the compile cache key; a stale cached template is never served
after a partial changes.

Example:
    >>> register_template("greeting", "Hello {name}")
    >>> compile("{> greeting}!")({"name": "Ada"})
    'Hello Ada!'

Thread-Safety:
Reads take the current dict without locking. Writers copy, modify and
swap the dict under a lock (copy-on-write), incrementing the generation
in the same critical section.
"""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class TemplateRegistry:
    """Named partial sources, keyed by dotted name."""

    __slots__ = ("_generation", "_lock", "_templates")

    def __init__(self, templates: dict[str, str] | None = None):
        self._templates: dict[str, str] = dict(templates or {})
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def generation(self) -> int:
        return self._generation

    def register(self, name: str, source: str) -> None:
        if not isinstance(source, str):
            raise TypeError(f"Partial '{name}' source must be str, got {type(source).__name__}")
        with self._lock:
            templates = self._templates.copy()
            templates[name] = source
            self._templates = templates
            self._generation += 1
        logger.debug("Registered partial %r (generation %d)", name, self._generation)

    def get(self, name: str) -> str | None:
        return self._templates.get(name)

    def has(self, name: str) -> bool:
        return name in self._templates

    def names(self) -> list[str]:
        return list(self._templates)

    def clear(self) -> None:
        with self._lock:
            self._templates = {}
            self._generation += 1

    def snapshot(self) -> tuple[int, dict[str, str]]:
        """Generation and dict read together, for one compile."""
        with self._lock:
            return self._generation, self._templates


PARTIALS = TemplateRegistry()


def register_template(name: str, source: str) -> None:
    """Register (or replace) the partial used by ``{> name}``."""
    PARTIALS.register(name, source)


def get_template(name: str) -> str | None:
    return PARTIALS.get(name)


def has_template(name: str) -> bool:
    return PARTIALS.has(name)


def list_templates() -> list[str]:
    return PARTIALS.names()


def clear_templates() -> None:
    PARTIALS.clear()
