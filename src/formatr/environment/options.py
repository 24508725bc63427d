"""Compile and analyze options.

Options are frozen dataclasses validated on construction. The public
entry points also accept them as keyword arguments:

    >>> compile("{n|number}", locale="de-DE")
    >>> compile("{n|number}", CompileOptions(locale="de-DE"))

Keyword arguments override fields of an explicit options object.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Mapping
from dataclasses import dataclass, replace
from typing import Any, Literal, TypeVar

from formatr.environment.registry import FilterRegistry
from formatr.filters import FilterDefinition
from formatr.utils.constants import DEFAULT_CACHE_SIZE, MISSING_POLICIES

MissingPolicy = Literal["error", "keep"] | Callable[[str], Any]
FilterMap = Mapping[str, FilterDefinition | Callable[..., Any]]

_O = TypeVar("_O", "CompileOptions", "AnalyzeOptions")


def _check_policy(on_missing: Any) -> None:
    if callable(on_missing):
        return
    if on_missing not in MISSING_POLICIES:
        raise ValueError(
            f"on_missing must be 'error', 'keep' or a callable, got {on_missing!r}"
        )


@dataclass(frozen=True, slots=True)
class CompileOptions:
    """Configuration for ``compile`` and ``compile_async``.

    Attributes:
        locale: Locale for locale-aware filters (``en-US``, ``de_DE``).
            None means the process default.
        on_missing: ``"keep"`` (emit the placeholder text), ``"error"``
            (raise MissingKeyError) or ``callable(key) -> value``.
        strict_keys: Raise on missing keys regardless of ``on_missing``.
        filters: Custom filters; override built-ins of the same name.
        cache_size: Size of the shared compile cache. 0 disables caching.
    """

    locale: str | None = None
    on_missing: MissingPolicy = "keep"
    strict_keys: bool = False
    filters: FilterMap | None = None
    cache_size: int = DEFAULT_CACHE_SIZE

    def __post_init__(self) -> None:
        _check_policy(self.on_missing)
        if isinstance(self.cache_size, bool) or not isinstance(self.cache_size, int):
            raise TypeError(f"cache_size must be an int, got {type(self.cache_size).__name__}")
        if self.cache_size < 0:
            raise ValueError(f"cache_size must be >= 0, got {self.cache_size}")
        if self.locale is not None and not isinstance(self.locale, str):
            raise TypeError(f"locale must be a string, got {type(self.locale).__name__}")

    @property
    def raises_on_missing(self) -> bool:
        return self.strict_keys or self.on_missing == "error"

    def registry(self) -> FilterRegistry:
        return FilterRegistry(self.filters)

    def fingerprint(
        self,
        mode: str,
        source: str,
        registry: FilterRegistry,
        generation: int,
    ) -> tuple[Hashable, ...]:
        """Cache key for compiling ``source`` with these options.

        Everything that can change the compiled result is included;
        ``cache_size`` is not. Callables compare by identity.
        """
        return (
            mode,
            source,
            self.locale,
            self.on_missing,
            self.strict_keys,
            registry.custom,
            generation,
        )


@dataclass(frozen=True, slots=True)
class AnalyzeOptions:
    """Configuration for ``analyze``.

    Attributes:
        context: Sample context. When given, placeholders that do not
            resolve in it are reported as ``missing-key``.
        filters: Custom filters, as for compile.
        on_missing: Chooses the severity of ``missing-key`` diagnostics.
        strict_keys: Report missing keys as errors.
    """

    context: Any = None
    filters: FilterMap | None = None
    on_missing: MissingPolicy = "keep"
    strict_keys: bool = False

    def __post_init__(self) -> None:
        _check_policy(self.on_missing)

    def registry(self) -> FilterRegistry:
        return FilterRegistry(self.filters)


def merge_options(cls: type[_O], options: _O | None, overrides: dict[str, Any]) -> _O:
    """Apply keyword overrides to ``options`` (or to the defaults)."""
    if options is None:
        return cls(**overrides)
    if not isinstance(options, cls):
        raise TypeError(f"options must be {cls.__name__}, got {type(options).__name__}")
    return replace(options, **overrides) if overrides else options
