"""The ``duration`` filter.

Breaks a millisecond count into calendar-free units by repeated integer
division (a month is 30 days, a year 365) and renders the pieces in one
of four styles:

    ```
    narrow   1h30m
    short    1h 30m                  (default)
    long     1 hour, 30 minutes      (localized unit names)
    colon    1:30:00 / 3:05
    ```

The argument is either a bare style keyword (``duration:long``) or a JSON
object with ``format``, ``units``, ``max_units``, ``min_units``,
``input_unit`` (``milliseconds`` or ``seconds``), ``pad_start`` and
``locale``.
"""

from __future__ import annotations

from typing import Any

from babel import Locale
from babel.units import format_unit

from formatr.environment.exceptions import LocaleFormatError
from formatr.filters.base import sync_filter
from formatr.filters.locale import option_number, parse_options, resolve_locale, to_number

UNIT_MS: dict[str, int] = {
    "years": 365 * 86_400_000,
    "months": 30 * 86_400_000,
    "weeks": 7 * 86_400_000,
    "days": 86_400_000,
    "hours": 3_600_000,
    "minutes": 60_000,
    "seconds": 1_000,
    "milliseconds": 1,
}

ABBREVIATIONS: dict[str, str] = {
    "years": "y",
    "months": "mo",
    "weeks": "w",
    "days": "d",
    "hours": "h",
    "minutes": "m",
    "seconds": "s",
    "milliseconds": "ms",
}

DEFAULT_UNITS: tuple[str, ...] = ("days", "hours", "minutes", "seconds")
STYLES = frozenset({"narrow", "short", "long", "colon"})


def _options(raw: str | None) -> dict[str, Any]:
    if raw is not None and raw.strip() in STYLES:
        return {"format": raw.strip()}
    if raw is not None and raw.strip() and not raw.strip().startswith("{"):
        raise LocaleFormatError(f"Filter 'duration': unknown format {raw.strip()!r}")
    return parse_options("duration", raw)


def _unit_list(filter_option: Any, name: str) -> list[str]:
    if not isinstance(filter_option, list):
        raise LocaleFormatError(f"Filter 'duration': {name} must be a list of unit names")
    unknown = [u for u in filter_option if not isinstance(u, str) or u not in UNIT_MS]
    if unknown:
        raise LocaleFormatError(
            f"Filter 'duration': unknown unit {unknown[0]!r}; expected one of {', '.join(UNIT_MS)}"
        )
    return filter_option


def _max_units(options: dict[str, Any]) -> int | None:
    n = option_number("duration", options, "max_units")
    if n is None:
        return None
    if n != int(n) or n < 1:
        raise LocaleFormatError(
            f"Filter 'duration': max_units must be a positive integer, got {options['max_units']!r}"
        )
    return int(n)


def breakdown(total_ms: int, units: tuple[str, ...] = DEFAULT_UNITS) -> list[tuple[str, int]]:
    """Split a non-negative millisecond count over ``units`` (largest first).

    Example:
        >>> breakdown(5_400_000)
        [('days', 0), ('hours', 1), ('minutes', 30), ('seconds', 0)]
    """
    parts = []
    remaining = total_ms
    for unit in units:
        amount, remaining = divmod(remaining, UNIT_MS[unit])
        parts.append((unit, amount))
    return parts


def _colon(total_ms: int, pad_start: bool) -> str:
    hours, rest = divmod(total_ms, UNIT_MS["hours"])
    minutes, rest = divmod(rest, UNIT_MS["minutes"])
    seconds = rest // UNIT_MS["seconds"]
    if hours or pad_start:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def _segment(unit: str, amount: int, style: str, loc: Locale) -> str:
    if style == "long":
        return format_unit(amount, f"duration-{unit[:-1]}", length="long", locale=loc)
    return f"{amount}{ABBREVIATIONS[unit]}"


@sync_filter(min_args=0, max_args=1, locale_aware=True)
def duration(value: Any, raw_options: str | None = None, *, locale: str | None = None) -> str:
    """Human duration from milliseconds (or seconds with ``input_unit``).

    Zero renders as the first unit (``0d``); negative values get a single
    leading ``-``; non-numeric values pass through unchanged.

    Example:
        >>> duration.fn(5_400_000)
        '1h 30m'
        >>> duration.fn(5_400_000, '{"format": "long"}')
        '1 hour, 30 minutes'
    """
    options = _options(raw_options)
    n = to_number(value)
    if n is None:
        return str(value)

    style = options.get("format", "short")
    if not isinstance(style, str) or style not in STYLES:
        raise LocaleFormatError(f"Filter 'duration': unknown format {style!r}")
    input_unit = options.get("input_unit", "milliseconds")
    if input_unit not in ("milliseconds", "seconds"):
        raise LocaleFormatError(f"Filter 'duration': unknown input_unit {input_unit!r}")

    ms = n * 1000 if input_unit == "seconds" else n
    sign = "-" if ms < 0 else ""
    total = int(abs(ms))

    if style == "colon":
        return sign + _colon(total, bool(options.get("pad_start", False)))

    units = DEFAULT_UNITS
    if "units" in options:
        units = tuple(sorted(set(_unit_list(options["units"], "units")), key=UNIT_MS.__getitem__, reverse=True))
        if not units:
            raise LocaleFormatError("Filter 'duration': units must not be empty")
    always = set(_unit_list(options.get("min_units", []), "min_units"))
    max_units = _max_units(options)
    loc = resolve_locale(options.get("locale"), locale)

    segments = []
    for unit, amount in breakdown(total, units):
        if max_units is not None and len(segments) >= max_units:
            break
        if amount > 0 or unit in always:
            segments.append(_segment(unit, amount, style, loc))
    if not segments:
        segments.append(_segment(units[0], 0, style, loc))

    separator = {"narrow": "", "short": " ", "long": ", "}[style]
    return sign + separator.join(segments)
