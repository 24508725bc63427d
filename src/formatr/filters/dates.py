"""Date and time filters (Babel ``babel.dates``).

Patterns passed to ``format_date`` and ``timezone`` are CLDR/LDML
patterns: ``yyyy-MM-dd``, ``EEEE, MMMM d``, ``HH:mm zzz``. Text in single
quotes is copied literally.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from babel import Locale
from babel.dates import format_date as babel_format_date
from babel.dates import format_datetime, format_timedelta

from formatr.environment.exceptions import LocaleFormatError
from formatr.filters.base import sync_filter
from formatr.filters.locale import (
    as_aware,
    get_zone,
    option_number,
    parse_options,
    reference_time,
    resolve_locale,
    to_datetime,
)

PRESET_STYLES = frozenset({"short", "medium", "long", "full"})
RELATIVE_STYLES = frozenset({"narrow", "short", "long"})

DEFAULT_TIMEZONE_PATTERN = "yyyy-MM-dd HH:mm:ss zzz"

_UNIT_ABBREVIATIONS = {
    "year": "y",
    "month": "mo",
    "week": "w",
    "day": "d",
    "hour": "h",
    "minute": "m",
    "second": "s",
}


def _format_pattern(value: datetime, pattern: str, loc: Locale, tzinfo: Any = None) -> str:
    if pattern in PRESET_STYLES:
        if tzinfo is None:
            return babel_format_date(value, format=pattern, locale=loc)
        return format_datetime(value, format=pattern, tzinfo=tzinfo, locale=loc)
    try:
        return format_datetime(value, format=pattern, tzinfo=tzinfo, locale=loc)
    except (ValueError, KeyError) as exc:
        raise LocaleFormatError(f"Invalid date pattern {pattern!r}: {exc}") from exc


def _choice(options: dict[str, Any], key: str, allowed: frozenset[str], default: str, filter_name: str) -> str:
    value = options.get(key, default)
    if not isinstance(value, str) or value not in allowed:
        raise LocaleFormatError(
            f"Filter '{filter_name}': {key} must be one of {sorted(allowed)}, got {value!r}"
        )
    return value


@sync_filter(name="date", min_args=0, max_args=2, locale_aware=True)
def date_(value: Any, style: str | None = None, call_locale: str | None = None, *, locale: str | None = None) -> str:
    """Localized date in a preset style (``short``, ``medium``, ``long``, ``full``).

    Unknown styles fall back to ``medium``.
    """
    dt = to_datetime(value, "date")
    style = (style or "").strip()
    if style not in PRESET_STYLES:
        style = "medium"
    return babel_format_date(dt, format=style, locale=resolve_locale(call_locale, locale))


@sync_filter(min_args=0, max_args=2, locale_aware=True)
def format_date(value: Any, pattern: str | None = None, call_locale: str | None = None, *, locale: str | None = None) -> str:
    """Preset style or LDML pattern.

    Example:
        >>> format_date.fn("2024-01-15", "EEEE, MMMM d", locale="en-US")
        'Monday, January 15'
    """
    dt = to_datetime(value, "format_date")
    pattern = pattern.strip() if pattern and pattern.strip() else "medium"
    return _format_pattern(dt, pattern, resolve_locale(call_locale, locale))


@sync_filter(min_args=0, max_args=1, locale_aware=True)
def relative_date(value: Any, raw_options: str | None = None, *, locale: str | None = None) -> str:
    """Signed distance from a reference time: ``in 3 days``, ``2 hours ago``.

    JSON options: ``style`` (narrow/short/long), ``locale``, ``reference``.
    """
    options = parse_options("relative_date", raw_options)
    style = _choice(options, "style", RELATIVE_STYLES, "long", "relative_date")
    loc = resolve_locale(options.get("locale"), locale)
    target = as_aware(to_datetime(value, "relative_date"))
    delta = target - reference_time(options, "relative_date")
    return format_timedelta(delta, threshold=1, add_direction=True, format=style, locale=loc)


# (unit, seconds per unit, switch to the next unit at this many)
_AGO_STEPS: tuple[tuple[str, int, int | None], ...] = (
    ("second", 1, 60),
    ("minute", 60, 60),
    ("hour", 3600, 24),
    ("day", 86400, 7),
    ("week", 7 * 86400, 4),
    ("month", 30 * 86400, 12),
    ("year", 365 * 86400, None),
)


_UNIT_SECONDS = {unit: size for unit, size, _ in _AGO_STEPS}


def _pick_unit(seconds: float, *, past: bool) -> tuple[int, str]:
    for unit, size, limit in _AGO_STEPS:
        amount = seconds / size
        if limit is None or amount < limit or (not past and unit == "day"):
            return round(amount), unit
    raise AssertionError("unreachable")


@sync_filter(min_args=0, max_args=1, locale_aware=True)
def time_ago(value: Any, raw_options: str | None = None, *, locale: str | None = None) -> str:
    """How long ago ``value`` was: ``5m``, ``5m ago`` or ``5 minutes ago``.

    JSON options:
        format: ``narrow``, ``short`` or ``long`` (default).
        threshold: Days after which the absolute date is shown instead.
        fallback_format: Style or pattern for that absolute date (``medium``).
        just_now: Seconds under which ``just now`` is shown (default 10).
        reference: Time to measure from (default now).
        locale: Per-call locale.

    Future values render as ``in 5m`` / ``in 5 minutes``; they are measured
    in days at most.
    """
    options = parse_options("time_ago", raw_options)
    style = _choice(options, "format", RELATIVE_STYLES, "long", "time_ago")
    loc = resolve_locale(options.get("locale"), locale)
    target = as_aware(to_datetime(value, "time_ago"))
    elapsed = (reference_time(options, "time_ago") - target).total_seconds()

    threshold = option_number("time_ago", options, "threshold")
    just_now = option_number("time_ago", options, "just_now", 10)
    if threshold is not None and elapsed / 86400 > threshold:
        return _format_pattern(target, str(options.get("fallback_format", "medium")), loc)
    if 0 <= elapsed < just_now:
        return "just now"

    past = elapsed >= 0
    amount, unit = _pick_unit(abs(elapsed), past=past)
    if style == "long":
        seconds = amount * _UNIT_SECONDS[unit]
        delta = timedelta(seconds=-seconds if past else seconds)
        return format_timedelta(delta, threshold=1, add_direction=True, format="long", locale=loc)
    text = f"{amount}{_UNIT_ABBREVIATIONS[unit]}"
    if style == "narrow":
        return text
    return f"{text} ago" if past else f"in {text}"


@sync_filter(min_args=1, max_args=2, locale_aware=True)
def timezone(value: Any, zone: str, raw_options: str | None = None, *, locale: str | None = None) -> str:
    """Render ``value`` in the IANA time zone ``zone``.

    JSON options: ``format`` (preset style or LDML pattern, default
    ``yyyy-MM-dd HH:mm:ss zzz``) and ``locale``.
    """
    options = parse_options("timezone", raw_options)
    tzinfo = get_zone(zone)
    loc = resolve_locale(options.get("locale"), locale)
    pattern = str(options.get("format", DEFAULT_TIMEZONE_PATTERN))
    return _format_pattern(as_aware(to_datetime(value, "timezone")), pattern, loc, tzinfo=tzinfo)


DATE_FILTERS = {f.name: f for f in (date_, format_date, relative_date, time_ago, timezone)}
