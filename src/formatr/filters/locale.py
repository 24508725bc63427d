"""Shared plumbing for the locale-aware filters.

Locale data comes from Babel (CLDR). Each locale-aware filter receives the
template's bound locale as ``locale=``; a per-call locale argument or JSON
option wins over it, and ``DEFAULT_LOCALE`` is the last resort.

Value coercion rules:
- Numbers: ``int``, ``float`` and ``Decimal`` if finite, and numeric
  strings. ``bool`` is not a number.
- Dates: ``datetime``, ``date``, millisecond timestamps and ISO 8601
  strings. Naive datetimes are taken as UTC wherever a time zone matters.
"""

from __future__ import annotations

import json
import math
from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Any

from babel import Locale, UnknownLocaleError
from babel.dates import get_timezone

from formatr.environment.exceptions import LocaleFormatError
from formatr.utils.constants import DEFAULT_LOCALE

Number = int | float | Decimal


@lru_cache(maxsize=64)
def get_locale(tag: str) -> Locale:
    """Parse a BCP 47 style tag (``en-US`` or ``en_US``) into a Babel Locale."""
    try:
        return Locale.parse(tag.strip().replace("-", "_"))
    except (UnknownLocaleError, ValueError, TypeError) as exc:
        raise LocaleFormatError(f"Unknown locale '{tag}'") from exc


def resolve_locale(requested: Any = None, bound: str | None = None) -> Locale:
    """Pick the effective locale: per-call, then template, then default."""
    if isinstance(requested, str) and requested.strip():
        return get_locale(requested)
    if requested is not None and not isinstance(requested, str):
        raise LocaleFormatError(f"Locale must be a string, got {type(requested).__name__}")
    return get_locale(bound or DEFAULT_LOCALE)


def parse_options(filter_name: str, raw: str | None) -> dict[str, Any]:
    """Decode a JSON option-object argument; empty means no options."""
    if raw is None or not raw.strip():
        return {}
    try:
        options = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LocaleFormatError(f"Filter '{filter_name}': invalid JSON options {raw!r}: {exc.msg}") from exc
    if not isinstance(options, dict):
        raise LocaleFormatError(f"Filter '{filter_name}': options must be a JSON object, got {raw!r}")
    return options


def to_number(value: Any) -> Number | None:
    """Return ``value`` as a finite number, or None if it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, str):
        try:
            number = Decimal(value.strip())
        except InvalidOperation:
            return None
        return number if number.is_finite() else None
    return None


def option_number(filter_name: str, options: dict[str, Any], key: str, default: Number | None = None) -> Number | None:
    """Numeric JSON option ``key``. Numeric strings are accepted; ``null`` means unset."""
    raw = options.get(key)
    if raw is None:
        return default
    n = to_number(raw)
    if n is None:
        raise LocaleFormatError(f"Filter '{filter_name}': {key} must be a number, got {raw!r}")
    return n


def to_digits(filter_name: str, raw: str) -> int:
    """Parse a fraction-digit count argument."""
    try:
        digits = int(raw.strip())
    except ValueError:
        raise LocaleFormatError(f"Filter '{filter_name}': invalid digit count {raw!r}") from None
    if digits < 0:
        raise LocaleFormatError(f"Filter '{filter_name}': digit count must be >= 0, got {digits}")
    return digits


def to_datetime(value: Any, filter_name: str = "date") -> datetime:
    """Coerce a date-like value, raising ``LocaleFormatError`` if impossible."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise LocaleFormatError(f"Filter '{filter_name}': timestamp out of range: {value!r}") from exc
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            pass
    raise LocaleFormatError(f"Filter '{filter_name}': invalid date value {value!r}")


def as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def reference_time(options: dict[str, Any], filter_name: str) -> datetime:
    """``options['reference']`` as an aware datetime, defaulting to now."""
    reference = options.get("reference")
    if reference is None:
        return datetime.now(timezone.utc)
    return as_aware(to_datetime(reference, filter_name))


def get_zone(name: str) -> Any:
    """Look up an IANA time zone by name."""
    if not name.strip():
        raise LocaleFormatError("Time zone name must not be empty")
    try:
        return get_timezone(name.strip())
    except (LookupError, ValueError) as exc:
        raise LocaleFormatError(f"Unknown time zone '{name}'") from exc
