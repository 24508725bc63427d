"""Number, percent and currency filters (Babel ``babel.numbers``)."""

from __future__ import annotations

import copy
from typing import Any

from babel import Locale
from babel.numbers import NumberPattern, format_currency, format_decimal, format_percent, is_currency

from formatr.environment.exceptions import LocaleFormatError
from formatr.filters.base import sync_filter
from formatr.filters.locale import resolve_locale, to_digits, to_number


def _with_fraction(pattern: NumberPattern, low: int, high: int) -> NumberPattern:
    pattern = copy.copy(pattern)
    pattern.frac_prec = (low, max(low, high))
    return pattern


def _fraction_range(first: str | None, second: str | None) -> tuple[int, int] | None:
    if first is None or not first.strip():
        return None
    head, sep, tail = first.partition("-")
    if sep and head.strip():
        return to_digits("number", head), to_digits("number", tail)
    low = to_digits("number", first)
    high = to_digits("number", second) if second is not None and second.strip() else low
    return low, high


@sync_filter(min_args=0, max_args=2, locale_aware=True)
def number(value: Any, first: str | None = None, second: str | None = None, *, locale: str | None = None) -> str:
    """Locale-grouped number.

    ``number:2`` fixes two fraction digits, ``number:0-2`` and
    ``number:0,2`` give a min/max range. With no argument up to three
    fraction digits are shown.

    Example:
        >>> number.fn(1234.5, "2", locale="de-DE")
        '1.234,50'
    """
    n = to_number(value)
    if n is None:
        return str(value)
    loc = resolve_locale(bound=locale)
    digits = _fraction_range(first, second)
    if digits is None:
        return format_decimal(n, locale=loc)
    return format_decimal(n, format=_with_fraction(loc.decimal_formats[None], *digits), locale=loc)


@sync_filter(min_args=0, max_args=1, locale_aware=True)
def percent(value: Any, digits: str | None = None, *, locale: str | None = None) -> str:
    """Fraction rendered as a percentage: ``0.1234|percent:1`` is ``12.3%``."""
    n = to_number(value)
    if n is None:
        return str(value)
    loc = resolve_locale(bound=locale)
    count = to_digits("percent", digits) if digits is not None and digits.strip() else 0
    return format_percent(n, format=_with_fraction(loc.percent_formats[None], count, count), locale=loc)


def _split_code(code: str, digits: str | None) -> tuple[str, str | None]:
    code = code.strip()
    if ":" in code:
        code, _, inline = code.partition(":")
        if digits is None or not digits.strip():
            digits = inline
    return code.strip().upper(), digits


@sync_filter(min_args=1, max_args=2, locale_aware=True)
def currency(value: Any, code: str, digits: str | None = None, *, locale: str | None = None) -> str:
    """Amount in an ISO 4217 currency; ``currency:EUR,0`` or ``currency:EUR:0``."""
    n = to_number(value)
    if n is None:
        return str(value)
    currency_code, digits = _split_code(code, digits)
    if not is_currency(currency_code):
        raise LocaleFormatError(f"Filter 'currency': unknown currency code {code.strip()!r}")
    loc: Locale = resolve_locale(bound=locale)
    if digits is None or not digits.strip():
        return format_currency(n, currency_code, locale=loc)
    count = to_digits("currency", digits)
    pattern = _with_fraction(loc.currency_formats["standard"], count, count)
    return format_currency(n, currency_code, format=pattern, locale=loc, currency_digits=False)


NUMBER_FILTERS = {f.name: f for f in (number, percent, currency)}
