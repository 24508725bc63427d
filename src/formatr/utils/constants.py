"""Shared constants for formatr."""

from __future__ import annotations

import os

# Compiled-template cache size used when a compile call does not pass one.
DEFAULT_CACHE_SIZE: int = 200

# Locale used when neither the filter call nor the compile options name one.
DEFAULT_LOCALE: str = os.environ.get("FORMATR_LOCALE") or "en-US"

# Import name of the optional native string backend.
NATIVE_MODULE: str = os.environ.get("FORMATR_NATIVE_MODULE") or "formatr_native"

# Missing-key policies accepted as strings.
MISSING_POLICIES: frozenset[str] = frozenset({"error", "keep"})

# Escapes decoded inside quoted filter arguments.
ARG_ESCAPES: dict[str, str] = {
    '"': '"',
    "'": "'",
    "\\": "\\",
    ",": ",",
    ":": ":",
}

# Key-name fragments used by the analyzer's suspicious-filter heuristic.
NUMERIC_KEY_HINTS: frozenset[str] = frozenset(
    {
        "count",
        "quantity",
        "qty",
        "amount",
        "total",
        "sum",
        "price",
        "cost",
        "balance",
        "age",
        "size",
        "num",
        "number",
        "ratio",
        "rate",
        "percent",
        "score",
    }
)
TEXT_KEY_HINTS: frozenset[str] = frozenset(
    {
        "name",
        "username",
        "title",
        "description",
        "label",
        "text",
        "message",
        "email",
        "city",
        "street",
        "slug",
        "comment",
    }
)
