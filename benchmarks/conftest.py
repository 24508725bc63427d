"""Shared fixtures for formatr benchmarks."""

from __future__ import annotations

from datetime import date

import pytest

import formatr


@pytest.fixture(autouse=True)
def _fresh_cache():
    formatr.clear_cache()
    formatr.clear_templates()
    yield
    formatr.clear_cache()


@pytest.fixture
def small_context() -> dict[str, object]:
    return {
        "user": {"name": "ada lovelace", "email": "ada@example.com"},
        "count": 3,
        "total": 1249.5,
    }


@pytest.fixture
def report_context() -> dict[str, object]:
    return {
        "rows": {f"r{i}": {"label": f"row {i}", "value": i * 1.5} for i in range(50)},
        "day": date(2024, 1, 15),
        "elapsed": 5_400_000,
    }
