"""Pytest configuration and fixtures for formatr tests."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

import formatr
from formatr.backend.dispatcher import BACKEND, import_native_module

from .fakes import CountingNative


@pytest.fixture(autouse=True)
def isolated_state():
    """Every test starts with an empty cache, no partials and no backend."""
    formatr.clear_cache()
    formatr.clear_templates()
    BACKEND.reset(loader=import_native_module)
    yield
    formatr.clear_cache()
    formatr.clear_templates()
    BACKEND.reset(loader=import_native_module)


@pytest.fixture
def native() -> CountingNative:
    """Install a well-behaved native module as the global backend loader."""
    module = CountingNative()
    BACKEND.reset(loader=lambda: module)
    return module


@pytest.fixture
def broken_native() -> SimpleNamespace:
    """A native module whose ``upper`` disagrees with ``str.upper`` on ß."""
    module = SimpleNamespace(
        upper=lambda s: s.upper().replace("SS", "ß"),
        lower=str.lower,
        trim=str.strip,
    )
    BACKEND.reset(loader=lambda: module)
    return module
