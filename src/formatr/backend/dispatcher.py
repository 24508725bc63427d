"""Native string backend with transparent fallback.

A small set of pure string filters (``upper``, ``lower``, ``trim``) can be
routed to a native-compiled module. The module is optional: when it is
missing, fails to load, or disagrees with the reference implementation on
any probe string, the dispatcher stays on the pure-Python path and renders
are unaffected.

Lifecycle:
    ```
    UNINITIALIZED ──init()──► LOADING ──► READY   (enabled=True)
                                     └──► FAILED  (enabled=False, init() retries)
    ```
``enabled`` is orthogonal: ``disable()`` clears it without dropping the
loaded module, ``enable()`` sets it again only if a module is loaded.

Thread-Safety:
Readers take an immutable ``_Snapshot`` (one attribute read, no lock).
Writers hold ``_lock``; threads calling ``init()`` while a load is in
flight wait on ``_loaded`` and share its outcome instead of loading again.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from formatr.utils.constants import NATIVE_MODULE

logger = logging.getLogger(__name__)

# Functions a native module must export, with their reference behaviour.
REFERENCE: dict[str, Callable[[str], str]] = {
    "upper": str.upper,
    "lower": str.lower,
    "trim": str.strip,
}

# Probe corpus checked against every candidate module before it is accepted.
PROBES: tuple[str, ...] = (
    "",
    "hello world",
    "  Padded\t\n",
    "MiXeD 123 !?",
    "straße",
    "İstanbul",
    "ǅungla",
    "ﬁne",
    "ΣΊΣΥΦΟΣ",
    " nbsp ",
    "日本語テキスト",
    "emoji 🎉 text",
)

Loader = Callable[[], Any]


class BackendState(Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class _Snapshot:
    state: BackendState
    enabled: bool
    instance: Any = None


def import_native_module(name: str = NATIVE_MODULE) -> Any:
    """Default loader: import the optional compiled module by name."""
    return importlib.import_module(name)


def verify_instance(instance: Any) -> None:
    """Raise if ``instance`` lacks an export or disagrees with the reference
    on any probe string."""
    for name, reference in REFERENCE.items():
        fn = getattr(instance, name, None)
        if not callable(fn):
            raise AttributeError(f"native backend does not export '{name}'")
        for probe in PROBES:
            got = fn(probe)
            want = reference(probe)
            if got != want:
                raise ValueError(f"native '{name}' disagrees on {probe!r}: {got!r} != {want!r}")


class BackendDispatcher:
    """Process-wide switch between native and reference string functions.

    Example:
        >>> dispatcher = BackendDispatcher(loader=lambda: my_native_module)
        >>> dispatcher.init()
        >>> dispatcher.is_enabled()
        True
        >>> dispatcher.call("upper", "straße")
        'STRASSE'
    """

    __slots__ = ("_loaded", "_loader", "_lock", "_snapshot")

    def __init__(self, loader: Loader | None = None):
        self._loader: Loader = loader or import_native_module
        self._lock = threading.Lock()
        self._loaded = threading.Condition(self._lock)
        self._snapshot = _Snapshot(BackendState.UNINITIALIZED, enabled=False)

    # -- queries ---------------------------------------------------------

    @property
    def state(self) -> BackendState:
        return self._snapshot.state

    def is_enabled(self) -> bool:
        snap = self._snapshot
        return snap.enabled and snap.instance is not None

    def native(self, name: str) -> Callable[[str], str] | None:
        """Native implementation of ``name`` if the backend is enabled."""
        snap = self._snapshot
        if not snap.enabled or snap.instance is None:
            return None
        return getattr(snap.instance, name)

    def call(self, name: str, text: str) -> str:
        """Run ``name`` on ``text`` through whichever backend is active."""
        fn = self.native(name)
        if fn is None:
            return REFERENCE[name](text)
        return fn(text)

    # -- transitions -----------------------------------------------------

    def init(self) -> bool:
        """Load the native module once; return whether the backend is enabled.

        Never raises. Concurrent callers block until the in-flight load
        finishes and then see its result.
        """
        with self._lock:
            while self._snapshot.state is BackendState.LOADING:
                self._loaded.wait()
            if self._snapshot.state is BackendState.READY:
                return self.is_enabled()
            self._snapshot = _Snapshot(BackendState.LOADING, enabled=False)

        instance = None
        try:
            instance = self._loader()
            verify_instance(instance)
        except Exception as exc:
            logger.warning("Native backend unavailable, using reference implementation: %s", exc)
            instance = None

        with self._lock:
            if instance is None:
                self._snapshot = _Snapshot(BackendState.FAILED, enabled=False)
            else:
                logger.debug("Native backend loaded: %r", instance)
                self._snapshot = _Snapshot(BackendState.READY, enabled=True, instance=instance)
            self._loaded.notify_all()
            return instance is not None

    async def init_async(self) -> bool:
        """Awaitable ``init()``; the load runs in a worker thread."""
        return await asyncio.to_thread(self.init)

    def disable(self) -> None:
        with self._lock:
            snap = self._snapshot
            self._snapshot = _Snapshot(snap.state, enabled=False, instance=snap.instance)

    def enable(self) -> bool:
        with self._lock:
            snap = self._snapshot
            if snap.instance is None:
                return False
            self._snapshot = _Snapshot(snap.state, enabled=True, instance=snap.instance)
            return True

    def reset(self, loader: Loader | None = None) -> None:
        """Return to UNINITIALIZED, optionally swapping the loader (tests)."""
        with self._lock:
            while self._snapshot.state is BackendState.LOADING:
                self._loaded.wait()
            if loader is not None:
                self._loader = loader
            self._snapshot = _Snapshot(BackendState.UNINITIALIZED, enabled=False)


BACKEND = BackendDispatcher()


def init_backend() -> bool:
    return BACKEND.init()


async def init_backend_async() -> bool:
    return await BACKEND.init_async()


def is_backend_enabled() -> bool:
    return BACKEND.is_enabled()


def enable_backend() -> bool:
    return BACKEND.enable()


def disable_backend() -> None:
    BACKEND.disable()
