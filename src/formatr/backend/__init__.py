"""Optional native backend for the pure string filters."""

from formatr.backend.dispatcher import (
    BACKEND,
    BackendDispatcher,
    BackendState,
    disable_backend,
    enable_backend,
    init_backend,
    init_backend_async,
    is_backend_enabled,
)

__all__ = [
    "BACKEND",
    "BackendDispatcher",
    "BackendState",
    "disable_backend",
    "enable_backend",
    "init_backend",
    "init_backend_async",
    "is_backend_enabled",
]
