"""formatr Plugins package: versioned filter bundles and render hooks."""

from formatr.plugins.manager import Plugin, PluginContext, PluginManager, RenderCall
from formatr.plugins.version import Version, parse_version, satisfies

__all__ = [
    "Plugin",
    "PluginContext",
    "PluginManager",
    "RenderCall",
    "Version",
    "parse_version",
    "satisfies",
]
