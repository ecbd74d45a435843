"""mdnotes plugin infrastructure based on pluggy."""

from __future__ import annotations

from ._markers import ENTRY_POINT_GROUP, PLUGIN_NAMESPACE, hookimpl, hookspec
from .manager import (
    PluginKeyManager,
    PluginRegistrationError,
    builtin_plugins,
    create_plugin_manager,
    get_plugin_manager,
    register_modules,
)

__all__ = [
    "ENTRY_POINT_GROUP",
    "PLUGIN_NAMESPACE",
    "PluginKeyManager",
    "PluginRegistrationError",
    "builtin_plugins",
    "create_plugin_manager",
    "get_plugin_manager",
    "hookimpl",
    "hookspec",
    "register_modules",
]
