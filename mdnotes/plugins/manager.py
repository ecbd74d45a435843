"""Plugin manager setup and the plugin-backed citation key source."""

from __future__ import annotations

from collections.abc import Iterable
from functools import lru_cache

import pluggy

from ..config import MdnotesConfig
from ..models import Record
from ._markers import ENTRY_POINT_GROUP, PLUGIN_NAMESPACE
from .spec import MdnotesHookSpec


class PluginRegistrationError(RuntimeError):
    """Raised when a plugin does not match the hook specifications."""


def builtin_plugins() -> tuple[object, ...]:
    from .builtin import extra_citekey

    return (extra_citekey,)


def create_plugin_manager(*, load_entry_points: bool = True) -> pluggy.PluginManager:
    """Return a manager with the mdnotes hooks, plus installed plugins if asked."""

    manager = pluggy.PluginManager(PLUGIN_NAMESPACE)
    manager.add_hookspecs(MdnotesHookSpec)
    if load_entry_points:
        manager.load_setuptools_entrypoints(ENTRY_POINT_GROUP)
    return manager


def register_modules(manager: pluggy.PluginManager, modules: Iterable[object]) -> None:
    for module in modules:
        try:
            manager.register(module)
        except (pluggy.PluginValidationError, ValueError) as exc:
            raise PluginRegistrationError(str(exc)) from exc


@lru_cache(maxsize=1)
def get_plugin_manager() -> pluggy.PluginManager:
    """Shared manager: entry-point plugins first, then the built-ins.

    pluggy calls the most recently registered implementation first, so the
    built-ins answer before installed plugins; a built-in that returns
    ``None`` lets the next implementation answer.
    """

    manager = create_plugin_manager()
    register_modules(manager, builtin_plugins())
    return manager


class PluginKeyManager:
    """Key manager answering through the ``citation_key`` hook."""

    def __init__(
        self,
        config: MdnotesConfig,
        manager: pluggy.PluginManager | None = None,
    ) -> None:
        self.config = config
        self._manager = manager or get_plugin_manager()

    def citation_key(self, record: Record) -> str | None:
        key = self._manager.hook.citation_key(record=record, config=self.config)
        if key is None:
            return None
        key = str(key).strip()
        return key or None


__all__ = [
    "PluginKeyManager",
    "PluginRegistrationError",
    "builtin_plugins",
    "create_plugin_manager",
    "get_plugin_manager",
    "register_modules",
]
