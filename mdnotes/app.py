"""Application bootstrap and context container for mdnotes."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from .config import ExportSettings, MdnotesConfig, load_config
from .plugins import PluginKeyManager
from .services.export import NoteExporter
from .storage import Storage


@dataclass(slots=True)
class AppContext:
    """Aggregates core services for the CLI lifecycle."""

    config: MdnotesConfig
    storage: Storage
    key_manager: PluginKeyManager

    def settings(self) -> ExportSettings:
        return ExportSettings.from_preferences(self.config.preferences)

    def exporter(self, settings: ExportSettings | None = None) -> NoteExporter:
        return NoteExporter(
            self.storage,
            settings or self.settings(),
            key_manager=self.key_manager,
        )


def bootstrap(config_path: Path | None) -> AppContext:
    """Load configuration and initialize the library storage."""

    # Defer error mapping to the CLI, which knows how to present messages.
    config = load_config(config_path)

    storage = Storage(config.library_path)
    storage.initialize()

    return AppContext(
        config=config,
        storage=storage,
        key_manager=PluginKeyManager(config),
    )
