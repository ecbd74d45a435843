from __future__ import annotations

from pathlib import Path

import pytest
from mdnotes.config import ExportSettings, Preferences
from mdnotes.storage import DB_FILENAME, Storage


@pytest.fixture
def storage(tmp_path: Path) -> Storage:
    store = Storage(tmp_path / DB_FILENAME)
    store.initialize()
    return store


@pytest.fixture
def settings() -> ExportSettings:
    return ExportSettings.from_preferences(Preferences())
