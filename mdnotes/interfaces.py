"""Protocols for the collaborators the exporter reads from and writes to."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from .models import Attachment, Record


class RecordStore(Protocol):
    """Library access needed by the exporter."""

    def get(self, record_id: int) -> Record:
        """Return the record with ``record_id``; raise ``StorageError`` if absent."""

    def link_file(self, parent_id: int, path: Path) -> Attachment:
        """Attach a link to the file at ``path`` under ``parent_id``."""

    def link_url(
        self, parent_id: int, url: str, *, title: str, content_type: str
    ) -> Attachment:
        """Attach a link to ``url`` under ``parent_id``."""


class KeyManager(Protocol):
    """Optional source of citation keys."""

    def citation_key(self, record: Record) -> str | None:  # pragma: no cover - Protocol
        """Return the citation key for ``record`` or ``None`` when unknown."""


class FileSystem(Protocol):
    """File operations performed by the exporter."""

    def exists(self, path: Path) -> bool: ...

    def read_text(self, path: Path) -> str: ...

    def write_text(self, path: Path, content: str) -> None: ...

    def file_path(self, directory: Path | str, name: str) -> Path:
        """Return ``<directory>/<name>.md`` with ``directory`` normalized."""

    def path_to_uri(self, path: Path | str) -> str: ...


__all__ = ["FileSystem", "KeyManager", "RecordStore"]
