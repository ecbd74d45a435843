"""Record snapshots and export value types shared across mdnotes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Mapping, Union

NOTE_TYPE = "note"
PDF_CONTENT_TYPE = "application/pdf"
MARKDOWN_CONTENT_TYPE = "text/markdown"
OBSIDIAN_CONTENT_TYPE = "x-scheme-handler/obsidian"


class LinkStyle(str, Enum):
    PLAIN = "plain"
    WIKI = "wiki"
    MARKDOWN = "markdown"


class FileCategory(str, Enum):
    """Naming-convention categories; values are the preference key stems."""

    HUB = "mdnotes.hub"
    STANDALONE = "mdnotes.standalone"
    NOTE = "zotero.note"
    METADATA = "zotero.metadata"


@dataclass(frozen=True, slots=True)
class Creator:
    first_name: str
    last_name: str
    creator_type: str = "author"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True, slots=True)
class Attachment:
    id: int
    key: str
    title: str
    content_type: str
    path: str | None = None
    url: str | None = None
    link_mode: str = "linked_file"


@dataclass(frozen=True, slots=True)
class Record:
    """Read-only snapshot of a library item as seen by the exporter."""

    id: int
    key: str
    item_type: str
    fields: Mapping[str, str] = field(default_factory=dict)
    creators: tuple[Creator, ...] = ()
    tags: tuple[str, ...] = ()
    collections: tuple[str, ...] = ()
    related_ids: tuple[int, ...] = ()
    attachments: tuple[Attachment, ...] = ()
    note_ids: tuple[int, ...] = ()
    parent_id: int | None = None
    note: str | None = None
    date_added: datetime | None = None
    library_id: int | None = None

    @property
    def title(self) -> str:
        return self.fields.get("title", "")

    @property
    def is_note(self) -> bool:
        return self.item_type == NOTE_TYPE

    @property
    def is_top_level(self) -> bool:
        return self.parent_id is None


@dataclass(frozen=True, slots=True)
class TopLevelRecord:
    record: Record


@dataclass(frozen=True, slots=True)
class ChildNote:
    note: Record
    parent: Record
    title: str


@dataclass(frozen=True, slots=True)
class StandaloneNote:
    note: Record
    title: str


RecordVariant = Union[TopLevelRecord, ChildNote, StandaloneNote]


@dataclass(frozen=True, slots=True)
class NamingConvention:
    use_citekey_as_title: bool
    link_style: LinkStyle
    prefix: str
    suffix: str


@dataclass(frozen=True, slots=True)
class ExportFile:
    name: str
    content: str


__all__ = [
    "Attachment",
    "ChildNote",
    "Creator",
    "ExportFile",
    "FileCategory",
    "LinkStyle",
    "MARKDOWN_CONTENT_TYPE",
    "NOTE_TYPE",
    "NamingConvention",
    "OBSIDIAN_CONTENT_TYPE",
    "PDF_CONTENT_TYPE",
    "Record",
    "RecordVariant",
    "StandaloneNote",
    "TopLevelRecord",
]
