"""File-naming conventions for exported Markdown files."""

from __future__ import annotations

from typing import Callable

from .config import ExportSettings
from .models import (
    ChildNote,
    FileCategory,
    LinkStyle,
    Record,
    RecordVariant,
    StandaloneNote,
    TopLevelRecord,
)
from .utils.filenames import lower_case_dash, valid_file_name

CitekeyLookup = Callable[[Record], str]


def format_internal_link(content: str, link_style: LinkStyle) -> str:
    """Render ``content`` as a link to another note in ``link_style``."""

    if link_style is LinkStyle.WIKI:
        return f"[[{content}]]"
    if link_style is LinkStyle.MARKDOWN:
        return f"[{content}]({lower_case_dash(content)})"
    return content


class FileNamer:
    """Compute base file names from a settings snapshot.

    ``citekey`` resolves a record's citation key; it is only consulted when
    the ``citekey_title`` option is on.
    """

    def __init__(self, settings: ExportSettings, citekey: CitekeyLookup) -> None:
        self.settings = settings
        self._citekey = citekey

    def base_name(self, record: Record) -> str:
        convention = self.settings.naming(FileCategory.HUB)
        if convention.use_citekey_as_title:
            return self._citekey(record)
        # Wiki links resolve names literally, so keep the natural title.
        if convention.link_style is LinkStyle.WIKI:
            return record.title
        return lower_case_dash(record.title)

    def file_name(self, variant: RecordVariant, category: FileCategory) -> str:
        if isinstance(variant, ChildNote):
            name = f"{self.base_name(variant.parent)} - {variant.title}"
        elif isinstance(variant, StandaloneNote):
            name = variant.title
        else:
            name = self.base_name(variant.record)

        convention = self.settings.naming(category)
        return f"{convention.prefix}{valid_file_name(name)}{convention.suffix}"

    def hub(self, record: Record) -> str:
        return self.file_name(TopLevelRecord(record), FileCategory.HUB)

    def metadata(self, record: Record) -> str:
        return self.file_name(TopLevelRecord(record), FileCategory.METADATA)

    def child_note(self, note: ChildNote) -> str:
        return self.file_name(note, FileCategory.NOTE)

    def standalone(self, note: StandaloneNote) -> str:
        return self.file_name(note, FileCategory.STANDALONE)


__all__ = ["CitekeyLookup", "FileNamer", "format_internal_link"]
