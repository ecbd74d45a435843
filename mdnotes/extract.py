"""Flatten library records into the field maps templates render."""

from __future__ import annotations

from typing import Any

from .config import ExportSettings
from .html_note import TagReplacer, note_title, note_to_markdown
from .interfaces import FileSystem, KeyManager, RecordStore
from .models import (
    PDF_CONTENT_TYPE,
    Attachment,
    ChildNote,
    LinkStyle,
    Record,
    RecordVariant,
    StandaloneNote,
    TopLevelRecord,
)
from .naming import FileNamer, format_internal_link
from .storage import StorageError
from .utils.datetime_fmt import to_iso_date
from .utils.logger import get_logger

logger = get_logger(__name__)

UNDEFINED_CITEKEY = "undefined"

TYPE_LABELS = {
    "artwork": "Illustration",
    "audioRecording": "Recording",
    "bill": "Legislation",
    "blogPost": "Blog post",
    "book": "Book",
    "bookSection": "Chapter",
    "case": "Legal case",
    "computerProgram": "Data",
    "conferencePaper": "Conference paper",
    "email": "Letter",
    "encyclopediaArticle": "Encyclopaedia article",
    "film": "Film",
    "forumPost": "Forum post",
    "hearing": "Hearing",
    "instantMessage": "Instant message",
    "interview": "Interview",
    "journalArticle": "Article",
    "letter": "Letter",
    "magazineArticle": "Magazine article",
    "manuscript": "Manuscript",
    "map": "Image",
    "newspaperArticle": "Newspaper article",
    "patent": "Patent",
    "podcast": "Podcast",
    "presentation": "Presentation",
    "radioBroadcast": "Radio broadcast",
    "report": "Report",
    "statute": "Legislation",
    "thesis": "Thesis",
    "tvBroadcast": "TV broadcast",
    "videoRecording": "Recording",
    "webpage": "Webpage",
}

BASE_CREATOR_TYPES = ("author", "contributor", "editor", "translator")

# Always present so templates can reference them whether or not they are set.
COMMON_FIELDS = (
    "title",
    "abstractNote",
    "date",
    "url",
    "accessDate",
    "DOI",
    "ISBN",
    "ISSN",
    "publicationTitle",
    "publisher",
    "place",
    "volume",
    "issue",
    "pages",
    "language",
    "shortTitle",
    "series",
    "extra",
)


class FieldExtractor:
    """Build metadata and note records for templates.

    Everything here is computed from the record and the settings snapshot;
    the store is only used to resolve parents, related records and notes.
    """

    def __init__(
        self,
        store: RecordStore,
        settings: ExportSettings,
        *,
        key_manager: KeyManager | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.key_manager = key_manager
        self.filesystem = filesystem
        self.namer = FileNamer(settings, self.citekey)
        self._replacer = TagReplacer(settings.html_to_md)

    def citekey(self, record: Record) -> str:
        if self.key_manager is None:
            return UNDEFINED_CITEKEY
        return self.key_manager.citation_key(record) or UNDEFINED_CITEKEY

    def classify(self, record: Record) -> RecordVariant:
        if not record.is_note:
            return TopLevelRecord(record)
        title = note_title(record.note or "")
        if record.is_top_level:
            return StandaloneNote(record, title)
        return ChildNote(record, self.store.get(record.parent_id), title)

    def file_name(self, record: Record) -> str:
        """Name of the file ``record`` is exported to, by variant."""

        variant = self.classify(record)
        if isinstance(variant, ChildNote):
            return self.namer.child_note(variant)
        if isinstance(variant, StandaloneNote):
            return self.namer.standalone(variant)
        return self.namer.hub(variant.record)

    def child_notes(self, record: Record) -> list[ChildNote]:
        notes: list[ChildNote] = []
        for note_id in record.note_ids:
            note = self.store.get(note_id)
            notes.append(ChildNote(note, record, note_title(note.note or "")))
        return notes

    def creators(self, record: Record, creator_type: str) -> list[str]:
        return [c.full_name for c in record.creators if c.creator_type == creator_type]

    def related(self, record: Record) -> list[str]:
        names: list[str] = []
        for related_id in record.related_ids:
            try:
                names.append(self.file_name(self.store.get(related_id)))
            except StorageError as exc:
                logger.warning(
                    "Skipping missing related item",
                    record_id=record.id,
                    related_id=related_id,
                    error=str(exc),
                )
        return names

    def pdf_links(self, record: Record) -> list[str]:
        return [
            self._pdf_link(attachment)
            for attachment in record.attachments
            if attachment.content_type == PDF_CONTENT_TYPE
        ]

    def _pdf_link(self, attachment: Attachment) -> str:
        style = self.settings.pdf_link_style
        if style == "zotero":
            return f"zotero://open-pdf/library/items/{attachment.key}"
        if style == "wiki":
            return format_internal_link(attachment.title, LinkStyle.WIKI)
        if not attachment.path or self.filesystem is None:
            return ""
        return self.filesystem.path_to_uri(attachment.path)

    def local_library_link(self, record: Record) -> str:
        return f"zotero://select/items/{record.library_id or 0}_{record.key}"

    def cloud_library_link(self, record: Record) -> str:
        return f"{self.settings.cloud_library_base}/items/{record.key}"

    def metadata(self, record: Record) -> dict[str, Any]:
        metadata: dict[str, Any] = {}

        creator_types = list(BASE_CREATOR_TYPES)
        for creator in record.creators:
            if creator.creator_type not in creator_types:
                creator_types.append(creator.creator_type)
        for creator_type in creator_types:
            metadata[creator_type] = self.creators(record, creator_type)
        metadata["authors"] = metadata["author"]

        for name in COMMON_FIELDS:
            metadata[name] = ""
        metadata.update(record.fields)

        metadata["itemType"] = TYPE_LABELS.get(record.item_type)
        metadata["citekey"] = self.citekey(record)
        metadata["collections"] = list(record.collections)
        metadata["related"] = self.related(record)
        metadata["tags"] = list(record.tags)
        metadata["pdfAttachments"] = self.pdf_links(record)
        metadata["localLibrary"] = self.local_library_link(record)
        metadata["cloudLibrary"] = self.cloud_library_link(record)
        metadata["dateAdded"] = to_iso_date(record.date_added) if record.date_added else ""
        metadata["notes"] = [self.namer.child_note(n) for n in self.child_notes(record)]
        metadata["mdnotesFileName"] = self.namer.hub(record)
        metadata["metadataFileName"] = self.namer.metadata(record)
        metadata["fields"] = dict(metadata)
        return metadata

    def note(self, note: ChildNote) -> dict[str, Any]:
        markdown = note_to_markdown(
            note.note.note or "",
            bullet=self.settings.bullet,
            replacer=self._replacer,
        )
        data: dict[str, Any] = {
            "title": markdown.title,
            "noteContent": markdown.body,
            "tags": list(note.note.tags),
            "related": self.related(note.note),
            "mdnotesFileName": self.namer.hub(note.parent),
            "metadataFileName": self.namer.metadata(note.parent),
        }
        data["fields"] = dict(data)
        return data


__all__ = [
    "BASE_CREATOR_TYPES",
    "COMMON_FIELDS",
    "FieldExtractor",
    "TYPE_LABELS",
    "UNDEFINED_CITEKEY",
]
