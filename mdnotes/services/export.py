"""Export services for mdnotes."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable
from urllib.parse import quote

from ..config import ExportSettings
from ..extract import FieldExtractor
from ..filesystem import LocalFileSystem
from ..interfaces import FileSystem, KeyManager, RecordStore
from ..models import (
    MARKDOWN_CONTENT_TYPE,
    OBSIDIAN_CONTENT_TYPE,
    ChildNote,
    ExportFile,
    Record,
)
from ..storage import StorageError
from ..templates import MDNOTES_TEMPLATE, NOTE_TEMPLATE, TemplateRenderer
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Keeps "-" "_" "." "!" "~" "*" "'" "(" ")" like JavaScript's encodeURIComponent.
_URI_COMPONENT_SAFE = "-_.!~*'()"


@dataclass(slots=True)
class RecordFailure:
    record_id: int
    title: str
    error: str


@dataclass(slots=True)
class ExportReport:
    """Outcome of a batch export."""

    written: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)
    failures: list[RecordFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


def has_attachment(record: Record, candidate: str) -> bool:
    """Return True when ``record`` already links to ``candidate``.

    Markdown file links compare by path, vault links by URL.
    """

    for attachment in record.attachments:
        if attachment.content_type == MARKDOWN_CONTENT_TYPE:
            if attachment.path == candidate:
                return True
        elif attachment.content_type == OBSIDIAN_CONTENT_TYPE:
            if attachment.url == candidate:
                return True
    return False


def obsidian_uri(vault: str, file_name: str) -> str:
    encoded = quote(file_name, safe=_URI_COMPONENT_SAFE)
    return f"obsidian://open?vault={quote(vault, safe=_URI_COMPONENT_SAFE)}&file={encoded}"


class NoteExporter:
    """Render records into export files and write them to a directory."""

    def __init__(
        self,
        store: RecordStore,
        settings: ExportSettings,
        *,
        key_manager: KeyManager | None = None,
        filesystem: FileSystem | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.filesystem = filesystem or LocalFileSystem()
        self.extractor = FieldExtractor(
            store,
            settings,
            key_manager=key_manager,
            filesystem=self.filesystem,
        )
        self.renderer = renderer or TemplateRenderer(settings.templates_directory or None)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def hub_file(self, record: Record) -> ExportFile:
        metadata = self.extractor.metadata(record)
        content = self.renderer.render(MDNOTES_TEMPLATE, metadata, wildcards=True)
        return ExportFile(name=metadata["mdnotesFileName"], content=content)

    def note_file(self, note: ChildNote) -> ExportFile:
        data = self.extractor.note(note)
        content = self.renderer.render(NOTE_TEMPLATE, data)
        return ExportFile(name=self.extractor.namer.child_note(note), content=content)

    def files(self, record: Record) -> list[ExportFile]:
        """The hub file followed by one file per child note."""

        files = [self.hub_file(record)]
        for note in self.extractor.child_notes(record):
            files.append(self.note_file(note))
        return files

    def single_file(self, record: Record) -> ExportFile:
        content = "".join(f"{export.content}\n\n" for export in self.files(record))
        return ExportFile(name=self.extractor.namer.hub(record), content=content)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------
    def export_record(self, record: Record, directory: Path | str) -> ExportReport:
        report = ExportReport()

        if not self.settings.split_files:
            export = self.single_file(record)
            path = self._write(directory, export)
            self._link(path, record)
            report.written.append(path)
            return report

        hub_name = self.extractor.namer.hub(record)
        for export in self.files(record):
            path = self.filesystem.file_path(directory, export.name)
            if export.name == hub_name and (
                self.filesystem.exists(path) or not self.settings.create_notes_file
            ):
                logger.info("Skipping hub file", path=str(path))
                report.skipped.append(path)
                continue
            self._write(directory, export)
            self._link(path, record)
            report.written.append(path)
        return report

    def _write(self, directory: Path | str, export: ExportFile) -> Path:
        path = self.filesystem.file_path(directory, export.name)
        self.filesystem.write_text(path, export.content)
        logger.debug("Wrote export file", path=str(path))
        return path

    def _link(self, path: Path, record: Record) -> None:
        parent = self._link_target(record)
        if self.settings.attach_to_library:
            self.add_file_link(path, parent)
            parent = self.store.get(parent.id)
        if self.settings.attach_vault_uri:
            self.add_vault_link(path, parent)

    def _link_target(self, record: Record) -> Record:
        # Re-read so attachments linked earlier in this run are visible.
        if record.is_note and record.parent_id is not None:
            return self.store.get(record.parent_id)
        return self.store.get(record.id)

    def add_file_link(self, path: Path, record: Record) -> bool:
        if has_attachment(record, str(path)):
            return False
        self.store.link_file(record.id, path)
        logger.debug("Linked export file", record_id=record.id, path=str(path))
        return True

    def add_vault_link(self, path: Path, record: Record) -> bool:
        name = Path(path).stem
        uri = obsidian_uri(self.settings.vault, name)
        if has_attachment(record, uri):
            return False
        self.store.link_url(
            record.id, uri, title=name, content_type=OBSIDIAN_CONTENT_TYPE
        )
        logger.debug("Linked vault note", record_id=record.id, uri=uri)
        return True


def export_items(
    exporter: NoteExporter,
    record_ids: Iterable[int],
    destination: Path | str,
) -> ExportReport:
    """Export ``record_ids`` one at a time into ``destination``.

    Notes are skipped; they are exported with their parent. A failure on one
    record is logged and recorded, and the remaining records are still
    attempted. Files written before a failure are kept.
    """

    report = ExportReport()
    for record_id in record_ids:
        try:
            record = exporter.store.get(record_id)
        except StorageError as exc:
            logger.error("Record lookup failed", record_id=record_id, error=str(exc))
            report.failures.append(RecordFailure(record_id, "", str(exc)))
            continue

        if record.is_note:
            logger.debug("Skipping note selected for export", record_id=record_id)
            continue

        try:
            result = exporter.export_record(record, destination)
        except Exception as exc:
            # User templates can raise any exception.
            logger.error(
                "Export failed",
                record_id=record.id,
                title=record.title,
                exc_info=True,
            )
            report.failures.append(RecordFailure(record.id, record.title, str(exc)))
            continue

        report.written.extend(result.written)
        report.skipped.extend(result.skipped)
    return report


__all__ = [
    "ExportReport",
    "NoteExporter",
    "RecordFailure",
    "export_items",
    "has_attachment",
    "obsidian_uri",
]
