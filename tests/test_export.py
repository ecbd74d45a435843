from __future__ import annotations

from pathlib import Path

import pytest
from mdnotes.config import ExportSettings, Preferences
from mdnotes.filesystem import LocalFileSystem
from mdnotes.models import MARKDOWN_CONTENT_TYPE, OBSIDIAN_CONTENT_TYPE, Creator
from mdnotes.services.export import (
    NoteExporter,
    export_items,
    has_attachment,
    obsidian_uri,
)
from mdnotes.storage import Storage


class FailingFileSystem(LocalFileSystem):
    """Refuses to write files whose name contains ``fail``."""

    def write_text(self, path: Path, content: str) -> None:
        if "fail" in Path(path).name:
            raise OSError(f"disk refused {path}")
        super().write_text(path, content)


def make_settings(**prefs: object) -> ExportSettings:
    return ExportSettings.from_preferences(Preferences(prefs))


@pytest.fixture
def record_id(storage: Storage) -> int:
    item_id = storage.create_item(
        "report",
        {"title": "Climate Change Report", "abstractNote": "Warming trends."},
        key="REPORT23",
    )
    storage.create_note("<p>Highlights</p><p>Sea levels rise.</p>", parent_id=item_id)
    storage.create_note("<p>Summary</p><ol><li>one</li></ol>", parent_id=item_id)
    return item_id


def attachment_types(storage: Storage, item_id: int) -> list[str]:
    return [a.content_type for a in storage.get(item_id).attachments]


def test_files_are_hub_then_child_notes(storage: Storage, record_id: int, settings: ExportSettings) -> None:
    exporter = NoteExporter(storage, settings)

    files = exporter.files(storage.get(record_id))

    assert [f.name for f in files] == [
        "climate-change-report",
        "climate-change-report - Highlights",
        "climate-change-report - Summary",
    ]
    assert "Warming trends." in files[0].content
    assert files[1].content == "## Annotations\n\nSea levels rise.\n\n"


def test_single_file_concatenates_with_blank_lines(
    storage: Storage, record_id: int, settings: ExportSettings
) -> None:
    exporter = NoteExporter(storage, settings)
    record = storage.get(record_id)

    merged = exporter.single_file(record)

    assert merged.name == "climate-change-report"
    assert merged.content == "".join(f"{f.content}\n\n" for f in exporter.files(record))


def test_split_export_writes_every_file(
    storage: Storage, record_id: int, settings: ExportSettings, tmp_path: Path
) -> None:
    exporter = NoteExporter(storage, settings)

    report = exporter.export_record(storage.get(record_id), tmp_path)

    assert sorted(p.name for p in tmp_path.glob("*.md")) == [
        "climate-change-report - Highlights.md",
        "climate-change-report - Summary.md",
        "climate-change-report.md",
    ]
    assert len(report.written) == 3
    assert attachment_types(storage, record_id) == [MARKDOWN_CONTENT_TYPE] * 3


def test_split_export_keeps_existing_hub(
    storage: Storage, record_id: int, settings: ExportSettings, tmp_path: Path
) -> None:
    hub = tmp_path / "climate-change-report.md"
    hub.write_text("my edits", encoding="utf-8")
    exporter = NoteExporter(storage, settings)

    report = exporter.export_record(storage.get(record_id), tmp_path)

    assert hub.read_text(encoding="utf-8") == "my edits"
    assert report.skipped == [hub]
    assert len(report.written) == 2


def test_split_export_without_notes_file(storage: Storage, record_id: int, tmp_path: Path) -> None:
    exporter = NoteExporter(storage, make_settings(create_notes_file=False))

    exporter.export_record(storage.get(record_id), tmp_path)

    assert not (tmp_path / "climate-change-report.md").exists()
    assert len(list(tmp_path.glob("*.md"))) == 2


def test_merged_export_writes_one_file(storage: Storage, record_id: int, tmp_path: Path) -> None:
    exporter = NoteExporter(storage, make_settings(file_conf="single"))

    report = exporter.export_record(storage.get(record_id), tmp_path)

    assert report.written == [tmp_path / "climate-change-report.md"]
    content = report.written[0].read_text(encoding="utf-8")
    assert "Warming trends." in content
    assert content.count("## Annotations") == 2


def test_back_links_are_added_once(storage: Storage, record_id: int, tmp_path: Path) -> None:
    settings = make_settings(
        file_conf="single",
        obsidian={"vault": "Research", "attach_obsidian_uri": True},
    )
    exporter = NoteExporter(storage, settings)

    exporter.export_record(storage.get(record_id), tmp_path)
    exporter.export_record(storage.get(record_id), tmp_path)

    attachments = storage.get(record_id).attachments
    assert [a.content_type for a in attachments] == [
        MARKDOWN_CONTENT_TYPE,
        OBSIDIAN_CONTENT_TYPE,
    ]
    assert attachments[0].path == str(tmp_path / "climate-change-report.md")
    assert attachments[1].url == "obsidian://open?vault=Research&file=climate-change-report"


def test_no_back_links_when_disabled(storage: Storage, record_id: int, tmp_path: Path) -> None:
    exporter = NoteExporter(storage, make_settings(attach_to_zotero=False))

    exporter.export_record(storage.get(record_id), tmp_path)

    assert storage.get(record_id).attachments == ()


def test_has_attachment_matches_by_kind(storage: Storage, record_id: int) -> None:
    storage.link_file(record_id, Path("/vault/a.md"))
    storage.link_url(
        record_id,
        "obsidian://open?vault=V&file=a",
        title="a",
        content_type=OBSIDIAN_CONTENT_TYPE,
    )
    storage.link_url(record_id, "/vault/b.md", title="b", content_type="text/html")
    record = storage.get(record_id)

    assert has_attachment(record, "/vault/a.md")
    assert has_attachment(record, "obsidian://open?vault=V&file=a")
    assert not has_attachment(record, "/vault/b.md")


def test_obsidian_uri_encodes_components() -> None:
    assert (
        obsidian_uri("My Vault", "smith - Notes (2020)")
        == "obsidian://open?vault=My%20Vault&file=smith%20-%20Notes%20(2020)"
    )
    assert obsidian_uri("V", "a&b/c") == "obsidian://open?vault=V&file=a%26b%2Fc"


def test_batch_continues_after_failure(storage: Storage, settings: ExportSettings, tmp_path: Path) -> None:
    failing = storage.create_item("report", {"title": "Fail Report"})
    good = storage.create_item("report", {"title": "Good Report"})
    exporter = NoteExporter(storage, settings, filesystem=FailingFileSystem())

    report = export_items(exporter, [failing, good], tmp_path)

    assert not report.ok
    assert [(f.record_id, f.title) for f in report.failures] == [(failing, "Fail Report")]
    assert report.written == [tmp_path / "good-report.md"]


def test_batch_records_missing_items_and_skips_notes(
    storage: Storage, record_id: int, settings: ExportSettings, tmp_path: Path
) -> None:
    note_id = storage.get(record_id).note_ids[0]
    exporter = NoteExporter(storage, settings)

    destination = tmp_path / "out"

    report = export_items(exporter, [999, note_id], destination)

    assert [f.record_id for f in report.failures] == [999]
    assert report.written == []
    assert not destination.exists()


def test_missing_user_template_falls_back_to_default(
    storage: Storage, record_id: int, tmp_path: Path
) -> None:
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "Zotero Note Template.md").write_text("NOTE {{ title }}", encoding="utf-8")
    exporter = NoteExporter(storage, make_settings(templates={"directory": str(templates)}))

    files = exporter.files(storage.get(record_id))

    assert files[1].content == "NOTE Highlights"
    assert "```ad-info" in files[0].content


def test_batch_continues_after_template_error(
    storage: Storage, tmp_path: Path
) -> None:
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "Mdnotes Default Template.md").write_text(
        "{{ 10 // (volume|int) }}", encoding="utf-8"
    )
    bad = storage.create_item("report", {"title": "Bad"})
    good = storage.create_item("report", {"title": "Good", "volume": "2"})
    exporter = NoteExporter(storage, make_settings(templates={"directory": str(templates)}))
    destination = tmp_path / "out"

    report = export_items(exporter, [bad, good], destination)

    assert [f.record_id for f in report.failures] == [bad]
    assert report.written == [destination / "good.md"]
    assert (destination / "good.md").read_text(encoding="utf-8") == "5"


def test_wildcards_apply_to_metadata_template_only(
    storage: Storage, tmp_path: Path
) -> None:
    templates = tmp_path / "templates"
    templates.mkdir()
    (templates / "Mdnotes Default Template.md").write_text(
        "%(title) by %(author)", encoding="utf-8"
    )
    item_id = storage.create_item(
        "report", {"title": "Paper"}, creators=[Creator("Ada", "Lovelace")]
    )
    storage.create_note("<p>Code</p><p>Use %(name) here</p>", parent_id=item_id)
    exporter = NoteExporter(storage, make_settings(templates={"directory": str(templates)}))

    hub, note = exporter.files(storage.get(item_id))

    assert hub.content == "Paper by Ada Lovelace"
    assert "Use %(name) here" in note.content
