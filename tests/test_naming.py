from __future__ import annotations

import pytest
from mdnotes.config import ExportSettings, Preferences
from mdnotes.models import ChildNote, LinkStyle, Record, StandaloneNote
from mdnotes.naming import FileNamer, format_internal_link


def make_settings(**prefs: object) -> ExportSettings:
    return ExportSettings.from_preferences(Preferences(prefs))


def make_record(title: str, **kwargs: object) -> Record:
    return Record(id=1, key="ABCD2345", item_type="report", fields={"title": title}, **kwargs)


def no_citekey(record: Record) -> str:
    return "undefined"


@pytest.mark.parametrize(
    ("style", "expected"),
    [
        (LinkStyle.PLAIN, "Climate Change Report"),
        (LinkStyle.WIKI, "[[Climate Change Report]]"),
        (LinkStyle.MARKDOWN, "[Climate Change Report](climate-change-report)"),
    ],
)
def test_format_internal_link(style: LinkStyle, expected: str) -> None:
    assert format_internal_link("Climate Change Report", style) == expected


def test_plain_style_uses_lower_case_dash() -> None:
    namer = FileNamer(make_settings(), no_citekey)

    assert namer.hub(make_record("Climate Change Report")) == "climate-change-report"


def test_wiki_style_keeps_title() -> None:
    namer = FileNamer(make_settings(link_style="wiki"), no_citekey)

    assert namer.hub(make_record("Climate Change Report")) == "Climate Change Report"


def test_citekey_title_uses_citation_key() -> None:
    namer = FileNamer(make_settings(citekey_title=True), lambda record: "smith2020")

    assert namer.hub(make_record("Climate Change Report")) == "smith2020"


def test_metadata_file_gets_default_suffix() -> None:
    namer = FileNamer(make_settings(), no_citekey)

    assert namer.metadata(make_record("Climate Change Report")) == "climate-change-report-zotero"


def test_prefix_and_suffix_per_category() -> None:
    settings = make_settings(
        files={"mdnotes": {"hub": {"prefix": "@", "suffix": "-hub"}}},
    )
    namer = FileNamer(settings, no_citekey)

    assert namer.hub(make_record("Paper")) == "@paper-hub"
    assert namer.metadata(make_record("Paper")) == "paper-zotero"


def test_child_note_name_combines_parent_and_note_title() -> None:
    namer = FileNamer(make_settings(link_style="wiki"), no_citekey)
    parent = make_record("Climate Change Report")
    note = Record(id=2, key="NOTE2345", item_type="note", parent_id=1, note="<p>Highlights</p>")

    name = namer.child_note(ChildNote(note, parent, "Highlights"))

    assert name == "Climate Change Report - Highlights"


def test_standalone_note_uses_its_title_and_affixes() -> None:
    namer = FileNamer(
        make_settings(files={"mdnotes": {"standalone": {"prefix": "N-"}}}),
        no_citekey,
    )
    note = Record(id=3, key="NOTE3456", item_type="note", note="<p>Loose ideas</p>")

    assert namer.standalone(StandaloneNote(note, "Loose ideas")) == "N-Loose ideas"


def test_file_names_are_sanitized() -> None:
    namer = FileNamer(make_settings(link_style="wiki"), no_citekey)

    assert namer.hub(make_record('What? A "Study": 1/2 <draft>')) == "What A Study 12 draft"


def test_empty_title_falls_back_to_placeholder() -> None:
    namer = FileNamer(make_settings(link_style="wiki"), no_citekey)

    assert namer.hub(make_record("")) == "_"
