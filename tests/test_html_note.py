"""Tests for HTML note to Markdown conversion."""

from __future__ import annotations

import json

import pytest
from mdnotes.config import DEFAULT_HTML_TO_MD
from mdnotes.html_note import (
    TagReplacer,
    format_note_title,
    note_title,
    note_to_markdown,
)

DEFAULT_REPLACER = TagReplacer(json.loads(DEFAULT_HTML_TO_MD))


def convert(html: str, bullet: str = "*") -> str:
    return note_to_markdown(html, bullet=bullet, replacer=DEFAULT_REPLACER).body


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Report (June 5, 2020) final", "Report (2020-06-05) final"),
        ("Meeting (2021-01-31)", "Meeting (2021-01-31)"),
        ("Findings (draft)", "Findings (draft)"),
        ("Meeting (10:30)", "Meeting (10:30)"),
        ("Lecture (2)", "Lecture (2)"),
        ("Smith (2020)", "Smith (2020-01-01)"),
        ("Notes (May)", "Notes (May)"),
        ("Review (5/6/2021)", "Review (2021-05-06)"),
        ("Notes: part 1/2", "Notes- part 1-2"),
        ("Plain title", "Plain title"),
    ],
)
def test_format_note_title(raw: str, expected: str) -> None:
    assert format_note_title(raw) == expected


def test_first_block_becomes_title_and_is_not_rendered() -> None:
    result = note_to_markdown(
        "<p>Annotations (June 5, 2020)</p><p>Body text</p>",
        replacer=DEFAULT_REPLACER,
    )

    assert result.title == "Annotations (2020-06-05)"
    assert result.body == "Body text\n\n"


def test_unordered_list_uses_bullet_marker() -> None:
    body = convert("<p>Title</p><ul><li>a</li><li>b</li></ul>", bullet="-")

    assert body.splitlines()[:2] == ["- a", "- b"]


def test_ordered_list_items_all_use_one() -> None:
    body = convert("<p>Title</p><ol>\n<li>first</li>\n<li>second</li>\n</ol>")

    assert body == "1. first\n1. second\n\n"


def test_links_become_markdown_links() -> None:
    body = convert('<p>Title</p><p>See <a href="https://example.org/a?b=1&amp;c=2">the site</a></p>')

    assert body == "See [the site](https://example.org/a?b=1&c=2)\n\n"


def test_inline_tags_are_mapped() -> None:
    body = convert("<p>Title</p><p><strong>bold</strong>, <EM>italic</EM> and <b>b</b></p>")

    assert body == "**bold**, *italic* and **b**\n\n"


def test_double_line_break_becomes_blank_line() -> None:
    body = convert("<p>Title</p><p>one<br><br>two</p>")

    assert body == "one\n\ntwo\n\n"


def test_quoted_block_becomes_blockquote() -> None:
    body = convert('<p>Title</p><p>"To be or not to be" (Shakespeare, p. 3)</p>')

    assert body == '> "To be or not to be" (Shakespeare, p. 3)\n\n'


def test_quoted_heading_is_unwrapped() -> None:
    body = convert('<p>Title</p><p>"#Chapter One"</p>')

    assert body == "#Chapter One\n\n"


def test_empty_blocks_are_dropped() -> None:
    body = convert("<p>Title</p><p></p><p>Kept</p>\n\n<p></p>")

    assert body == "Kept\n\n"


def test_wrapper_div_is_unwrapped() -> None:
    result = note_to_markdown(
        '<div data-schema-version="8"><p>Wrapped title</p><p>Wrapped body</p></div>',
        replacer=DEFAULT_REPLACER,
    )

    assert result.title == "Wrapped title"
    assert result.body == "Wrapped body\n\n"


def test_note_title_returns_raw_first_block() -> None:
    assert note_title("<h1>Notes: 1/2</h1><p>x</p>") == "Notes: 1/2"
    assert note_title("") == ""


def test_empty_note() -> None:
    result = note_to_markdown("")

    assert result.title == ""
    assert result.body == ""


def test_tag_replacer_is_single_pass_and_case_insensitive() -> None:
    replacer = TagReplacer({"<b>": "**", "</b>": "**", "<br>": " ", "<br><br>": "\n\n"})

    assert replacer("<B>x</B><br><br>y<br>z") == "**x**\n\ny z"


def test_tag_replacer_does_not_rescan_replacements() -> None:
    replacer = TagReplacer({"<i>": "<b>", "<b>": "**"})

    assert replacer("<i>") == "<b>"
