"""Conversion of HTML note bodies into Markdown."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.dammit import EntitySubstitution
from bs4.formatter import HTMLFormatter

from .utils.datetime_fmt import parse_loose_date

_PARENTHESIZED_RE = re.compile(r"\(([^)]+)\)")
_UNSAFE_TITLE_CHARS_RE = re.compile(r"[/:]")

# Void elements render as ``<br>`` (not ``<br/>``) so table keys written as
# plain HTML match the serialized markup.
_INNER_FORMATTER = HTMLFormatter(
    entity_substitution=EntitySubstitution.substitute_xml,
    void_element_close_prefix=None,
)


@dataclass(frozen=True, slots=True)
class NoteMarkdown:
    title: str
    body: str


class TagReplacer:
    """Single-pass, case-insensitive replacement of literal HTML tags."""

    def __init__(self, mapping: Mapping[str, str]) -> None:
        self._lookup = {key.lower(): value for key, value in mapping.items() if key}
        if self._lookup:
            # Longest first so "<br><br>" wins over a shorter overlapping key.
            alternation = "|".join(
                re.escape(key) for key in sorted(self._lookup, key=len, reverse=True)
            )
            self._pattern: re.Pattern[str] | None = re.compile(alternation, re.IGNORECASE)
        else:
            self._pattern = None

    def __call__(self, markup: str) -> str:
        if self._pattern is None:
            return markup
        return self._pattern.sub(lambda m: self._lookup[m.group(0).lower()], markup)


def format_note_title(title: str) -> str:
    """Normalize a note title for use in file names.

    A parenthesized date becomes ``YYYY-MM-DD``; other parenthesized text is
    left alone; without parentheses ``/`` and ``:`` become ``-``.
    """

    match = _PARENTHESIZED_RE.search(title)
    if match is None:
        return _UNSAFE_TITLE_CHARS_RE.sub("-", title)

    inner = match.group(1)
    parsed = parse_loose_date(inner)
    if parsed is None:
        return title
    return title.replace(inner, parsed.isoformat(), 1)


def _blocks(html: str) -> list[Tag]:
    body = BeautifulSoup(html or "", "html.parser")
    nodes = [n for n in body.contents if not _is_blank(n)]
    # Zotero wraps note bodies in <div data-schema-version="...">.
    if len(nodes) == 1 and isinstance(nodes[0], Tag) and nodes[0].name == "div":
        nodes = [n for n in nodes[0].contents if not _is_blank(n)]
    return [n for n in nodes if isinstance(n, Tag)]


def _is_blank(node: object) -> bool:
    return isinstance(node, NavigableString) and not node.strip()


def note_title(html: str) -> str:
    """Return the plain text of the first block of ``html``."""

    blocks = _blocks(html)
    if not blocks:
        return ""
    return blocks[0].get_text().strip()


def _list_lines(fragment: BeautifulSoup, marker: str) -> str:
    items = fragment.find_all("li", recursive=False)
    return "\n".join(f"{marker} {item.get_text().strip()}" for item in items)


def note_to_markdown(
    html: str,
    *,
    bullet: str = "*",
    replacer: TagReplacer | None = None,
) -> NoteMarkdown:
    """Convert an HTML note into Markdown.

    The first block becomes the title and is not rendered into the body.
    """

    replace_tags = replacer or TagReplacer({})
    blocks = _blocks(html)
    if not blocks:
        return NoteMarkdown(title="", body="")

    title = format_note_title(blocks[0].get_text().strip())
    parts: list[str] = []

    for block in blocks[1:]:
        if not block.decode_contents().strip():
            continue

        for link in block.find_all("a"):
            link.replace_with(f"[{link.get_text()}]({link.get('href', '')})")

        inner = replace_tags(block.decode_contents(formatter=_INNER_FORMATTER))
        fragment = BeautifulSoup(inner, "html.parser")
        text = fragment.get_text()

        if inner.startswith('"#'):
            end = text.rfind('"')
            parts.append((text[1:end] if end > 0 else text[1:]) + "\n\n")
            continue

        if inner.startswith('"'):
            parts.append(f"> {text}\n\n")
            continue

        if block.name == "ul":
            text = _list_lines(fragment, bullet)
        elif block.name == "ol":
            text = _list_lines(fragment, "1.")

        parts.append(text + "\n\n")

    return NoteMarkdown(title=title, body="".join(parts))


__all__ = [
    "NoteMarkdown",
    "TagReplacer",
    "format_note_title",
    "note_title",
    "note_to_markdown",
]
