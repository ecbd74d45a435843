"""File name helpers shared by the naming resolver and the extractor."""

from __future__ import annotations

import re

_INVALID_CHARS_RE = re.compile(r'[/\\?*:|"<>]')
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_LINE_BREAKS_RE = re.compile(r"[\r\n\t]+")
_WHITESPACE_RE = re.compile(r"\s+")


def valid_file_name(name: str) -> str:
    """Strip characters that are not allowed in file names on common hosts."""

    cleaned = _INVALID_CHARS_RE.sub("", name)
    cleaned = _LINE_BREAKS_RE.sub(" ", cleaned)
    cleaned = _CONTROL_CHARS_RE.sub("", cleaned)
    cleaned = cleaned.strip().lstrip(".")
    if not cleaned:
        return "_"
    return cleaned


def lower_case_dash(content: str) -> str:
    return _WHITESPACE_RE.sub("-", content).lower()
