"""Citation keys pinned in the ``extra`` field, e.g. ``Citation Key: doe2020``.

This is the convention Better BibTeX uses to store keys in the library.
"""

from __future__ import annotations

import re

from ...config import MdnotesConfig
from ...models import Record
from .._markers import hookimpl

PLUGIN_ID = "mdnotes-builtin-extra-citekey"
DEFAULT_LABEL = "Citation Key"


def find_citation_key(extra: str, label: str = DEFAULT_LABEL) -> str | None:
    pattern = re.compile(rf"^\s*{re.escape(label)}\s*:\s*(\S+)\s*$", re.IGNORECASE | re.MULTILINE)
    match = pattern.search(extra or "")
    return match.group(1) if match else None


@hookimpl
def citation_key(record: Record, config: MdnotesConfig) -> str | None:
    settings = config.plugins.get(PLUGIN_ID, {})
    label = str(settings.get("label") or DEFAULT_LABEL)
    return find_citation_key(record.fields.get("extra", ""), label)


__all__ = ["PLUGIN_ID", "citation_key", "find_citation_key"]
