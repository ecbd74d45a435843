"""Hook specifications for mdnotes plugins."""

from __future__ import annotations

from mdnotes.config import MdnotesConfig
from mdnotes.models import Record

from ._markers import hookspec


class MdnotesHookSpec:
    """Collection of pluggy hook specifications."""

    @hookspec(firstresult=True)
    def citation_key(self, record: Record, config: MdnotesConfig) -> str | None:
        """Return the citation key of ``record``, or ``None`` to defer to other plugins."""
