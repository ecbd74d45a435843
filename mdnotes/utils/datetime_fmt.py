"""Date helpers producing the ``YYYY-MM-DD`` form used in exported files."""

from __future__ import annotations

import re
from datetime import date, datetime, timezone

from dateutil import parser as date_parser

_ISO_DATE_FORMAT = "%Y-%m-%d"
# Omitted date parts come from here, never from the current day.
_PARSE_DEFAULT = datetime(1900, 1, 1)
_PARSER_INFO = date_parser.parserinfo()

_YEAR_RE = re.compile(r"(?<!\d)\d{4}(?!\d)")
_NUMERIC_DATE_RE = re.compile(
    r"^(?:\d{4}[-/.]\d{1,2}[-/.]\d{1,2}|\d{1,2}[-/.]\d{1,2}[-/.]\d{4})"
    r"(?:[ T]\d{1,2}:\d{2}(?::\d{2})?)?$"
)
_WORD_RE = re.compile(r"[A-Za-z]+")


def to_iso_date(dt: datetime) -> str:
    """Return the local calendar date of ``dt`` as ``YYYY-MM-DD``.

    Naive datetimes are taken as UTC, which is how the library stores them.
    """

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone().strftime(_ISO_DATE_FORMAT)


def _looks_like_date(text: str) -> bool:
    if not _YEAR_RE.search(text):
        return False
    if _YEAR_RE.fullmatch(text) or _NUMERIC_DATE_RE.match(text):
        return True
    return any(_PARSER_INFO.month(word) is not None for word in _WORD_RE.findall(text))


def parse_loose_date(text: str) -> date | None:
    """Parse free-form date text such as ``"June 5, 2020"`` or ``"2020-06-05"``.

    Returns ``None`` unless ``text`` names a year together with a month (or
    is a bare year), so times, page numbers and counters are not dates. The
    calendar date is taken as written; a bare year means January 1.
    """

    candidate = text.strip()
    if not candidate or not _looks_like_date(candidate):
        return None
    try:
        return date_parser.parse(candidate, default=_PARSE_DEFAULT).date()
    except (ValueError, OverflowError):
        return None
