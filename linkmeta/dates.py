"""Date and title extraction from notes.

Sources are tried in order: frontmatter date fields, the file name, the
folder structure, and finally the file's creation time. Output is always
``YYYY-MM-DD``.
"""

from __future__ import annotations

import posixpath
import re
from datetime import date, datetime
from typing import Any

from dateutil import parser as dateparser

from .vault.loader import NoteMetadata

FRONTMATTER_DATE_FIELDS = ("date", "created", "day", "timestamp")

# strptime equivalents of YYYY-MM-DD, DD-MM-YYYY, MM/DD/YYYY, ...
STRICT_FORMATS = (
    "%Y-%m-%d",
    "%d-%m-%Y",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%Y.%m.%d",
    "%d.%m.%Y",
    "%Y%m%d",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
)

FILENAME_PATTERNS = (
    re.compile(r"(\d{4}-\d{2}-\d{2})"),
    re.compile(r"(\d{2}-\d{2}-\d{4})"),
    re.compile(r"(\d{4}\.\d{2}\.\d{2})"),
    re.compile(r"(\d{2}\.\d{2}\.\d{4})"),
    re.compile(r"(\d{8})"),
    re.compile(r"(\d{2}/\d{2}/\d{4})"),
)

# e.g. "Daily Notes/2024/11/2024-11-15.md"
PATH_PATTERNS = (
    re.compile(r"/(\d{4}-\d{2}-\d{2})"),
    re.compile(r"/(\d{4})/(\d{2})/(\d{2})"),
    re.compile(r"/(\d{4})/(\d{2})"),
)

DAILY_PATTERNS = (
    re.compile(r"\d{4}-\d{2}-\d{2}"),
    re.compile(r"\d{2}-\d{2}-\d{4}"),
    re.compile(r"\d{8}"),
)


def parse_date(value: Any) -> date | None:
    """Parse a date from frontmatter values, timestamps, or strings."""
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        # Epoch milliseconds, like the plugin stores them
        try:
            return datetime.fromtimestamp(value / 1000 if value > 1e11 else value).date()
        except (OverflowError, OSError, ValueError):
            return None

    text = str(value).strip()
    if not text:
        return None

    for fmt in STRICT_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    try:
        return dateparser.parse(text).date()
    except (ValueError, OverflowError, TypeError):
        return None


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def _from_frontmatter(note: NoteMetadata) -> str | None:
    for key in FRONTMATTER_DATE_FIELDS:
        raw = note.frontmatter.get(key)
        if raw:
            parsed = parse_date(raw)
            if parsed:
                return format_date(parsed)
    return None


def _from_filename(note: NoteMetadata) -> str | None:
    for pattern in FILENAME_PATTERNS:
        match = pattern.search(note.name)
        if match:
            parsed = parse_date(match.group(1))
            if parsed:
                return format_date(parsed)
    return None


def _from_path(note: NoteMetadata) -> str | None:
    path = "/" + note.path
    for pattern in PATH_PATTERNS:
        match = pattern.search(path)
        if not match:
            continue
        groups = match.groups()
        if len(groups) == 1:
            text = groups[0]
        elif len(groups) == 3:
            text = "-".join(groups)
        else:
            text = f"{groups[0]}-{groups[1]}-01"
        parsed = parse_date(text)
        if parsed:
            return format_date(parsed)
    return None


def extract_date(note: NoteMetadata) -> str | None:
    """Best date for a note, as ``YYYY-MM-DD``."""
    for source in (_from_frontmatter, _from_filename, _from_path):
        found = source(note)
        if found:
            return found

    if note.created_time is not None:
        return format_date(datetime.fromtimestamp(note.created_time).date())
    return None


def extract_title(note: NoteMetadata) -> str | None:
    """Frontmatter title, else first heading, else file name."""
    title = note.frontmatter.get("title")
    if title:
        return str(title)
    if note.headings:
        return note.headings[0]
    return note.name or None


def is_daily_note(path: str) -> bool:
    stem = posixpath.splitext(posixpath.basename(path))[0]
    return any(p.search(stem) for p in DAILY_PATTERNS)
