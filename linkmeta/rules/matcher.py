"""Pure path and tag matching used by rule selection.

Glob patterns are anchored at the end only: ``Daily Notes/*`` also matches
``Archive/Daily Notes/2024-01-01.md``. Existing rule sets rely on this.
"""

from __future__ import annotations

import posixpath
import re
from functools import lru_cache
from typing import Any, Iterable

GLOB_CHARS = ("*", "?")


def is_glob(pattern: str) -> bool:
    return any(ch in pattern for ch in GLOB_CHARS)


@lru_cache(maxsize=256)
def compile_glob(pattern: str) -> re.Pattern[str]:
    """Translate a glob to an end-anchored regex. Raises re.error."""
    parts = []
    for ch in pattern:
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("".join(parts) + "$")


def matches_glob(pattern: str, path: str) -> bool:
    try:
        regex = compile_glob(pattern)
    except re.error:
        return False
    return regex.search(path) is not None


def parent_folder(path: str) -> str:
    """Immediate parent folder of a vault path ("" at the vault root)."""
    return posixpath.dirname(path)


def matches_source(pattern: str, path: str) -> bool:
    """Check whether a note path matches a rule's source pattern."""
    if not pattern:
        return False
    if is_glob(pattern):
        return matches_glob(pattern, path)
    if pattern == path:
        return True
    if pattern.endswith("/") and path.startswith(pattern):
        return True
    return parent_folder(path) == pattern


def matches_folder(pattern: str, path: str) -> bool:
    """Check a target folder criterion (glob, or folder prefix)."""
    if not pattern:
        return False
    if is_glob(pattern):
        return matches_glob(pattern, path)
    prefix = pattern.rstrip("/")
    if not prefix:
        return True
    return path.startswith(prefix + "/")


def clean_tag(tag: str) -> str:
    tag = tag.strip()
    return tag[1:] if tag.startswith("#") else tag


def frontmatter_tags(fm: dict[str, Any]) -> list[str]:
    """Normalize a frontmatter ``tags`` value to a list of bare tags."""
    raw = fm.get("tags")
    if raw is None:
        raw = fm.get("tag")
    if raw is None:
        return []

    items: Iterable[Any]
    if isinstance(raw, str):
        items = re.split(r"[,\s]+", raw)
    elif isinstance(raw, (list, tuple, set)):
        items = raw
    else:
        items = [raw]

    return [clean_tag(str(t)) for t in items if t is not None and str(t).strip()]


def has_tag(metadata: Any, tag: str) -> bool:
    """Check frontmatter tags and inline tags of a note snapshot."""
    wanted = clean_tag(tag)
    if not wanted:
        return False

    fm = getattr(metadata, "frontmatter", None) or {}
    if wanted in frontmatter_tags(fm):
        return True

    inline = getattr(metadata, "tags", None) or []
    return any(t == f"#{wanted}" or t == wanted for t in inline)


def link_to(path: str) -> str:
    """Wiki-link reference to a note, as written into target frontmatter."""
    if path.lower().endswith(".md"):
        path = path[:-3]
    return f"[[{path}]]"
