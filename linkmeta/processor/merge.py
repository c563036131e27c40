"""Merging candidate values into target frontmatter, plus history.

Merges are written to be safe under repeated triggers: re-applying the same
candidate never duplicates a unique link and never moves a date backwards.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any

from dateutil.parser import isoparse

from ..rules.matcher import link_to
from ..rules.schema import DATE_VALUE_TYPES, ProcessingContext, Rule, ValueType

if TYPE_CHECKING:
    from ..config import Options

logger = logging.getLogger(__name__)

# Date fields whose history is a plain list of dates
SHORTCUT_HISTORY_FIELDS = {
    "lastWatched": "watchHistory",
    "lastRead": "readHistory",
}


def resolve_date(value: Any) -> date | None:
    """Calendar date carried by a field value, or None."""
    if isinstance(value, dict):
        value = value.get("date")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return isoparse(value.strip()).date()
        except (ValueError, OverflowError):
            return None
    return None


def _same_link(entry: Any, link: Any) -> bool:
    if isinstance(entry, dict):
        return entry.get("source") == link
    return entry == link


def _contains_link(items: list[Any], link: Any) -> bool:
    return any(_same_link(item, link) for item in items)


def _merge_dates(current: Any, candidate: Any) -> Any:
    new_date = resolve_date(candidate)
    if current is None:
        return candidate if new_date is not None else None

    old_date = resolve_date(current)
    if old_date is not None and new_date is not None:
        return candidate if new_date > old_date else current
    if new_date is not None:
        return candidate
    return current


def merge_values(current: Any, candidate: Any, value_type: str) -> Any:
    """Combine a field's current value with a candidate.

    Returns the new field value, or None to leave the field untouched.
    """
    if value_type == ValueType.REPLACE_LINK.value:
        return candidate

    if value_type == ValueType.APPEND_LINK.value:
        if current is None:
            return [candidate]
        if isinstance(current, list):
            return [*current, candidate]
        return [current, candidate]

    if value_type == ValueType.APPEND_UNIQUE_LINK.value:
        if current is None:
            return [candidate]
        if isinstance(current, list):
            return current if _contains_link(current, candidate) else [*current, candidate]
        return current if _same_link(current, candidate) else [current, candidate]

    if value_type in DATE_VALUE_TYPES:
        return _merge_dates(current, candidate)

    return None


def history_field(field: str) -> str:
    return SHORTCUT_HISTORY_FIELDS.get(field, f"{field}History")


def history_enabled(rule: Rule, options: "Options") -> bool:
    if rule.preserve_history is not None:
        return rule.preserve_history
    return options.preserve_history


def _history_date(value: Any) -> str:
    if isinstance(value, dict):
        value = value.get("date", value.get("source"))
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return str(value)


def _timestamp(now: datetime | None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def append_history(
    metadata: dict[str, Any],
    field: str,
    value: Any,
    source_path: str,
    now: datetime | None = None,
) -> bool:
    """Record an observed value in the field's history list.

    ``lastWatched`` / ``lastRead`` keep a deduplicated list of dates; other
    fields keep an append-only log of ``{field, value, timestamp,
    sourceContext}`` records. Returns whether an entry was added.
    """
    key = history_field(field)
    existing = metadata.get(key)
    if existing is None:
        entries: list[Any] = []
    elif isinstance(existing, list):
        entries = list(existing)
    else:
        entries = [existing]

    if field in SHORTCUT_HISTORY_FIELDS:
        entry = _history_date(value)
        if any(_history_date(e) == entry for e in entries):
            return False
        entries.append(entry)
    else:
        entries.append(
            {
                "field": field,
                "value": value,
                "timestamp": _timestamp(now),
                "sourceContext": source_path,
            }
        )

    metadata[key] = entries
    return True


def apply_update(
    metadata: dict[str, Any],
    candidate: Any,
    context: ProcessingContext,
    options: "Options",
    now: datetime | None = None,
) -> bool:
    """Merge a candidate into ``metadata[rule.update_field]`` in place.

    History is appended whenever it is enabled for the rule, whether or not
    the merge changed the field. Returns whether the field changed.
    """
    if candidate is None:
        return False

    rule = context.rule
    field = rule.update_field
    current = metadata.get(field)
    new_value = merge_values(current, candidate, rule.value_type)

    changed = False
    if new_value is not None and (field not in metadata or new_value != current):
        metadata[field] = new_value
        changed = True
        logger.debug("%s: %s -> %r", context.target_path, field, new_value)
    else:
        logger.debug("%s: %s unchanged (candidate %r)", context.target_path, field, candidate)

    if history_enabled(rule, options):
        append_history(metadata, field, candidate, context.source_path, now=now)

    return changed


def remove_link(metadata: dict[str, Any], field: str, source_path: str) -> bool:
    """Strip references to a source note from a field. Returns whether anything changed."""
    if field not in metadata:
        return False
    current = metadata[field]
    link = link_to(source_path)

    if isinstance(current, list):
        kept = [item for item in current if not _same_link(item, link)]
        if len(kept) == len(current):
            return False
        if kept:
            metadata[field] = kept
        else:
            del metadata[field]
        return True

    if current == link:
        del metadata[field]
        return True
    return False
