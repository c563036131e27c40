"""Candidate values produced by a rule for one source -> target link."""

from __future__ import annotations

from typing import Any

from ..rules.matcher import link_to
from ..rules.schema import LINK_VALUE_TYPES, ProcessingContext, ValueType


def generate_value(context: ProcessingContext) -> Any:
    """Value a rule wants to write, or None when it has nothing to say.

    ``date``: the extracted date.
    ``date_and_title``: ``{date, title, source}`` when both are known, else
    the bare date.
    link types: a wiki-link to the source note.
    """
    value_type = context.rule.value_type

    if value_type == ValueType.DATE.value:
        return context.extracted_date or None

    if value_type == ValueType.DATE_AND_TITLE.value:
        if context.extracted_date and context.extracted_title:
            return {
                "date": context.extracted_date,
                "title": context.extracted_title,
                "source": link_to(context.source_path),
            }
        return context.extracted_date or None

    if value_type in LINK_VALUE_TYPES:
        return link_to(context.source_path)

    return None
