from __future__ import annotations

import logging
import re
from collections import Counter
from typing import TYPE_CHECKING, Any, Iterable

from ..errors import ProcessingError
from .matcher import compile_glob, has_tag, is_glob, matches_folder, matches_source
from .schema import VALUE_TYPES, Rule, ValidationResult, ValueType

if TYPE_CHECKING:
    from ..vault.loader import NoteMetadata, Vault

logger = logging.getLogger(__name__)

FIELD_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def matches_target(rule: Rule, target_path: str, metadata: "NoteMetadata | None") -> bool:
    """Check a rule's target criterion: tag, else folder, else everything."""
    if rule.target_tag:
        found = metadata is not None and has_tag(metadata, rule.target_tag)
        logger.debug("Target %s has tag %s: %s", target_path, rule.target_tag, found)
        return found

    if rule.target_folder:
        found = matches_folder(rule.target_folder, target_path)
        logger.debug("Target %s matches folder %s: %s", target_path, rule.target_folder, found)
        return found

    return True


def find_applicable_rules(
    vault: "Vault",
    source: str,
    target: str,
    rules: Iterable[Rule],
    *,
    target_metadata: "NoteMetadata | None" = None,
) -> list[Rule]:
    """Enabled rules for a source -> target link, lowest priority number first.

    Ties keep their configured order. Target metadata is loaded lazily, only
    when some candidate rule filters by tag.
    """
    candidates = [r for r in rules if r.enabled and matches_source(r.source_pattern, source)]
    if not candidates:
        return []

    if target_metadata is None and any(r.target_tag for r in candidates):
        target_metadata = vault.metadata(target)

    selected = [r for r in candidates if matches_target(r, target, target_metadata)]
    return sorted(selected, key=lambda r: r.priority)


def has_source_rules(path: str, rules: Iterable[Rule]) -> bool:
    """True if any enabled rule could fire with this note as its source."""
    return any(r.enabled and matches_source(r.source_pattern, path) for r in rules)


def _check_pattern(label: str, pattern: str, errors: list[str]) -> None:
    if not is_glob(pattern):
        return
    try:
        compile_glob(pattern)
    except re.error as e:
        errors.append(f"Invalid {label} pattern: {e}")


def validate_rule(rule: Rule) -> ValidationResult:
    """Check one rule for missing fields and malformed values."""
    result = ValidationResult()
    errors = result.errors
    warnings = result.warnings

    if not rule.id:
        errors.append("Rule ID is required")
    if not rule.name:
        errors.append("Rule name is required")
    if not rule.source_pattern:
        errors.append("Source pattern is required")
    if not rule.update_field:
        errors.append("Update field is required")
    elif not FIELD_NAME_RE.match(rule.update_field):
        errors.append("Update field must be a valid identifier (letters, numbers, underscore)")

    if not rule.target_tag and not rule.target_folder:
        warnings.append("No target criteria specified - rule will apply to all linked files")
    elif rule.target_tag and rule.target_folder:
        warnings.append("Both target tag and target folder specified - target folder is ignored")

    if rule.source_pattern:
        _check_pattern("source", rule.source_pattern, errors)
    if rule.target_folder:
        _check_pattern("target folder", rule.target_folder, errors)

    if rule.value_type == ValueType.CUSTOM.value:
        errors.append("Value type 'custom' is not supported")
    elif rule.value_type not in VALUE_TYPES:
        errors.append(f"Unknown value type: {rule.value_type!r}")

    if not isinstance(rule.priority, int) or isinstance(rule.priority, bool) or rule.priority < 0:
        errors.append("Priority must be a non-negative integer")

    return result


def _identity(rule: Rule) -> tuple[Any, ...]:
    return (rule.source_pattern, rule.target_tag, rule.target_folder, rule.update_field)


def rules_conflict(a: Rule, b: Rule) -> bool:
    """Two rules compete when they share source, target criteria and field."""
    return _identity(a) == _identity(b)


def validate_rule_set(rules: list[Rule]) -> ValidationResult:
    """Check a rule set for duplicate ids and competing rules."""
    result = ValidationResult()

    counts = Counter(r.id for r in rules)
    duplicates = [rule_id for rule_id, n in counts.items() if n > 1]
    if duplicates:
        result.errors.append(f"Duplicate rule IDs found: {', '.join(duplicates)}")

    # Pairwise; rule sets are hand-written and small.
    for i in range(len(rules)):
        for j in range(i + 1, len(rules)):
            a, b = rules[i], rules[j]
            if rules_conflict(a, b):
                result.warnings.append(
                    f'Rules "{a.name}" and "{b.name}" may conflict '
                    f"(same source pattern, target criteria and update field '{a.update_field}')"
                )

    return result


def validate_settings(rules: list[Rule]) -> ValidationResult:
    """Rule-set checks plus every rule's own checks, prefixed by rule name."""
    result = validate_rule_set(rules)
    for rule in rules:
        label = rule.name or rule.id or "<unnamed>"
        result.merge(validate_rule(rule), prefix=f"{label}: ")
    return result


def files_matching_pattern(vault: "Vault", pattern: str) -> list[str]:
    """Notes that would act as sources for a pattern."""
    return [rel for rel in vault.markdown_files() if matches_source(pattern, rel)]


def files_with_tag(vault: "Vault", tag: str) -> list[str]:
    result = []
    for rel in vault.markdown_files():
        try:
            note = vault.metadata(rel)
        except ProcessingError as e:
            logger.warning("Skipping unreadable note: %s", e)
            continue
        if has_tag(note, tag):
            result.append(rel)
    return result


def files_in_folder(vault: "Vault", folder_pattern: str) -> list[str]:
    return [rel for rel in vault.markdown_files() if matches_folder(folder_pattern, rel)]
