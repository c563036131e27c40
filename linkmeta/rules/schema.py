from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import ConfigurationError


class ValueType(str, Enum):
    """How a rule generates a value and merges it into the target field."""

    DATE = "date"
    DATE_AND_TITLE = "date_and_title"
    APPEND_LINK = "append_link"
    APPEND_UNIQUE_LINK = "append_unique_link"
    REPLACE_LINK = "replace_link"
    CUSTOM = "custom"  # reserved, no behavior


VALUE_TYPES: frozenset[str] = frozenset(v.value for v in ValueType)
DATE_VALUE_TYPES: frozenset[str] = frozenset({ValueType.DATE.value, ValueType.DATE_AND_TITLE.value})
LINK_VALUE_TYPES: frozenset[str] = frozenset(
    {ValueType.APPEND_LINK.value, ValueType.APPEND_UNIQUE_LINK.value, ValueType.REPLACE_LINK.value}
)

# Settings files written by the Obsidian plugin use camelCase keys.
_CAMEL_KEYS = {
    "sourcePattern": "source_pattern",
    "targetTag": "target_tag",
    "targetFolder": "target_folder",
    "updateField": "update_field",
    "valueType": "value_type",
    "preserveHistory": "preserve_history",
}


_TRUE_WORDS = {"true", "yes", "on", "1"}
_FALSE_WORDS = {"false", "no", "off", "0"}


def parse_bool(value: Any, name: str) -> bool:
    """Strict boolean for settings values; JSON and TOML booleans pass through."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_WORDS:
            return True
        if text in _FALSE_WORDS:
            return False
    raise ConfigurationError(f"{name} must be true or false, got {value!r}")


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class Rule:
    id: str
    name: str
    source_pattern: str
    update_field: str
    value_type: str = ValueType.DATE.value
    target_tag: str | None = None
    target_folder: str | None = None
    priority: int = 0
    enabled: bool = True
    preserve_history: bool | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Rule":
        """Build a rule from a settings mapping (snake_case or camelCase keys).

        Values are coerced, not validated: a rule with an empty name or a
        negative priority loads fine and is reported by ``validate_rule``.
        Flags that are not recognisable booleans raise ``ConfigurationError``.
        """
        data = {_CAMEL_KEYS.get(k, k): v for k, v in raw.items()}

        priority = data.get("priority", 0)
        try:
            priority = int(priority)
        except (TypeError, ValueError):
            priority = -1

        history = data.get("preserve_history")
        value_type = data.get("value_type", ValueType.DATE.value)
        if isinstance(value_type, ValueType):
            value_type = value_type.value

        return cls(
            id=str(data.get("id", "") or "").strip(),
            name=str(data.get("name", "") or "").strip(),
            source_pattern=str(data.get("source_pattern", "") or ""),
            update_field=str(data.get("update_field", "") or "").strip(),
            value_type=str(value_type).strip(),
            target_tag=_optional_str(data.get("target_tag")),
            target_folder=_optional_str(data.get("target_folder")),
            priority=priority,
            enabled=parse_bool(data.get("enabled", True), "enabled"),
            preserve_history=None if history is None else parse_bool(history, "preserve_history"),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "source_pattern": self.source_pattern,
            "update_field": self.update_field,
            "value_type": self.value_type,
            "priority": self.priority,
            "enabled": self.enabled,
        }
        if self.target_tag is not None:
            d["target_tag"] = self.target_tag
        if self.target_folder is not None:
            d["target_folder"] = self.target_folder
        if self.preserve_history is not None:
            d["preserve_history"] = self.preserve_history
        return d


@dataclass(frozen=True)
class ProcessingContext:
    """Everything one rule application needs; lives for a single merge."""

    source_path: str
    target_path: str
    rule: Rule
    extracted_date: str | None = None
    extracted_title: str | None = None


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def merge(self, other: "ValidationResult", prefix: str = "") -> "ValidationResult":
        self.errors.extend(f"{prefix}{e}" for e in other.errors)
        self.warnings.extend(f"{prefix}{w}" for w in other.warnings)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {"is_valid": self.is_valid, "errors": list(self.errors), "warnings": list(self.warnings)}
