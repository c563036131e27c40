"""Declarative link rules: schema, matching and validation."""

from .engine import find_applicable_rules, validate_rule, validate_rule_set, validate_settings
from .schema import ProcessingContext, Rule, ValidationResult, ValueType

__all__ = [
    "Rule",
    "ValueType",
    "ProcessingContext",
    "ValidationResult",
    "find_applicable_rules",
    "validate_rule",
    "validate_rule_set",
    "validate_settings",
]
