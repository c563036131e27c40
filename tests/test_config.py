"""Tests for settings loading and rule import."""

import json

import pytest

from conftest import make_rule

from linkmeta.config import (
    DEFAULT_SETTINGS,
    Options,
    Settings,
    default_settings,
    find_vault,
    load_rules_toml,
    load_settings,
    save_settings,
    settings_path,
)
from linkmeta.errors import ConfigurationError
from linkmeta.rules.schema import Rule


def test_defaults_when_no_settings_file(vault_path):
    settings = load_settings(vault_path)

    assert [r.id for r in settings.rules] == ["daily-to-movies", "daily-to-books"]
    assert settings.options == Options()
    assert settings.options.debounce_ms == 1000
    assert settings.options.preserve_history


def test_default_settings_are_independent_copies():
    settings = default_settings()
    settings.rules.clear()
    settings.options.debounce_ms = 5

    assert len(DEFAULT_SETTINGS.rules) == 2
    assert DEFAULT_SETTINGS.options.debounce_ms == 1000


def test_save_and_load_round_trip(vault_path):
    settings = Settings(
        rules=[make_rule(), make_rule(id="people", target_tag=None, target_folder="People", preserve_history=False)],
        options=Options(update_on_delete=True, debounce_ms=250),
    )

    path = save_settings(settings, vault_path)

    assert path == settings_path(vault_path)
    assert load_settings(vault_path) == settings


def test_camel_case_settings(vault_path):
    path = settings_path(vault_path)
    path.parent.mkdir(parents=True)
    path.write_text(
        json.dumps(
            {
                "rules": [
                    {
                        "id": "daily-to-books",
                        "name": "Books",
                        "sourcePattern": "Daily Notes/*",
                        "targetTag": "#book",
                        "updateField": "lastRead",
                        "valueType": "date",
                        "priority": 2,
                        "enabled": False,
                        "preserveHistory": True,
                    }
                ],
                "options": {"updateOnDelete": True, "debounceMs": 300, "dateFormat": "DD/MM/YYYY"},
            }
        ),
        encoding="utf-8",
    )

    settings = load_settings(vault_path)

    rule = settings.rules[0]
    assert rule.source_pattern == "Daily Notes/*"
    assert rule.target_tag == "#book"
    assert rule.update_field == "lastRead"
    assert rule.priority == 2
    assert not rule.enabled
    assert rule.preserve_history is True
    assert settings.options.update_on_delete
    assert settings.options.debounce_ms == 300
    assert settings.options.date_format == "DD/MM/YYYY"


def test_rule_coercion_leaves_validation_to_the_engine():
    rule = Rule.from_dict({"id": " x ", "priority": "high", "targetFolder": "  "})

    assert rule.id == "x"
    assert rule.priority == -1
    assert rule.target_folder is None
    assert rule.value_type == "date"


@pytest.mark.parametrize(
    "content,message",
    [
        ("{not json", "invalid JSON"),
        ("[]", "must be a JSON object"),
        ('{"rules": {}}', "'rules' must be a list"),
        ('{"rules": [1]}', "rule #1 must be an object"),
        ('{"options": []}', "'options' must be an object"),
        ('{"options": {"debounceMs": "soon"}}', "debounce_ms must be an integer"),
        ('{"options": {"debounce_ms": -1}}', "debounce_ms must be >= 0"),
        ('{"rules": [{"id": "x", "enabled": "maybe"}]}', "rule #1: enabled must be true or false"),
        ('{"options": {"preserveHistory": [true]}}', "preserve_history must be true or false"),
    ],
)
def test_invalid_settings(vault_path, content, message):
    path = settings_path(vault_path)
    path.parent.mkdir(parents=True)
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError, match=message):
        load_settings(vault_path)


def test_explicit_settings_path(tmp_path, vault_path):
    custom = tmp_path / "elsewhere.json"
    save_settings(Settings(rules=[make_rule()]), vault_path, custom)

    assert custom.exists()
    assert not settings_path(vault_path).exists()
    assert [r.id for r in load_settings(vault_path, custom).rules] == ["daily-to-movies"]


def test_load_rules_toml(tmp_path):
    path = tmp_path / "rules.toml"
    path.write_text(
        """
[[rules]]
id = "daily-to-people"
name = "Daily Notes -> People"
source_pattern = "Daily Notes/*"
target_folder = "People"
update_field = "mentionedIn"
value_type = "append_unique_link"
priority = 2

[[rules]]
name = "no id"
source_pattern = "*"
update_field = "x"
""",
        encoding="utf-8",
    )

    rules = load_rules_toml(path)

    assert len(rules) == 1
    assert rules[0].id == "daily-to-people"
    assert rules[0].target_folder == "People"
    assert rules[0].value_type == "append_unique_link"
    assert rules[0].priority == 2


def test_load_rules_toml_errors(tmp_path):
    bad = tmp_path / "bad.toml"
    bad.write_text("[[rules]\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="invalid TOML"):
        load_rules_toml(bad)
    with pytest.raises(ConfigurationError, match="cannot read rules"):
        load_rules_toml(tmp_path / "missing.toml")


def test_find_vault(vault_path, tmp_path):
    nested = vault_path / "Daily Notes" / "2024"
    nested.mkdir(parents=True)

    assert find_vault(nested) == vault_path.resolve()

    other = tmp_path / "plain"
    (other / ".linkmeta").mkdir(parents=True)
    assert find_vault(other) == other.resolve()


def test_boolean_strings_are_read_strictly(vault_path):
    path = settings_path(vault_path)
    path.parent.mkdir(parents=True)
    path.write_text(
        json.dumps(
            {
                "rules": [
                    {"id": "a", "enabled": "false", "preserveHistory": "no"},
                    {"id": "b", "enabled": "True", "preserveHistory": 1},
                ],
                "options": {"preserveHistory": "false", "updateOnDelete": "yes", "enableLogging": 0},
            }
        ),
        encoding="utf-8",
    )

    settings = load_settings(vault_path)

    assert [r.enabled for r in settings.rules] == [False, True]
    assert [r.preserve_history for r in settings.rules] == [False, True]
    assert settings.options.preserve_history is False
    assert settings.options.update_on_delete is True
    assert settings.options.enable_logging is False


def test_toml_rule_with_bad_flag(tmp_path):
    path = tmp_path / "rules.toml"
    path.write_text('[[rules]]\nid = "x"\nenabled = "sometimes"\n', encoding="utf-8")

    with pytest.raises(ConfigurationError, match="enabled must be true or false"):
        load_rules_toml(path)
