"""Settings: rules plus global options, stored per vault."""

from __future__ import annotations

import copy
import json
import logging
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigurationError
from .rules.schema import Rule, parse_bool

logger = logging.getLogger(__name__)

SETTINGS_DIR = ".linkmeta"
SETTINGS_FILE = "settings.json"

_OPTION_KEYS = {
    "preserveHistory": "preserve_history",
    "updateOnDelete": "update_on_delete",
    "dateFormat": "date_format",
    "debounceMs": "debounce_ms",
    "enableLogging": "enable_logging",
}


@dataclass
class Options:
    """Global processing options."""

    preserve_history: bool = True
    update_on_delete: bool = False
    date_format: str = "YYYY-MM-DD"  # stored for the plugin; output is always ISO
    debounce_ms: int = 1000
    enable_logging: bool = False

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Options":
        data = {_OPTION_KEYS.get(k, k): v for k, v in raw.items()}
        defaults = cls()

        try:
            debounce = int(data.get("debounce_ms", defaults.debounce_ms))
        except (TypeError, ValueError):
            raise ConfigurationError(f"debounce_ms must be an integer, got {data.get('debounce_ms')!r}") from None
        if debounce < 0:
            raise ConfigurationError("debounce_ms must be >= 0")

        return cls(
            preserve_history=parse_bool(data.get("preserve_history", defaults.preserve_history), "preserve_history"),
            update_on_delete=parse_bool(data.get("update_on_delete", defaults.update_on_delete), "update_on_delete"),
            date_format=str(data.get("date_format", defaults.date_format)),
            debounce_ms=debounce,
            enable_logging=parse_bool(data.get("enable_logging", defaults.enable_logging), "enable_logging"),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Settings:
    """Rule set and options, passed explicitly to everything that processes."""

    rules: list[Rule] = field(default_factory=list)
    options: Options = field(default_factory=Options)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Settings":
        if not isinstance(raw, dict):
            raise ConfigurationError("settings must be a JSON object")

        rules_raw = raw.get("rules", [])
        if not isinstance(rules_raw, list):
            raise ConfigurationError("'rules' must be a list")
        options_raw = raw.get("options", {})
        if not isinstance(options_raw, dict):
            raise ConfigurationError("'options' must be an object")

        rules = []
        for i, item in enumerate(rules_raw):
            if not isinstance(item, dict):
                raise ConfigurationError(f"rule #{i + 1} must be an object")
            try:
                rules.append(Rule.from_dict(item))
            except ConfigurationError as e:
                raise ConfigurationError(f"rule #{i + 1}: {e}") from e

        return cls(rules=rules, options=Options.from_dict(options_raw))

    def to_dict(self) -> dict[str, Any]:
        return {
            "rules": [r.to_dict() for r in self.rules],
            "options": self.options.to_dict(),
        }


DEFAULT_SETTINGS = Settings(
    rules=[
        Rule(
            id="daily-to-movies",
            name="Daily Notes → Movies",
            source_pattern="Daily Notes/*",
            target_tag="#movie",
            update_field="lastWatched",
            value_type="date",
            priority=1,
        ),
        Rule(
            id="daily-to-books",
            name="Daily Notes → Books",
            source_pattern="Daily Notes/*",
            target_tag="#book",
            update_field="lastRead",
            value_type="date",
            priority=1,
        ),
    ],
    options=Options(),
)


def default_settings() -> Settings:
    return copy.deepcopy(DEFAULT_SETTINGS)


def settings_path(vault_path: Path) -> Path:
    return Path(vault_path) / SETTINGS_DIR / SETTINGS_FILE


def load_settings(vault_path: Path, path: Path | None = None) -> Settings:
    """Load settings for a vault; defaults when no settings file exists."""
    path = path or settings_path(vault_path)
    if not path.exists():
        logger.debug("No settings at %s, using defaults", path)
        return default_settings()

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{path}: invalid JSON ({e})") from e
    except OSError as e:
        raise ConfigurationError(f"{path}: cannot read settings ({e})") from e

    try:
        return Settings.from_dict(data)
    except ConfigurationError as e:
        raise ConfigurationError(f"{path}: {e}") from e


def save_settings(settings: Settings, vault_path: Path, path: Path | None = None) -> Path:
    path = path or settings_path(vault_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings.to_dict(), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    return path


def load_rules_toml(path: Path) -> list[Rule]:
    """
    Load rules from TOML.

    Each ``[[rules]]`` table uses the same keys as the settings file.
    Tables without an id are skipped.
    """
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"{path}: invalid TOML ({e})") from e
    except OSError as e:
        raise ConfigurationError(f"{path}: cannot read rules ({e})") from e

    rules: list[Rule] = []
    for raw in data.get("rules", []):
        if not isinstance(raw, dict):
            continue
        if not str(raw.get("id", "")).strip():
            logger.warning("Skipping rule without id in %s", path)
            continue
        try:
            rules.append(Rule.from_dict(raw))
        except ConfigurationError as e:
            raise ConfigurationError(f"{path}: {e}") from e
    return rules


def find_vault(start: Path) -> Path | None:
    """Find a vault root (a folder with .obsidian or .linkmeta) walking up from `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        if (p / ".obsidian").is_dir() or (p / SETTINGS_DIR).is_dir():
            return p
    return None
