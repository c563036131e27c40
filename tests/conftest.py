"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from linkmeta.config import Options, Settings
from linkmeta.rules.schema import Rule
from linkmeta.vault.loader import Vault


def make_rule(**overrides) -> Rule:
    """A valid movie-watching rule with selected fields replaced."""
    fields = dict(
        id="daily-to-movies",
        name="Daily Notes → Movies",
        source_pattern="Daily Notes/*",
        target_tag="#movie",
        update_field="lastWatched",
        value_type="date",
        priority=1,
    )
    fields.update(overrides)
    return Rule(**fields)


@pytest.fixture
def vault_path(tmp_path: Path) -> Path:
    """An empty vault folder."""
    path = tmp_path / "vault"
    (path / ".obsidian").mkdir(parents=True)
    return path


@pytest.fixture
def vault(vault_path: Path) -> Vault:
    return Vault(vault_path)


@pytest.fixture
def settings() -> Settings:
    """The movie rule with history off."""
    return Settings(rules=[make_rule()], options=Options(preserve_history=False, debounce_ms=500))
