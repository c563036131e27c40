"""Tests for note event hooks."""

from pathlib import Path

import frontmatter
import pytest

from conftest import make_rule

from linkmeta.config import Options, Settings
from linkmeta.hooks import DocumentHooks
from linkmeta.processor import BacklinkProcessor, ProcessingScheduler

DAILY = "Daily Notes/2024-03-10.md"


def _write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@pytest.fixture
def hooks(vault, vault_path, settings):
    _write(vault_path / "Movies" / "Alien.md", "---\ntags: [movie]\n---\n")
    _write(vault_path / "Movies" / "Heat.md", "---\ntags: [movie]\n---\n")
    processor = BacklinkProcessor(vault)
    scheduler = ProcessingScheduler(processor, clock=lambda: 0.0)
    return DocumentHooks(processor, scheduler, settings)


def test_should_process_requires_markdown_and_source_rule(hooks):
    assert hooks.should_process(DAILY)
    assert not hooks.should_process("Daily Notes/image.png")
    assert not hooks.should_process("Movies/Alien.md")


def test_new_note_with_links_is_scheduled(hooks, vault_path):
    _write(vault_path / DAILY, "Watched [[Alien]].\n")

    assert hooks.on_modified(DAILY)
    assert hooks.scheduler.is_pending(DAILY)
    assert hooks.cache[DAILY].links == ["Movies/Alien.md"]


def test_note_without_links_is_not_scheduled(hooks, vault_path):
    _write(vault_path / DAILY, "Quiet day.\n")

    assert not hooks.on_modified(DAILY)
    assert not hooks.scheduler.is_pending(DAILY)


def test_non_source_note_is_ignored(hooks, vault_path):
    _write(vault_path / "Journal" / "x.md", "[[Alien]]\n")

    assert not hooks.on_modified("Journal/x.md")


def test_metadata_only_change_is_skipped(hooks, vault_path):
    _write(vault_path / DAILY, "Watched [[Alien]].\n")
    hooks.on_modified(DAILY)
    hooks.scheduler.cancel_all_processing()

    _write(vault_path / DAILY, "---\nmood: good\n---\nWatched [[Alien]].\n")

    assert not hooks.on_modified(DAILY)
    assert not hooks.scheduler.is_pending(DAILY)


def test_body_change_is_scheduled(hooks, vault_path):
    _write(vault_path / DAILY, "Watched [[Alien]].\n")
    hooks.on_modified(DAILY)

    _write(vault_path / DAILY, "Watched [[Alien]] and [[Heat]].\n")

    assert hooks.on_modified(DAILY)
    assert hooks.cache[DAILY].links == ["Movies/Alien.md", "Movies/Heat.md"]


def test_processing_runs_after_flush(hooks, vault_path):
    _write(vault_path / DAILY, "Watched [[Alien]].\n")
    hooks.on_modified(DAILY)

    assert hooks.scheduler.flush_pending(now=1.0) == [DAILY]
    assert frontmatter.load(str(vault_path / "Movies" / "Alien.md"))["lastWatched"] == "2024-03-10"


def test_removed_links_are_cleaned_up(vault, vault_path):
    _write(vault_path / "People" / "Ripley.md", "Crew.\n")
    rule = make_rule(
        id="daily-to-people",
        target_tag=None,
        target_folder="People",
        update_field="seenIn",
        value_type="append_unique_link",
    )
    settings = Settings(rules=[rule], options=Options(preserve_history=False, update_on_delete=True))
    processor = BacklinkProcessor(vault)
    hooks = DocumentHooks(processor, ProcessingScheduler(processor, clock=lambda: 0.0), settings)

    _write(vault_path / DAILY, "Met [[Ripley]].\n")
    assert hooks.prime() == 1
    processor.process_file(DAILY, settings)
    target = vault_path / "People" / "Ripley.md"
    assert frontmatter.load(str(target))["seenIn"] == ["[[Daily Notes/2024-03-10]]"]

    _write(vault_path / DAILY, "Nobody today.\n")

    assert not hooks.on_modified(DAILY)
    assert "seenIn" not in frontmatter.load(str(target)).metadata


def test_rename_moves_cache_and_processes_new_path(hooks, vault_path):
    _write(vault_path / DAILY, "Watched [[Alien]].\n")
    hooks.on_modified(DAILY)

    new_path = "Daily Notes/2024-03-11.md"
    (vault_path / DAILY).rename(vault_path / new_path)
    hooks.on_renamed(DAILY, new_path)

    assert not hooks.scheduler.is_pending(DAILY)
    assert DAILY not in hooks.cache
    assert new_path in hooks.cache
    assert frontmatter.load(str(vault_path / "Movies" / "Alien.md"))["lastWatched"] == "2024-03-11"


def test_delete_cancels_pending_work(hooks, vault_path):
    _write(vault_path / DAILY, "Watched [[Alien]].\n")
    hooks.on_modified(DAILY)

    (vault_path / DAILY).unlink()
    hooks.on_deleted(DAILY)

    assert not hooks.scheduler.is_pending(DAILY)
    assert DAILY not in hooks.cache
    assert hooks.scheduler.flush_pending(now=10.0) == []


def test_unreadable_note_is_skipped(hooks):
    assert not hooks.on_modified("Daily Notes/missing.md")
