"""Tests for source pattern, folder and tag matching."""

import pytest

from linkmeta.rules.matcher import (
    compile_glob,
    frontmatter_tags,
    has_tag,
    link_to,
    matches_folder,
    matches_glob,
    matches_source,
)
from linkmeta.vault.loader import NoteMetadata


def test_glob_matches_files_in_folder():
    assert matches_glob("Daily Notes/*", "Daily Notes/2024-01-01.md")


def test_glob_is_anchored_at_end_only():
    # The start is not anchored: a deeper folder with the same name matches.
    assert matches_glob("Daily Notes/*", "Other/Daily Notes/x.md")
    # The end is anchored: trailing characters must be consumed by the pattern.
    assert matches_glob("Daily Notes/*.md", "Daily Notes/x.md")
    assert not matches_glob("Daily Notes/*.md", "Daily Notes/x.md.bak")
    assert not matches_glob("Daily Notes/*", "Weekly Notes/x.md")


def test_glob_question_mark_matches_one_character():
    assert matches_glob("Journal/2024-0?-01.md", "Journal/2024-03-01.md")
    assert not matches_glob("Journal/2024-0?-01.md", "Journal/2024-003-01.md")


def test_glob_escapes_regex_characters():
    assert matches_glob("Notes (old)/*", "Notes (old)/a.md")
    assert not matches_glob("a.b/*", "axb/c.md")
    assert matches_glob("[draft]*", "[draft] idea.md")


def test_compile_glob_is_end_anchored():
    assert compile_glob("*.md").pattern.endswith("$")
    assert not compile_glob("*.md").pattern.startswith("^")


@pytest.mark.parametrize(
    "pattern, path, expected",
    [
        ("Inbox/todo.md", "Inbox/todo.md", True),
        ("Inbox/todo.md", "Inbox/todo2.md", False),
        ("Journal/", "Journal/2024/01.md", True),
        ("Journal/", "Journals/01.md", False),
        ("Journal", "Journal/01.md", True),
        ("Journal", "Journal/2024/01.md", False),
        ("Daily Notes/*", "Daily Notes/2024-03-10.md", True),
        ("", "anything.md", False),
    ],
)
def test_matches_source(pattern, path, expected):
    assert matches_source(pattern, path) is expected


def test_matches_folder_prefix_and_glob():
    assert matches_folder("Movies", "Movies/Alien.md")
    assert matches_folder("Movies/", "Movies/sci-fi/Alien.md")
    assert not matches_folder("Movies", "Movies.md")
    assert not matches_folder("Movies", "Books/Dune.md")
    assert matches_folder("Media/*/Movies/*", "Media/2024/Movies/Alien.md")


def test_frontmatter_tags_accepts_list_and_string():
    assert frontmatter_tags({"tags": ["movie", "#scifi"]}) == ["movie", "scifi"]
    assert frontmatter_tags({"tags": "movie, scifi"}) == ["movie", "scifi"]
    assert frontmatter_tags({"tags": None}) == []
    assert frontmatter_tags({}) == []


def test_has_tag_checks_frontmatter_and_inline_tags():
    in_frontmatter = NoteMetadata(path="Movies/Alien.md", frontmatter={"tags": ["movie"]})
    inline = NoteMetadata(path="Movies/Heat.md", tags=["#movie"])
    neither = NoteMetadata(path="Books/Dune.md", frontmatter={"tags": ["book"]}, tags=["#scifi"])

    assert has_tag(in_frontmatter, "#movie")
    assert has_tag(in_frontmatter, "movie")
    assert has_tag(inline, "#movie")
    assert has_tag(inline, "movie")
    assert not has_tag(neither, "#movie")


def test_has_tag_requires_exact_match():
    note = NoteMetadata(path="a.md", frontmatter={"tags": ["movies"]}, tags=["#movie/scifi"])
    assert not has_tag(note, "#movie")


def test_link_to_drops_markdown_extension():
    assert link_to("Note A.md") == "[[Note A]]"
    assert link_to("Daily Notes/2024-03-10.md") == "[[Daily Notes/2024-03-10]]"
    assert link_to("Note A") == "[[Note A]]"
