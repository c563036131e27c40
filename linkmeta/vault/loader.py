"""Vault access: note snapshots, link resolution, and frontmatter writes."""

from __future__ import annotations

import logging
import posixpath
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import frontmatter
import yaml

from ..errors import ProcessingError
from .parser import extract_headings, extract_links, extract_tags

logger = logging.getLogger(__name__)

MetadataMutator = Callable[[dict[str, Any]], Any]


@dataclass
class NoteMetadata:
    """Parsed view of one note."""

    path: str  # vault-relative, POSIX separators
    frontmatter: dict[str, Any] = field(default_factory=dict)
    tags: list[str] = field(default_factory=list)  # inline, '#'-prefixed
    headings: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)  # raw link text, body only
    created_time: float | None = None
    content: str = ""  # body after frontmatter

    @property
    def name(self) -> str:
        """File name without extension."""
        return posixpath.splitext(posixpath.basename(self.path))[0]


def is_markdown(rel: str) -> bool:
    return rel.lower().endswith(".md")


def _is_hidden(rel: str) -> bool:
    return any(part.startswith(".") for part in rel.split("/"))


class Vault:
    """A directory of markdown notes.

    All paths handed in and out are vault-relative POSIX strings, e.g.
    ``"Daily Notes/2024-01-01.md"``.
    """

    def __init__(self, path: Path):
        self.path = Path(path).resolve()
        self._write_lock = threading.RLock()
        # lowercase file name -> note paths; rebuilt after invalidate_index()
        self._name_index: dict[str, list[str]] | None = None

    def __repr__(self) -> str:
        return f"Vault({str(self.path)!r})"

    # -- paths ---------------------------------------------------------------

    def abspath(self, rel: str) -> Path:
        return self.path.joinpath(*rel.split("/"))

    def relpath(self, path: Path | str) -> str | None:
        """Vault-relative path for an absolute path, or None if outside."""
        try:
            rel = Path(path).resolve().relative_to(self.path)
        except ValueError:
            return None
        return rel.as_posix()

    def exists(self, rel: str) -> bool:
        return self.abspath(rel).is_file()

    def markdown_files(self) -> list[str]:
        """All visible markdown notes, sorted for deterministic bulk runs."""
        result = []
        for md_file in self.path.rglob("*.md"):
            rel = md_file.relative_to(self.path).as_posix()
            if _is_hidden(rel):
                continue
            result.append(rel)
        return sorted(result)

    def invalidate_index(self) -> None:
        """Forget the file name index after notes are created, moved or deleted."""
        self._name_index = None

    def _names(self) -> dict[str, list[str]]:
        index = self._name_index
        if index is None:
            index = {}
            for rel in self.markdown_files():
                index.setdefault(posixpath.basename(rel).lower(), []).append(rel)
            self._name_index = index
        return index

    # -- reading -------------------------------------------------------------

    def read(self, rel: str) -> str:
        path = self.abspath(rel)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ProcessingError(rel, "note does not exist") from None
        except UnicodeDecodeError:
            raise ProcessingError(rel, "note is not UTF-8 text") from None
        except OSError as e:
            raise ProcessingError(rel, f"cannot read note ({e})") from e

    def metadata(self, rel: str) -> NoteMetadata:
        """Load a note and parse its frontmatter, tags, headings and links."""
        text = self.read(rel)
        try:
            post = frontmatter.loads(text)
        except yaml.YAMLError as e:
            raise ProcessingError(rel, f"invalid frontmatter ({e})") from e

        fm = post.metadata if isinstance(post.metadata, dict) else {}
        content = post.content

        try:
            created = self.abspath(rel).stat().st_ctime
        except OSError:
            created = None

        return NoteMetadata(
            path=rel,
            frontmatter=fm,
            tags=extract_tags(content),
            headings=extract_headings(content),
            links=extract_links(content),
            created_time=created,
            content=content,
        )

    # -- links ---------------------------------------------------------------

    def resolve_link(self, raw: str, context_path: str = "") -> str | None:
        """Resolve a link the way Obsidian does, or None when unresolved.

        Tries, in order: a path relative to the linking note's folder, a
        vault-relative path, then a unique-ish file name match (preferring
        the linking note's folder, then the shortest path). The ``.md``
        extension is optional. Name comparison is case-insensitive.
        """
        link = raw.split("|", 1)[0].split("#", 1)[0].strip()
        if not link:
            return None

        candidates = [link] if link.lower().endswith(".md") else [f"{link}.md", link]
        folder = posixpath.dirname(context_path)

        for candidate in candidates:
            if folder:
                relative = posixpath.normpath(posixpath.join(folder, candidate))
                if not relative.startswith("..") and self.exists(relative):
                    return relative
            normalized = posixpath.normpath(candidate.lstrip("/"))
            if not normalized.startswith("..") and self.exists(normalized):
                return normalized

        wanted = posixpath.basename(candidates[0]).lower()
        suffix = candidates[0].lower()
        matches = [
            rel for rel in self._names().get(wanted, [])
            if rel.lower().endswith(suffix) and self.exists(rel)
        ]
        if not matches:
            return None
        matches.sort(key=lambda rel: (posixpath.dirname(rel) != folder, rel.count("/"), rel))
        return matches[0]

    def outgoing_links(self, rel: str) -> list[str]:
        """Resolved, deduplicated markdown link targets of a note.

        Links to attachments (canvas, images, text files) are dropped.
        """
        note = self.metadata(rel)
        seen = set()
        result = []
        for link in note.links:
            target = self.resolve_link(link, rel)
            if target is None:
                logger.debug("Unresolved link [[%s]] in %s", link, rel)
                continue
            if not is_markdown(target):
                logger.debug("Ignoring non-note link [[%s]] in %s", link, rel)
                continue
            if target not in seen:
                seen.add(target)
                result.append(target)
        return result

    # -- writing -------------------------------------------------------------

    def read_write_metadata(self, rel: str, mutator: MetadataMutator) -> Any:
        """Atomically apply ``mutator`` to a note's frontmatter mapping.

        The note is rewritten only when the mapping changed. Returns whatever
        the mutator returns.
        """
        if not is_markdown(rel):
            raise ProcessingError(rel, "not a markdown note")
        with self._write_lock:
            text = self.read(rel)
            try:
                post = frontmatter.loads(text)
            except yaml.YAMLError as e:
                raise ProcessingError(rel, f"invalid frontmatter ({e})") from e
            if not isinstance(post.metadata, dict):
                raise ProcessingError(rel, "frontmatter is not a mapping")

            before = yaml.safe_dump(post.metadata, sort_keys=True, allow_unicode=True)
            result = mutator(post.metadata)
            after = yaml.safe_dump(post.metadata, sort_keys=True, allow_unicode=True)

            if before != after:
                self._write(rel, post)
            return result

    def _write(self, rel: str, post: frontmatter.Post) -> None:
        path = self.abspath(rel)
        if post.metadata:
            text = frontmatter.dumps(post, sort_keys=False, allow_unicode=True)
        else:
            text = post.content
        if not text.endswith("\n"):
            text += "\n"
        tmp = path.with_name(f".{path.name}.linkmeta-tmp")
        try:
            tmp.write_text(text, encoding="utf-8")
            tmp.replace(path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise ProcessingError(rel, f"cannot write note ({e})") from e
        logger.debug("Wrote frontmatter of %s", rel)


def load_vault(vault_path: Path) -> Vault:
    """Open a vault directory."""
    vault_path = Path(vault_path)
    if not vault_path.is_dir():
        raise ProcessingError(str(vault_path), "vault directory does not exist")
    return Vault(vault_path)
