"""Note modified / renamed / deleted hooks that feed the scheduler."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .errors import ProcessingError
from .rules.engine import has_source_rules

if TYPE_CHECKING:
    from .config import Settings
    from .processor import BacklinkProcessor, ProcessingScheduler

logger = logging.getLogger(__name__)


@dataclass
class CachedNote:
    content: str  # body without frontmatter
    links: list[str] = field(default_factory=list)  # resolved targets


class DocumentHooks:
    """Decides which note events are worth processing.

    A note is scheduled only when its body changed and it has links, or its
    set of links changed. Frontmatter-only writes (including the ones this
    tool makes to target notes) are ignored.
    """

    def __init__(
        self,
        processor: "BacklinkProcessor",
        scheduler: "ProcessingScheduler",
        settings: "Settings",
    ):
        self.processor = processor
        self.scheduler = scheduler
        self.settings = settings
        self.cache: dict[str, CachedNote] = {}

    @property
    def vault(self):
        return self.processor.vault

    def should_process(self, path: str) -> bool:
        if not path.lower().endswith(".md"):
            return False
        return has_source_rules(path, self.settings.rules)

    def _snapshot(self, path: str) -> CachedNote:
        note = self.vault.metadata(path)
        return CachedNote(content=note.content, links=self.vault.outgoing_links(path))

    def prime(self) -> int:
        """Cache every source note so removed links can be detected."""
        count = 0
        for path in self.vault.markdown_files():
            if not self.should_process(path):
                continue
            try:
                self.cache[path] = self._snapshot(path)
                count += 1
            except ProcessingError as e:
                logger.warning("Cannot cache %s: %s", path, e)
        return count

    def on_modified(self, path: str) -> bool:
        """Handle an edit; returns True when processing was scheduled."""
        if not self.should_process(path):
            logger.debug("File %s should not be processed", path)
            return False

        try:
            current = self._snapshot(path)
        except ProcessingError as e:
            logger.warning("Cannot read modified note: %s", e)
            return False

        cached = self.cache.get(path)
        self.cache[path] = current

        if cached is not None:
            if cached.content == current.content:
                logger.debug("%s: only metadata changed, skipping", path)
                return False

            added = [link for link in current.links if link not in cached.links]
            removed = [link for link in cached.links if link not in current.links]

            if not current.links and not removed:
                logger.debug("%s: content changed but no links present, skipping", path)
                return False

            if removed:
                logger.debug("%s: removed links: %s", path, ", ".join(removed))
                self.processor.cleanup_removed_links(path, removed, self.settings)
                if not added and not current.links:
                    return False
        elif not current.links:
            return False

        self.scheduler.schedule_processing(path, self.settings)
        return True

    def on_renamed(self, old_path: str, new_path: str) -> None:
        logger.debug("File renamed: %s -> %s", old_path, new_path)
        self.scheduler.cancel(old_path)

        cached = self.cache.pop(old_path, None)
        if cached is not None:
            self.cache[new_path] = cached

        if self.should_process(new_path):
            self.processor.process_file(new_path, self.settings)

    def on_deleted(self, path: str) -> None:
        logger.debug("File deleted: %s", path)
        self.scheduler.cancel(path)
        self.cache.pop(path, None)
