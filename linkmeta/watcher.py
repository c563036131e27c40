"""
File system watcher that drives backlink processing.

This module provides:
- Watchdog-based monitoring of a vault's markdown notes
- Translation of file events into note hooks (modified, renamed, deleted)
- A blocking loop that flushes debounced processing
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from watchdog.events import (
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from .hooks import DocumentHooks
from .processor import BacklinkProcessor, ProcessingScheduler

if TYPE_CHECKING:
    from .config import Settings
    from .vault.loader import Vault

logger = logging.getLogger(__name__)


class VaultEventHandler(FileSystemEventHandler):
    """
    Forwards note events to ``DocumentHooks``.

    Key behaviors:
    - Filters to visible .md files inside the vault
    - Converts absolute paths to vault-relative POSIX paths
    - Treats moves in and out of the vault as create / delete
    """

    RELEVANT_EXTENSIONS = {".md"}

    def __init__(self, vault: "Vault", hooks: DocumentHooks, on_event: Callable[[str], None] | None = None):
        super().__init__()
        self.vault = vault
        self.hooks = hooks
        self.on_event = on_event

    def _relevant(self, path: str) -> str | None:
        """Vault-relative path if the file should be tracked."""
        rel = self.vault.relpath(path)
        if rel is None:
            return None

        # Skip hidden files and directories (.obsidian, .linkmeta, temp files)
        if any(part.startswith(".") for part in rel.split("/")):
            return None

        if Path(rel).suffix.lower() not in self.RELEVANT_EXTENSIONS:
            return None

        return rel

    def _notify(self, message: str) -> None:
        if self.on_event:
            self.on_event(message)

    def on_created(self, event: FileCreatedEvent) -> None:
        if event.is_directory:
            return
        rel = self._relevant(event.src_path)
        if not rel:
            return
        self.vault.invalidate_index()
        if self.hooks.on_modified(rel):
            self._notify(f"+ {rel}")

    def on_modified(self, event: FileModifiedEvent) -> None:
        if event.is_directory:
            return
        rel = self._relevant(event.src_path)
        if rel and self.hooks.on_modified(rel):
            self._notify(f"~ {rel}")

    def on_deleted(self, event: FileDeletedEvent) -> None:
        if event.is_directory:
            return
        rel = self._relevant(event.src_path)
        if rel:
            self.vault.invalidate_index()
            self.hooks.on_deleted(rel)
            self._notify(f"- {rel}")

    def on_moved(self, event: FileMovedEvent) -> None:
        if event.is_directory:
            return

        src = self._relevant(event.src_path)
        dest = self._relevant(event.dest_path)
        if src or dest:
            self.vault.invalidate_index()

        if src and dest:
            self.hooks.on_renamed(src, dest)
            self._notify(f"> {src} -> {dest}")
        elif src:
            # Moved out of watched area - treat as delete
            self.hooks.on_deleted(src)
            self._notify(f"- {src}")
        elif dest:
            # Moved into watched area (also how editors save atomically)
            if self.hooks.on_modified(dest):
                self._notify(f"~ {dest}")


def watch_vault(
    vault: "Vault",
    settings: "Settings",
    on_event: Callable[[str], None] | None = None,
    processor: BacklinkProcessor | None = None,
) -> tuple[Observer, VaultEventHandler, ProcessingScheduler]:
    """
    Start watching a vault.

    Returns:
        Tuple of (observer, handler, scheduler) - caller should flush the
        scheduler periodically and call observer.stop() to stop watching
    """
    processor = processor or BacklinkProcessor(vault)
    scheduler = ProcessingScheduler(processor)
    hooks = DocumentHooks(processor, scheduler, settings)
    cached = hooks.prime()
    logger.debug("Cached %d source notes", cached)

    handler = VaultEventHandler(vault, hooks, on_event=on_event)
    observer = Observer()
    observer.schedule(handler, str(vault.path), recursive=True)
    observer.start()

    return observer, handler, scheduler


def run_watch_loop(
    vault: "Vault",
    settings: "Settings",
    on_event: Callable[[str], None] | None = None,
    on_processed: Callable[[str], None] | None = None,
    poll_interval: float = 0.25,
) -> None:
    """
    Run the watch loop until interrupted.

    This is a blocking function that watches for events and flushes
    debounced processing periodically. Pending processing is cancelled on
    shutdown.
    """
    observer, _handler, scheduler = watch_vault(vault, settings, on_event=on_event)

    try:
        while True:
            time.sleep(poll_interval)
            for path in scheduler.flush_pending():
                if on_processed:
                    on_processed(path)
    except KeyboardInterrupt:
        cancelled = scheduler.cancel_all_processing()
        logger.debug("Shutdown cancelled %d pending task(s)", cancelled)
        observer.stop()

    observer.join()
