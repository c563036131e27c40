"""
Debounced, cancelable per-note processing.

Each note path has at most one pending task. A new edit cancels the pending
task for that path and arms a fresh one; tasks fire from ``flush_pending``,
which the watch loop calls periodically. A pass that has started is never
interrupted.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from ..config import Settings
    from .processor import BacklinkProcessor, ProcessingReport

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class PendingTask:
    """A cancelable delayed call for one note path."""

    def __init__(self, path: str, due: float, callback: Callable[[], object]):
        self.path = path
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "fired" if self.fired else "pending"
        return f"PendingTask({self.path!r}, due={self.due:.3f}, {state})"

    def cancel(self) -> None:
        self.cancelled = True

    def is_due(self, now: float) -> bool:
        return not self.cancelled and not self.fired and now >= self.due

    def fire(self) -> object:
        if self.cancelled or self.fired:
            return None
        self.fired = True
        return self.callback()


class ProcessingScheduler:
    """Debounces edits per note before handing them to the processor."""

    def __init__(self, processor: "BacklinkProcessor", clock: Clock = time.monotonic):
        self.processor = processor
        self.clock = clock
        self._pending: dict[str, PendingTask] = {}
        # watchdog delivers events on its own thread
        self._lock = threading.Lock()

    def schedule_processing(self, path: str, settings: "Settings") -> PendingTask:
        """Arm (or re-arm) processing of ``path`` after the debounce delay."""
        due = self.clock() + settings.options.debounce_ms / 1000.0
        task = PendingTask(path, due, lambda: self.processor.process_file(path, settings))

        with self._lock:
            previous = self._pending.get(path)
            if previous is not None:
                previous.cancel()
                logger.debug("Superseded pending processing of %s", path)
            self._pending[path] = task

        logger.debug("Scheduled processing of %s in %d ms", path, settings.options.debounce_ms)
        return task

    def flush_pending(self, now: float | None = None) -> list[str]:
        """Run every task whose debounce delay has passed; returns their paths."""
        now = self.clock() if now is None else now

        with self._lock:
            due = [task for task in self._pending.values() if task.is_due(now)]
            for task in due:
                del self._pending[task.path]

        fired = []
        for task in sorted(due, key=lambda t: t.due):
            try:
                report: ProcessingReport | None = task.fire()  # type: ignore[assignment]
            except Exception:
                logger.exception("Processing of %s failed", task.path)
                continue
            fired.append(task.path)
            if report is not None and report.updated:
                logger.info("%s: updated %d field(s)", task.path, report.updated)
        return fired

    def cancel(self, path: str) -> bool:
        with self._lock:
            task = self._pending.pop(path, None)
        if task is None:
            return False
        task.cancel()
        return True

    def cancel_all_processing(self) -> int:
        """Cancel every pending task (used at shutdown). Returns how many."""
        with self._lock:
            tasks = list(self._pending.values())
            self._pending.clear()
        for task in tasks:
            task.cancel()
        if tasks:
            logger.debug("Cancelled %d pending task(s)", len(tasks))
        return len(tasks)

    def is_pending(self, path: str) -> bool:
        with self._lock:
            return path in self._pending

    def pending_paths(self) -> list[str]:
        with self._lock:
            return sorted(self._pending)

    def next_due(self) -> float | None:
        with self._lock:
            if not self._pending:
                return None
            return min(t.due for t in self._pending.values())
