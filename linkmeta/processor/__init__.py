"""Value generation, merging, and debounced processing of note links."""

from .merge import apply_update, merge_values, remove_link
from .processor import BacklinkProcessor, ProcessingReport
from .scheduler import PendingTask, ProcessingScheduler
from .values import generate_value

__all__ = [
    "BacklinkProcessor",
    "ProcessingReport",
    "ProcessingScheduler",
    "PendingTask",
    "generate_value",
    "merge_values",
    "apply_update",
    "remove_link",
]
