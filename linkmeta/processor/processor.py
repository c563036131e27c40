"""Apply link rules from a source note to the notes it links to."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable

from ..dates import extract_date, extract_title
from ..errors import ProcessingError
from ..rules.engine import find_applicable_rules
from ..rules.schema import ProcessingContext, Rule
from ..vault.loader import NoteMetadata, Vault
from .merge import apply_update, remove_link
from .values import generate_value

if TYPE_CHECKING:
    from ..config import Options, Settings

logger = logging.getLogger(__name__)

Extractor = Callable[[NoteMetadata], "str | None"]
ProgressCallback = Callable[[int, int], None]


@dataclass
class ProcessingReport:
    """What a processing pass did."""

    files: int = 0
    links: int = 0
    applied: int = 0  # rule applications that produced a value
    updated: int = 0  # applications that changed the target field
    errors: list[str] = field(default_factory=list)

    def add(self, other: "ProcessingReport") -> "ProcessingReport":
        self.files += other.files
        self.links += other.links
        self.applied += other.applied
        self.updated += other.updated
        self.errors.extend(other.errors)
        return self


class BacklinkProcessor:
    """Runs rules for every link of a source note.

    Rules are applied sequentially, one frontmatter read-modify-write each,
    so a later rule sees what an earlier one wrote. A failing rule or note is
    logged and skipped; it never stops the rest of the pass.
    """

    def __init__(
        self,
        vault: Vault,
        extract_date: Extractor = extract_date,
        extract_title: Extractor = extract_title,
    ):
        self.vault = vault
        self.extract_date = extract_date
        self.extract_title = extract_title

    def outgoing_links(self, path: str) -> list[str]:
        return self.vault.outgoing_links(path)

    def incoming_links(self, target: str) -> list[str]:
        """Notes whose resolved links include ``target``."""
        result = []
        for path in self.vault.markdown_files():
            if path == target:
                continue
            try:
                if target in self.vault.outgoing_links(path):
                    result.append(path)
            except ProcessingError as e:
                logger.warning("Skipping %s while collecting backlinks: %s", path, e)
        return result

    def process_file(self, path: str, settings: "Settings") -> ProcessingReport:
        """Process one note now."""
        report = ProcessingReport(files=1)
        try:
            logger.debug("Processing file: %s", path)
            targets = self.outgoing_links(path)
            if not targets:
                logger.debug("No links to process in %s", path)
                return report

            source = self.vault.metadata(path)
            for target in targets:
                report.links += 1
                self._process_link(source, target, settings, report)
        except Exception as e:
            logger.exception("Error processing file %s", path)
            report.errors.append(f"{path}: {e}")
        return report

    def process_all_files(
        self,
        settings: "Settings",
        on_progress: ProgressCallback | None = None,
    ) -> ProcessingReport:
        """Process every note in the vault, one at a time."""
        files = self.vault.markdown_files()
        total = ProcessingReport()
        for i, path in enumerate(files, start=1):
            total.add(self.process_file(path, settings))
            if on_progress:
                on_progress(i, len(files))
        return total

    def _process_link(
        self,
        source: NoteMetadata,
        target: str,
        settings: "Settings",
        report: ProcessingReport,
    ) -> None:
        try:
            rules = find_applicable_rules(self.vault, source.path, target, settings.rules)
        except Exception as e:
            logger.exception("Error matching rules for %s -> %s", source.path, target)
            report.errors.append(f"{source.path} -> {target}: {e}")
            return

        logger.debug("Found %d applicable rules for %s -> %s", len(rules), source.path, target)
        for rule in rules:
            try:
                applied, changed = self.apply_rule(source, target, rule, settings.options)
            except Exception as e:
                logger.exception("Error applying rule %s to %s", rule.id, target)
                report.errors.append(f"{rule.id}: {source.path} -> {target}: {e}")
                continue
            report.applied += int(applied)
            report.updated += int(changed)

    def apply_rule(
        self,
        source: NoteMetadata,
        target: str,
        rule: Rule,
        options: "Options",
    ) -> tuple[bool, bool]:
        """Generate a value for one rule and merge it into the target.

        Returns (produced a value, changed the target field).
        """
        context = ProcessingContext(
            source_path=source.path,
            target_path=target,
            rule=rule,
            extracted_date=self.extract_date(source) or None,
            extracted_title=self.extract_title(source) or None,
        )

        value = generate_value(context)
        if value is None:
            logger.debug("Rule %s produced no value for %s", rule.id, source.path)
            return False, False

        logger.debug("Applying rule %s to %s", rule.name, target)
        changed = self.vault.read_write_metadata(
            target, lambda fm: apply_update(fm, value, context, options)
        )
        return True, bool(changed)

    def cleanup_removed_links(
        self,
        path: str,
        removed_targets: list[str],
        settings: "Settings",
    ) -> int:
        """Strip references to ``path`` from notes it no longer links to.

        Only runs when ``update_on_delete`` is enabled. Returns the number of
        fields changed.
        """
        if not settings.options.update_on_delete:
            return 0

        changed = 0
        for target in removed_targets:
            if not self.vault.exists(target):
                continue
            try:
                rules = find_applicable_rules(self.vault, path, target, settings.rules)
                for rule in rules:
                    field_name = rule.update_field
                    if self.vault.read_write_metadata(target, lambda fm: remove_link(fm, field_name, path)):
                        changed += 1
                        logger.debug("Removed %s from %s.%s", path, target, field_name)
            except Exception:
                logger.exception("Error cleaning up %s after link from %s was removed", target, path)
        return changed
