"""Process command - apply rules to one note or the whole vault now."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from ..config import Settings
from ..processor import BacklinkProcessor, ProcessingReport
from ..vault.loader import Vault


def _resolve_note(vault: Vault, note: str) -> str | None:
    """Accept a vault-relative path, an absolute path, or a link-style name."""
    candidate = Path(note)
    if candidate.is_absolute() or candidate.exists():
        rel = vault.relpath(candidate)
        if rel and vault.exists(rel):
            return rel
    return vault.resolve_link(note)


def _print_report(console: Console, report: ProcessingReport) -> None:
    console.print(
        f"[bold]Processed[/bold] {report.files} file(s), {report.links} link(s): "
        f"{report.applied} rule application(s), {report.updated} field(s) updated"
    )
    if report.errors:
        console.print(f"[red]{len(report.errors)} error(s):[/red]")
        for err in report.errors:
            console.print(f"  [red]-[/red] {err}", highlight=False)


def run_process(vault: Vault, settings: Settings, note: str) -> int:
    """
    Process a single note immediately.

    Returns:
        Exit code (0 = success, 1 = note not found or errors reported)
    """
    console = Console()

    rel = _resolve_note(vault, note)
    if rel is None:
        console.print(f"Note not found: {note}", style="bold red")
        return 1

    report = BacklinkProcessor(vault).process_file(rel, settings)
    _print_report(console, report)
    return 1 if report.errors else 0


def run_process_all(vault: Vault, settings: Settings, *, show_progress: bool = True) -> int:
    """
    Process every note in the vault sequentially.

    Returns:
        Exit code (0 = success, 1 = errors reported)
    """
    console = Console()
    processor = BacklinkProcessor(vault)

    if show_progress:
        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=Console(stderr=True),
            transient=True,
        ) as progress:
            task_id = progress.add_task("Processing files", total=None)

            def on_progress(current: int, total: int) -> None:
                progress.update(task_id, completed=current, total=total)

            report = processor.process_all_files(settings, on_progress=on_progress)
    else:
        report = processor.process_all_files(settings)

    _print_report(console, report)
    return 1 if report.errors else 0
