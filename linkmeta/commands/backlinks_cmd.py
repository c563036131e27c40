"""Backlinks command - list the notes that link to a note."""

from __future__ import annotations

import json

from rich.console import Console
from rich.table import Table

from ..dates import extract_date, is_daily_note
from ..errors import ProcessingError
from ..processor import BacklinkProcessor
from ..vault.loader import Vault
from .process_cmd import _resolve_note


def run_backlinks(vault: Vault, note: str, output_json: bool = False) -> int:
    """
    Show every note linking to ``note``, with the date each one carries.

    Returns:
        Exit code (0 = success, 1 = note not found)
    """
    console = Console()

    rel = _resolve_note(vault, note)
    if rel is None:
        console.print(f"Note not found: {note}", style="bold red")
        return 1

    rows = []
    for source in BacklinkProcessor(vault).incoming_links(rel):
        try:
            date = extract_date(vault.metadata(source))
        except ProcessingError:
            date = None
        rows.append({"source": source, "date": date, "daily": is_daily_note(source)})

    if output_json:
        console.print_json(json.dumps({"note": rel, "backlinks": rows}))
        return 0

    if not rows:
        console.print(f"[dim]No notes link to {rel}[/dim]")
        return 0

    table = Table(title=f"Backlinks to {rel}")
    table.add_column("Source", style="bold")
    table.add_column("Date")
    table.add_column("Daily", justify="center")
    for row in rows:
        table.add_row(row["source"], row["date"] or "[dim]-[/dim]", "✓" if row["daily"] else "")

    console.print(table)
    return 0
