"""Watch command - process notes as they are edited."""

from __future__ import annotations

from datetime import datetime

from rich.console import Console

from ..config import Settings
from ..vault.loader import Vault
from ..watcher import run_watch_loop


def run_watch(vault: Vault, settings: Settings, *, poll_interval: float = 0.25) -> None:
    """
    Watch the vault and process edited notes after the debounce delay.

    This is a blocking command that runs until interrupted (Ctrl+C).
    """
    console = Console(stderr=True)

    enabled = [r for r in settings.rules if r.enabled]
    console.print(f"[bold]Watching[/bold] {vault.path}")
    console.print(f"  Rules: {len(enabled)} enabled of {len(settings.rules)}")
    console.print(f"  Debounce: {settings.options.debounce_ms} ms")
    console.print(f"  History: {'on' if settings.options.preserve_history else 'off'}")
    console.print(f"  Update on delete: {'on' if settings.options.update_on_delete else 'off'}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    processed_count = 0

    def on_event(formatted: str) -> None:
        timestamp = datetime.now().strftime("%H:%M:%S")
        console.print(f"[dim]{timestamp}[/dim] {formatted}", highlight=False)

    def on_processed(path: str) -> None:
        nonlocal processed_count
        processed_count += 1
        timestamp = datetime.now().strftime("%H:%M:%S")
        console.print(f"[dim]{timestamp}[/dim] [green]processed[/green] {path}", highlight=False)

    run_watch_loop(
        vault,
        settings,
        on_event=on_event,
        on_processed=on_processed,
        poll_interval=poll_interval,
    )

    console.print()
    console.print(f"[bold]Stopped.[/bold] Processed {processed_count} note(s).")
