"""Rule set commands: validate, list, import."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..config import Settings, load_rules_toml, save_settings
from ..rules.engine import validate_settings


def run_validate(settings: Settings, output_json: bool = False) -> int:
    """
    Validate the configured rule set.

    Returns:
        Exit code (0 = valid, 1 = errors found)
    """
    console = Console()
    result = validate_settings(settings.rules)

    if output_json:
        console.print_json(json.dumps(result.to_dict()))
        return 0 if result.is_valid else 1

    if result.is_valid:
        console.print(f"[green]✓[/green] All {len(settings.rules)} rule(s) are valid")
    else:
        console.print(f"[bold red]Rule validation failed[/bold red] ({len(result.errors)} error(s))")
        for err in result.errors:
            console.print(f"  [red]ERROR[/red] {err}", highlight=False)

    for warning in result.warnings:
        console.print(f"  [yellow]WARNING[/yellow] {warning}", highlight=False)

    return 0 if result.is_valid else 1


def run_list_rules(settings: Settings, output_json: bool = False) -> int:
    console = Console()

    if output_json:
        console.print_json(json.dumps([r.to_dict() for r in settings.rules]))
        return 0

    if not settings.rules:
        console.print("[dim]No rules configured.[/dim]")
        return 0

    table = Table(title="Rules")
    table.add_column("Priority", justify="right")
    table.add_column("ID", style="bold")
    table.add_column("Source")
    table.add_column("Target")
    table.add_column("Field")
    table.add_column("Value type")
    table.add_column("Enabled", justify="center")

    for rule in sorted(settings.rules, key=lambda r: r.priority):
        if rule.target_tag:
            target = rule.target_tag
        elif rule.target_folder:
            target = f"{rule.target_folder} (folder)"
        else:
            target = "[dim]any[/dim]"
        table.add_row(
            str(rule.priority),
            rule.id,
            rule.source_pattern,
            target,
            rule.update_field,
            rule.value_type,
            "✓" if rule.enabled else "[dim]-[/dim]",
        )

    console.print(table)
    return 0


def run_import_rules(
    settings: Settings,
    vault_path: Path,
    rules_file: Path,
    *,
    replace: bool = False,
    settings_file: Path | None = None,
) -> int:
    """
    Import rules from a TOML file into the vault settings.

    Rules with an id already present are replaced in place; new ones are
    appended. With ``replace`` the existing rule set is dropped first.
    """
    console = Console()
    imported = load_rules_toml(rules_file)
    if not imported:
        console.print(f"[yellow]No rules found in {rules_file}[/yellow]")
        return 1

    rules = [] if replace else list(settings.rules)
    index = {r.id: i for i, r in enumerate(rules)}
    for rule in imported:
        if rule.id in index:
            rules[index[rule.id]] = rule
        else:
            index[rule.id] = len(rules)
            rules.append(rule)

    settings.rules = rules
    path = save_settings(settings, vault_path, settings_file)
    console.print(f"Imported {len(imported)} rule(s) into {path}")
    return run_validate(settings)
