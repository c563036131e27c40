"""CLI entrypoint for linkmeta."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from . import __version__
from .config import default_settings, find_vault, load_settings, save_settings, settings_path
from .errors import LinkMetaError
from .vault.loader import Vault


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    logging.getLogger("watchdog").setLevel(logging.WARNING)


def _load(ctx: click.Context):
    """Vault and settings for a command, loaded once per invocation."""
    if "settings" not in ctx.obj:
        try:
            settings = load_settings(ctx.obj["vault"], ctx.obj["settings_file"])
        except LinkMetaError as e:
            raise click.ClickException(str(e)) from e
        ctx.obj["settings"] = settings
        if settings.options.enable_logging and not ctx.obj["verbose"]:
            _configure_logging(True)
    return Vault(ctx.obj["vault"]), ctx.obj["settings"]


@click.group()
@click.version_option(__version__, prog_name="linkmeta")
@click.option(
    "--vault",
    "-v",
    type=click.Path(exists=False, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Path to the vault (defaults to the nearest folder with .obsidian or .linkmeta)",
)
@click.option(
    "--settings",
    "settings_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Settings file (defaults to <vault>/.linkmeta/settings.json)",
)
@click.option("--verbose", is_flag=True, help="Log rule matching and merge decisions")
@click.pass_context
def cli(ctx: click.Context, vault: Path | None, settings_file: Path | None, verbose: bool) -> None:
    """linkmeta - copy backlink metadata into linked notes.

    When a note links to another, rules decide which field of the linked
    note's frontmatter gets a date, title, or link back to the source.
    """
    ctx.ensure_object(dict)
    _configure_logging(verbose)

    if vault is None:
        detected = find_vault(Path.cwd())
        if detected is None:
            raise click.ClickException("Vault not found. Pass --vault /path/to/vault or run from inside a vault.")
        vault = detected

    if not vault.exists() or not vault.is_dir():
        raise click.BadParameter(f"Directory '{vault}' does not exist.", param_hint="--vault / -v")

    ctx.obj["vault"] = vault.resolve()
    ctx.obj["settings_file"] = settings_file
    ctx.obj["verbose"] = verbose


@cli.command()
@click.option("--force", is_flag=True, help="Overwrite existing settings")
@click.pass_context
def init(ctx: click.Context, force: bool) -> None:
    """Write default settings for the vault."""
    path = ctx.obj["settings_file"] or settings_path(ctx.obj["vault"])
    if path.exists() and not force:
        raise click.ClickException(f"{path} already exists (use --force to overwrite)")
    written = save_settings(default_settings(), ctx.obj["vault"], path)
    click.echo(f"Wrote {written}")


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output rules as JSON")
@click.pass_context
def rules(ctx: click.Context, output_json: bool) -> None:
    """List configured rules in priority order."""
    from .commands.rules_cmd import run_list_rules

    _, settings = _load(ctx)
    sys.exit(run_list_rules(settings, output_json))


@cli.command("rules-import")
@click.argument("rules_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--replace", is_flag=True, help="Drop existing rules before importing")
@click.pass_context
def rules_import(ctx: click.Context, rules_file: Path, replace: bool) -> None:
    """Import rules from a TOML file.

    Example rules file:

    \b
        [[rules]]
        id = "daily-to-people"
        name = "Daily Notes -> People"
        source_pattern = "Daily Notes/*"
        target_folder = "People"
        update_field = "mentionedIn"
        value_type = "append_unique_link"
        priority = 2
    """
    from .commands.rules_cmd import run_import_rules

    _, settings = _load(ctx)
    try:
        exit_code = run_import_rules(
            settings,
            ctx.obj["vault"],
            rules_file,
            replace=replace,
            settings_file=ctx.obj["settings_file"],
        )
    except LinkMetaError as e:
        raise click.ClickException(str(e)) from e
    sys.exit(exit_code)


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output results as JSON")
@click.pass_context
def validate(ctx: click.Context, output_json: bool) -> None:
    """Validate the metadata update rules.

    Errors (missing fields, bad field names, duplicate ids, unsupported value
    types) exit with status 1. Warnings (no target criteria, competing rules)
    are reported but do not fail.
    """
    from .commands.rules_cmd import run_validate

    _, settings = _load(ctx)
    sys.exit(run_validate(settings, output_json))


@cli.command()
@click.argument("note")
@click.pass_context
def process(ctx: click.Context, note: str) -> None:
    """Process one note now.

    NOTE is a vault-relative path ("Daily Notes/2024-03-10.md") or a link
    name ("2024-03-10").
    """
    from .commands.process_cmd import run_process

    vault, settings = _load(ctx)
    sys.exit(run_process(vault, settings, note))


@cli.command()
@click.argument("note")
@click.option("--json", "output_json", is_flag=True, help="Output backlinks as JSON")
@click.pass_context
def backlinks(ctx: click.Context, note: str, output_json: bool) -> None:
    """List notes linking to NOTE, with their dates.

    Shows which sources the rules would draw from for this note.
    """
    from .commands.backlinks_cmd import run_backlinks

    vault, _ = _load(ctx)
    sys.exit(run_backlinks(vault, note, output_json))


@cli.command("process-all")
@click.option("--no-progress", is_flag=True, help="Do not show a progress bar")
@click.pass_context
def process_all(ctx: click.Context, no_progress: bool) -> None:
    """Process every note in the vault."""
    from .commands.process_cmd import run_process_all

    vault, settings = _load(ctx)
    sys.exit(run_process_all(vault, settings, show_progress=not no_progress))


@cli.command()
@click.option(
    "--poll",
    "poll_interval",
    type=float,
    default=0.25,
    show_default=True,
    help="Seconds between debounce checks",
)
@click.pass_context
def watch(ctx: click.Context, poll_interval: float) -> None:
    """Watch the vault and process notes as they change.

    Runs until interrupted (Ctrl+C). Edits to a note are debounced by the
    configured debounce_ms before its links are processed.
    """
    from .commands.watch_cmd import run_watch

    vault, settings = _load(ctx)
    run_watch(vault, settings, poll_interval=poll_interval)


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
