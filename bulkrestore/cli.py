"""CLI entrypoint."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.console import Console
from rich.table import Table

from .config import RestoreConfig, load_config
from .errors import RestoreError
from .events import EventBus, ImportFailed, ImportProgressed, ImportTerminated
from .importing import ImportMode, ImportOption, ImportOrchestrator
from .lib.json import dumps
from .lib.log import configure_logging
from .storage import database_context


@dataclass
class AppEnv:
    config: RestoreConfig
    console: Console


def _fail(command: str, message: str) -> None:
    raise SystemExit(f"{command}: {message}")


def _parse_collection_spec(raw: str) -> Tuple[str, ImportMode]:
    name, sep, mode = raw.partition(":")
    if not sep or not name:
        raise click.BadParameter(f"expected NAME:MODE, got {raw!r}")
    try:
        return name, ImportMode(mode)
    except ValueError:
        choices = ", ".join(m.value for m in ImportMode)
        raise click.BadParameter(f"unknown mode {mode!r} (choose from {choices})") from None


def _print_progress(console: Console, event: ImportProgressed) -> None:
    progress = event.progress
    if progress is None:
        return
    line = (
        f"[bold]{event.collection_name}[/bold] processed={progress.current_count} "
        f"inserted={progress.inserted_count} modified={progress.modified_count} "
        f"failed={progress.failed_count}"
    )
    console.print(line)
    for error in event.errors:
        console.print(f"  [red]error[/red] {error.get('message', error)}")


def _make_bus(console: Console) -> EventBus:
    bus = EventBus()
    bus.subscribe(ImportProgressed, lambda event: _print_progress(console, event))
    bus.subscribe(ImportFailed, lambda event: console.print(f"[red]Import failed:[/red] {event.message}"))
    bus.subscribe(ImportTerminated, lambda event: console.print("[green]Import finished.[/green]"))
    return bus


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines on stderr")
@click.option("--config", "config_path", type=click.Path(path_type=Path, dir_okay=False), default=None, help="Path to a JSON config file")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, json_logs: bool, config_path: Optional[Path]) -> None:
    """Restore collections from an exported archive into MongoDB."""
    configure_logging(verbose=verbose, json_logs=json_logs)
    try:
        config = load_config(config_path)
    except RestoreError as exc:
        _fail("config", str(exc))
        return
    ctx.obj = AppEnv(config=config, console=Console())


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print the status as JSON")
@click.pass_obj
def status(env: AppEnv, as_json: bool) -> None:
    """Show the newest archive in the working directory."""
    with database_context(env.config) as database:
        orchestrator = ImportOrchestrator(env.config, database)
        current = orchestrator.get_status()

    if as_json:
        click.echo(dumps(current.model_dump(mode="json", by_alias=True)))
        return

    stat = current.zip_file_stat
    if stat is None:
        env.console.print(f"No archives in {env.config.work_dir}")
        return
    env.console.print(
        f"Archive [bold]{stat.file_name}[/bold] (version {stat.meta.version}, "
        f"{'compatible' if current.is_the_same_version else 'version mismatch'})"
    )
    table = Table(title="Collections", show_lines=False)
    table.add_column("Collection")
    table.add_column("File")
    table.add_column("Size", justify="right")
    for inner in stat.inner_file_stats:
        table.add_row(inner.collection_name, inner.file_name, str(inner.size))
    env.console.print(table)


@cli.command()
@click.argument("file_name")
@click.option(
    "--collection",
    "-c",
    "collection_specs",
    multiple=True,
    required=True,
    help="Collection to import as NAME:MODE (insert, flushAndInsert, upsert); repeatable",
)
@click.option("--operator-id", default=None, help="ObjectId written into author fields")
@click.option("--keep-authors", is_flag=True, help="Do not overwrite author fields with the operator")
@click.option("--make-public", is_flag=True, help="Turn restricted pages public")
@click.option("--keep-secrets", is_flag=True, help="Keep user passwords and API tokens")
@click.pass_obj
def run(
    env: AppEnv,
    file_name: str,
    collection_specs: Tuple[str, ...],
    operator_id: Optional[str],
    keep_authors: bool,
    make_public: bool,
    keep_secrets: bool,
) -> None:
    """Import collections from FILE_NAME in the working directory."""
    names: List[str] = []
    options: List[ImportOption] = []
    for raw in collection_specs:
        name, mode = _parse_collection_spec(raw)
        names.append(name)
        options.append(
            ImportOption(
                collection_name=name,
                mode=mode,
                overwrite_author_with_current_user=not keep_authors,
                make_public_for_restricted=make_public,
                initialize_secrets=not keep_secrets,
            )
        )

    bus = _make_bus(env.console)
    try:
        with database_context(env.config) as database:
            orchestrator = ImportOrchestrator(env.config, database, bus=bus)
            orchestrator.import_archive(file_name, names, options, operator_id)
    except RestoreError as exc:
        _fail("run", str(exc))


@cli.command()
@click.pass_obj
def clean(env: AppEnv) -> None:
    """Delete every archive in the working directory."""
    with database_context(env.config) as database:
        ImportOrchestrator(env.config, database).delete_all_zip_files()
    env.console.print(f"Removed archives from {env.config.work_dir}")


def main() -> None:
    cli()


__all__ = ["cli", "main"]
