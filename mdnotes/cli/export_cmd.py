"""Export command for mdnotes CLI."""

from __future__ import annotations

import dataclasses
from pathlib import Path

import click

from ..config import ConfigError
from ..services.export import export_items
from ..storage import StorageError
from ._common import MdnotesCliError, get_app


@click.command(name="export")
@click.argument("item_ids", nargs=-1, type=int)
@click.option(
    "-a",
    "--all",
    "export_all",
    is_flag=True,
    help="Export every top-level item in the library.",
)
@click.option(
    "-d",
    "--dest",
    "destination",
    type=click.Path(path_type=Path, file_okay=False),
    required=False,
    help="Destination directory for the export (prompted when omitted).",
)
@click.option(
    "--single/--split",
    "single",
    default=None,
    help="Merge each item into one file, or write one file per note.",
)
@click.pass_context
def export(
    ctx: click.Context,
    item_ids: tuple[int, ...],
    export_all: bool,
    destination: Path | None,
    single: bool | None,
) -> None:
    """Export the selected items and their notes to Markdown files."""

    app = get_app(ctx)

    if export_all:
        try:
            item_ids = tuple(record.id for record in app.storage.list_top_level())
        except StorageError as exc:  # pragma: no cover - pass-through
            raise MdnotesCliError(str(exc)) from exc
    if not item_ids:
        raise MdnotesCliError("Select at least one item id, or pass '--all'.")

    try:
        settings = app.settings()
    except ConfigError as exc:
        raise MdnotesCliError(str(exc)) from exc
    if single is not None:
        settings = dataclasses.replace(settings, split_files=not single)

    if destination is None:
        # Cancelling the prompt raises click.Abort before anything is written.
        destination = click.prompt(
            "Export markdown notes to",
            default=settings.directory or str(Path.home()),
            type=click.Path(path_type=Path, file_okay=False),
        )

    if destination.exists() and destination.is_file():
        raise MdnotesCliError("Destination must be a directory path.")

    report = export_items(app.exporter(settings), item_ids, destination)

    for path in report.written:
        click.echo(f"Wrote {path}")
    for path in report.skipped:
        click.echo(f"Kept existing {path}")
    for failure in report.failures:
        click.echo(f"Failed item {failure.record_id}: {failure.error}", err=True)

    click.echo(f"Exported {len(report.written)} files to {destination}")
    if not report.ok:
        raise MdnotesCliError(f"{len(report.failures)} item(s) could not be exported.")


def register(cli: click.Group) -> None:
    """Register the command with the root CLI group."""

    cli.add_command(export)
