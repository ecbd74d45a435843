"""Import command for mdnotes CLI."""

from __future__ import annotations

from pathlib import Path

import click

from ..storage import StorageError, import_library
from ._common import MdnotesCliError, get_app


@click.command(name="import")
@click.argument(
    "source",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
)
@click.pass_context
def import_(ctx: click.Context, source: Path) -> None:
    """Load a YAML or JSON library export into the library database."""

    app = get_app(ctx)
    try:
        created = import_library(app.storage, source)
    except StorageError as exc:
        raise MdnotesCliError(str(exc)) from exc

    click.echo(f"Imported {len(created)} items from {source}")


def register(cli: click.Group) -> None:
    """Register the command with the root CLI group."""

    cli.add_command(import_)
