"""List command for mdnotes CLI."""

from __future__ import annotations

import click

from ..storage import StorageError
from ._common import MdnotesCliError, get_app


@click.command(name="ls")
@click.pass_context
def ls(ctx: click.Context) -> None:
    """List top-level library items."""

    app = get_app(ctx)
    try:
        records = app.storage.list_top_level()
    except StorageError as exc:  # pragma: no cover - pass-through
        raise MdnotesCliError(str(exc)) from exc

    if not records:
        click.echo("Library is empty.")
        return

    for record in records:
        notes = f" ({len(record.note_ids)} notes)" if record.note_ids else ""
        click.echo(f"{record.id:>5}  {record.key}  {record.title or '(untitled)'}{notes}")


def register(cli: click.Group) -> None:
    """Register the command with the root CLI group."""

    cli.add_command(ls)
