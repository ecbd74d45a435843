"""Preview command for mdnotes CLI."""

from __future__ import annotations

import click
from jinja2 import TemplateError

from ..config import ConfigError
from ..exporters import ExportError
from ..storage import StorageError
from ._common import MdnotesCliError, get_app


@click.command(name="preview")
@click.argument("item_id", type=int)
@click.pass_context
def preview(ctx: click.Context, item_id: int) -> None:
    """Print the merged export of one item without writing anything."""

    app = get_app(ctx)
    try:
        exporter = app.exporter()
        record = app.storage.get(item_id)
        export = exporter.single_file(record)
    except (ConfigError, ExportError, StorageError, TemplateError) as exc:
        raise MdnotesCliError(str(exc)) from exc

    click.echo(f"# {export.name}.md\n")
    click.echo(export.content.rstrip("\n"))


def register(cli: click.Group) -> None:
    """Register the command with the root CLI group."""

    cli.add_command(preview)
