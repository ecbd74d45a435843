"""Config command for mdnotes CLI."""

from __future__ import annotations

from pathlib import Path

import click

from .. import config as config_module
from ..config import ConfigError, bootstrap_config_file, load_config
from ..templates import available_templates
from ._common import MdnotesCliError


@click.command(name="config")
@click.option(
    "--show",
    is_flag=True,
    help="Print the effective preferences instead of opening the editor.",
)
@click.pass_context
def config(ctx: click.Context, show: bool) -> None:
    """Create the mdnotes configuration file if needed and edit it."""

    config_path: Path = ctx.obj.get("config_path") or config_module.DEFAULT_CONFIG_PATH

    if bootstrap_config_file(config_path):
        click.echo(f"Created configuration at {config_path}")

    if show:
        try:
            loaded = load_config(config_path)
        except ConfigError as exc:
            raise MdnotesCliError(str(exc)) from exc
        click.echo(f"library = {loaded.library_path}")
        for name, value in sorted(loaded.preferences.as_dict().items()):
            if name != "html_to_md":
                click.echo(f"{name} = {value!r}")
        templates_dir = loaded.preferences.get("templates.directory")
        if templates_dir:
            names = available_templates(templates_dir)
            click.echo(f"templates = {', '.join(names) or '(none)'}")
        return

    try:
        click.edit(filename=str(config_path))
    except click.ClickException as exc:  # pragma: no cover - no usable editor
        raise MdnotesCliError(f"Failed to launch editor: {exc}") from exc


def register(cli: click.Group) -> None:
    """Register the command with the root CLI group."""

    cli.add_command(config)
