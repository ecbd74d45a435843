"""mdnotes CLI package."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

import click

from ..utils.logger import setup_logging
from . import config_cmd, export_cmd, import_cmd, ls, preview
from ._common import CONTEXT_SETTINGS, MdnotesCliError

__all__ = ["cli", "main", "MdnotesCliError"]


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "-c",
    "--config",
    "config_path_opt",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to configuration TOML file.",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(ctx: click.Context, config_path_opt: Path | None, verbose: bool) -> None:
    """mdnotes command group."""

    ctx.ensure_object(dict)
    setup_logging(verbose)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.command.get_help(ctx))
        ctx.exit(0)

    ctx.obj["config_path"] = config_path_opt


for register_command in (
    config_cmd.register,
    import_cmd.register,
    ls.register,
    preview.register,
    export_cmd.register,
):
    register_command(cli)


def main(argv: Sequence[str] | None = None) -> int:
    args = list(argv) if argv is not None else None
    try:
        result = cli.main(args=args, prog_name="mdnotes", standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.Abort:
        click.echo("Aborted!", err=True)
        return 1
    except SystemExit as exc:
        return int(exc.code or 0)
    return result if isinstance(result, int) else 0
