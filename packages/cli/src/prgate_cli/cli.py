"""CLI entry point for prgate.

Commands:
  serve   run the webhook service
  squash  squash a pull request's branch once, from the terminal
  check   run the fixup check for a pull request
"""

from __future__ import annotations

import importlib.metadata

import click

from prgate_cli.commands.check import check_cmd
from prgate_cli.commands.serve import serve_cmd
from prgate_cli.commands.squash import squash_cmd


@click.group()
@click.version_option(
    version=importlib.metadata.version("prgate"),
    prog_name="prgate",
)
@click.option(
    "--config",
    "config_path",
    default=".prgate.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRGATE_CONFIG",
)
@click.pass_context
def main(ctx: click.Context, config_path: str):
    """Squash and merge pull requests on command, and gate them with status checks."""
    from prgate_core.config import load_config

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["config"] = load_config(config_path)


main.add_command(serve_cmd)
main.add_command(squash_cmd)
main.add_command(check_cmd)
