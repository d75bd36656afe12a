"""serve command: run the webhook service."""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

console = Console()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


@click.command("serve")
@click.option("--host", default=None, help="Interface to listen on. Overrides config file.")
@click.option("--port", type=int, default=None, help="Port to listen on. Overrides config file.")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default="info",
    show_default=True,
)
@click.pass_context
def serve_cmd(ctx, host: str | None, port: int | None, log_level: str):
    """Receive GitHub webhooks and act on squash / merge / +1 comments.

    \b
    Required environment variables:
      GITHUB_TOKEN           GitHub token with repo scope (or use gh CLI)
      GITHUB_WEBHOOK_SECRET  Secret configured on the repository webhook
    """
    from prgate_core.config import load_config, validate_config
    from prgate_cli.auth import resolve_github_token, resolve_webhook_secret
    from prgate_cli.server import build_dispatcher, create_app

    config = load_config(ctx.obj["config_path"], cli_overrides={"host": host, "port": port})
    try:
        validate_config(config)
    except ValueError as e:
        raise click.UsageError(str(e))

    token = resolve_github_token(config)
    if not token:
        raise click.UsageError("No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.")
    secret = resolve_webhook_secret(config)
    if not secret:
        raise click.UsageError("GITHUB_WEBHOOK_SECRET environment variable is not set.")
    config["github_token"] = token
    config["webhook_secret"] = secret

    configure_logging(log_level)
    dispatcher = build_dispatcher(config)
    app = create_app(dispatcher)

    console.print(f"[green]prgate listening on {config['host']}:{config['port']}[/green]")
    try:
        app.run(host=config["host"], port=config["port"], threaded=True)
    finally:
        dispatcher.workspaces.close()
