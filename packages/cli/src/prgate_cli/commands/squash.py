"""squash command: squash a pull request branch without going through a webhook."""

from __future__ import annotations

import click
from rich.console import Console

console = Console()


@click.command("squash")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def squash_cmd(ctx, repo: str, pr_number: int, yes: bool):
    """Squash every commit of a pull request into one and force-push it.

    Runs exactly what a `squash` comment would trigger, including the status
    and comment posted back to the pull request.
    """
    from prgate_core.errors import PlatformAPIError
    from prgate_core.gh.pull_request import get_pull, get_repo
    from prgate_cli.auth import resolve_github_token
    from prgate_cli.server import build_dispatcher

    config = dict(ctx.obj["config"])
    token = resolve_github_token(config)
    if not token:
        raise click.UsageError("No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.")
    config["github_token"] = token

    dispatcher = build_dispatcher(config)
    try:
        this_repo = get_repo(dispatcher.client, repo)
        pr = get_pull(this_repo, pr_number)
        if not yes and not click.confirm(f"Force-push a squashed {pr.head.ref} to {repo}?"):
            return
        response = dispatcher.run_squash(this_repo, pr)
    except PlatformAPIError as e:
        raise click.ClickException(str(e))
    finally:
        dispatcher.workspaces.close()

    color = "yellow" if response.degraded else "green"
    console.print(f"[{color}]{response.message}[/{color}]")
