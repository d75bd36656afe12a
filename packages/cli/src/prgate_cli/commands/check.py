"""check command: show which commits of a pull request still need squashing."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

console = Console()


@click.command("check")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.option("--report", is_flag=True, help="Also set the squash status context on the head commit.")
@click.pass_context
def check_cmd(ctx, repo: str, pr_number: int, report: bool):
    """List fixup!/squash! commits of a pull request."""
    from prgate_core.errors import PlatformAPIError
    from prgate_core.fixups import check_fixups, find_fixup_commits
    from prgate_core.gh.pull_request import get_client, get_commits, get_pull, get_repo
    from prgate_core.gh.status import StatusReporter
    from prgate_cli.auth import resolve_github_token

    config = ctx.obj["config"]
    token = resolve_github_token(config)
    if not token:
        raise click.UsageError("No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.")

    try:
        this_repo = get_repo(get_client(token, timeout=config["api_timeout"]), repo)
        pr = get_pull(this_repo, pr_number)
        commits = get_commits(pr)
        result = check_fixups(commits, config["squash_context"])
        if report:
            StatusReporter(config.get("status_target_url")).report(this_repo, pr.head.sha, result)
    except PlatformAPIError as e:
        raise click.ClickException(str(e))

    offending = find_fixup_commits(commits)
    if not offending:
        console.print(f"[green]#{pr_number} is squash-clean ({len(commits)} commit(s)).[/green]")
    else:
        table = Table(title=f"Commits to squash in {repo}#{pr_number}", show_header=True, header_style="bold cyan")
        table.add_column("SHA", width=8)
        table.add_column("Subject")
        for sha, subject in offending:
            table.add_row(sha[:7], subject)
        console.print(table)

    if report:
        console.print(f"[dim]Reported {result.context}={result.state} on {pr.head.sha[:7]}.[/dim]")
    if offending:
        ctx.exit(1)
