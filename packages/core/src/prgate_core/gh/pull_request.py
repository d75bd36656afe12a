from __future__ import annotations

import logging

from github import Auth, Github, GithubException

from prgate_core.commands import is_approval
from prgate_core.errors import PlatformAPIError

logger = logging.getLogger(__name__)


def get_client(token: str, timeout: float = 30) -> Github:
    return Github(auth=Auth.Token(token), timeout=int(timeout))


def get_repo(client: Github, full_name: str):
    try:
        return client.get_repo(full_name)
    except GithubException as e:
        raise PlatformAPIError(f"Repository {full_name} not accessible: {e}") from e


def get_pull(repo, pr_number: int):
    try:
        return repo.get_pull(pr_number)
    except GithubException as e:
        raise PlatformAPIError(f"PR #{pr_number} not found: {e}") from e


def get_commits(pr) -> list:
    """Return the PR's commits, oldest first."""
    try:
        return list(pr.get_commits())
    except GithubException as e:
        raise PlatformAPIError(f"Could not list commits of PR #{pr.number}: {e}") from e


def get_approvers(pr, allow_self_approval: bool = False) -> list[str]:
    """Return the distinct logins that left an approval signal on the PR, in comment order."""
    author = pr.user.login
    approvers: list[str] = []
    try:
        comments = list(pr.get_issue_comments())
    except GithubException as e:
        raise PlatformAPIError(f"Could not list comments of PR #{pr.number}: {e}") from e
    for comment in comments:
        login = comment.user.login
        if login in approvers or not is_approval(comment.body or ""):
            continue
        if login == author and not allow_self_approval:
            continue
        approvers.append(login)
    return approvers


def post_comment(pr, body: str) -> bool:
    """Comment on the PR. Failures are logged, never raised."""
    try:
        pr.create_issue_comment(body)
    except GithubException as e:
        logger.warning("Could not comment on PR #%s: %s", pr.number, e)
        return False
    return True
