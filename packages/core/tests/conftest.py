"""Shared fixtures: a throwaway GitHub-like remote backed by a local bare repository."""

from __future__ import annotations

import shutil
import subprocess
import types
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from prgate_core.config import DEFAULT_CONFIG

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")

SHA = "a" * 40
SHA2 = "b" * 40


def run_git(cwd: Path, *args: str) -> str:
    proc = subprocess.run(
        ["git", "-c", "user.name=Ada Author", "-c", "user.email=ada@example.com", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )
    return proc.stdout.strip()


def commit_file(checkout: Path, filename: str, content: str, message: str) -> str:
    (checkout / filename).write_text(content)
    run_git(checkout, "add", filename)
    run_git(checkout, "commit", "-q", "-m", message)
    return run_git(checkout, "rev-parse", "HEAD")


class Remote:
    """A bare repository at <root>/acme/widgets.git plus a checkout to push from."""

    def __init__(self, root: Path):
        self.root = root
        self.bare = root / "acme" / "widgets.git"
        self.bare.mkdir(parents=True)
        run_git(self.bare, "init", "-q", "--bare")
        run_git(self.bare, "symbolic-ref", "HEAD", "refs/heads/main")

        self.seed = root / "seed"
        self.seed.mkdir()
        run_git(self.seed, "init", "-q")
        run_git(self.seed, "symbolic-ref", "HEAD", "refs/heads/main")
        run_git(self.seed, "remote", "add", "origin", str(self.bare))

    @property
    def url_template(self) -> str:
        return str(self.root) + "/{owner}/{name}.git"

    def push(self, branch: str) -> None:
        run_git(self.seed, "push", "-q", "--force", "origin", f"HEAD:refs/heads/{branch}")

    def sha(self, ref: str) -> str:
        return run_git(self.bare, "rev-parse", ref)


@pytest.fixture
def remote(tmp_path) -> Remote:
    """main with one commit; feature with three commits on top of it."""
    r = Remote(tmp_path / "remotes")
    commit_file(r.seed, "README.md", "widgets\n", "Initial commit")
    r.push("main")
    run_git(r.seed, "checkout", "-q", "-b", "feature")
    commit_file(r.seed, "a.txt", "a\n", "Add a")
    commit_file(r.seed, "b.txt", "b\n", "Add b")
    commit_file(r.seed, "a.txt", "a, fixed\n", "fixup! Add a")
    r.push("feature")
    return r


@pytest.fixture
def config(tmp_path) -> dict:
    return {
        **DEFAULT_CONFIG,
        "workspace_dir": str(tmp_path / "workspaces"),
        "github_token": "tok",
        "webhook_secret": "s3cret",
        "git_timeout": 30,
        "lock_timeout": 5,
    }


def make_commit(sha: str, message: str):
    return types.SimpleNamespace(sha=sha, commit=types.SimpleNamespace(message=message))


def make_comment(login: str, body: str):
    return types.SimpleNamespace(user=types.SimpleNamespace(login=login), body=body)


def make_pr(number=7, head_sha=SHA, author="author", comments=(), commits=(), state="open", merged=False):
    pr = MagicMock()
    pr.number = number
    pr.state = state
    pr.merged = merged
    pr.head.sha = head_sha
    pr.head.ref = "feature"
    pr.head.repo.full_name = "acme/widgets"
    pr.base.ref = "main"
    pr.user.login = author
    pr.get_issue_comments.return_value = list(comments)
    pr.get_commits.return_value = list(commits)
    return pr


def make_repo(pr=None, statuses=()):
    repo = MagicMock()
    repo.full_name = "acme/widgets"
    repo.get_pull.return_value = pr if pr is not None else make_pr()
    repo.get_commit.return_value.get_combined_status.return_value.statuses = list(statuses)
    return repo


def make_status(context: str, state: str):
    return types.SimpleNamespace(context=context, state=state)


REPOSITORY = {"name": "widgets", "owner": {"login": "acme"}, "full_name": "acme/widgets"}


def issue_comment_payload(body="squash", pull_request=True, action="created", login="reviewer"):
    issue = {"number": 7}
    if pull_request:
        issue["pull_request"] = {"url": "https://api.github.com/repos/acme/widgets/pulls/7"}
    return {
        "action": action,
        "issue": issue,
        "comment": {"body": body, "user": {"login": login}},
        "repository": REPOSITORY,
    }


def pull_request_payload(action="synchronize", head_sha=SHA, head_repo="acme/widgets"):
    return {
        "action": action,
        "number": 7,
        "pull_request": {
            "number": 7,
            "user": {"login": "author"},
            "head": {"sha": head_sha, "ref": "feature", "repo": {"full_name": head_repo} if head_repo else None},
            "base": {"sha": SHA2, "ref": "main"},
        },
        "repository": REPOSITORY,
        "sender": {"login": "author"},
    }
