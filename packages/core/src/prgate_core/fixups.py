"""Squash-readiness check.

A pull request is squash-clean when none of its commits is an amend marker
(``fixup!``, ``squash!`` or ``amend!`` as produced by ``git commit --fixup``
and friends). The check only reads the commit list; it never touches git
history, so running it again on the same commits gives the same answer.
"""

from __future__ import annotations

import logging

from prgate_core.gh.pull_request import get_commits
from prgate_core.gh.status import StatusReporter, StatusResult

logger = logging.getLogger(__name__)

FIXUP_PREFIXES = ("fixup!", "squash!", "amend!")

TRIGGER_ACTIONS = ("opened", "synchronize", "reopened")


def subject_of(message: str | None) -> str:
    return (message or "").split("\n", 1)[0].strip()


def is_fixup_subject(subject: str) -> bool:
    return subject.startswith(FIXUP_PREFIXES)


def strip_fixup_markers(subject: str) -> str:
    """'fixup! squash! Add parser' -> 'Add parser'."""
    stripped = subject.strip()
    while stripped.startswith(FIXUP_PREFIXES):
        stripped = stripped.split("!", 1)[1].strip()
    return stripped


def find_fixup_commits(commits) -> list[tuple[str, str]]:
    """Return ``(sha, subject)`` for every amend-marker commit in ``commits``."""
    offending = []
    for commit in commits:
        subject = subject_of(commit.commit.message)
        if is_fixup_subject(subject):
            offending.append((commit.sha, subject))
    return offending


def check_fixups(commits, context: str = "review/squash") -> StatusResult:
    offending = find_fixup_commits(commits)
    if not offending:
        return StatusResult(context, "success", "No fixup! or squash! commits")
    listed = ", ".join(f"{sha[:7]} {subject}" for sha, subject in offending)
    noun = "commit needs" if len(offending) == 1 else "commits need"
    return StatusResult(context, "failure", f"{len(offending)} {noun} squashing: {listed}")


def run_fixup_check(repo, pr, head_sha: str, reporter: StatusReporter, config: dict) -> StatusResult | None:
    """Check the PR's commits and report the squash context on ``head_sha``.

    Returns None without reporting when the PR head has already moved past
    ``head_sha``; the event for the newer head reports instead.
    Raises PlatformAPIError when GitHub cannot be read or written.
    """
    if pr.head.sha != head_sha:
        logger.info("PR #%s head moved from %s to %s; skipping stale check", pr.number, head_sha[:7], pr.head.sha[:7])
        return None

    commits = get_commits(pr)
    result = check_fixups(commits, config["squash_context"])
    reporter.report(repo, head_sha, result)
    return result
