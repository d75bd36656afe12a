"""Commit status contexts.

GitHub keeps the latest status per (sha, context), so creating a status is an
idempotent upsert.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from github import GithubException

from prgate_core.errors import PlatformAPIError

logger = logging.getLogger(__name__)

STATES = ("success", "failure", "pending", "error")

# GitHub rejects status descriptions longer than this.
MAX_DESCRIPTION = 140


@dataclass(frozen=True)
class StatusResult:
    context: str
    state: str  # one of STATES
    description: str

    def __post_init__(self):
        if self.state not in STATES:
            raise ValueError(f"Invalid status state: {self.state!r}")


def truncate(description: str, limit: int = MAX_DESCRIPTION) -> str:
    if len(description) <= limit:
        return description
    return description[: limit - 3].rstrip() + "..."


class StatusReporter:
    def __init__(self, target_url: str | None = None):
        self.target_url = target_url

    def report(self, repo, sha: str, result: StatusResult) -> None:
        """Set ``result`` on ``sha``. Raises PlatformAPIError when GitHub refuses."""
        kwargs = {
            "state": result.state,
            "description": truncate(result.description),
            "context": result.context,
        }
        if self.target_url:
            kwargs["target_url"] = self.target_url
        try:
            repo.get_commit(sha).create_status(**kwargs)
        except GithubException as e:
            logger.warning("Could not set %s=%s on %s: %s", result.context, result.state, sha[:7], e)
            raise PlatformAPIError(f"Could not set status {result.context} on {sha[:7]}: {e}") from e
        logger.info("Status %s=%s on %s: %s", result.context, result.state, sha[:7], result.description)

    def report_quietly(self, repo, sha: str, result: StatusResult) -> bool:
        """Like report() but returns False instead of raising."""
        try:
            self.report(repo, sha, result)
        except PlatformAPIError:
            return False
        return True

    def current_state(self, repo, sha: str, context: str) -> str | None:
        """Return the latest state of ``context`` on ``sha``, or None if it was never set."""
        try:
            statuses = repo.get_commit(sha).get_combined_status().statuses
        except GithubException as e:
            raise PlatformAPIError(f"Could not read statuses of {sha[:7]}: {e}") from e
        for status in statuses:
            if status.context == context:
                return status.state
        return None
