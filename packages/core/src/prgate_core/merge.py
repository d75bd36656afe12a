"""Merge decision and execution.

Everything is evaluated against one snapshot of the PR head SHA, and that same
SHA is handed to GitHub's merge call. If the branch moves in between, GitHub
refuses the merge and the operator has to issue the command again, so an
approval can never carry over to commits nobody looked at.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from github import GithubException

from prgate_core.fixups import check_fixups
from prgate_core.gh.pull_request import get_approvers, get_commits
from prgate_core.gh.status import StatusReporter, StatusResult

logger = logging.getLogger(__name__)


class MergeState(enum.Enum):
    BLOCKED = "blocked"
    READY = "ready"
    MERGED = "merged"
    FAILED = "failed"


@dataclass(frozen=True)
class MergeOutcome:
    state: MergeState
    head_sha: str
    reason: str = ""

    def describe(self) -> str:
        if self.state is MergeState.MERGED:
            return f"Merged {self.head_sha[:7]}."
        if self.state is MergeState.READY:
            return f"{self.head_sha[:7]} is ready to merge."
        verb = "Not merging" if self.state is MergeState.BLOCKED else "Merge failed"
        return f"{verb} {self.head_sha[:7]}: {self.reason}."


def peer_review_status(approvers: list[str], required: int, context: str = "review/peer") -> StatusResult:
    if required <= 0 or len(approvers) >= required:
        if approvers:
            return StatusResult(context, "success", "Approved by " + ", ".join(f"@{a}" for a in approvers))
        return StatusResult(context, "success", "No approvals required")
    return StatusResult(context, "pending", f"{len(approvers)}/{required} approvals")


def evaluate_merge(repo, pr, head_sha: str, reporter: StatusReporter, config: dict) -> MergeOutcome:
    """Decide whether ``head_sha`` of ``pr`` may be merged.

    Both gating contexts are (re)reported on ``head_sha``. A gate that could
    not be reported blocks the merge. Raises PlatformAPIError only when
    GitHub cannot be read.
    """
    required = int(config["required_approvals"])
    approvers = get_approvers(pr, allow_self_approval=config["allow_self_approval"])
    peer = peer_review_status(approvers, required, config["peer_review_context"])
    if not reporter.report_quietly(repo, head_sha, peer):
        return MergeOutcome(MergeState.BLOCKED, head_sha, "could not report the peer review status")
    if peer.state != "success":
        return MergeOutcome(MergeState.BLOCKED, head_sha, f"insufficient approvals ({len(approvers)}/{required})")

    squash_state = reporter.current_state(repo, head_sha, config["squash_context"])
    if squash_state is None:
        squash = check_fixups(get_commits(pr), config["squash_context"])
        if not reporter.report_quietly(repo, head_sha, squash):
            return MergeOutcome(MergeState.BLOCKED, head_sha, "could not report the squash status")
        squash_state = squash.state

    if config["require_squash_clean"] and squash_state != "success":
        if squash_state == "failure":
            return MergeOutcome(MergeState.BLOCKED, head_sha, "unsquashed fixups present")
        return MergeOutcome(MergeState.BLOCKED, head_sha, f"squash check is {squash_state}")

    return MergeOutcome(MergeState.READY, head_sha)


def merge_pull_request(repo, pr, reporter: StatusReporter, config: dict) -> MergeOutcome:
    """Run the merge state machine once for ``pr``. Never retries."""
    head_sha = pr.head.sha
    if pr.merged:
        return MergeOutcome(MergeState.MERGED, head_sha, "already merged")
    if pr.state != "open":
        return MergeOutcome(MergeState.BLOCKED, head_sha, "pull request is closed")

    outcome = evaluate_merge(repo, pr, head_sha, reporter, config)
    if outcome.state is not MergeState.READY:
        logger.info("PR #%s blocked at %s: %s", pr.number, head_sha[:7], outcome.reason)
        return outcome

    try:
        status = pr.merge(sha=head_sha, merge_method=config["merge_method"])
    except GithubException as e:
        message = e.data.get("message") if isinstance(e.data, dict) else None
        logger.warning("Merge of PR #%s at %s rejected: %s", pr.number, head_sha[:7], e)
        return MergeOutcome(MergeState.FAILED, head_sha, message or f"GitHub refused the merge ({e.status})")

    if not status.merged:
        return MergeOutcome(MergeState.FAILED, head_sha, status.message or "GitHub did not merge the pull request")

    logger.info("Merged PR #%s at %s", pr.number, head_sha[:7])
    return MergeOutcome(MergeState.MERGED, head_sha)

