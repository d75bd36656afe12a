"""Webhook delivery handling.

A delivery is authenticated, parsed into a typed event once, and routed to the
handler for that event. Failures that belong to a single pull request are
reported on that pull request and answered with a 200 so GitHub does not
redeliver; only unreadable bodies produce an error status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from prgate_core.commands import Command, classify_comment
from prgate_core.errors import (
    AuthenticationError,
    ConcurrentUpdateError,
    ParseError,
    PlatformAPIError,
    WorkspaceError,
)
from prgate_core.fixups import TRIGGER_ACTIONS, check_fixups, run_fixup_check
from prgate_core.gh.pull_request import get_approvers, get_commits, get_pull, get_repo, post_comment
from prgate_core.gh.status import StatusReporter, StatusResult
from prgate_core.git.workspace import WorkspaceManager
from prgate_core.merge import MergeState, merge_pull_request, peer_review_status
from prgate_core.squash import squash_pull_request
from prgate_core.webhook.events import IssueCommentEvent, PullRequestEvent, parse_event
from prgate_core.webhook.signature import verify_signature

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Response:
    message: str
    status_code: int = 200
    degraded: bool = False  # handled, but some status or comment could not be posted


class Dispatcher:
    def __init__(self, client, workspaces: WorkspaceManager, reporter: StatusReporter, config: dict):
        self.client = client
        self.workspaces = workspaces
        self.reporter = reporter
        self.config = config

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def handle_delivery(self, event_type: str | None, body: bytes, signature: str | None) -> Response:
        try:
            verify_signature(body, signature, self.config.get("webhook_secret"))
        except AuthenticationError as e:
            logger.warning("Rejected %s delivery: %s", event_type, e)
            return Response(f"Authentication failed: {e}", status_code=401)
        return self.handle_event(event_type, body)

    def handle_event(self, event_type: str | None, body: bytes) -> Response:
        try:
            event = parse_event(event_type, body)
        except ParseError as e:
            logger.error("%s", e)
            return Response("Failed to parse the request's body", status_code=500)

        if isinstance(event, IssueCommentEvent):
            return self.handle_issue_comment(event)
        if isinstance(event, PullRequestEvent):
            return self.handle_pull_request(event)
        return Response("Not an event I understand. Ignoring.")

    # ------------------------------------------------------------------
    # Issue comments
    # ------------------------------------------------------------------

    def handle_issue_comment(self, event: IssueCommentEvent) -> Response:
        if not event.is_pull_request:
            return Response("Not a PR. Ignoring.")
        if event.action != "created":
            return Response(f"Comment {event.action}. Ignoring.")

        command = classify_comment(event.comment, self.config["squash_command"], self.config["merge_command"])
        if command is Command.NONE:
            return Response("Not a command I understand. Ignoring.")

        logger.info("%s#%s: %s from @%s", event.repo.full_name, event.number, command.value, event.actor)
        try:
            repo = get_repo(self.client, event.repo.full_name)
            pr = get_pull(repo, event.number)
        except PlatformAPIError as e:
            logger.error("%s#%s: %s failed: %s", event.repo.full_name, event.number, command.value, e)
            return Response(f"GitHub API error: {e}", degraded=True)

        try:
            if command is Command.SQUASH:
                return self.run_squash(repo, pr)
            if command is Command.MERGE:
                return self._merge(repo, pr)
            return self._approval(repo, pr)
        except PlatformAPIError as e:
            logger.error("%s#%s: %s failed: %s", repo.full_name, pr.number, command.value, e)
            post_comment(pr, f"Could not {command.value}: GitHub API error: {e}")
            return Response(f"GitHub API error: {e}", degraded=True)

    def run_squash(self, repo, pr) -> Response:
        head_sha = pr.head.sha
        head_ref = pr.head.ref
        base_ref = pr.base.ref
        context = self.config["squash_context"]

        if pr.state != "open":
            post_comment(pr, "Not squashing: the pull request is closed.")
            return Response("PR closed. Not squashing.")
        head_repo = pr.head.repo.full_name if pr.head.repo else None
        if head_repo != repo.full_name:
            where = head_repo or "a deleted repository"
            post_comment(pr, f"Cannot squash: the branch lives in {where}, not {repo.full_name}.")
            return Response("Head branch in another repository. Not squashing.")

        owner, name = repo.full_name.split("/", 1)
        try:
            with self.workspaces.repository(owner, name, refs=(base_ref, head_ref)) as workspace:
                result = squash_pull_request(workspace, base_ref, head_ref, head_sha)
        except ConcurrentUpdateError as e:
            logger.warning("%s#%s: %s", repo.full_name, pr.number, e)
            post_comment(
                pr,
                f"`{head_ref}` changed while squashing ({e}). Nothing was pushed; "
                f"comment `{self.config['squash_command']}` again to retry.",
            )
            self.reporter.report_quietly(repo, head_sha, StatusResult(context, "error", "Squash aborted: branch moved"))
            return Response("Branch moved during squash.")
        except WorkspaceError as e:
            logger.error("%s#%s: squash failed: %s", repo.full_name, pr.number, e)
            post_comment(pr, f"Squash failed: {e}")
            self.reporter.report_quietly(repo, head_sha, StatusResult(context, "error", "Squash failed"))
            return Response("Squash failed.")

        if result.noop:
            # Nothing was rewritten, so the single remaining commit may itself be a fixup.
            done = check_fixups(get_commits(pr), context)
            if done.state != "success":
                post_comment(pr, f"Nothing to squash, but {done.description}. Reword it before merging.")
        else:
            done = StatusResult(context, "success", result.message)
        reported = self.reporter.report_quietly(repo, result.head_sha, done)
        message = result.message if done.state == "success" else done.description
        return Response(message, degraded=not reported)

    def _merge(self, repo, pr) -> Response:
        outcome = merge_pull_request(repo, pr, self.reporter, self.config)
        if outcome.state in (MergeState.BLOCKED, MergeState.FAILED):
            hint = ""
            if outcome.state is MergeState.FAILED:
                hint = f" Resolve it and comment `{self.config['merge_command']}` again."
            if not post_comment(pr, outcome.describe() + hint):
                return Response(outcome.describe(), degraded=True)
        return Response(outcome.describe())

    def _approval(self, repo, pr) -> Response:
        if pr.state != "open":
            return Response("PR closed. Ignoring approval.")
        return self._report_peer_review(repo, pr, pr.head.sha)

    def _report_peer_review(self, repo, pr, head_sha: str) -> Response:
        approvers = get_approvers(pr, allow_self_approval=self.config["allow_self_approval"])
        required = int(self.config["required_approvals"])
        result = peer_review_status(approvers, required, self.config["peer_review_context"])
        reported = self.reporter.report_quietly(repo, head_sha, result)
        return Response(result.description, degraded=not reported)

    # ------------------------------------------------------------------
    # Pull request events
    # ------------------------------------------------------------------

    def handle_pull_request(self, event: PullRequestEvent) -> Response:
        if event.action not in TRIGGER_ACTIONS:
            return Response("PR not opened or synchronized. Ignoring.")

        try:
            repo = get_repo(self.client, event.repo.full_name)
            pr = get_pull(repo, event.number)
        except PlatformAPIError as e:
            logger.error("%s#%s: fixup check failed: %s", event.repo.full_name, event.number, e)
            return Response(f"GitHub API error: {e}", degraded=True)

        try:
            result = run_fixup_check(repo, pr, event.head_sha, self.reporter, self.config)
            if result is None:
                return Response(f"Head moved past {event.head_sha[:7]}. Ignoring.")
            peer = self._report_peer_review(repo, pr, event.head_sha)
        except PlatformAPIError as e:
            logger.error("%s#%s: fixup check failed: %s", event.repo.full_name, event.number, e)
            failed = StatusResult(self.config["squash_context"], "error", "Fixup check failed: GitHub API error")
            self.reporter.report_quietly(repo, event.head_sha, failed)
            return Response(f"GitHub API error: {e}", degraded=True)

        return Response(result.description, degraded=peer.degraded)
