"""Typed webhook events.

Only two GitHub event types matter here. Each delivery is parsed exactly once
into one of the frozen dataclasses below; everything downstream works on these
rather than on raw payload dicts.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Union

from prgate_core.errors import ParseError

ISSUE_COMMENT = "issue_comment"
PULL_REQUEST = "pull_request"


@dataclass(frozen=True)
class RepoRef:
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class IssueCommentEvent:
    repo: RepoRef
    number: int
    actor: str
    action: str  # "created" | "edited" | "deleted"
    comment: str
    is_pull_request: bool


@dataclass(frozen=True)
class PullRequestEvent:
    repo: RepoRef
    number: int
    actor: str
    action: str  # "opened" | "synchronize" | "closed" | ...
    head_sha: str
    head_ref: str
    head_repo: str | None  # full name; None when the fork was deleted
    base_sha: str
    base_ref: str


Event = Union[IssueCommentEvent, PullRequestEvent]


def _repo_ref(payload: dict) -> RepoRef:
    repository = payload["repository"]
    return RepoRef(owner=repository["owner"]["login"], name=repository["name"])


def _parse_issue_comment(payload: dict) -> IssueCommentEvent:
    issue = payload["issue"]
    comment = payload["comment"]
    return IssueCommentEvent(
        repo=_repo_ref(payload),
        number=int(issue["number"]),
        actor=comment["user"]["login"],
        action=payload.get("action", "created"),
        comment=comment.get("body") or "",
        # GitHub models PRs as issues; only PR-backed issues carry this key.
        is_pull_request=bool(issue.get("pull_request")),
    )


def _parse_pull_request(payload: dict) -> PullRequestEvent:
    pr = payload["pull_request"]
    head = pr["head"]
    base = pr["base"]
    head_repo = head.get("repo")
    return PullRequestEvent(
        repo=_repo_ref(payload),
        number=int(payload.get("number", pr["number"])),
        actor=(payload.get("sender") or pr["user"])["login"],
        action=payload["action"],
        head_sha=head["sha"],
        head_ref=head["ref"],
        head_repo=head_repo["full_name"] if head_repo else None,
        base_sha=base["sha"],
        base_ref=base["ref"],
    )


_PARSERS = {
    ISSUE_COMMENT: _parse_issue_comment,
    PULL_REQUEST: _parse_pull_request,
}


def parse_event(event_type: str | None, body: bytes) -> Event | None:
    """Parse a delivery body into a typed event.

    Returns None for event types we do not handle. Raises ParseError when a
    handled type carries a body that is not valid JSON or lacks required fields.
    """
    parser = _PARSERS.get(event_type or "")
    if parser is None:
        return None
    try:
        payload = json.loads(body)
        return parser(payload)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise ParseError(f"Malformed {event_type} payload: {e}") from e
