"""Rewrite a pull request branch into a single commit.

The underlying git operations are not idempotent, so the orchestration checks
first: a branch that is already a single commit ahead of its merge base is
left alone and reported as a no-op.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from prgate_core.errors import ConcurrentUpdateError
from prgate_core.fixups import strip_fixup_markers
from prgate_core.git.workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SquashResult:
    head_sha: str  # head of the branch after the operation
    squashed: int  # number of commits folded into head_sha
    noop: bool = False

    @property
    def message(self) -> str:
        if self.noop:
            return "Already squashed"
        return f"Squashed {self.squashed} commits into {self.head_sha[:7]}"


def build_commit_message(subjects: list[str]) -> str:
    """First distinct subject as the title, the rest as a bullet list.

    Amend markers are stripped before deduplication, so ``fixup! Add parser``
    folds into ``Add parser``.
    """
    unique: list[str] = []
    for subject in subjects:
        clean = strip_fixup_markers(subject)
        if clean and clean not in unique:
            unique.append(clean)
    if not unique:
        return "Squashed commits"
    title, rest = unique[0], unique[1:]
    if not rest:
        return title
    return title + "\n\n" + "\n".join(f"* {s}" for s in rest)


def squash_pull_request(workspace: Workspace, base_ref: str, head_ref: str, expected_head_sha: str) -> SquashResult:
    """Squash ``head_ref`` down to one commit on top of its merge base with ``base_ref``.

    The workspace must already be fetched for both refs. Raises
    ConcurrentUpdateError when the remote head is not ``expected_head_sha``,
    either before we start or at push time.
    """
    workspace.checkout(f"refs/remotes/origin/{head_ref}")
    head_sha = workspace.rev_parse("HEAD")
    if head_sha != expected_head_sha:
        raise ConcurrentUpdateError(f"{head_ref} is at {head_sha[:7]}, expected {expected_head_sha[:7]}")

    merge_base = workspace.merge_base(f"refs/remotes/origin/{base_ref}", "HEAD")
    ahead = workspace.count_commits(merge_base, "HEAD")
    if ahead <= 1:
        logger.info(
            "%s:%s is %d commit(s) ahead of %s; nothing to squash", workspace.full_name, head_ref, ahead, base_ref
        )
        return SquashResult(head_sha=head_sha, squashed=ahead, noop=True)

    message = build_commit_message(workspace.subjects(merge_base, "HEAD"))
    author = workspace.first_author(merge_base, "HEAD")

    workspace.soft_reset(merge_base)
    new_sha = workspace.commit(message, author=author)
    workspace.force_push(head_ref, expected_head_sha)

    logger.info("Squashed %d commits on %s:%s into %s", ahead, workspace.full_name, head_ref, new_sha[:7])
    return SquashResult(head_sha=new_sha, squashed=ahead)
