"""Tests for GitHub pull request helper functions."""

from unittest.mock import MagicMock

import pytest
from github import GithubException

from prgate_core.errors import PlatformAPIError
from prgate_core.gh.pull_request import get_approvers, get_commits, get_pull, get_repo, post_comment

from conftest import make_comment, make_pr


class TestGetApprovers:
    def test_returns_empty_when_no_comments(self):
        assert get_approvers(make_pr()) == []

    def test_counts_distinct_approvers_in_order(self):
        pr = make_pr(
            comments=[
                make_comment("bob", "+1"),
                make_comment("carol", "LGTM :+1:"),
                make_comment("bob", "+1 again"),
            ]
        )
        assert get_approvers(pr) == ["bob", "carol"]

    def test_ignores_non_approval_comments(self):
        pr = make_pr(comments=[make_comment("bob", "+10"), make_comment("carol", "needs work")])
        assert get_approvers(pr) == []

    def test_excludes_self_approval_by_default(self):
        pr = make_pr(author="alice", comments=[make_comment("alice", "+1")])
        assert get_approvers(pr) == []

    def test_self_approval_allowed_when_configured(self):
        pr = make_pr(author="alice", comments=[make_comment("alice", "+1")])
        assert get_approvers(pr, allow_self_approval=True) == ["alice"]

    def test_handles_none_body(self):
        pr = make_pr(comments=[make_comment("bob", None)])
        assert get_approvers(pr) == []

    def test_api_failure_raises_platform_error(self):
        pr = make_pr()
        pr.get_issue_comments.side_effect = GithubException(502, {"message": "Bad gateway"}, None)
        with pytest.raises(PlatformAPIError):
            get_approvers(pr)


class TestLookups:
    def test_get_repo_wraps_exception(self):
        client = MagicMock()
        client.get_repo.side_effect = GithubException(404, {"message": "Not Found"}, None)
        with pytest.raises(PlatformAPIError, match="acme/widgets"):
            get_repo(client, "acme/widgets")

    def test_get_pull_wraps_exception(self):
        repo = MagicMock()
        repo.get_pull.side_effect = GithubException(404, {"message": "Not Found"}, None)
        with pytest.raises(PlatformAPIError, match="#7"):
            get_pull(repo, 7)

    def test_get_commits_returns_list(self):
        pr = make_pr(commits=["c1", "c2"])
        assert get_commits(pr) == ["c1", "c2"]


class TestPostComment:
    def test_posts_comment(self):
        pr = make_pr()
        assert post_comment(pr, "hello") is True
        pr.create_issue_comment.assert_called_once_with("hello")

    def test_failure_returns_false(self):
        pr = make_pr()
        pr.create_issue_comment.side_effect = GithubException(403, {"message": "Forbidden"}, None)
        assert post_comment(pr, "hello") is False
