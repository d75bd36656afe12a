"""Per-repository local clones with exclusive access.

WorkspaceManager owns a mapping from ``owner/name`` to a lock and a local
clone. All history-mutating work for a repository happens inside
``WorkspaceManager.repository(...)``, so at most one caller touches a given
clone at a time while different repositories proceed in parallel.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator, TypeVar

from prgate_core.errors import ConcurrentUpdateError, WorkspaceError
from prgate_core.git.runner import Git, GitCommandError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_REJECTION_MARKERS = ("stale info", "[rejected]", "fetch first", "non-fast-forward")


def _remote_ref(branch: str) -> str:
    return f"refs/remotes/origin/{branch}"


class Workspace:
    """A local clone of one repository. Only valid while its lock is held."""

    def __init__(self, git: Git, path: Path, full_name: str):
        self.git = git
        self.path = path
        self.full_name = full_name
        self.synced_refs: tuple[str, ...] = ()

    def _run(self, *args: str) -> str:
        return self.git.run(list(args), cwd=self.path)

    def fetch(self, refs: Iterable[str] = ()) -> None:
        refspecs = [f"+refs/heads/{ref}:{_remote_ref(ref)}" for ref in refs]
        self._run("fetch", "--quiet", "origin", *refspecs)
        self.synced_refs = tuple(refs)

    def checkout(self, ref: str) -> None:
        self._run("checkout", "--quiet", "--force", "--detach", ref)

    def rev_parse(self, rev: str) -> str:
        return self._run("rev-parse", "--verify", f"{rev}^{{commit}}").strip()

    def merge_base(self, a: str, b: str) -> str:
        return self._run("merge-base", a, b).strip()

    def count_commits(self, since: str, until: str = "HEAD") -> int:
        return int(self._run("rev-list", "--count", f"{since}..{until}").strip())

    def subjects(self, since: str, until: str = "HEAD") -> list[str]:
        """Commit subject lines in ``since..until``, oldest first."""
        out = self._run("log", "--reverse", "--format=%s", f"{since}..{until}")
        return [line for line in out.splitlines() if line.strip()]

    def first_author(self, since: str, until: str = "HEAD") -> str | None:
        out = self._run("log", "--reverse", "--format=%an <%ae>", f"{since}..{until}")
        lines = out.splitlines()
        return lines[0] if lines else None

    def soft_reset(self, rev: str) -> None:
        self._run("reset", "--quiet", "--soft", rev)

    def commit(self, message: str, author: str | None = None) -> str:
        args = ["commit", "--quiet", "--no-verify", "--allow-empty", "-m", message]
        if author:
            args.append(f"--author={author}")
        self._run(*args)
        return self.rev_parse("HEAD")

    def force_push(self, branch: str, expected_sha: str) -> None:
        """Point the remote branch at HEAD, but only if it still is ``expected_sha``."""
        try:
            self._run(
                "push",
                "--porcelain",
                f"--force-with-lease=refs/heads/{branch}:{expected_sha}",
                "origin",
                f"HEAD:refs/heads/{branch}",
            )
        except GitCommandError as e:
            if any(marker in e.output for marker in _REJECTION_MARKERS):
                raise ConcurrentUpdateError(f"{self.full_name}:{branch} moved since {expected_sha[:7]}") from e
            raise


class WorkspaceManager:
    def __init__(
        self,
        git: Git,
        clone_url_template: str,
        token: str | None = None,
        root: str | Path | None = None,
        lock_timeout: float = 600,
    ):
        self.git = git
        self.clone_url_template = clone_url_template
        self.token = token or ""
        self.lock_timeout = lock_timeout
        self.root = Path(root) if root else Path(tempfile.mkdtemp(prefix="prgate-"))
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._workspaces: dict[str, Workspace] = {}

    @classmethod
    def from_config(cls, config: dict, token: str | None = None) -> WorkspaceManager:
        git = Git(
            timeout=config["git_timeout"],
            committer_name=config.get("committer_name"),
            committer_email=config.get("committer_email"),
        )
        return cls(
            git=git,
            clone_url_template=config["clone_url_template"],
            token=token if token is not None else config.get("github_token"),
            root=config.get("workspace_dir"),
            lock_timeout=config["lock_timeout"],
        )

    def _lock_for(self, key: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())

    def _clone_url(self, owner: str, name: str) -> str:
        return self.clone_url_template.format(token=self.token, owner=owner, name=name)

    def _retry_once(self, action: Callable[[], T], description: str) -> T:
        try:
            return action()
        except WorkspaceError as e:
            if not e.transient:
                raise
            logger.warning("%s failed transiently, retrying once: %s", description, e)
            return action()

    def _ensure_clone(self, owner: str, name: str) -> Workspace:
        key = f"{owner}/{name}"
        workspace = self._workspaces.get(key)
        if workspace is not None:
            return workspace

        path = self.root / owner / name
        url = self._clone_url(owner, name)
        if (path / ".git").is_dir():
            # Left over from an earlier run in a configured workspace_dir.
            self.git.run(["remote", "set-url", "origin", url], cwd=path)
        else:
            path.parent.mkdir(parents=True, exist_ok=True)

            def clone() -> None:
                try:
                    self.git.run(["clone", "--quiet", "--no-checkout", url, str(path)])
                except WorkspaceError:
                    shutil.rmtree(path, ignore_errors=True)
                    raise

            logger.info("Cloning %s into %s", key, path)
            self._retry_once(clone, f"clone of {key}")

        workspace = Workspace(self.git, path, key)
        self._workspaces[key] = workspace
        return workspace

    @contextmanager
    def repository(self, owner: str, name: str, refs: Iterable[str] = ()) -> Iterator[Workspace]:
        """Hold the repository's lock, with its clone fetched up to date for ``refs``."""
        key = f"{owner}/{name}"
        lock = self._lock_for(key)
        if not lock.acquire(timeout=self.lock_timeout):
            raise WorkspaceError(f"Timed out after {self.lock_timeout}s waiting for the {key} workspace")
        try:
            workspace = self._ensure_clone(owner, name)
            refs = tuple(refs)
            self._retry_once(lambda: workspace.fetch(refs), f"fetch of {key}")
            yield workspace
        finally:
            lock.release()

    def with_repository(self, owner: str, name: str, fn: Callable[[Workspace], T], refs: Iterable[str] = ()) -> T:
        with self.repository(owner, name, refs) as workspace:
            return fn(workspace)

    def close(self) -> None:
        """Delete every local clone. The manager must not be used afterwards."""
        with self._guard:
            self._workspaces.clear()
        shutil.rmtree(self.root, ignore_errors=True)
