from __future__ import annotations

import logging
import os
import re
import subprocess
from pathlib import Path

from prgate_core.errors import WorkspaceError

logger = logging.getLogger(__name__)

_TRANSIENT_RE = re.compile(
    r"could not resolve host|connection (reset|refused|timed out)|operation timed out"
    r"|the remote end hung up|early eof|temporary failure|rpc failed|gnutls|ssl_read",
    re.IGNORECASE,
)
_CREDENTIALS_RE = re.compile(r"://[^/@\s]+@")


def redact(text: str) -> str:
    """Strip credentials embedded in remote URLs."""
    return _CREDENTIALS_RE.sub("://***@", text)


class GitCommandError(WorkspaceError):
    def __init__(self, args: list[str], exit_code: int | None, output: str, transient: bool = False):
        self.command = args
        self.exit_code = exit_code
        self.output = output
        status = "timed out" if exit_code is None else f"failed ({exit_code})"
        super().__init__(
            redact(f"git {' '.join(args)} {status}: {output.strip()}"),
            transient=transient,
        )


class Git:
    """Runs the git executable with a hard timeout per invocation.

    A hung process is killed by subprocess.run when the timeout expires and
    surfaces as a transient GitCommandError.
    """

    def __init__(self, timeout: float = 120, committer_name: str | None = None, committer_email: str | None = None):
        self.timeout = timeout
        self.identity: list[str] = []
        if committer_name:
            self.identity += ["-c", f"user.name={committer_name}"]
        if committer_email:
            self.identity += ["-c", f"user.email={committer_email}"]

    def run(self, args: list[str], cwd: Path | None = None) -> str:
        cmd = ["git", *self.identity, *args]
        logger.debug("git %s (cwd=%s)", redact(" ".join(args)), cwd)
        try:
            proc = subprocess.run(
                cmd,
                cwd=cwd,
                text=True,
                capture_output=True,
                check=False,
                timeout=self.timeout,
                env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
            )
        except subprocess.TimeoutExpired as e:
            stderr = e.stderr.decode(errors="replace") if isinstance(e.stderr, bytes) else (e.stderr or "")
            raise GitCommandError(args, None, stderr or f"no response after {self.timeout}s", transient=True) from e
        except FileNotFoundError as e:
            raise WorkspaceError("git executable not found") from e

        if proc.returncode != 0:
            # push --porcelain reports rejections on stdout
            output = (proc.stderr or "") + (proc.stdout or "")
            raise GitCommandError(args, proc.returncode, output, transient=bool(_TRANSIENT_RE.search(output)))
        return proc.stdout or ""
