"""Exception taxonomy shared by every prgate component.

Unrecognised events and commands have no exception type: they are ordinary
outcomes answered with a success response, not errors.
"""

from __future__ import annotations


class PrgateError(Exception):
    """Base class for all errors raised by prgate."""


class AuthenticationError(PrgateError):
    """The webhook delivery is not signed with the shared secret."""


class ParseError(PrgateError):
    """The webhook body is not a well-formed event of its declared type."""


class WorkspaceError(PrgateError):
    """A git clone, fetch, push or lock acquisition failed."""

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient


class ConcurrentUpdateError(PrgateError):
    """The remote head ref moved while we were rewriting it."""


class PlatformAPIError(PrgateError):
    """A GitHub API call (status, comment, merge, lookup) failed."""
