"""Exception types for issuedir.

Domain rejections derive from ``ValueError`` so callers that only care about
"the request was refused" can keep catching that.  ``IssueDirError`` marks
everything the command boundary turns into a message; anything else is a
genuine fault and is allowed to propagate.
"""

from __future__ import annotations


class IssueDirError(ValueError):
    """Base class for errors reported to the user instead of crashing."""

    exit_code = 1


class UsageError(IssueDirError):
    """Malformed, ambiguous or disallowed command-line input."""

    exit_code = 2


class PreconditionError(IssueDirError):
    """The project state does not allow the requested operation."""


class NotInitializedError(PreconditionError):
    """The working location is not an initialized project."""

    def __init__(self, root: object) -> None:
        super().__init__(
            f"'{root}' is not an issue tracker directory. "
            "Run 'issue init' first to initialize it.",
        )


class IssueNotFoundError(PreconditionError):
    """No issue with the requested id exists."""

    def __init__(self, issue_id: int) -> None:
        self.issue_id = issue_id
        super().__init__(f"No issue with id '#{issue_id}' found")


class ConflictError(IssueDirError):
    """A new issue would overwrite an existing one."""


class CorruptIssueError(ValueError):
    """An issue or comment file is missing required fields or is unreadable."""
