"""Data models for issuedir issues using dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from issuedir._version import version as _issuedir_version
from issuedir.constants import STATE_SYMBOLS, TAG_SEPARATOR

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class IssueState(str, Enum):
    """Issue state enumeration.

    The value doubles as the on-disk spelling.
    """

    OPEN = "Open"
    CLOSED = "Closed"

    @classmethod
    def parse(cls, raw: str) -> IssueState:
        """Parse a state name case-insensitively."""
        for state in cls:
            if state.value.lower() == raw.strip().lower():
                return state
        msg = f"Unknown issue state '{raw}'"
        raise ValueError(msg)


@dataclass(frozen=True)
class Tag:
    """A label applied to an issue to group it with similar issues."""

    name: str

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():  # pyright: ignore[reportUnnecessaryIsInstance]
            msg = "Tag name must be a non-empty string"
            raise ValueError(msg)
        if TAG_SEPARATOR in self.name:
            msg = f"Tags may not contain '{TAG_SEPARATOR}': '{self.name}'"
            raise ValueError(msg)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Comment:
    """A comment on an issue.

    ``editable`` is True for user notes and False for system notes (tag edits
    and state changes).  Only system notes may carry ``changed_state_to``.
    """

    message: str
    author: str
    created_at: datetime = field(default_factory=utc_now)
    editable: bool = True
    changed_state_to: IssueState | None = None

    def __post_init__(self) -> None:
        if self.changed_state_to is not None and self.editable:
            msg = "Only system comments may change the issue state"
            raise ValueError(msg)

    @classmethod
    def system(
        cls,
        message: str,
        author: str,
        changed_state_to: IssueState | None = None,
    ) -> Comment:
        """Create a non-editable system comment."""
        return cls(
            message=message,
            author=author,
            editable=False,
            changed_state_to=changed_state_to,
        )


def last_state_change(comments: Sequence[Comment]) -> tuple[int, IssueState]:
    """Fold the comment log into (index of last state change, current state).

    Returns ``(-1, IssueState.OPEN)`` when no comment ever changed state.
    """
    index, state = -1, IssueState.OPEN
    for position, comment in enumerate(comments):
        if comment.changed_state_to is not None:
            index, state = position, comment.changed_state_to
    return index, state


def derive_state(comments: Sequence[Comment]) -> IssueState:
    """Return the effective state implied by a comment log."""
    return last_state_change(comments)[1]


@dataclass
class Issue:
    """An issue in the tracking system.

    State is never stored: it is derived from the comment log every time it
    is read.
    """

    id: int
    title: str
    author: str
    message: str | None = None
    tags: list[Tag] = field(default_factory=list[Tag])
    created_at: datetime = field(default_factory=utc_now)
    comments: list[Comment] = field(default_factory=list[Comment])
    # Number of comments already written to disk; comment files below this
    # index are never rewritten.
    persisted_comment_count: int = field(default=0, compare=False, repr=False)

    def __post_init__(self) -> None:
        self.tags = list(dict.fromkeys(self.tags))

    @property
    def state(self) -> IssueState:
        """The state implied by the most recent state-changing comment."""
        return derive_state(self.comments)

    @property
    def last_state_change_comment_index(self) -> int:
        """Index of the comment that set the current state, or -1."""
        return last_state_change(self.comments)[0]

    def is_closed(self) -> bool:
        """Check if the issue is closed."""
        return self.state == IssueState.CLOSED

    def has_tag(self, tag: Tag) -> bool:
        return tag in self.tags

    def has_all_tags(self, tags: Iterable[Tag]) -> bool:
        """Check whether every tag in ``tags`` is present on this issue."""
        return set(tags).issubset(self.tags)

    def add_comment(self, comment: Comment) -> None:
        """Append a comment to the log."""
        self.comments.append(comment)

    def user_comment_count(self) -> int:
        return sum(1 for c in self.comments if c.editable)

    def get_state_symbol(self) -> str:
        """Get a symbol representation of the state."""
        return STATE_SYMBOLS.get(self.state.value, "?")


def validate_issue(issue: Issue) -> None:
    """Validate that an issue has all required fields and valid data."""
    if not isinstance(issue.id, int) or issue.id < 1:  # pyright: ignore[reportUnnecessaryIsInstance]
        msg = f"Issue id must be a positive integer, got {issue.id!r}"
        raise ValueError(msg)
    if not issue.title or not issue.title.strip():
        msg = "Issue must have a non-empty title"
        raise ValueError(msg)


def comment_to_dict(comment: Comment) -> dict[str, Any]:
    """Convert a Comment to a JSON-ready dictionary."""
    return {
        "message": comment.message,
        "author": comment.author,
        "created_at": comment.created_at.isoformat(),
        "editable": comment.editable,
        "changed_state_to": (
            comment.changed_state_to.value if comment.changed_state_to else None
        ),
    }


def issue_to_dict(issue: Issue) -> dict[str, Any]:
    """Convert an Issue to a dictionary, serializing datetimes."""
    return {
        "issuedir_version": _issuedir_version,
        "id": issue.id,
        "title": issue.title,
        "message": issue.message,
        "tags": [tag.name for tag in issue.tags],
        "created_at": issue.created_at.isoformat(),
        "author": issue.author,
        "state": issue.state.value,
        "last_state_change_comment_index": issue.last_state_change_comment_index,
        "comments": [comment_to_dict(c) for c in issue.comments],
    }
