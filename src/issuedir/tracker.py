"""Domain operations for issuedir.

``IssueTracker`` is the single place that enforces the issue invariants:
id allocation, tag-set uniqueness, append-only comments and idempotent
state transitions.  It never prints; every operation returns data or an
``Outcome`` and reports refusals by raising an ``IssueDirError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from issuedir.config import ProjectConfig, is_project, load_config, save_config
from issuedir.exceptions import (
    IssueNotFoundError,
    NotInitializedError,
    UsageError,
)
from issuedir.filters import apply_filters, check_unique_kinds
from issuedir.models import Comment, Issue, IssueState, Tag
from issuedir.storage import IssueStorage

if TYPE_CHECKING:
    from collections.abc import Sequence

    from issuedir.filters import FilterValue

logger = logging.getLogger(__name__)

_STATE_VERBS = {
    IssueState.CLOSED: "Closed",
    IssueState.OPEN: "Reopened",
}


@dataclass
class Outcome:
    """Result of a mutating operation.

    ``changed`` is False for informational no-ops, in which case nothing was
    written.  ``notes`` carries the per-item messages worth showing.
    """

    issue: Issue | None
    changed: bool
    message: str
    notes: list[str] = field(default_factory=list[str])


def _plural_tags(tags: Sequence[Tag]) -> str:
    return "tag(s)" if len(tags) > 1 else "tag"


def describe_tag_change(added: Sequence[Tag], removed: Sequence[Tag]) -> str:
    """Build the system comment text for a tag edit."""
    lines: list[str] = []
    if added:
        names = ", ".join(t.name for t in added)
        lines.append(f"Added {_plural_tags(added)}: {names}.")
    if removed:
        names = ", ".join(t.name for t in removed)
        lines.append(f"Removed {_plural_tags(removed)}: {names}.")
    return "\n".join(lines)


class IssueTracker:
    """Issue operations for the project rooted at ``root``."""

    def __init__(self, root: str | Path, user: str) -> None:
        """Initialize the tracker.

        Args:
            root: Project root directory
            user: Author recorded on new issues and comments
        """
        self.root = Path(root).resolve()
        self.user = user
        self.storage = IssueStorage(self.root)

    @property
    def is_initialized(self) -> bool:
        """Whether the root holds a project marker."""
        return is_project(self.root)

    def _require_project(self) -> None:
        if not self.is_initialized:
            raise NotInitializedError(self.root)

    def _require_issue(self, issue_id: int) -> Issue:
        issue = self.storage.get(issue_id)
        if issue is None:
            raise IssueNotFoundError(issue_id)
        return issue

    @property
    def config(self) -> ProjectConfig:
        """The project configuration."""
        self._require_project()
        return load_config(self.root)

    def initialize_project(self) -> Outcome:
        """Create the project marker unless the root already is a project."""
        if self.is_initialized:
            return Outcome(None, False, "Already an issue tracking directory!")
        self.root.mkdir(parents=True, exist_ok=True)
        save_config(self.root, ProjectConfig(owner=self.user))
        logger.debug("Initialized project at %s", self.root)
        return Outcome(
            None,
            True,
            f"New issue project created for owner {self.user}!",
        )

    def next_id(self) -> int:
        """Allocate the id for a new issue: highest existing id plus one."""
        return max(self.storage.get_issue_ids(), default=0) + 1

    def add_issue(
        self,
        title: str,
        message: str | None = None,
        tags: Sequence[Tag] | None = None,
    ) -> Issue:
        """Create and persist a new issue.

        Raises:
            NotInitializedError: If the root is not a project
            UsageError: If the title is empty
            ConflictError: If the allocated id is already taken on disk
        """
        self._require_project()
        if not title or not title.strip():
            msg = "Title is required for adding a new issue"
            raise UsageError(msg)

        with self.storage.lock():
            issue = Issue(
                id=self.next_id(),
                title=title,
                author=self.user,
                message=message or None,
                tags=list(tags or []),
            )
            self.storage.save(issue, is_new=True)
        return issue

    def edit_tags(
        self,
        issue_id: int,
        add: Sequence[Tag],
        remove: Sequence[Tag],
    ) -> Outcome:
        """Apply a tag delta to an issue and log it as a system comment.

        Tags in ``add`` that are already present, and tags in ``remove`` that
        are absent, are reported as notes and otherwise ignored.

        Raises:
            UsageError: If a tag is both added and removed
        """
        self._require_project()
        overlap = [t.name for t in add if t in remove]
        if overlap:
            msg = f"Cannot add and remove the same tag at once: {', '.join(overlap)}"
            raise UsageError(msg)

        with self.storage.lock():
            issue = self._require_issue(issue_id)
            notes: list[str] = []
            added: list[Tag] = []
            removed: list[Tag] = []
            for tag in add:
                if issue.has_tag(tag) or tag in added:
                    notes.append(f"Tag '{tag}' is already present.")
                else:
                    added.append(tag)
            for tag in remove:
                if not issue.has_tag(tag) or tag in removed:
                    notes.append(f"Tag '{tag}' is not present.")
                else:
                    removed.append(tag)

            if not added and not removed:
                return Outcome(issue, False, "No changes.", notes)

            issue.tags = [t for t in issue.tags if t not in removed] + added
            message = describe_tag_change(added, removed)
            issue.add_comment(Comment.system(message, self.user))
            self.storage.save(issue, is_new=False)
        return Outcome(issue, True, message, notes)

    def comment_issue(self, issue_id: int, message: str) -> Outcome:
        """Append a user comment to an issue."""
        self._require_project()
        if not message or not message.strip():
            msg = "Message is required to comment on an issue"
            raise UsageError(msg)

        with self.storage.lock():
            issue = self._require_issue(issue_id)
            issue.add_comment(Comment(message=message, author=self.user))
            self.storage.save(issue, is_new=False)
        return Outcome(issue, True, "Comment added!")

    def _change_state(self, issue_id: int, target: IssueState) -> Outcome:
        self._require_project()
        with self.storage.lock():
            issue = self._require_issue(issue_id)
            if issue.state == target:
                return Outcome(
                    issue,
                    False,
                    f"Issue '#{issue_id}' is already {target.value.lower()}.",
                )
            verb = _STATE_VERBS[target]
            issue.add_comment(
                Comment.system(f"{verb} the issue.", self.user, changed_state_to=target),
            )
            self.storage.save(issue, is_new=False)
        return Outcome(issue, True, f"Issue '#{issue_id}' {verb.lower()}!")

    def close_issue(self, issue_id: int) -> Outcome:
        """Close an issue; a no-op if it is already closed."""
        return self._change_state(issue_id, IssueState.CLOSED)

    def reopen_issue(self, issue_id: int) -> Outcome:
        """Reopen an issue; a no-op if it is already open."""
        return self._change_state(issue_id, IssueState.OPEN)

    def list_issues(self, filters: Sequence[FilterValue]) -> list[Issue]:
        """Return the issues matching every filter, ordered by id.

        Raises:
            UsageError: If a filter kind is repeated
        """
        self._require_project()
        check_unique_kinds(filters)
        issues = apply_filters(filters, self.storage.load_all())
        return sorted(issues, key=lambda i: i.id)

    def show_issue(self, issue_id: int) -> Issue:
        """Return a single issue with its comment log."""
        self._require_project()
        return self._require_issue(issue_id)
