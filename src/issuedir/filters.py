"""Predicates applied to the loaded issue set when listing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, assert_never

from issuedir.exceptions import UsageError
from issuedir.models import IssueState, Tag

if TYPE_CHECKING:
    from collections.abc import Sequence

    from issuedir.models import Issue


class FilterKind(str, Enum):
    """Kinds of list filters. Each kind may appear at most once per query."""

    TAG = "tag"
    STATE = "state"
    USER = "user"


@dataclass(frozen=True)
class FilterValue:
    """A single filter: a kind plus the value to match against."""

    kind: FilterKind
    value: tuple[Tag, ...] | IssueState | str

    @classmethod
    def tags(cls, tags: Sequence[Tag]) -> FilterValue:
        if not tags:
            msg = "No tags to filter for provided"
            raise UsageError(msg)
        return cls(FilterKind.TAG, tuple(tags))

    @classmethod
    def state(cls, state: IssueState) -> FilterValue:
        return cls(FilterKind.STATE, state)

    @classmethod
    def user(cls, user: str) -> FilterValue:
        return cls(FilterKind.USER, user)

    def matches(self, issue: Issue) -> bool:
        """Check whether ``issue`` satisfies this filter."""
        match self.kind:
            case FilterKind.TAG:
                assert isinstance(self.value, tuple)
                return issue.has_all_tags(self.value)
            case FilterKind.STATE:
                return issue.state == self.value
            case FilterKind.USER:
                assert isinstance(self.value, str)
                return issue.author.casefold() == self.value.casefold()
            case _:
                assert_never(self.kind)


def check_unique_kinds(filters: Sequence[FilterValue]) -> None:
    """Reject filter lists that repeat a kind.

    Raises:
        UsageError: If any filter kind appears more than once
    """
    seen: set[FilterKind] = set()
    for f in filters:
        if f.kind in seen:
            msg = f"Filter '{f.kind.value}' may only be given once"
            raise UsageError(msg)
        seen.add(f.kind)


def apply_filters(filters: Sequence[FilterValue], issues: list[Issue]) -> list[Issue]:
    """Remove every issue that does not match all filters.

    ``issues`` is modified in place and returned for convenience.
    """
    for f in filters:
        issues[:] = [issue for issue in issues if f.matches(issue)]
    return issues
