"""Tests for the domain operations."""

from pathlib import Path

import pytest

from issuedir.config import get_marker_path, load_config
from issuedir.exceptions import (
    IssueNotFoundError,
    NotInitializedError,
    UsageError,
)
from issuedir.filters import FilterValue
from issuedir.models import IssueState, Tag
from issuedir.storage import IssueStorage
from issuedir.tracker import IssueTracker, describe_tag_change

from conftest import TEST_USER


def _tags(*names: str) -> list[Tag]:
    return [Tag(n) for n in names]


def _comment_files(tracker: IssueTracker, issue_id: int) -> list[str]:
    return sorted(p.name for p in tracker.storage.issue_dir(issue_id).glob("comment-*"))


class TestInitialize:
    """Test project initialization."""

    def test_creates_marker(self, temp_workspace: Path) -> None:
        """Test that init writes the marker with the owner."""
        tracker = IssueTracker(temp_workspace, "alice")
        outcome = tracker.initialize_project()

        assert outcome.changed
        assert "alice" in outcome.message
        assert tracker.is_initialized
        assert load_config(temp_workspace).owner == "alice"

    def test_second_init_is_noop(self, temp_workspace: Path) -> None:
        """Test that re-initializing leaves the marker untouched."""
        IssueTracker(temp_workspace, "alice").initialize_project()
        before = get_marker_path(temp_workspace).read_bytes()

        outcome = IssueTracker(temp_workspace, "bob").initialize_project()

        assert not outcome.changed
        assert "Already" in outcome.message
        assert get_marker_path(temp_workspace).read_bytes() == before

    @pytest.mark.parametrize(
        "operation",
        [
            lambda t: t.add_issue("x"),
            lambda t: t.edit_tags(1, _tags("a"), []),
            lambda t: t.comment_issue(1, "hi"),
            lambda t: t.close_issue(1),
            lambda t: t.reopen_issue(1),
            lambda t: t.list_issues([]),
            lambda t: t.show_issue(1),
        ],
    )
    def test_operations_require_project(self, temp_workspace: Path, operation) -> None:  # noqa: ANN001
        """Test that everything but init fails outside a project."""
        tracker = IssueTracker(temp_workspace, "alice")
        with pytest.raises(NotInitializedError):
            operation(tracker)
        assert list(temp_workspace.iterdir()) == []


class TestAddIssue:
    """Test creating issues."""

    def test_add_issue(self, tracker: IssueTracker) -> None:
        """Test the basic add scenario."""
        issue = tracker.add_issue("hello world", "foobar", _tags("bug"))

        assert issue.id == 1
        loaded = tracker.show_issue(1)
        assert loaded.title == "hello world"
        assert loaded.message == "foobar"
        assert loaded.tags == _tags("bug")
        assert loaded.author == TEST_USER
        assert loaded.state == IssueState.OPEN
        assert loaded.comments == []

    def test_ids_are_max_plus_one(self, tracker: IssueTracker) -> None:
        """Test id allocation after existing ids."""
        for title in ("one", "two", "three"):
            tracker.add_issue(title)
        tracker.close_issue(1)

        assert tracker.add_issue("four").id == 4

    def test_ids_skip_gaps(self, tracker: IssueTracker) -> None:
        """Test that allocation uses the maximum, not the count."""
        tracker.add_issue("one")
        tracker.storage.issue_dir(1).rename(tracker.storage.issue_dir(7))

        assert tracker.add_issue("next").id == 8

    def test_failed_add_does_not_reserve_id(
        self,
        tracker: IssueTracker,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that an add interrupted by a write error can be retried."""

        def _disk_full(path: Path, data: dict[str, object]) -> None:
            msg = "disk full"
            raise RuntimeError(msg)

        with monkeypatch.context() as m:
            m.setattr(IssueStorage, "_write_atomic", staticmethod(_disk_full))
            with pytest.raises(RuntimeError):
                tracker.add_issue("first")

        assert tracker.add_issue("first").id == 1
        assert tracker.add_issue("second").id == 2

    @pytest.mark.parametrize("title", ["", "   "])
    def test_empty_title_rejected(self, tracker: IssueTracker, title: str) -> None:
        """Test that a title is required."""
        with pytest.raises(UsageError, match="Title"):
            tracker.add_issue(title)
        assert tracker.list_issues([]) == []

    def test_duplicate_tags_collapsed(self, tracker: IssueTracker) -> None:
        """Test that tags on a new issue form a set."""
        issue = tracker.add_issue("t", tags=_tags("a", "b", "a"))
        assert tracker.show_issue(issue.id).tags == _tags("a", "b")


class TestEditTags:
    """Test tag edits."""

    def test_add_then_remove(self, tracker: IssueTracker) -> None:
        """Test the add-then-remove scenario."""
        tracker.add_issue("t")

        first = tracker.edit_tags(1, _tags("foo", "bar", "baz"), [])
        second = tracker.edit_tags(1, [], _tags("foo"))

        assert first.changed and second.changed
        issue = tracker.show_issue(1)
        assert issue.tags == _tags("bar", "baz")
        assert [c.editable for c in issue.comments] == [False, False]
        assert issue.comments[0].message == "Added tag(s): foo, bar, baz."
        assert issue.comments[1].message == "Removed tag: foo."
        assert _comment_files(tracker, 1) == ["comment-001.toml", "comment-002.toml"]

    def test_overlap_rejected(self, tracker: IssueTracker) -> None:
        """Test that a tag cannot be added and removed at once."""
        tracker.add_issue("t")
        with pytest.raises(UsageError, match="same tag"):
            tracker.edit_tags(1, _tags("a", "b"), _tags("b"))
        assert tracker.show_issue(1).comments == []

    def test_already_present_is_noop(self, tracker: IssueTracker) -> None:
        """Test that re-adding existing tags writes nothing."""
        tracker.add_issue("t", tags=_tags("a"))

        outcome = tracker.edit_tags(1, _tags("a"), [])

        assert not outcome.changed
        assert outcome.message == "No changes."
        assert any("already present" in note for note in outcome.notes)
        assert tracker.show_issue(1).comments == []

    def test_absent_removal_is_noop(self, tracker: IssueTracker) -> None:
        """Test that removing a missing tag writes nothing."""
        tracker.add_issue("t")

        outcome = tracker.edit_tags(1, [], _tags("ghost"))

        assert not outcome.changed
        assert any("not present" in note for note in outcome.notes)
        assert _comment_files(tracker, 1) == []

    def test_partial_noop_reports_and_applies_rest(self, tracker: IssueTracker) -> None:
        """Test that no-op entries do not block the effective ones."""
        tracker.add_issue("t", tags=_tags("a"))

        outcome = tracker.edit_tags(1, _tags("a", "b"), _tags("c"))

        assert outcome.changed
        assert len(outcome.notes) == 2
        issue = tracker.show_issue(1)
        assert issue.tags == _tags("a", "b")
        assert issue.comments[-1].message == "Added tag: b."

    def test_missing_issue(self, tracker: IssueTracker) -> None:
        """Test editing an issue that does not exist."""
        with pytest.raises(IssueNotFoundError, match="#3"):
            tracker.edit_tags(3, _tags("a"), [])

    def test_describe_tag_change(self) -> None:
        """Test the system comment wording."""
        assert describe_tag_change(_tags("a"), _tags("b", "c")) == (
            "Added tag: a.\nRemoved tag(s): b, c."
        )


class TestComment:
    """Test user comments."""

    def test_comment_appends(self, tracker: IssueTracker) -> None:
        """Test that comments are appended in order."""
        tracker.add_issue("t")
        tracker.comment_issue(1, "first")
        tracker.comment_issue(1, "second")

        issue = tracker.show_issue(1)
        assert [c.message for c in issue.comments] == ["first", "second"]
        assert all(c.editable for c in issue.comments)
        assert all(c.author == TEST_USER for c in issue.comments)

    def test_comment_requires_message(self, tracker: IssueTracker) -> None:
        """Test that an empty comment is refused."""
        tracker.add_issue("t")
        with pytest.raises(UsageError):
            tracker.comment_issue(1, " ")

    def test_comment_missing_issue(self, tracker: IssueTracker) -> None:
        """Test commenting on a missing issue."""
        with pytest.raises(IssueNotFoundError):
            tracker.comment_issue(1, "hi")


class TestStateTransitions:
    """Test close and reopen."""

    def test_close_and_reopen(self, tracker: IssueTracker) -> None:
        """Test a full close/reopen cycle."""
        tracker.add_issue("t")

        closed = tracker.close_issue(1)
        assert closed.changed
        assert tracker.show_issue(1).state == IssueState.CLOSED

        reopened = tracker.reopen_issue(1)
        assert reopened.changed
        issue = tracker.show_issue(1)
        assert issue.state == IssueState.OPEN
        assert issue.last_state_change_comment_index == 1
        assert [c.message for c in issue.comments] == [
            "Closed the issue.",
            "Reopened the issue.",
        ]
        assert [c.changed_state_to for c in issue.comments] == [
            IssueState.CLOSED,
            IssueState.OPEN,
        ]

    def test_close_is_idempotent(self, tracker: IssueTracker) -> None:
        """Test that closing twice appends one comment and writes once."""
        tracker.add_issue("t")
        tracker.close_issue(1)
        issue_file = tracker.storage.issue_dir(1) / "issue.toml"
        before = issue_file.read_bytes()
        mtime = issue_file.stat().st_mtime_ns

        outcome = tracker.close_issue(1)

        assert not outcome.changed
        assert "already closed" in outcome.message
        assert len(tracker.show_issue(1).comments) == 1
        assert issue_file.read_bytes() == before
        assert issue_file.stat().st_mtime_ns == mtime

    def test_reopen_open_issue_is_noop(self, tracker: IssueTracker) -> None:
        """Test that reopening an open issue does nothing."""
        tracker.add_issue("t")

        outcome = tracker.reopen_issue(1)

        assert not outcome.changed
        assert "already open" in outcome.message
        assert _comment_files(tracker, 1) == []

    def test_close_missing_issue(self, tracker: IssueTracker) -> None:
        """Test closing an issue that does not exist."""
        with pytest.raises(IssueNotFoundError):
            tracker.close_issue(42)


class TestListAndShow:
    """Test read operations."""

    def test_list_sorted_by_id(self, tracker: IssueTracker) -> None:
        """Test that listing returns issues in id order."""
        for n in range(1, 12):
            tracker.add_issue(f"issue {n}")
        assert [i.id for i in tracker.list_issues([])] == list(range(1, 12))

    def test_list_default_open_scenario(self, tracker: IssueTracker) -> None:
        """Test that an open filter hides closed issues."""
        tracker.add_issue("a")
        tracker.add_issue("b")
        tracker.add_issue("c")
        tracker.close_issue(2)

        result = tracker.list_issues([FilterValue.state(IssueState.OPEN)])
        assert [i.id for i in result] == [1, 3]

    def test_list_rejects_duplicate_kinds(self, tracker: IssueTracker) -> None:
        """Test that repeated filter kinds are refused."""
        with pytest.raises(UsageError):
            tracker.list_issues(
                [
                    FilterValue.state(IssueState.OPEN),
                    FilterValue.state(IssueState.CLOSED),
                ],
            )

    def test_show_missing(self, tracker: IssueTracker) -> None:
        """Test showing an issue that does not exist."""
        with pytest.raises(IssueNotFoundError, match="No issue with id '#5' found"):
            tracker.show_issue(5)

    def test_config_title_limit(self, tracker: IssueTracker) -> None:
        """Test that the tracker exposes the project config."""
        assert tracker.config.owner == TEST_USER
        assert tracker.config.title_limit == 50
