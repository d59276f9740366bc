"""Directory-per-issue storage with atomic writes."""

from __future__ import annotations

import fcntl
import logging
import os
import shutil
import sys
import tempfile
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

from issuedir.constants import (
    COMMENT_FILENAME_TEMPLATE,
    COMMENT_SECTION,
    ISSUE_DIR_PATTERN,
    ISSUE_DIR_PREFIX,
    ISSUE_FILENAME,
    ISSUE_SECTION,
    LOCK_FILENAME,
    TAG_SEPARATOR,
)
from issuedir.exceptions import ConflictError, CorruptIssueError
from issuedir.models import (
    Comment,
    Issue,
    IssueState,
    Tag,
    last_state_change,
    validate_issue,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)


def encode_timestamp(value: datetime) -> int:
    """Encode a datetime as integer microseconds since the Unix epoch (UTC).

    Naive datetimes are taken to be local time.
    """
    return (value.astimezone(timezone.utc) - _EPOCH) // _MICROSECOND


def decode_timestamp(value: int) -> datetime:
    """Decode integer microseconds since the Unix epoch into an aware UTC datetime."""
    return _EPOCH + timedelta(microseconds=value)


def parse_issue_dir_name(name: str) -> int | None:
    """Return the issue id encoded in a directory name, or None if it is not one."""
    match = ISSUE_DIR_PATTERN.match(name)
    if match is None:
        return None
    return int(match.group(1))


def is_issue_dir(path: Path) -> bool:
    """Check whether ``path`` looks like an issue directory.

    An issue directory is named ``#<id>`` with a positive decimal id and
    contains an issue file.  Anything else under the project root is left
    alone by enumeration.
    """
    return (
        path.is_dir()
        and parse_issue_dir_name(path.name) is not None
        and (path / ISSUE_FILENAME).is_file()
    )


def comment_filename(index: int) -> str:
    """File name of the comment at 1-based position ``index``."""
    return COMMENT_FILENAME_TEMPLATE.format(index=index)


def _require(
    section: dict[str, Any],
    key: str,
    kind: type,
    source: Path,
) -> Any:
    """Fetch a required key of the given type or raise CorruptIssueError."""
    if key not in section:
        msg = f"{source}: missing required field '{key}'"
        raise CorruptIssueError(msg)
    value = section[key]
    # bool is a subclass of int; keep them apart
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        msg = f"{source}: field '{key}' must be {kind.__name__}, got {value!r}"
        raise CorruptIssueError(msg)
    return value


def _read_section(path: Path, section_name: str) -> dict[str, Any]:
    """Parse a TOML file and return one of its top-level tables."""
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError as e:
        msg = f"{path}: file is missing"
        raise CorruptIssueError(msg) from e
    except tomllib.TOMLDecodeError as e:
        msg = f"{path}: not a valid issue file: {e}"
        raise CorruptIssueError(msg) from e

    section = data.get(section_name)
    if not isinstance(section, dict):
        msg = f"{path}: missing [{section_name}] section"
        raise CorruptIssueError(msg)
    return section


def _parse_tags(raw: str) -> list[Tag]:
    return [Tag(name) for name in raw.split(TAG_SEPARATOR) if name.strip()]


def _parse_state(raw: str, source: Path) -> IssueState | None:
    if not raw:
        return None
    try:
        return IssueState.parse(raw)
    except ValueError as e:
        msg = f"{source}: {e}"
        raise CorruptIssueError(msg) from e


class IssueStorage:
    """Maps issues to ``#<id>`` directories under a project root."""

    def __init__(self, root: str | Path = ".") -> None:
        """Initialize storage.

        Args:
            root: Project root directory holding the issue directories.
        """
        self.root = Path(root)
        self._lock_path = self.root / LOCK_FILENAME

    def issue_dir(self, issue_id: int) -> Path:
        """Directory that holds (or would hold) the given issue."""
        return self.root / f"{ISSUE_DIR_PREFIX}{issue_id}"

    @contextmanager
    def lock(self) -> Iterator[None]:
        """Acquire an advisory file lock for exclusive read-modify-write."""
        lock_fd = self._lock_path.open("w")
        try:
            fcntl.flock(lock_fd, fcntl.LOCK_EX)
            logger.debug("Acquired %s", self._lock_path)
            yield
        finally:
            fcntl.flock(lock_fd, fcntl.LOCK_UN)
            lock_fd.close()

    # -- writing ---------------------------------------------------------

    @staticmethod
    def _write_atomic(path: Path, data: dict[str, Any]) -> None:
        """Write a TOML document via a temporary file and an atomic rename."""
        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            delete=False,
            prefix=".",
            suffix=".tmp",
        ) as tmp_file:
            tmp_path = Path(tmp_file.name)
            try:
                tomli_w.dump(data, tmp_file)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            except Exception as e:
                tmp_path.unlink(missing_ok=True)
                msg = f"Failed to write to temporary file: {e}"
                raise RuntimeError(msg) from e

        try:
            tmp_path.replace(path)
        except OSError as e:
            tmp_path.unlink(missing_ok=True)
            msg = f"Failed to write {path}: {e}"
            raise RuntimeError(msg) from e

    @staticmethod
    def _issue_record(issue: Issue) -> dict[str, Any]:
        return {
            ISSUE_SECTION: {
                "Title": issue.title,
                "Message": issue.message or "",
                "Tags": TAG_SEPARATOR.join(tag.name for tag in issue.tags),
                "PostDate": encode_timestamp(issue.created_at),
                "Author": issue.author,
                # Informational only; the comment log is authoritative
                "State": issue.state.value,
                "CommentCount": len(issue.comments),
                "LastStateChangeCommentIndex": issue.last_state_change_comment_index,
            },
        }

    @staticmethod
    def _comment_record(comment: Comment) -> dict[str, Any]:
        record: dict[str, Any] = {
            "Message": comment.message,
            "CommentDate": encode_timestamp(comment.created_at),
            "Author": comment.author,
            "Editable": comment.editable,
        }
        if comment.changed_state_to is not None:
            record["ChangedStateTo"] = comment.changed_state_to.value
        return {COMMENT_SECTION: record}

    def _write_files(self, directory: Path, issue: Issue) -> None:
        # Comments are immutable: only files for comments added since the
        # last save are produced.  They go first so CommentCount never
        # refers to a missing file.
        for index in range(issue.persisted_comment_count, len(issue.comments)):
            path = directory / comment_filename(index + 1)
            self._write_atomic(path, self._comment_record(issue.comments[index]))
        self._write_atomic(directory / ISSUE_FILENAME, self._issue_record(issue))

    def save(self, issue: Issue, is_new: bool) -> None:
        """Write an issue and its not yet persisted comments to disk.

        Args:
            issue: The issue to write
            is_new: If True, fail when a directory for this id already exists.
                If False, create or update the directory.

        Raises:
            ValueError: If the issue has no title or a non-positive id
            ConflictError: If ``is_new`` and the issue directory exists
            RuntimeError: If a file cannot be written; a new issue's
                directory is removed again so its id stays free
        """
        validate_issue(issue)
        directory = self.issue_dir(issue.id)
        if is_new:
            try:
                directory.mkdir(parents=True)
            except FileExistsError:
                msg = f"Issue with id {issue.id} already exists"
                raise ConflictError(msg) from None
            try:
                self._write_files(directory, issue)
            except BaseException:
                # A half-written new issue must not keep its id reserved
                shutil.rmtree(directory, ignore_errors=True)
                raise
        else:
            directory.mkdir(parents=True, exist_ok=True)
            self._write_files(directory, issue)

        logger.debug(
            "Saved %s (%d comments, %d new)",
            directory,
            len(issue.comments),
            len(issue.comments) - issue.persisted_comment_count,
        )
        issue.persisted_comment_count = len(issue.comments)

    # -- reading ---------------------------------------------------------

    @staticmethod
    def load_comment(path: Path) -> Comment:
        """Load a single comment file."""
        section = _read_section(path, COMMENT_SECTION)
        editable = _require(section, "Editable", bool, path)
        raw_state = section.get("ChangedStateTo", "")
        if not isinstance(raw_state, str):
            msg = f"{path}: field 'ChangedStateTo' must be str, got {raw_state!r}"
            raise CorruptIssueError(msg)
        message = _require(section, "Message", str, path)
        author = _require(section, "Author", str, path)
        created_at = decode_timestamp(_require(section, "CommentDate", int, path))
        changed_state_to = _parse_state(raw_state, path)
        try:
            return Comment(
                message=message,
                author=author,
                created_at=created_at,
                editable=editable,
                changed_state_to=changed_state_to,
            )
        except ValueError as e:
            msg = f"{path}: {e}"
            raise CorruptIssueError(msg) from e

    def load_issue(self, directory: Path) -> Issue | None:
        """Load the issue stored in ``directory``.

        Returns:
            The issue, or None if ``directory`` is not an issue directory

        Raises:
            CorruptIssueError: If the issue or one of its comments is unreadable
        """
        issue_id = parse_issue_dir_name(directory.name)
        if issue_id is None:
            return None
        issue_path = directory / ISSUE_FILENAME
        if not issue_path.is_file():
            return None

        section = _read_section(issue_path, ISSUE_SECTION)
        comment_count = _require(section, "CommentCount", int, issue_path)
        if comment_count < 0:
            msg = f"{issue_path}: CommentCount must not be negative"
            raise CorruptIssueError(msg)

        comments = [
            self.load_comment(directory / comment_filename(index + 1))
            for index in range(comment_count)
        ]

        title = _require(section, "Title", str, issue_path)
        author = _require(section, "Author", str, issue_path)
        created_at = decode_timestamp(_require(section, "PostDate", int, issue_path))
        message = section.get("Message") or None
        raw_tags = section.get("Tags", "")
        if not isinstance(raw_tags, str) or (
            message is not None and not isinstance(message, str)
        ):
            msg = f"{issue_path}: 'Tags' and 'Message' must be strings"
            raise CorruptIssueError(msg)

        try:
            issue = Issue(
                id=issue_id,
                title=title,
                author=author,
                message=message,
                tags=_parse_tags(raw_tags),
                created_at=created_at,
                comments=comments,
                persisted_comment_count=comment_count,
            )
        except ValueError as e:
            msg = f"{issue_path}: {e}"
            raise CorruptIssueError(msg) from e

        cached_index = section.get("LastStateChangeCommentIndex")
        actual_index, _ = last_state_change(comments)
        if cached_index is not None and cached_index != actual_index:
            logger.warning(
                "%s: stale LastStateChangeCommentIndex %r (comment log says %d)",
                issue_path,
                cached_index,
                actual_index,
            )
        return issue

    def get(self, issue_id: int) -> Issue | None:
        """Load an issue by id.

        Returns:
            The issue, or None if not found
        """
        return self.load_issue(self.issue_dir(issue_id))

    def load_all(self) -> list[Issue]:
        """Load every issue under the project root.

        Directories that do not look like issue directories are skipped.
        The result follows directory enumeration order, not id order.
        """
        issues: list[Issue] = []
        if not self.root.is_dir():
            return issues
        for entry in self.root.iterdir():
            if not is_issue_dir(entry):
                if entry.is_dir():
                    logger.debug("Skipping non-issue directory %s", entry)
                continue
            issue = self.load_issue(entry)
            if issue is not None:
                issues.append(issue)
        return issues

    def get_issue_ids(self) -> set[int]:
        """Get the ids of all issues on disk."""
        return {issue.id for issue in self.load_all()}
