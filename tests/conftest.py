"""Pytest configuration and shared fixtures."""

from collections.abc import Iterator
from pathlib import Path

import pytest

from issuedir.cli._helpers import get_default_operator
from issuedir.cli._json_state import set_json_flag
from issuedir.constants import USER_ENV_VAR
from issuedir.tracker import IssueTracker

TEST_USER = "tester"


@pytest.fixture(autouse=True)
def _isolated_identity(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Pin the author identity and reset per-process CLI state."""
    monkeypatch.setenv(USER_ENV_VAR, TEST_USER)
    get_default_operator.cache_clear()
    set_json_flag(False)
    yield
    get_default_operator.cache_clear()
    set_json_flag(False)


@pytest.fixture
def temp_workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace directory for testing."""
    return tmp_path


@pytest.fixture
def tracker(tmp_path: Path) -> IssueTracker:
    """Create a tracker on an initialized temporary project."""
    t = IssueTracker(tmp_path, TEST_USER)
    t.initialize_project()
    return t


@pytest.fixture
def project_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Initialize a project in a temporary directory and chdir into it."""
    IssueTracker(tmp_path, TEST_USER).initialize_project()
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def populated(project_dir: Path) -> Path:
    """Create issues 1 to 3 in the project, with issue 2 closed."""
    t = IssueTracker(project_dir, TEST_USER)
    t.add_issue("first")
    t.add_issue("second")
    t.add_issue("third")
    t.close_issue(2)
    return project_dir
