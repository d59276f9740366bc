"""Tests for the add command."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from issuedir.cli import app

from conftest import TEST_USER

runner = CliRunner()


class TestCLIAdd:
    """Test add command."""

    def test_add(self, project_dir: Path) -> None:
        """Test adding an issue."""
        result = runner.invoke(
            app,
            ["add", "--title=hello world", "--message=foobar", "--tag=bug"],
        )
        assert result.exit_code == 0
        assert "Created issue '#1' hello world" in result.stdout
        assert (project_dir / "#1" / "issue.toml").exists()

    def test_add_json(self, project_dir: Path) -> None:
        """Test JSON output of add."""
        result = runner.invoke(app, ["add", "-t", "x", "--tag=a,b", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["id"] == 1
        assert data["tags"] == ["a", "b"]
        assert data["author"] == TEST_USER
        assert data["state"] == "Open"

    def test_add_next_id(self, project_dir: Path) -> None:
        """Test that consecutive adds get consecutive ids."""
        runner.invoke(app, ["add", "-t", "one"])
        result = runner.invoke(app, ["add", "-t", "two"])
        assert result.exit_code == 0
        assert "Created issue '#2' two" in result.stdout

    def test_add_requires_project(
        self,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test that add fails outside a project."""
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["add", "-t", "x"])
        assert result.exit_code == 1
        assert "issue init" in result.output
        assert list(tmp_path.iterdir()) == []
