"""Tests for the init command."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from issuedir.cli import app

from conftest import TEST_USER

runner = CliRunner()


class TestCLIInit:
    """Test init command."""

    def test_init(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test initializing a project."""
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert f"New issue project created for owner {TEST_USER}!" in result.stdout
        assert (tmp_path / ".issues").exists()

    def test_init_twice(self, project_dir: Path) -> None:
        """Test that a second init is informational."""
        before = (project_dir / ".issues").read_bytes()
        result = runner.invoke(app, ["init"])
        assert result.exit_code == 0
        assert "Already an issue tracking directory!" in result.stdout
        assert (project_dir / ".issues").read_bytes() == before
