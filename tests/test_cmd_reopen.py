"""Tests for the reopen command."""

from pathlib import Path

from typer.testing import CliRunner

from issuedir.cli import app

runner = CliRunner()


class TestCLIReopen:
    """Test reopen command."""

    def test_reopen(self, populated: Path) -> None:
        """Test reopening a closed issue."""
        result = runner.invoke(app, ["reopen", "2"])
        assert result.exit_code == 0
        assert "Issue '#2' reopened!" in result.stdout

    def test_reopen_open_issue(self, populated: Path) -> None:
        """Test that reopening an open issue changes nothing."""
        result = runner.invoke(app, ["reopen", "1"])
        assert result.exit_code == 0
        assert "already open" in result.stdout
        assert not (populated / "#1" / "comment-001.toml").exists()

    def test_reopen_missing_issue(self, project_dir: Path) -> None:
        """Test reopening an issue that does not exist."""
        result = runner.invoke(app, ["reopen", "3"])
        assert result.exit_code == 1
        assert "No issue with id '#3' found" in result.output
