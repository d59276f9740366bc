"""Shared infrastructure for issuedir CLI commands."""

from __future__ import annotations

import functools
import getpass
import os
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

import typer
from typer.core import TyperGroup

from issuedir.constants import USAGE_HINT, USER_ENV_VAR
from issuedir.exceptions import UsageError
from issuedir.models import issue_to_dict
from issuedir.tracker import IssueTracker

from ._json_state import echo_error, echo_json, is_json_output

if TYPE_CHECKING:
    import click

    from issuedir.exceptions import IssueDirError
    from issuedir.tracker import Outcome


class SortedGroup(TyperGroup):
    """Typer group that lists commands in alphabetical order."""

    def list_commands(self, ctx: click.Context) -> list[str]:
        """Return commands sorted alphabetically."""
        return sorted(super().list_commands(ctx))


@functools.lru_cache(maxsize=1)
def get_default_operator() -> str:
    """Get the author name recorded on issues and comments.

    Uses ``$ISSUEDIR_USER`` if set, then git's ``user.name``, and falls back
    to the machine username.
    """
    override = os.environ.get(USER_ENV_VAR, "").strip()
    if override:
        return override

    try:
        result = subprocess.run(
            ["git", "config", "user.name"],
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
    except (FileNotFoundError, OSError):
        # git not installed or other OS error
        pass

    return getpass.getuser()


def get_tracker(root: str | Path | None = None) -> IssueTracker:
    """Create a tracker for ``root`` (default: the current directory)."""
    return IssueTracker(Path.cwd() if root is None else root, get_default_operator())


def fail(error: IssueDirError) -> NoReturn:
    """Report a refused operation and end the command."""
    hint = None
    if isinstance(error, UsageError):
        hint = USAGE_HINT
    echo_error(str(error), hint=hint)
    raise typer.Exit(error.exit_code) from None


def report_outcome(outcome: Outcome, json_output: bool) -> None:
    """Print the result of a mutating operation."""
    if is_json_output(json_output):
        echo_json(
            {
                "changed": outcome.changed,
                "message": outcome.message,
                "notes": outcome.notes,
                "issue": issue_to_dict(outcome.issue) if outcome.issue else None,
            },
        )
        return

    for note in outcome.notes:
        typer.echo(f"  {note}")
    symbol = "✓" if outcome.changed else "•"
    typer.echo(f"{symbol} {outcome.message}")
