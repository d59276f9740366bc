"""Comment command for issuedir CLI."""

from __future__ import annotations

import typer

from issuedir.exceptions import IssueDirError

from ._helpers import fail, get_tracker, report_outcome


def register(app: typer.Typer) -> None:
    """Register the comment command."""

    @app.command()
    def comment(
        issue_id: int = typer.Argument(..., min=1, help="Issue ID"),
        message: str = typer.Option(
            ...,
            "--message",
            "-m",
            help="Comment text",
        ),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    ) -> None:
        """Comment on an issue."""
        try:
            outcome = get_tracker().comment_issue(issue_id, message)
        except IssueDirError as e:
            fail(e)
        report_outcome(outcome, json_output)
