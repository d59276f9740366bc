"""Reopen command for issuedir CLI."""

from __future__ import annotations

import typer

from issuedir.exceptions import IssueDirError

from ._helpers import fail, get_tracker, report_outcome


def register(app: typer.Typer) -> None:
    """Register the reopen command."""

    @app.command()
    def reopen(
        issue_id: int = typer.Argument(..., min=1, help="Issue ID"),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    ) -> None:
        """Reopen a closed issue."""
        try:
            outcome = get_tracker().reopen_issue(issue_id)
        except IssueDirError as e:
            fail(e)
        report_outcome(outcome, json_output)
