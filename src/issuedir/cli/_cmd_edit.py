"""Tag edit command for issuedir CLI."""

from __future__ import annotations

import typer

from issuedir.exceptions import IssueDirError
from issuedir.resolver import parse_tag_edit_list

from ._helpers import fail, get_tracker, report_outcome


def register(app: typer.Typer) -> None:
    """Register the edit command."""

    @app.command()
    def edit(
        issue_id: int = typer.Argument(..., min=1, help="Issue ID"),
        tag: str = typer.Option(
            ...,
            "--tag",
            help="Tags to add; prefix with '-' to remove. Separate with ','",
        ),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    ) -> None:
        """Add or remove tags on an issue.

        Example: ``issue edit 3 --tag=ui,-backend`` adds ``ui`` and removes
        ``backend``.
        """
        try:
            add, remove = parse_tag_edit_list(tag)
            outcome = get_tracker().edit_tags(issue_id, add, remove)
        except IssueDirError as e:
            fail(e)
        report_outcome(outcome, json_output)
