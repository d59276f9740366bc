"""Add command for issuedir CLI."""

from __future__ import annotations

import typer

from issuedir.exceptions import IssueDirError
from issuedir.models import issue_to_dict
from issuedir.resolver import parse_add_tags

from ._helpers import fail, get_tracker
from ._json_state import echo_json, is_json_output


def register(app: typer.Typer) -> None:
    """Register the add command."""

    @app.command()
    def add(
        title: str = typer.Option(
            ...,
            "--title",
            "-t",
            help="Title of the new issue",
        ),
        message: str | None = typer.Option(
            None,
            "--message",
            "-m",
            help="Optional longer description",
        ),
        tag: str | None = typer.Option(
            None,
            "--tag",
            help="Tags to attach, separated by ','",
        ),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    ) -> None:
        """Add a new issue."""
        try:
            tags = parse_add_tags(tag)
            issue = get_tracker().add_issue(title, message, tags)
        except IssueDirError as e:
            fail(e)

        if is_json_output(json_output):
            echo_json(issue_to_dict(issue))
        else:
            typer.echo(f"✓ Created issue '#{issue.id}' {issue.title}")
