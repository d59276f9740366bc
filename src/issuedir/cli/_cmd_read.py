"""Read commands (list, show, help) for issuedir CLI."""

from __future__ import annotations

import typer

from issuedir.exceptions import IssueDirError
from issuedir.filters import FilterKind
from issuedir.models import issue_to_dict
from issuedir.resolver import FLAGS, build_filters, command_table

from ._formatting import format_help_table, format_issue_full, format_issue_table
from ._helpers import fail, get_tracker
from ._json_state import echo_json, is_json_output


def register(app: typer.Typer) -> None:
    """Register list, show and help commands."""

    @app.command(name="list")
    def list_issues(
        tag: str | None = typer.Option(
            None,
            "--tag",
            help="Only issues carrying all of these tags (',' separated)",
        ),
        user: str | None = typer.Option(
            None,
            "--user",
            help="Only issues created by this author (case-insensitive)",
        ),
        state: str | None = typer.Option(
            None,
            "--state",
            "-s",
            help="open, closed or all (default: open)",
        ),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    ) -> None:
        """List issues, open ones by default."""
        tracker = get_tracker()
        try:
            filters = build_filters(tag, user, state)
            issues = tracker.list_issues(filters)
            title_limit = tracker.config.title_limit
        except IssueDirError as e:
            fail(e)

        if is_json_output(json_output):
            echo_json([issue_to_dict(i) for i in issues])
            return

        if not issues:
            typer.echo("Found no matching issues!")
            return

        state_filtered = any(f.kind == FilterKind.STATE for f in filters)
        typer.echo(f"Found {len(issues)} matching issues:")
        typer.echo(
            format_issue_table(
                issues,
                show_state=not state_filtered,
                title_limit=title_limit,
            ),
        )

    @app.command()
    def show(
        issue_id: int = typer.Argument(..., min=1, help="Issue ID"),
        json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
    ) -> None:
        """Show an issue with its full comment log."""
        try:
            issue = get_tracker().show_issue(issue_id)
        except IssueDirError as e:
            fail(e)

        if is_json_output(json_output):
            echo_json(issue_to_dict(issue), pretty=True)
        else:
            typer.echo(format_issue_full(issue))

    @app.command(name="help")
    def help_cmd(ctx: typer.Context) -> None:
        """Show the supported commands and their options."""
        typer.echo("Supported commands:")
        typer.echo(format_help_table(command_table()))
        typer.echo("")
        typer.echo("Options:")
        for spec in FLAGS:
            names = spec.canonical
            if spec.short:
                names += f", -{spec.short}"
            typer.echo(f"  {names:<20} {spec.help}")
        typer.echo("")
        typer.echo(
            "Shorthand: 'ID' shows an issue, 'ID tag:...' edits its tags, "
            "'ID -m ...' comments on it.",
        )
        typer.echo(
            "Flags may also be written as name:value, name=value or /name.",
        )
        if ctx.parent is not None:
            typer.echo("")
            typer.echo(ctx.parent.get_usage())
