"""Display and formatting functions for issuedir CLI."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

import typer

from issuedir.constants import DEFAULT_TITLE_LIMIT, STATE_COLORS

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from issuedir.models import Comment, Issue


def truncate_title(title: str, limit: int = DEFAULT_TITLE_LIMIT) -> str:
    """Shorten ``title`` to at most ``limit`` characters."""
    if len(title) <= limit:
        return title
    if limit <= 1:
        return title[:limit]
    return title[: limit - 1] + "…"


def format_comment_time(when: datetime, created_at: datetime) -> str:
    """Format a comment timestamp relative to the issue creation date.

    Comments from the creation day show the time only, comments from the
    following week show date and time, older ones show the date only.
    """
    local = when.astimezone()
    created = created_at.astimezone()
    if local.date() == created.date():
        return local.strftime("%H:%M")
    if local - created > timedelta(days=7):
        return local.strftime("%Y-%m-%d")
    return local.strftime("%Y-%m-%d %H:%M")


def format_issue_table(
    issues: Sequence[Issue],
    show_state: bool = True,
    title_limit: int = DEFAULT_TITLE_LIMIT,
) -> str:
    """Format issues as an aligned table with columns using Rich.

    Args:
        issues: Issues to format
        show_state: Include a state column; pointless when the list is
            already filtered to a single state
        title_limit: Maximum number of title characters to show

    Returns:
        Formatted table string (rendered by Rich)
    """
    from io import StringIO

    from rich import box
    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table

    if not issues:
        return ""

    table = Table(
        show_header=True,
        header_style="bold",
        box=box.ROUNDED,
        pad_edge=False,
        show_edge=False,
    )

    table.add_column("", width=1, no_wrap=True)  # State symbol
    table.add_column("ID", no_wrap=True)
    if show_state:
        table.add_column("State", no_wrap=True)
    table.add_column("Title", overflow="fold")
    table.add_column("Author", no_wrap=True)
    table.add_column("Created", no_wrap=True)
    table.add_column("Comments", justify="right", no_wrap=True)
    table.add_column("Tags", no_wrap=False)

    for issue in issues:
        state = issue.state.value
        color = STATE_COLORS.get(state, "white")
        comment_count = issue.user_comment_count()
        tags = ", ".join(escape(t.name) for t in issue.tags)

        row = [issue.get_state_symbol(), f"#{issue.id}"]
        if show_state:
            row.append(f"[{color}]{state}[/]")
        row.extend(
            [
                escape(truncate_title(issue.title, title_limit)),
                escape(issue.author),
                issue.created_at.astimezone().strftime("%Y-%m-%d"),
                str(comment_count) if comment_count else "",
                f"[cyan]{tags}[/]" if tags else "",
            ],
        )
        table.add_row(*row)

    string_io = StringIO()
    console = Console(file=string_io, force_terminal=True, width=120)
    console.print(table)

    return string_io.getvalue().rstrip()


def _styled_key(label: str) -> str:
    """Style a field label as bold cyan."""
    return typer.style(label, fg="cyan", bold=True)


def format_comment(comment: Comment, created_at: datetime) -> str:
    """Format one comment of the log."""
    when = format_comment_time(comment.created_at, created_at)
    header = f"{comment.author} @ {when}:"
    if not comment.editable:
        header = typer.style(header, fg="bright_black")
    body = "\n".join(f"    {line}" for line in comment.message.splitlines())
    return f"  {header}\n{body}"


def format_issue_full(issue: Issue) -> str:
    """Format issue for full display including the comment log."""
    key = _styled_key
    color = STATE_COLORS.get(issue.state.value, "white")
    dt_fmt = "%Y-%m-%d %H:%M:%S"
    lines = [
        f"{key('ID:')} #{issue.id}",
        f"{key('Title:')} {issue.title}",
        f"{key('State:')} {typer.style(issue.state.value, fg=color)}",
        f"{key('Author:')} {issue.author}",
        f"{key('Created:')} {issue.created_at.astimezone().strftime(dt_fmt)}",
    ]
    if issue.tags:
        lines.append(f"{key('Tags:')} {', '.join(t.name for t in issue.tags)}")

    if issue.message:
        lines.append(f"\n{key('Message:')}\n{issue.message}")

    if issue.comments:
        lines.append(f"\n{key('Comments:')}")
        lines.extend(format_comment(c, issue.created_at) for c in issue.comments)

    return "\n".join(lines)


def format_help_table(rows: Sequence[tuple[str, str, str]]) -> str:
    """Render the command overview shown by ``issue help``."""
    from io import StringIO

    from rich import box
    from rich.console import Console
    from rich.table import Table

    table = Table(
        show_header=True,
        header_style="bold",
        box=box.SIMPLE,
        pad_edge=False,
        show_edge=False,
    )
    table.add_column("Command", no_wrap=True)
    table.add_column("Argument", no_wrap=True)
    table.add_column("Options")
    for command, argument, options in rows:
        table.add_row(command, argument, options)

    string_io = StringIO()
    Console(file=string_io, width=100).print(table)
    return string_io.getvalue().rstrip()
