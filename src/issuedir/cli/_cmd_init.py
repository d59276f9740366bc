"""Initialization command for issuedir CLI."""

from __future__ import annotations

import typer

from ._helpers import get_tracker


def register(app: typer.Typer) -> None:
    """Register the init command."""

    @app.command()
    def init() -> None:
        """Turn the current directory into an issue tracking project.

        Writes the project marker with the current user as owner.  Running
        it again in an existing project changes nothing.
        """
        outcome = get_tracker().initialize_project()
        symbol = "✓" if outcome.changed else "•"
        typer.echo(f"{symbol} {outcome.message}")
