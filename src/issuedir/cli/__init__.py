"""issuedir CLI commands for issue tracking."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import typer

from issuedir._version import version as _issuedir_version

from ._helpers import SortedGroup

if TYPE_CHECKING:
    from collections.abc import Sequence

app = typer.Typer(
    help="issue - a local, file-backed issue tracker. "
    "Run 'issue help' for the supported shorthand syntax.",
    no_args_is_help=True,
    cls=SortedGroup,
)

# Global flags accepted in front of the command name
_GLOBAL_FLAGS = frozenset({"--json", "--verbose", "-v", "--version"})


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"issue {_issuedir_version}")
        raise typer.Exit(0)


@app.callback(invoke_without_command=True)
def _global_options(
    ctx: typer.Context,
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Output as JSON for all commands",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log debug output to stderr",
    ),
    version: bool = typer.Option(  # noqa: ARG001
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    from ._json_state import set_json_flag

    set_json_flag(json_output)
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
        )
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit(0)


from . import (  # noqa: E402
    _cmd_close,
    _cmd_comment,
    _cmd_create,
    _cmd_edit,
    _cmd_init,
    _cmd_read,
    _cmd_reopen,
)

for _mod in (
    _cmd_close,
    _cmd_comment,
    _cmd_create,
    _cmd_edit,
    _cmd_init,
    _cmd_read,
    _cmd_reopen,
):
    _mod.register(app)


def main(argv: Sequence[str] | None = None) -> None:
    """Run the issuedir CLI application.

    Raw arguments go through the command resolver first, which accepts the
    forgiving syntax (``tag:foo``, ``open``, ``3 -m hi``) and rejects bad
    input before anything touches the project.  The canonical arguments it
    produces are then dispatched by the typer application.
    """
    from issuedir.constants import USAGE_HINT
    from issuedir.exceptions import IssueDirError, UsageError
    from issuedir.resolver import ensure_dispatchable, resolve

    from ._json_state import echo_error, set_json_flag

    args = list(sys.argv[1:] if argv is None else argv)
    global_args: list[str] = []
    while args and args[0] in _GLOBAL_FLAGS:
        global_args.append(args.pop(0))

    if "--version" in global_args:
        app(args=["--version"], prog_name="issue")
        return

    try:
        invocation = resolve(args)
        ensure_dispatchable(invocation, Path.cwd())
    except IssueDirError as e:
        set_json_flag("--json" in global_args)
        hint = None
        if isinstance(e, UsageError):
            hint = USAGE_HINT
        echo_error(str(e), hint=hint)
        raise SystemExit(e.exit_code) from None

    app(args=[*global_args, *invocation.to_argv()], prog_name="issue")
