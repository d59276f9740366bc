"""Process-wide output mode for the issue CLI.

The global ``--json`` option and every per-command ``--json`` switch feed
the same flag, so results and errors of one invocation share a format.
"""

from __future__ import annotations

import sys
from typing import Any

import orjson
import typer

_json_mode: bool = False


def set_json_flag(value: bool) -> None:
    """Switch JSON output on or off for the rest of the invocation."""
    global _json_mode  # noqa: PLW0603
    _json_mode = value


def is_json_output(local_flag: bool = False) -> bool:
    """Check whether output should be JSON.

    A per-command ``--json`` turns the global mode on as well, so a later
    ``echo_error`` in the same command reports in JSON too.
    """
    global _json_mode  # noqa: PLW0603
    _json_mode = _json_mode or local_flag
    return _json_mode


def echo_json(data: Any, pretty: bool = False) -> None:
    """Write ``data`` to stdout as a single JSON document."""
    option = orjson.OPT_INDENT_2 if pretty else 0
    typer.echo(orjson.dumps(data, option=option).decode())


def echo_error(message: str, hint: str | None = None) -> None:
    """Report a refused request on stderr.

    JSON mode writes ``{"error": ..., "hint": ...}`` on one line; plain mode
    writes ``Error: ...`` followed by the hint, if any.
    """
    if _json_mode:
        payload = {"error": message}
        if hint:
            payload["hint"] = hint
        sys.stderr.write(orjson.dumps(payload).decode() + "\n")
        return
    typer.echo(f"Error: {message}", err=True)
    if hint:
        typer.echo(hint, err=True)
