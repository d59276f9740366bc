"""Command resolution: forgiving command-line syntax to a validated invocation.

The tracker accepts several spellings for the same thing::

    issue add -t "hello world" -m foobar tag:bug
    issue add --title="hello world" message=foobar --tag bug
    issue list closed user:alice
    issue 1 tag:foo,-bar        (shorthand for ``edit 1 --tag=foo,-bar``)

``resolve`` turns any of these into an ``Invocation`` in three steps:
shorthand expansion, flag normalization to canonical ``--name=value`` form,
and parsing against the declarative ``FLAGS`` table with per-command
allow-lists.  Every failure is a ``UsageError`` raised before anything
touches the project directory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from issuedir.config import is_project
from issuedir.constants import (
    HELP_TOKENS,
    STATE_ALL,
    STATE_VALUES,
    TAG_REMOVE_PREFIX,
    TAG_SEPARATOR,
)
from issuedir.exceptions import NotInitializedError, UsageError
from issuedir.filters import FilterValue
from issuedir.models import IssueState, Tag

if TYPE_CHECKING:
    from collections.abc import Sequence


@dataclass(frozen=True)
class FlagSpec:
    """A second-class flag: its names, whether it takes a value, who owns it."""

    name: str
    short: str | None
    requires_value: bool
    commands: frozenset[str]
    help: str = ""

    @property
    def canonical(self) -> str:
        return f"--{self.name}"


@dataclass(frozen=True)
class CommandSpec:
    """A first-class command."""

    name: str
    needs_id: bool = False
    required: tuple[str, ...] = ()
    help: str = ""


COMMANDS: dict[str, CommandSpec] = {
    spec.name: spec
    for spec in (
        CommandSpec("init", help="Turn the current directory into a project"),
        CommandSpec("list", help="List issues (open issues by default)"),
        CommandSpec("add", required=("title",), help="Add a new issue"),
        CommandSpec(
            "edit",
            needs_id=True,
            required=("tag",),
            help="Add or remove tags",
        ),
        CommandSpec(
            "comment",
            needs_id=True,
            required=("message",),
            help="Comment on an issue",
        ),
        CommandSpec("show", needs_id=True, help="Show an issue and its comments"),
        CommandSpec("close", needs_id=True, help="Close an issue"),
        CommandSpec("reopen", needs_id=True, help="Reopen a closed issue"),
    )
}

_OUTPUT_COMMANDS = frozenset(COMMANDS) - {"init"}

FLAGS: tuple[FlagSpec, ...] = (
    FlagSpec(
        "title",
        "t",
        True,
        frozenset({"add"}),
        "Sets the title for the issue",
    ),
    FlagSpec(
        "message",
        "m",
        True,
        frozenset({"add", "comment"}),
        "Adds a message",
    ),
    FlagSpec(
        "tag",
        None,
        True,
        frozenset({"list", "add", "edit"}),
        "Tags to add, or with '-' prefix to remove; separate multiple with ','",
    ),
    FlagSpec(
        "user",
        None,
        True,
        frozenset({"list"}),
        "Filters the list for the specific author",
    ),
    FlagSpec(
        "state",
        "s",
        True,
        frozenset({"list"}),
        "Filters the list for the specific state (open|closed|all)",
    ),
    FlagSpec(
        "json",
        None,
        False,
        _OUTPUT_COMMANDS,
        "Output as JSON",
    ),
)

_PREFIXES = ("--", "-", "/")


@dataclass
class Invocation:
    """A validated command ready to hand to the command layer."""

    command: str
    issue_id: int | None = None
    options: dict[str, str] = field(default_factory=dict[str, str])
    json_output: bool = False

    def to_argv(self) -> list[str]:
        """Render as canonical arguments for the typer application."""
        if self.command == "help":
            return ["help"]
        argv = [self.command]
        if self.issue_id is not None:
            argv.append(str(self.issue_id))
        argv.extend(f"--{name}={value}" for name, value in self.options.items())
        if self.json_output:
            argv.append("--json")
        return argv


@dataclass
class ParsedArgs:
    """Flags and leftover tokens found by ``parse_tokens``."""

    values: dict[str, list[str]] = field(default_factory=dict[str, list[str]])
    positionals: list[str] = field(default_factory=list[str])


def find_flag(name: str, flags: Sequence[FlagSpec] = FLAGS) -> FlagSpec | None:
    """Find a flag by long name (case-insensitive) or exact short name."""
    if not name:
        return None
    for spec in flags:
        if name.lower() == spec.name or name == spec.short:
            return spec
    return None


def allowed_flags(
    command: str,
    flags: Sequence[FlagSpec] = FLAGS,
) -> tuple[FlagSpec, ...]:
    """Flags accepted by ``command``."""
    return tuple(spec for spec in flags if command in spec.commands)


def split_prefix(token: str) -> tuple[str, str]:
    """Split a token into its flag prefix (``--``, ``-``, ``/`` or ``""``) and body."""
    for prefix in _PREFIXES:
        if token.startswith(prefix):
            return prefix, token[len(prefix) :]
    return "", token


def parse_issue_id(raw: str) -> int | None:
    """Parse a positive integer issue id, or return None."""
    try:
        value = int(raw)
    except ValueError:
        return None
    return value if value >= 1 else None


def infer_shorthand_command(tokens: Sequence[str]) -> str:
    """Pick the command implied by ``<id> ...`` shorthand.

    Precedence is fixed: any token naming a message (``m...``) makes it a
    ``comment``; otherwise any token naming a tag (``tag...``) makes it an
    ``edit``; otherwise it is a ``show``.  Only one leading prefix is
    stripped before the check.
    """
    bodies = [split_prefix(token)[1] for token in tokens]
    if any(body.startswith("m") for body in bodies):
        return "comment"
    if any(body.startswith("tag") for body in bodies):
        return "edit"
    return "show"


def expand_shorthand(tokens: Sequence[str]) -> list[str]:
    """Insert the implied command in front of a leading issue id."""
    tokens = list(tokens)
    if tokens and parse_issue_id(tokens[0]) is not None:
        return [infer_shorthand_command(tokens[1:]), *tokens]
    return tokens


def _replace_separator(token: str, flags: Sequence[FlagSpec]) -> str:
    """Rewrite ``name:value`` as ``name=value`` when ``name`` is a known flag.

    Only the first separator is touched so values may contain colons.
    """
    colon = token.find(":")
    equals = token.find("=")
    if colon == -1 or (equals != -1 and equals < colon):
        return token
    _, name = split_prefix(token[:colon])
    if find_flag(name, flags) is None:
        return token
    return f"{token[:colon]}={token[colon + 1 :]}"


def normalize_tokens(
    tokens: Sequence[str],
    flags: Sequence[FlagSpec] = FLAGS,
    skip: int = 1,
) -> list[str]:
    """Rewrite tokens into the canonical flag syntax.

    - ``name:value`` becomes ``name=value`` for known flags
    - bare ``open``/``closed``/``all`` become ``state=<value>``
    - known flags get a ``--`` (long name) or ``-`` (short name) prefix,
      replacing any ``/`` or mismatched dash prefix
    - the token after a value flag without ``=`` is copied untouched, so a
      message body is never mistaken for a flag
    - everything after a bare ``--`` is copied untouched

    Args:
        tokens: Raw tokens, command name first
        flags: Flag table to recognise names against
        skip: Number of leading tokens copied literally
    """
    result: list[str] = []
    expecting_value = False
    literal = False
    for index, token in enumerate(tokens):
        if index < skip or expecting_value or literal:
            result.append(token)
            expecting_value = False
            continue
        if token == "--":
            result.append(token)
            literal = True
            continue

        current = _replace_separator(token, flags)
        if current.lower() in STATE_VALUES:
            current = f"state={current}"

        prefix, body = split_prefix(current)
        name = body.split("=", 1)[0]
        match = find_flag(name, flags)
        if match is not None:
            dashes = "-" if len(name) == 1 else "--"
            current = f"{dashes}{body}"
            if match.requires_value and "=" not in body:
                expecting_value = True
        elif prefix == "/":
            # Not ours; keep it recognisable as a flag so it gets rejected
            current = f"--{body}"
        result.append(current)
    return result


def parse_tokens(
    tokens: Sequence[str],
    flags: Sequence[FlagSpec] = FLAGS,
) -> ParsedArgs:
    """Parse canonical tokens into flag values and positionals.

    Raises:
        UsageError: On unknown flags or a value flag without a value
    """
    parsed = ParsedArgs()
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token == "--":
            parsed.positionals.extend(tokens[index + 1 :])
            break
        prefix, body = split_prefix(token)
        if prefix in ("-", "--") and body:
            name, sep, value = body.partition("=")
            spec = find_flag(name, flags)
            if spec is None:
                msg = f"Unknown option '{token}'"
                raise UsageError(msg)
            if spec.requires_value:
                if not sep:
                    if index + 1 >= len(tokens):
                        msg = f"Option '{spec.canonical}' requires a value"
                        raise UsageError(msg)
                    index += 1
                    value = tokens[index]
            elif sep:
                msg = f"Option '{spec.canonical}' does not take a value"
                raise UsageError(msg)
            parsed.values.setdefault(spec.name, []).append(value)
        else:
            parsed.positionals.append(token)
        index += 1
    return parsed


def check_allowed(
    command: str,
    parsed: ParsedArgs,
    flags: Sequence[FlagSpec] = FLAGS,
) -> None:
    """Enforce the command's allow-list and reject leftovers and repeats.

    Raises:
        UsageError: If anything parsed is not accepted by ``command``
    """
    allowed = {spec.name for spec in allowed_flags(command, flags)}
    unsupported = [name for name in parsed.values if name not in allowed]
    if unsupported:
        names = ", ".join(f"--{name}" for name in unsupported)
        plural = "s" if len(unsupported) > 1 else ""
        msg = (
            f"Invalid command format. Option{plural} '{names}' not supported "
            f"with '{command}'. Use 'help' for more information."
        )
        raise UsageError(msg)
    if parsed.positionals:
        msg = f"Found unsupported arguments: {', '.join(parsed.positionals)}"
        raise UsageError(msg)
    for name, values in parsed.values.items():
        if len(values) > 1:
            msg = f"Option '--{name}' may only be given once"
            raise UsageError(msg)


def parse_tag_edit_list(raw: str) -> tuple[list[Tag], list[Tag]]:
    """Split a tag list into tags to add and tags to remove.

    Entries are separated by ``,`` and trimmed; a leading ``-`` marks a
    removal.  Order is preserved and duplicates are kept.

    Raises:
        UsageError: If an entry is empty or not a valid tag name
    """
    add: list[Tag] = []
    remove: list[Tag] = []
    for entry in raw.split(TAG_SEPARATOR):
        name = entry.strip()
        target = add
        if name.startswith(TAG_REMOVE_PREFIX):
            name = name[len(TAG_REMOVE_PREFIX) :].strip()
            target = remove
        if not name:
            msg = f"'{entry}' is not a valid tag name!"
            raise UsageError(msg)
        try:
            target.append(Tag(name))
        except ValueError as e:
            raise UsageError(str(e)) from e
    return add, remove


def parse_add_tags(raw: str | None) -> list[Tag]:
    """Parse the tag list given to ``add``; removals are not allowed."""
    if raw is None:
        return []
    add, remove = parse_tag_edit_list(raw)
    if remove:
        msg = "Cannot remove tags when adding a new issue!"
        raise UsageError(msg)
    return add


def build_filters(
    tag: str | None = None,
    user: str | None = None,
    state: str | None = None,
) -> list[FilterValue]:
    """Build the filter list for ``list`` from its flag values.

    Without a state flag an open-state filter is added; ``all`` adds no
    state filter at all.

    Raises:
        UsageError: On removal syntax, empty values or an unknown state
    """
    filters: list[FilterValue] = []
    if tag is not None:
        add, remove = parse_tag_edit_list(tag)
        if remove:
            msg = "Cannot remove tags when listing issues!"
            raise UsageError(msg)
        filters.append(FilterValue.tags(add))
    if user is not None:
        if not user.strip():
            msg = "No user to filter for provided"
            raise UsageError(msg)
        filters.append(FilterValue.user(user.strip()))
    if state is None:
        filters.append(FilterValue.state(IssueState.OPEN))
    else:
        value = state.strip().lower()
        if value not in STATE_VALUES:
            msg = f"Invalid state '{state}'. Use one of: {'|'.join(STATE_VALUES)}"
            raise UsageError(msg)
        if value != STATE_ALL:
            filters.append(FilterValue.state(IssueState.parse(value)))
    return filters


def _validate_values(invocation: Invocation) -> None:
    """Parse flag values so bad input fails before dispatch.

    The parsed values are discarded; the command re-reads the canonical
    options it receives.
    """
    options = invocation.options
    if invocation.command == "add":
        if not options["title"].strip():
            msg = "Title is required for adding a new issue!"
            raise UsageError(msg)
        parse_add_tags(options.get("tag"))
    elif invocation.command == "edit":
        parse_tag_edit_list(options["tag"])
    elif invocation.command == "comment":
        if not options["message"].strip():
            msg = "Message is required to comment on an issue!"
            raise UsageError(msg)
    elif invocation.command == "list":
        build_filters(
            options.get("tag"),
            options.get("user"),
            options.get("state"),
        )


def resolve(
    tokens: Sequence[str],
    flags: Sequence[FlagSpec] = FLAGS,
) -> Invocation:
    """Resolve raw command-line tokens into a validated ``Invocation``.

    Raises:
        UsageError: If the tokens do not form a valid command
    """
    if not tokens:
        return Invocation("help")

    expanded = expand_shorthand(tokens)
    first = expanded[0]
    if first.lower() in HELP_TOKENS:
        return Invocation("help")

    command = first.lower()
    spec = COMMANDS.get(command)
    if spec is None:
        msg = f"Unknown command '{first}'. Use 'help' for more information."
        raise UsageError(msg)

    normalized = normalize_tokens(expanded, flags, skip=2 if spec.needs_id else 1)
    rest = normalized[1:]

    if command == "init":
        if rest:
            msg = "Invalid argument for 'init': it takes no arguments"
            raise UsageError(msg)
        return Invocation("init")

    issue_id = None
    if spec.needs_id:
        if not rest:
            msg = f"Command '{command}' requires a second argument (int:issueId)"
            raise UsageError(msg)
        issue_id = parse_issue_id(rest[0])
        if issue_id is None:
            msg = f"'{rest[0]}' is not a valid issue identifier (must be int >= 1)!"
            raise UsageError(msg)
        rest = rest[1:]

    parsed = parse_tokens(rest, flags)
    check_allowed(command, parsed, flags)

    json_output = parsed.values.pop("json", None) is not None
    options = {name: values[0] for name, values in parsed.values.items()}
    for name in spec.required:
        if name not in options:
            msg = f"Option '--{name}' is required for '{command}'"
            raise UsageError(msg)

    invocation = Invocation(
        command=command,
        issue_id=issue_id,
        options=options,
        json_output=json_output,
    )
    _validate_values(invocation)
    return invocation


def ensure_dispatchable(invocation: Invocation, root: str | Path) -> None:
    """Check that the project exists for every command except init and help.

    Raises:
        NotInitializedError: If ``root`` is not an initialized project
    """
    if invocation.command in ("init", "help"):
        return
    if not is_project(root):
        raise NotInitializedError(Path(root).resolve())


def command_table(flags: Sequence[FlagSpec] = FLAGS) -> list[tuple[str, str, str]]:
    """Rows of (command, id requirement, accepted options) for help output."""
    return [
        (
            spec.name,
            "ID" if spec.needs_id else "",
            ", ".join(
                f.canonical for f in allowed_flags(spec.name, flags) if f.name != "json"
            ),
        )
        for spec in COMMANDS.values()
    ]
