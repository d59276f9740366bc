"""Constants for the issuedir tracker."""

from __future__ import annotations

import re

# Project marker at the project root
MARKER_FILENAME = ".issues"

# Advisory lock taken around every read-modify-write
LOCK_FILENAME = ".issues.lock"

# Per-issue files
ISSUE_FILENAME = "issue.toml"
COMMENT_FILENAME_TEMPLATE = "comment-{index:03d}.toml"

# Issue directories are named "#<id>" with a canonical decimal id
ISSUE_DIR_PREFIX = "#"
ISSUE_DIR_PATTERN = re.compile(r"^#([1-9][0-9]*)$")

# Section names inside the issue and comment files
ISSUE_SECTION = "Issue"
COMMENT_SECTION = "Comment"

# Default number of title characters shown in list output
DEFAULT_TITLE_LIMIT = 50

# Environment variable that overrides the detected author identity
USER_ENV_VAR = "ISSUEDIR_USER"

# Tag list separator and removal prefix
TAG_SEPARATOR = ","
TAG_REMOVE_PREFIX = "-"

# Values accepted by the state flag of `list`
STATE_ALL = "all"
STATE_VALUES = ("open", "closed", STATE_ALL)

# Tokens that ask for help
HELP_TOKENS = frozenset(
    {"help", "--help", "/help", "-h", "/h", "h", "?", "/?", "-?"},
)

# Color mappings for CLI display
STATE_COLORS = {
    "Open": "bright_green",
    "Closed": "bright_black",
}

STATE_SYMBOLS = {
    "Open": "●",
    "Closed": "✓",
}

# Printed after usage errors
USAGE_HINT = "Use 'issue help' for more information."
