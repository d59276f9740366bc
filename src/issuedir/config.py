"""Project marker handling for issuedir."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

from issuedir.constants import DEFAULT_TITLE_LIMIT, MARKER_FILENAME

logger = logging.getLogger(__name__)


@dataclass
class ProjectConfig:
    """Settings stored in the project marker file."""

    owner: str
    title_limit: int = DEFAULT_TITLE_LIMIT

    def to_dict(self) -> dict[str, Any]:
        return {"owner": self.owner, "title_limit": self.title_limit}


def get_marker_path(root: str | Path) -> Path:
    """Get the path to the project marker file.

    Args:
        root: Project root directory

    Returns:
        Path to the marker file
    """
    return Path(root) / MARKER_FILENAME


def is_project(root: str | Path) -> bool:
    """Check whether ``root`` holds a project marker."""
    return get_marker_path(root).is_file()


def _parse_title_limit(raw: Any, marker: Path) -> int:
    """Validate the title limit, falling back to the default with a warning."""
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 1:
        if raw is None:
            logger.warning(
                "%s has no title_limit; using %d",
                marker,
                DEFAULT_TITLE_LIMIT,
            )
        else:
            logger.warning(
                "%s has invalid title_limit %r; using %d",
                marker,
                raw,
                DEFAULT_TITLE_LIMIT,
            )
        return DEFAULT_TITLE_LIMIT
    return raw


def load_config(root: str | Path) -> ProjectConfig:
    """Load the project configuration from the marker file.

    A marker that cannot be parsed still marks the directory as a project;
    its values fall back to defaults.

    Args:
        root: Project root directory

    Returns:
        The parsed configuration
    """
    marker = get_marker_path(root)
    try:
        with marker.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        logger.warning("Could not parse %s (%s); using defaults", marker, e)
        data = {}

    owner = data.get("owner")
    return ProjectConfig(
        owner=owner if isinstance(owner, str) else "",
        title_limit=_parse_title_limit(data.get("title_limit"), marker),
    )


def save_config(root: str | Path, config: ProjectConfig) -> None:
    """Save the project configuration to the marker file.

    Args:
        root: Project root directory
        config: Configuration to save
    """
    marker = get_marker_path(root)
    with marker.open("wb") as f:
        tomli_w.dump(config.to_dict(), f)
