"""
Directory tree listing for codenav.

Renders a bounded-depth, depth-first view of a directory with box-drawing
connectors. Hidden entries and dependency/version-control directories are
skipped, and only source files with the target extension are shown.
"""

import locale
import os
from pathlib import Path
from typing import List, Tuple, Union
import logging

from ..errors import DirectoryReadError


logger = logging.getLogger(__name__)

EXCLUDED_NAMES = frozenset({"node_modules", "vendor", ".git"})
HIDDEN_PREFIX = "."

BRANCH = "├── "
LAST_BRANCH = "└── "
PIPE_PREFIX = "│   "
SPACE_PREFIX = "    "


def _sort_key(name: str) -> Tuple[str, str]:
    return (locale.strxfrm(name.casefold()), name)


def is_excluded(name: str) -> bool:
    """Check if a directory entry is hidden or a dependency/VCS directory."""
    return name.startswith(HIDDEN_PREFIX) or name in EXCLUDED_NAMES


def _list_entries(dir_path: Path, extension: str) -> List[Tuple[str, bool]]:
    """
    List the visible entries of one directory.

    Returns:
        (name, is_directory) pairs, directories first, each group sorted by name

    Raises:
        DirectoryReadError: If the directory cannot be listed
    """
    directories = []
    files = []

    try:
        with os.scandir(dir_path) as it:
            for entry in it:
                if is_excluded(entry.name):
                    continue
                if entry.is_dir(follow_symlinks=False):
                    directories.append(entry.name)
                elif entry.name.endswith(extension):
                    files.append(entry.name)
    except OSError as e:
        logger.error(f"Cannot list directory {dir_path}: {e}")
        raise DirectoryReadError(str(dir_path), e) from e

    directories.sort(key=_sort_key)
    files.sort(key=_sort_key)

    return [(name, True) for name in directories] + [(name, False) for name in files]


def list_directory_structure(
    dir_path: Union[str, Path],
    max_depth: int = 2,
    extension: str = ".php",
    current_depth: int = 0,
    prefix: str = "",
) -> str:
    """
    List directory structure up to a specified depth.

    Args:
        dir_path: The directory to list
        max_depth: Maximum depth to traverse (1 lists immediate children only)
        extension: Only files with this extension are shown
        current_depth: Current depth (internal use)
        prefix: Line prefix for this level (internal use)

    Returns:
        Formatted directory tree, or an empty string if nothing is shown

    Raises:
        DirectoryReadError: If any directory in the tree cannot be listed
    """
    if current_depth >= max_depth:
        return ""

    dir_path = Path(dir_path)
    entries = _list_entries(dir_path, extension)
    lines = []

    for i, (name, is_dir) in enumerate(entries):
        is_last = i == len(entries) - 1
        connector = LAST_BRANCH if is_last else BRANCH

        if is_dir:
            lines.append(f"{prefix}{connector}{name}/")

            child_prefix = prefix + (SPACE_PREFIX if is_last else PIPE_PREFIX)
            sub_tree = list_directory_structure(
                dir_path / name,
                max_depth=max_depth,
                extension=extension,
                current_depth=current_depth + 1,
                prefix=child_prefix,
            )
            if sub_tree:
                lines.append(sub_tree)
        else:
            lines.append(f"{prefix}{connector}{name}")

    return "\n".join(lines)
