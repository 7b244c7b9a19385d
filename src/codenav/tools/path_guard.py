"""
Path containment checks for codenav.

Every caller-supplied path is validated here before any filesystem access: it
must be relative, must not climb above the root after normalization, and its
canonical form must lie under the canonical root.
"""

import os
from pathlib import Path
from typing import Union
import logging

from ..errors import InvalidPathError


logger = logging.getLogger(__name__)


def _canonical(path: Union[str, Path]) -> Path:
    """Resolve symlinks and normalize case the same way for every path."""
    return Path(os.path.normcase(str(Path(path).resolve())))


def normalize_relative(candidate: str) -> str:
    """
    Normalize a relative path without touching the filesystem.

    Args:
        candidate: Caller-supplied path, relative to the root

    Returns:
        The normalized path ('.' for the root itself)

    Raises:
        InvalidPathError: If the path is absolute or escapes upward
    """
    if candidate is None:
        candidate = ""

    if "\x00" in candidate:
        raise InvalidPathError(candidate, "contains a NUL byte")

    if os.path.isabs(candidate) or candidate.startswith(('/', '\\')):
        raise InvalidPathError(candidate, "must be relative to the root")

    normalized = os.path.normpath(candidate or ".")

    if os.path.isabs(normalized):
        raise InvalidPathError(candidate, "must be relative to the root")

    first = Path(normalized).parts[0] if Path(normalized).parts else "."
    if first == "..":
        raise InvalidPathError(candidate, "path traversal detected")

    return normalized


def is_within_root(root: Union[str, Path], path: Union[str, Path]) -> bool:
    """
    Check if a path's canonical form is the root or lies below it.

    Args:
        root: The configured root directory
        path: Absolute path, or path relative to the root

    Returns:
        True if the path is contained in the root
    """
    try:
        root_path = _canonical(root)
        check_path = _canonical(Path(root) / path)
    except (OSError, RuntimeError, ValueError):
        return False

    try:
        check_path.relative_to(root_path)
        return True
    except ValueError:
        return False


def resolve_safe(root: Union[str, Path], candidate: str) -> Path:
    """
    Resolve a caller-supplied relative path against the root.

    Args:
        root: The configured root directory
        candidate: Path relative to the root

    Returns:
        Canonical absolute path of the candidate

    Raises:
        InvalidPathError: If the candidate is absolute, escapes upward, or
            resolves (e.g. through a symlink) outside the root
    """
    normalized = normalize_relative(candidate)

    try:
        root_path = _canonical(root)
        resolved = _canonical(Path(root) / normalized)
    except (OSError, RuntimeError, ValueError) as e:
        raise InvalidPathError(candidate, f"cannot be resolved: {e}") from e

    try:
        resolved.relative_to(root_path)
    except ValueError:
        logger.warning(f"Rejected path outside root: {candidate} -> {resolved}")
        raise InvalidPathError(candidate, "path traversal detected") from None

    return resolved
