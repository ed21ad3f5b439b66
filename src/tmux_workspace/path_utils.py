"""Path helpers shared by discovery, display and session code."""

from __future__ import annotations

import os

# =============================================================================
# Path Utilities
# =============================================================================
# Filesystem and tmux operations always use the expanded absolute form.
# collapse_home() output is for display only.

HOME_SHORTHAND = "~"


def expand_home(path: str) -> str:
    """Expand a leading ~ to the user's home directory.

    Args:
        path: Raw path string (may start with ~).

    Returns:
        Path with ~ expanded. Other paths are returned unchanged.
    """
    return os.path.expanduser(path)


def collapse_home(path: str, home: str | None = None) -> str:
    """Replace the home directory prefix with ~ for display.

    A path that does not lie under home is returned unchanged. A sibling
    such as /home/alicex is not treated as being under /home/alice.

    Args:
        path: Absolute path.
        home: Home directory override (defaults to the current user's).

    Returns:
        Display form of the path.
    """
    home = (home or os.path.expanduser(HOME_SHORTHAND)).rstrip(os.sep)
    if not home:
        return path
    if path == home:
        return HOME_SHORTHAND
    if path.startswith(home + os.sep):
        return HOME_SHORTHAND + path[len(home):]
    return path


def normalize_path(path: str) -> str:
    """Expand ~, make absolute and strip trailing separators.

    Symlinks are preserved so the displayed path matches what the user
    configured. Use this for dedup keys.
    """
    return os.path.abspath(expand_home(path))


def project_basename(path: str) -> str:
    """Return the last path component, ignoring trailing separators."""
    stripped = path.rstrip(os.sep)
    return os.path.basename(stripped) if stripped else path
