"""Project discovery inside a workspace root."""

from __future__ import annotations

import os
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable
from uuid import uuid4

from loguru import logger

from .errors import DiscoveryError, NoSuchWorkspaceError
from .models import DEFAULT_MARKERS, DEFAULT_MAX_DEPTH, ProjectCandidate
from .path_utils import collapse_home, normalize_path

DEFAULT_MAX_WORKERS = 8

# =============================================================================
# Directory Discovery
# =============================================================================


def list_child_directories(root: str) -> list[str]:
    """
    List the immediate child directories of a workspace root.

    Every visible child directory is a candidate, version-controlled or
    not. Hidden entries (".git", ".venv") are skipped.

    Args:
        root: Absolute path of the workspace root

    Returns:
        Absolute child directory paths (enumeration order)

    Raises:
        NoSuchWorkspaceError: root does not exist or is not a directory
        DiscoveryError: root exists but cannot be read
    """
    if not os.path.isdir(root):
        raise NoSuchWorkspaceError(
            f"Workspace path does not exist or is not a directory: {root}",
            root=root
        )

    try:
        with os.scandir(root) as entries:
            return [
                os.path.join(root, entry.name)
                for entry in entries
                if not entry.name.startswith(".")
                and _is_dir(entry, follow_symlinks=True)
            ]
    except OSError as e:
        raise DiscoveryError(
            f"Cannot read workspace {root}: {e.strerror or e}",
            root=root,
            exception=type(e).__name__
        ) from e


def _is_dir(entry: os.DirEntry, follow_symlinks: bool) -> bool:
    try:
        return entry.is_dir(follow_symlinks=follow_symlinks)
    except OSError:
        return False


def has_marker(path: str, markers: Iterable[str] = DEFAULT_MARKERS) -> bool:
    """Check whether path directly contains a version-control marker directory."""
    return any(os.path.isdir(os.path.join(path, marker)) for marker in markers)


def find_vcs_directories(
    start: str,
    max_depth: int = DEFAULT_MAX_DEPTH,
    markers: tuple[str, ...] = DEFAULT_MARKERS,
) -> list[str]:
    """
    Depth-first search below ``start`` for directories holding a marker.

    Visits levels 1..max_depth below start. Marker directories themselves
    are never entered and symlinked directories are not followed. A
    subdirectory that cannot be read is logged and skipped.

    Args:
        start: Directory to search below (not itself a result)
        max_depth: Number of levels below start to visit
        markers: Marker directory names (e.g. ".git")

    Returns:
        Fresh list of matching absolute paths
    """
    return _walk(start, 1, max_depth, markers)


def _walk(path: str, depth: int, max_depth: int,
          markers: tuple[str, ...]) -> list[str]:
    if depth > max_depth:
        return []

    try:
        with os.scandir(path) as it:
            children = [
                entry.path for entry in it
                if entry.name not in (".", "..")
                and entry.name not in markers
                and _is_dir(entry, follow_symlinks=False)
            ]
    except OSError as e:
        logger.warning(
            "Skipping unreadable directory",
            operation="find_vcs_directories",
            status="skip",
            path=path,
            error=str(e),
            error_type=type(e).__name__
        )
        return []

    found = []
    for child in sorted(children):
        if has_marker(child, markers):
            found.append(child)
        found.extend(_walk(child, depth + 1, max_depth, markers))
    return found


def dedupe_and_sort(paths: Iterable[str]) -> list[str]:
    """Normalize, drop duplicate absolute paths and sort lexicographically."""
    return sorted({normalize_path(p) for p in paths})


def scan_workspace(
    root: str,
    search_git_subfolders: bool = False,
    max_depth: int = DEFAULT_MAX_DEPTH,
    markers: tuple[str, ...] = DEFAULT_MARKERS,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[ProjectCandidate]:
    """
    Discover project candidates inside a workspace root.

    Subtree searches run per base-level child on a bounded thread pool;
    results are merged, deduplicated and sorted so the output does not
    depend on scheduling.

    Args:
        root: Workspace root (may contain ~)
        search_git_subfolders: Also search below each child for marker dirs
        max_depth: Levels below each child to search (0 disables recursion)
        markers: Marker directory names
        max_workers: Thread pool bound for subtree searches

    Returns:
        Sorted, deduplicated ProjectCandidate list
    """
    start_time = time.perf_counter()
    op_trace_id = str(uuid4())
    root = normalize_path(root)

    logger.debug(
        "Starting workspace scan",
        operation="scan_workspace",
        status="started",
        trace_id=op_trace_id,
        root=root,
        search_git_subfolders=search_git_subfolders,
        max_depth=max_depth
    )

    children = list_child_directories(root)
    paths = list(children)

    if search_git_subfolders and max_depth > 0 and children:
        workers = max(1, min(max_workers, len(children)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            for nested in pool.map(
                lambda child: find_vcs_directories(child, max_depth, markers),
                children
            ):
                paths.extend(nested)

    unique = dedupe_and_sort(paths)
    candidates = [ProjectCandidate(path=p, display=collapse_home(p)) for p in unique]

    duration_ms = int((time.perf_counter() - start_time) * 1000)
    logger.debug(
        "Workspace scan complete",
        operation="scan_workspace",
        status="success",
        trace_id=op_trace_id,
        root=root,
        metrics={
            "base_dirs": len(children),
            "candidates": len(candidates),
            "duplicates_removed": len(paths) - len(unique),
            "duration_ms": duration_ms
        }
    )

    return candidates
