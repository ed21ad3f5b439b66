"""Tests for workspace project discovery."""

import os

import pytest
from loguru import logger

from tmux_workspace import scan_dirs
from tmux_workspace.errors import DiscoveryError, NoSuchWorkspaceError
from tmux_workspace.scan_dirs import (
    dedupe_and_sort,
    find_vcs_directories,
    scan_workspace,
)


def _paths(candidates):
    return [c.path for c in candidates]


# ============================================================================
# Base listing
# ============================================================================


def test_without_recursion_returns_exactly_immediate_children(workspace_root):
    candidates = scan_workspace(str(workspace_root))

    assert _paths(candidates) == [
        str(workspace_root / "alpha"),
        str(workspace_root / "beta"),
        str(workspace_root / "gamma"),
    ]
    assert all(os.path.isabs(p) for p in _paths(candidates))


def test_hidden_children_are_not_candidates(workspace_root):
    # workspace root that is itself a repo
    (workspace_root / ".git").mkdir()
    (workspace_root / ".venv").mkdir()

    paths = _paths(scan_workspace(str(workspace_root), search_git_subfolders=True))

    assert str(workspace_root / ".git") not in paths
    assert str(workspace_root / ".venv") not in paths
    assert str(workspace_root / "alpha") in paths


def test_recurse_flag_with_zero_depth_adds_nothing(workspace_root):
    candidates = scan_workspace(str(workspace_root), search_git_subfolders=True, max_depth=0)
    assert len(candidates) == 3
    assert str(workspace_root / "beta" / "nested") not in _paths(candidates)


def test_expands_home_and_collapses_display(tmp_path, monkeypatch, workspace_root):
    monkeypatch.setenv("HOME", str(tmp_path))

    candidates = scan_workspace("~/Projects")

    assert candidates[0].path == str(workspace_root / "alpha")
    assert candidates[0].display == "~/Projects/alpha"


def test_missing_root_is_hard_error(tmp_path):
    with pytest.raises(NoSuchWorkspaceError):
        scan_workspace(str(tmp_path / "nope"))


def test_file_root_is_hard_error(tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("x")
    with pytest.raises(NoSuchWorkspaceError):
        scan_workspace(str(target))


def test_unreadable_root_is_discovery_error(workspace_root, monkeypatch):
    def deny(path):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(scan_dirs.os, "scandir", deny)

    with pytest.raises(DiscoveryError) as exc_info:
        scan_workspace(str(workspace_root))
    assert not isinstance(exc_info.value, NoSuchWorkspaceError)


# ============================================================================
# Recursive phase
# ============================================================================


def test_nested_git_directory_found_with_depth_two(workspace_root):
    candidates = scan_workspace(str(workspace_root), search_git_subfolders=True, max_depth=2)
    paths = _paths(candidates)

    assert str(workspace_root / "beta" / "nested") in paths
    assert str(workspace_root / "beta" / "nested" / "deeper") in paths


def test_depth_one_stops_before_second_level(workspace_root):
    paths = _paths(scan_workspace(str(workspace_root), search_git_subfolders=True, max_depth=1))

    assert str(workspace_root / "beta" / "nested") in paths
    assert str(workspace_root / "beta" / "nested" / "deeper") not in paths


def test_recursion_disabled_ignores_nested_repos(workspace_root):
    paths = _paths(scan_workspace(str(workspace_root), search_git_subfolders=False, max_depth=2))
    assert str(workspace_root / "beta" / "nested") not in paths


def test_never_enters_marker_directory(workspace_root):
    # A repo-looking directory inside .git must never be reported
    (workspace_root / "alpha" / ".git" / "modules" / ".git").mkdir(parents=True)

    paths = _paths(scan_workspace(str(workspace_root), search_git_subfolders=True, max_depth=3))

    assert not any(os.sep + ".git" + os.sep in p for p in paths)


def test_results_are_unique_and_within_depth(workspace_root):
    (workspace_root / "gamma" / "a" / "b" / "c" / ".git").mkdir(parents=True)
    max_depth = 2

    candidates = scan_workspace(str(workspace_root), search_git_subfolders=True, max_depth=max_depth)
    paths = _paths(candidates)

    assert len(paths) == len(set(paths))
    for path in paths:
        relative = os.path.relpath(path, workspace_root).split(os.sep)
        # first component is the base child, the rest is depth below it
        assert len(relative) - 1 <= max_depth
    assert str(workspace_root / "gamma" / "a" / "b" / "c") not in paths


def test_non_repo_intermediate_directories_are_searched(workspace_root):
    (workspace_root / "gamma" / "group" / "service" / ".git").mkdir(parents=True)

    paths = _paths(scan_workspace(str(workspace_root), search_git_subfolders=True, max_depth=2))

    assert str(workspace_root / "gamma" / "group" / "service") in paths
    assert str(workspace_root / "gamma" / "group") not in paths


def test_output_is_sorted_and_stable(workspace_root):
    first = scan_workspace(str(workspace_root), search_git_subfolders=True, max_workers=4)
    second = scan_workspace(str(workspace_root), search_git_subfolders=True, max_workers=1)

    assert first == second
    assert _paths(first) == sorted(_paths(first))


def test_permission_error_in_subtree_is_skipped(workspace_root, monkeypatch):
    blocked = str(workspace_root / "beta")
    real_scandir = os.scandir

    def guarded(path):
        if str(path) == blocked:
            raise PermissionError(13, "Permission denied", str(path))
        return real_scandir(path)

    monkeypatch.setattr(scan_dirs.os, "scandir", guarded)
    warnings = []
    logger.add(lambda message: warnings.append(message.record), level="WARNING")

    paths = _paths(scan_workspace(str(workspace_root), search_git_subfolders=True, max_depth=2))

    assert blocked in paths
    assert str(workspace_root / "beta" / "nested") not in paths
    assert str(workspace_root / "alpha") in paths
    assert [r["extra"]["path"] for r in warnings] == [blocked]
    assert warnings[0]["extra"]["status"] == "skip"


def test_symlinked_directories_are_not_followed(tmp_path):
    outside = tmp_path / "outside" / "repo"
    (outside / ".git").mkdir(parents=True)
    start = tmp_path / "start"
    start.mkdir()
    (start / "link").symlink_to(tmp_path / "outside", target_is_directory=True)

    assert find_vcs_directories(str(start), max_depth=3) == []


def test_find_vcs_directories_returns_fresh_list(workspace_root):
    start = str(workspace_root / "beta")
    first = find_vcs_directories(start, max_depth=2)
    first.append("sentinel")

    assert "sentinel" not in find_vcs_directories(start, max_depth=2)


def test_custom_markers(tmp_path):
    (tmp_path / "child" / "hgrepo" / ".hg").mkdir(parents=True)

    assert find_vcs_directories(str(tmp_path / "child"), markers=(".git",)) == []
    assert find_vcs_directories(str(tmp_path / "child"), markers=(".git", ".hg")) == [
        str(tmp_path / "child" / "hgrepo")
    ]


# ============================================================================
# Dedupe / sort
# ============================================================================


def test_dedupe_and_sort():
    assert dedupe_and_sort(["/w/b/", "/w/a", "/w/b", "/w/./a"]) == ["/w/a", "/w/b"]


def test_candidates_sorted_by_path_string(workspace_root):
    candidates = scan_workspace(str(workspace_root))

    assert _paths(candidates) == dedupe_and_sort(_paths(candidates))
    with pytest.raises(TypeError):
        candidates[0] < candidates[1]
