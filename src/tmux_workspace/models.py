"""Data structures shared across tmux-workspace modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# Picker value of the synthetic "Create new project" entry
NEW_PROJECT = "newProject"
NEW_PROJECT_DISPLAY = "Create new project"

DEFAULT_MAX_DEPTH = 2
DEFAULT_MARKERS = (".git",)


@dataclass(frozen=True)
class WorkspaceOptions:
    """Discovery options for one workspace.

    An omitted opts block and search_git_subfolders = false are the same
    state: no recursion.
    """
    search_git_subfolders: bool = False
    max_depth: int = DEFAULT_MAX_DEPTH
    markers: tuple[str, ...] = DEFAULT_MARKERS


@dataclass(frozen=True)
class Workspace:
    """A configured root directory grouping projects, bound to one key."""
    name: str
    path: str
    keymap: str
    options: WorkspaceOptions = field(default_factory=WorkspaceOptions)
    description: str | None = None

    @property
    def desc(self) -> str:
        return self.description or f"Open workspace {self.name}"


@dataclass(frozen=True)
class ProjectCandidate:
    """A directory offered in the picker. ``path`` is always absolute."""
    path: str
    display: str


@dataclass(frozen=True)
class PickerEntry:
    value: str
    display: str


class SessionOutcome(Enum):
    ATTACHED_NEW = "attached_new"
    ATTACHED_EXISTING = "attached_existing"
    CANCELLED = "cancelled"
