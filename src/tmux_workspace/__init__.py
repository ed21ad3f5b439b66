"""tmux-workspace: pick a project in a workspace and open its tmux session."""

from .config_loader import TriggerRegistry, setup
from .errors import (
    ConfigError,
    DiscoveryError,
    NoSuchWorkspaceError,
    PickerUnavailableError,
    SessionOpError,
    SessionTimeoutError,
    TmuxNotRunningError,
    WorkspaceError,
)
from .models import NEW_PROJECT, ProjectCandidate, SessionOutcome, Workspace, WorkspaceOptions
from .scan_dirs import scan_workspace
from .selector import list_and_attach, open_workspace
from .tmux import TmuxController

__version__ = "1.0.0"

__all__ = [
    "ConfigError",
    "DiscoveryError",
    "NEW_PROJECT",
    "NoSuchWorkspaceError",
    "PickerUnavailableError",
    "ProjectCandidate",
    "SessionOpError",
    "SessionOutcome",
    "SessionTimeoutError",
    "TmuxController",
    "TmuxNotRunningError",
    "TriggerRegistry",
    "Workspace",
    "WorkspaceError",
    "WorkspaceOptions",
    "list_and_attach",
    "open_workspace",
    "scan_workspace",
    "setup",
]
