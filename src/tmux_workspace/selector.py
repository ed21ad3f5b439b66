"""Open-workspace and list-sessions flows."""

from __future__ import annotations

from typing import Callable

from loguru import logger

from .errors import Result, TmuxNotRunningError, WorkspaceError
from .logging_config import new_trace_id
from .models import NEW_PROJECT, NEW_PROJECT_DISPLAY, PickerEntry, SessionOutcome, Workspace
from .picker import Picker
from .scan_dirs import DEFAULT_MAX_WORKERS, scan_workspace
from .tmux import PathPrompt, TmuxController

NOT_RUNNING_MESSAGE = "Tmux is not running or not in a tmux session"


def _require_tmux(controller: TmuxController) -> None:
    if not controller.is_running():
        raise TmuxNotRunningError(NOT_RUNNING_MESSAGE)


def build_entries(workspace: Workspace, max_workers: int = DEFAULT_MAX_WORKERS) -> list[PickerEntry]:
    """Scan the workspace and build picker entries, "Create new project" first."""
    options = workspace.options
    candidates = scan_workspace(
        workspace.path,
        search_git_subfolders=options.search_git_subfolders,
        max_depth=options.max_depth,
        markers=options.markers,
        max_workers=max_workers,
    )

    entries = [PickerEntry(value=NEW_PROJECT, display=NEW_PROJECT_DISPLAY)]
    entries.extend(PickerEntry(value=c.path, display=c.display) for c in candidates)
    return entries


def open_workspace(
    workspace: Workspace,
    controller: TmuxController,
    picker: Picker,
    path_prompt: PathPrompt | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> SessionOutcome:
    """
    Pick a project in a workspace, then create or attach its session.

    Raises:
        TmuxNotRunningError: before any scan when not inside tmux
        DiscoveryError: workspace root missing or unreadable
        SessionOpError: a tmux command failed or timed out
    """
    _require_tmux(controller)

    entries = build_entries(workspace, max_workers=max_workers)
    logger.debug(
        "Presenting projects",
        operation="open_workspace",
        status="picking",
        workspace=workspace.name,
        metrics={"entries": len(entries)}
    )

    selection = picker.pick(
        entries,
        title=workspace.name,
        prompt=f"Search in {workspace.name} workspace",
    )
    if selection is None:
        logger.debug(
            "No project selected",
            operation="open_workspace",
            status="cancelled",
            workspace=workspace.name
        )
        return SessionOutcome.CANCELLED

    return controller.manage_session(selection, workspace, path_prompt)


def list_and_attach(controller: TmuxController, picker: Picker) -> SessionOutcome:
    """Pick an existing tmux session and switch to it."""
    _require_tmux(controller)

    sessions = controller.list_sessions()
    entries = [PickerEntry(value=name, display=name) for name in sessions]

    selection = picker.pick(entries, title="Tmux Sessions", prompt="Select a Tmux session")
    if selection is None:
        logger.debug(
            "No session selected",
            operation="list_and_attach",
            status="cancelled"
        )
        return SessionOutcome.CANCELLED

    controller.attach(selection)
    return SessionOutcome.ATTACHED_EXISTING


def run_action(action: str, func: Callable[[], SessionOutcome]) -> Result[SessionOutcome]:
    """
    Entry-point boundary: run one user action and convert errors to a Result.

    Every WorkspaceError is logged once and turned into a single message.
    Nothing is retried.
    """
    op_trace_id = new_trace_id()
    logger.info(
        "Action started",
        operation=action,
        status="started",
        trace_id=op_trace_id
    )

    try:
        outcome = func()
    except WorkspaceError as e:
        error = e.to_error()
        logger.error(
            "Action failed",
            operation=action,
            status="failed",
            trace_id=op_trace_id,
            error_type=error.error_type.value,
            error=error.message,
            **error.context
        )
        return Result.err(error)
    except KeyboardInterrupt:
        logger.info(
            "Action interrupted",
            operation=action,
            status="cancelled",
            trace_id=op_trace_id
        )
        return Result.ok(SessionOutcome.CANCELLED)

    logger.info(
        "Action complete",
        operation=action,
        status=outcome.value,
        trace_id=op_trace_id
    )
    return Result.ok(outcome)
