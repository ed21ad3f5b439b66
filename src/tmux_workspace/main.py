"""
tmux-workspace command line entry point.

Usage:
    tmux-workspace open KEY_OR_NAME   # pick a project in a workspace
    tmux-workspace sessions           # pick an existing tmux session
    tmux-workspace bindings           # print bind-key lines for tmux.conf

Configuration: workspaces.toml in the platform config dir
(~/.config/tmux-workspace/ on Linux), or $TMUX_WORKSPACE_CONFIG.
"""

from __future__ import annotations

import argparse
import shlex
import sys
from pathlib import Path

from loguru import logger

from .config_loader import TriggerRegistry, default_config_path, load_registry
from .errors import ConfigError, Result
from .logging_config import setup_logger
from .picker import FzfPicker, TerminalPathPrompt
from .selector import list_and_attach, open_workspace, run_action
from .tmux import TmuxController

PROG = "tmux-workspace"
DEFAULT_SESSIONS_KEY = "S"
POPUP_ARGS = ("-E", "-w", "80%", "-h", "60%")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Open tmux sessions for projects in your workspaces."
    )
    parser.add_argument("--config", type=Path, help="Path to workspaces.toml")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output to stderr")

    sub = parser.add_subparsers(dest="command", required=True)

    open_parser = sub.add_parser("open", help="Pick a project and open its session")
    open_parser.add_argument("workspace", help="Workspace keymap or name")

    sub.add_parser("sessions", help="Pick an existing session and attach")

    bindings = sub.add_parser("bindings", help="Print tmux bind-key lines for every workspace")
    bindings.add_argument(
        "--sessions-key",
        default=DEFAULT_SESSIONS_KEY,
        help=f"Key for the session list (default: {DEFAULT_SESSIONS_KEY})"
    )
    return parser


def make_controller(registry: TriggerRegistry | None) -> TmuxController:
    if registry is None:
        return TmuxController()
    return TmuxController(timeout=registry.timeout, name_generator=registry.name_generator)


def render_bindings(registry: TriggerRegistry, sessions_key: str = DEFAULT_SESSIONS_KEY) -> list[str]:
    """One popup bind-key line per workspace plus the global session list."""
    popup = " ".join(POPUP_ARGS)
    lines = []
    for key, workspace in registry.workspaces.items():
        command = shlex.quote(f"{PROG} open {shlex.quote(key)}")
        lines.append(f"# {workspace.desc}")
        lines.append(f"bind-key {shlex.quote(key)} display-popup {popup} {command}")
    lines.append("# List tmux sessions")
    lines.append(
        f"bind-key {shlex.quote(sessions_key)} display-popup {popup} "
        f"{shlex.quote(f'{PROG} sessions')}"
    )
    return lines


def _report(result: Result) -> int:
    if result.is_err():
        sys.stderr.write(f"{PROG}: {result.error.message}\n")
        return 1
    return 0


def _load_optional_registry(config_path: Path | None) -> TriggerRegistry | None:
    """The session list works without a config file; a broken one still fails."""
    path = config_path or default_config_path()
    if not path.exists():
        return None
    return load_registry(path)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logger(verbose=args.verbose)

    picker = FzfPicker()

    if args.command == "sessions":
        try:
            registry = _load_optional_registry(args.config)
        except ConfigError as e:
            return _report(Result.err(e.to_error()))
        controller = make_controller(registry)
        return _report(run_action("list_and_attach", lambda: list_and_attach(controller, picker)))

    try:
        registry = load_registry(args.config)
    except ConfigError as e:
        return _report(Result.err(e.to_error()))

    if args.command == "bindings":
        sys.stdout.write("\n".join(render_bindings(registry, args.sessions_key)) + "\n")
        return 0

    workspace = registry.find(args.workspace)
    if workspace is None:
        logger.error(
            "Unknown workspace",
            operation="main",
            status="failed",
            workspace=args.workspace
        )
        sys.stderr.write(f"{PROG}: no workspace bound to '{args.workspace}'\n")
        return 1

    controller = make_controller(registry)
    return _report(run_action(
        "open_workspace",
        lambda: open_workspace(
            workspace,
            controller,
            picker,
            path_prompt=TerminalPathPrompt(),
            max_workers=registry.max_workers,
        )
    ))


if __name__ == "__main__":
    sys.exit(main())
