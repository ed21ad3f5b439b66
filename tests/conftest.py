"""
Pytest configuration and fixtures
"""
from __future__ import annotations

import subprocess
from pathlib import Path

import pytest
from loguru import logger

from tmux_workspace.models import Workspace, WorkspaceOptions
from tmux_workspace.tmux import TmuxController


class FakeRunner:
    """
    Stands in for the tmux binary.

    Keeps an in-memory session list so create-then-list behaves like tmux.
    ``fail`` maps a tmux subcommand to (returncode, stderr); ``timeout``
    holds subcommands that raise TimeoutExpired.
    """

    def __init__(self, sessions=None, fail=None, timeout=(), controlling=True):
        self.sessions = list(sessions or [])
        self.fail = dict(fail or {})
        self.timeout = set(timeout)
        self.controlling = controlling
        self.calls: list[list[str]] = []

    def subcommands(self) -> list[str]:
        return [call[1] for call in self.calls]

    def count(self, subcommand: str) -> int:
        return self.subcommands().count(subcommand)

    def run(self, args, timeout):
        self.calls.append(list(args))
        sub = args[1]

        if sub in self.timeout:
            raise subprocess.TimeoutExpired(args, timeout)
        if sub in self.fail:
            code, stderr = self.fail[sub]
            return subprocess.CompletedProcess(args, code, stdout="", stderr=stderr)

        if sub == "display-message":
            if not self.controlling:
                return subprocess.CompletedProcess(args, 1, stdout="", stderr="no current client")
            return subprocess.CompletedProcess(args, 0, stdout="main\n", stderr="")
        if sub == "list-sessions":
            if not self.sessions:
                return subprocess.CompletedProcess(
                    args, 1, stdout="", stderr="no server running on /tmp/tmux-1000/default"
                )
            return subprocess.CompletedProcess(
                args, 0, stdout="".join(f"{s}\n" for s in self.sessions), stderr=""
            )
        if sub == "new-session":
            # tmux stores "." and ":" as "_"
            name = args[args.index("-s") + 1].replace(".", "_").replace(":", "_")
            if name in self.sessions:
                return subprocess.CompletedProcess(args, 1, stdout="", stderr=f"duplicate session: {name}")
            self.sessions.append(name)
            stdout = f"{name}\n" if "-P" in args else ""
            return subprocess.CompletedProcess(args, 0, stdout=stdout, stderr="")
        if sub == "switch-client":
            target = args[args.index("-t") + 1].lstrip("=")
            if target not in self.sessions:
                return subprocess.CompletedProcess(args, 1, stdout="", stderr=f"can't find session: {target}")
            return subprocess.CompletedProcess(args, 0, stdout="", stderr="")
        return subprocess.CompletedProcess(args, 1, stdout="", stderr="unknown command")


class FakePicker:
    """Returns a scripted choice and remembers what it was shown."""

    def __init__(self, choose=None):
        self.choose = choose
        self.calls = []

    def pick(self, entries, title, prompt):
        self.calls.append({"entries": list(entries), "title": title, "prompt": prompt})
        if callable(self.choose):
            return self.choose(entries)
        return self.choose


class FakePathPrompt:
    def __init__(self, answer):
        self.answer = answer
        self.prompts = []

    def ask(self, prompt):
        self.prompts.append(prompt)
        return self.answer


@pytest.fixture(autouse=True)
def quiet_logger():
    """Keep loguru output out of test runs."""
    logger.remove()
    yield
    logger.remove()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def controller(runner):
    return TmuxController(runner=runner, env={"TMUX": "/tmp/tmux-1000/default,1,0"})


@pytest.fixture
def workspace_root(tmp_path: Path) -> Path:
    """
    root/
      alpha/               (.git)
      beta/
        nested/            (.git)
          deeper/          (.git)
      gamma/
    """
    root = tmp_path / "Projects"
    (root / "alpha" / ".git").mkdir(parents=True)
    (root / "beta" / "nested" / ".git").mkdir(parents=True)
    (root / "beta" / "nested" / "deeper" / ".git").mkdir(parents=True)
    (root / "gamma").mkdir(parents=True)
    (root / "README.md").write_text("not a project\n")
    return root


@pytest.fixture
def workspace(workspace_root: Path) -> Workspace:
    return Workspace(
        name="Projects",
        path=str(workspace_root),
        keymap="o",
        options=WorkspaceOptions(search_git_subfolders=True, max_depth=2),
    )
