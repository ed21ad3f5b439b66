"""tmux session queries and mutations."""

from __future__ import annotations

import os
import subprocess
import time
from typing import Protocol

from loguru import logger

from .errors import SessionOpError, SessionTimeoutError
from .models import NEW_PROJECT, SessionOutcome, Workspace
from .path_utils import expand_home, normalize_path, project_basename

TMUX_BIN = "tmux"
DEFAULT_TIMEOUT = 5.0

# tmux stores session names with these characters replaced by "_"
_NAME_REPLACED_CHARS = (".", ":")

# tmux stderr fragments meaning "no sessions exist", not a failure
_NO_SESSIONS_MARKERS = (
    "no server running",
    "no sessions",
    "error connecting to",
)


def stored_session_name(name: str) -> str:
    """The name tmux keeps for a requested session name, e.g. A.B -> A_B."""
    for char in _NAME_REPLACED_CHARS:
        name = name.replace(char, "_")
    return name


# =============================================================================
# Strategies
# =============================================================================


class CommandRunner(Protocol):
    def run(self, args: list[str], timeout: float) -> subprocess.CompletedProcess:
        ...


class SubprocessRunner:
    """Run tmux via subprocess. Raises subprocess.TimeoutExpired on timeout."""

    def run(self, args: list[str], timeout: float) -> subprocess.CompletedProcess:
        return subprocess.run(
            args,
            capture_output=True,
            text=True,
            errors="surrogateescape",  # Non UTF-8 directory names
            timeout=timeout,
            check=False  # Non-zero exit handled by the caller
        )


class SessionNameGenerator(Protocol):
    def generate(self, project_name: str, workspace_name: str) -> str:
        ...


class UpperCaseNameGenerator:
    """Default naming: upper-case the project directory name."""

    def generate(self, project_name: str, workspace_name: str) -> str:
        return project_name.upper()


class TemplateNameGenerator:
    """Naming from a format string with {project} and {workspace} fields."""

    def __init__(self, template: str):
        self.template = template

    def generate(self, project_name: str, workspace_name: str) -> str:
        return self.template.format(project=project_name, workspace=workspace_name)


class PathPrompt(Protocol):
    def ask(self, prompt: str) -> str | None:
        ...


# =============================================================================
# Session Controller
# =============================================================================


class TmuxController:
    """
    Wraps the four tmux command categories used by tmux-workspace.

    tmux is the only source of truth: nothing about sessions is cached
    between calls.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        name_generator: SessionNameGenerator | None = None,
        env: dict[str, str] | None = None,
    ):
        self.runner = runner or SubprocessRunner()
        self.timeout = timeout
        self.name_generator = name_generator or UpperCaseNameGenerator()
        self.env = os.environ if env is None else env

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        """Run one tmux command. Failure to execute becomes SessionOpError."""
        cmd = [TMUX_BIN, *args]
        start_time = time.perf_counter()
        try:
            result = self.runner.run(cmd, timeout=self.timeout)
        except subprocess.TimeoutExpired as e:
            logger.error(
                "tmux command timed out",
                operation="tmux_run",
                status="timeout",
                command=cmd,
                timeout=self.timeout
            )
            raise SessionTimeoutError(
                f"tmux {args[0]} timed out after {self.timeout}s",
                command=cmd
            ) from e
        except OSError as e:
            logger.error(
                "tmux command could not be executed",
                operation="tmux_run",
                status="exec_error",
                command=cmd,
                error=str(e)
            )
            raise SessionOpError(f"Cannot execute tmux: {e}", command=cmd) from e

        logger.debug(
            "tmux command finished",
            operation="tmux_run",
            status="success" if result.returncode == 0 else "failed",
            command=cmd,
            returncode=result.returncode,
            metrics={"duration_ms": int((time.perf_counter() - start_time) * 1000)}
        )
        return result

    def _check(self, result: subprocess.CompletedProcess, action: str) -> None:
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise SessionOpError(
                f"tmux {action} failed: {stderr or f'exit status {result.returncode}'}",
                command=list(result.args) if isinstance(result.args, (list, tuple)) else None,
                returncode=result.returncode,
                stderr=stderr
            )

    def is_running(self) -> bool:
        """True iff the caller runs inside an active controlling tmux session."""
        if not self.env.get("TMUX"):
            logger.debug(
                "TMUX not set - not inside a tmux session",
                operation="is_running",
                status="not_running"
            )
            return False

        try:
            result = self._run("display-message", "-p", "#{session_name}")
        except SessionOpError as e:
            logger.debug(
                "Controlling session check failed",
                operation="is_running",
                status="not_running",
                error=e.message
            )
            return False

        return result.returncode == 0 and bool(result.stdout.strip())

    def list_sessions(self) -> list[str]:
        """Session names in the order tmux reports them. Empty when none exist."""
        result = self._run("list-sessions", "-F", "#{session_name}")

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            if any(marker in stderr.lower() for marker in _NO_SESSIONS_MARKERS):
                logger.debug(
                    "No tmux sessions",
                    operation="list_sessions",
                    status="empty",
                    stderr=stderr
                )
                return []
            self._check(result, "list-sessions")

        sessions = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        logger.debug(
            "Listed tmux sessions",
            operation="list_sessions",
            status="success",
            metrics={"sessions": len(sessions)}
        )
        return sessions

    def derive_name(self, project_path: str, workspace: Workspace) -> str:
        """Session name for a project, e.g. ~/Projects/my-app -> MY-APP."""
        return self.name_generator.generate(project_basename(project_path), workspace.name)

    def create_session(self, name: str, cwd: str) -> str:
        """Create a detached session and return the name tmux stored."""
        result = self._run(
            "new-session", "-d", "-P", "-F", "#{session_name}", "-s", name, "-c", cwd
        )
        self._check(result, "new-session")
        stored = (result.stdout or "").strip() or stored_session_name(name)
        logger.info(
            "Created tmux session",
            operation="create_session",
            status="success",
            session=stored,
            requested=name,
            cwd=cwd
        )
        return stored

    def switch_client(self, name: str) -> None:
        # "=" forces an exact session-name match instead of prefix matching
        result = self._run("switch-client", "-t", f"={name}")
        self._check(result, "switch-client")
        logger.info(
            "Switched client",
            operation="switch_client",
            status="success",
            session=name
        )

    def attach(self, session_name: str) -> None:
        """Switch the current client to an existing session."""
        if session_name not in self.list_sessions():
            raise SessionOpError(
                f"tmux session does not exist: {session_name}",
                session=session_name
            )
        self.switch_client(session_name)

    def manage_session(
        self,
        project_path: str,
        workspace: Workspace,
        path_prompt: PathPrompt | None = None,
    ) -> SessionOutcome:
        """
        Create-or-attach the session for a project.

        The NEW_PROJECT value first asks path_prompt for a directory. A
        relative answer lives under the workspace root; the directory is
        created when missing. Any failing tmux command aborts the remaining
        steps.

        Returns:
            ATTACHED_NEW, ATTACHED_EXISTING, or CANCELLED (empty new-project
            answer)
        """
        if project_path == NEW_PROJECT:
            project_path = self._ask_new_project_path(workspace, path_prompt)
            if project_path is None:
                return SessionOutcome.CANCELLED
        else:
            project_path = normalize_path(project_path)

        requested = self.derive_name(project_path, workspace)
        name = stored_session_name(requested)

        if name in self.list_sessions():
            self.switch_client(name)
            logger.info(
                "Attached to existing session",
                operation="manage_session",
                status="attached_existing",
                session=name,
                project=project_path
            )
            return SessionOutcome.ATTACHED_EXISTING

        name = self.create_session(requested, project_path)
        self.switch_client(name)
        logger.info(
            "Attached to new session",
            operation="manage_session",
            status="attached_new",
            session=name,
            project=project_path
        )
        return SessionOutcome.ATTACHED_NEW

    def _ask_new_project_path(
        self, workspace: Workspace, path_prompt: PathPrompt | None
    ) -> str | None:
        if path_prompt is None:
            raise SessionOpError("No path prompt available to create a new project")

        answer = path_prompt.ask(f"New project path in {workspace.name}: ")
        if not answer or not answer.strip():
            logger.debug(
                "New project prompt cancelled",
                operation="manage_session",
                status="cancelled",
                workspace=workspace.name
            )
            return None

        answer = expand_home(answer.strip())
        if not os.path.isabs(answer):
            answer = os.path.join(expand_home(workspace.path), answer)
        project_path = normalize_path(answer)

        try:
            os.makedirs(project_path, exist_ok=True)
        except OSError as e:
            raise SessionOpError(
                f"Cannot create project directory {project_path}: {e.strerror or e}",
                project=project_path
            ) from e

        logger.info(
            "New project directory ready",
            operation="manage_session",
            status="new_project",
            project=project_path
        )
        return project_path
