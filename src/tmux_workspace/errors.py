"""Error taxonomy and Result value types for tmux-workspace."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


# =============================================================================
# Error Handling Types (Result + Error)
# =============================================================================


class ErrorType(Enum):
    CONFIG_ERROR = "config_error"
    PARSE_ERROR = "parse_error"
    FILE_NOT_FOUND = "file_not_found"
    ENVIRONMENT_ERROR = "environment_error"
    DISCOVERY_ERROR = "discovery_error"
    SESSION_OP_ERROR = "session_op_error"
    TIMEOUT_ERROR = "timeout_error"
    PICKER_ERROR = "picker_error"


@dataclass
class Error:
    error_type: ErrorType
    message: str
    context: dict = field(default_factory=dict)
    original_exception: Exception | None = None


@dataclass
class Result(Generic[T]):
    success: bool
    value: T | None = None
    error: Error | None = None

    @staticmethod
    def ok(value: T) -> Result[T]:
        return Result(success=True, value=value)

    @staticmethod
    def err(error: Error) -> Result[T]:
        return Result(success=False, error=error)

    def is_err(self) -> bool:
        return not self.success


# =============================================================================
# Exceptions
# =============================================================================


class WorkspaceError(Exception):
    """Base class for every error reported at an entry-point boundary."""

    error_type = ErrorType.CONFIG_ERROR

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_error(self) -> Error:
        return Error(
            error_type=self.error_type,
            message=self.message,
            context=dict(self.context),
            original_exception=self,
        )


class ConfigError(WorkspaceError):
    """Invalid or missing setup options. Nothing gets registered."""

    error_type = ErrorType.CONFIG_ERROR


class TmuxNotRunningError(WorkspaceError):
    """The caller is not inside a controlling tmux session."""

    error_type = ErrorType.ENVIRONMENT_ERROR


class DiscoveryError(WorkspaceError):
    """The workspace root could not be read."""

    error_type = ErrorType.DISCOVERY_ERROR


class NoSuchWorkspaceError(DiscoveryError):
    """The workspace root does not exist or is not a directory."""


class SessionOpError(WorkspaceError):
    """A tmux create/switch/list command failed."""

    error_type = ErrorType.SESSION_OP_ERROR

    def __init__(self, message: str, command: list[str] | None = None,
                 returncode: int | None = None, stderr: str | None = None,
                 **context):
        super().__init__(message, **context)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        if command is not None:
            self.context["command"] = " ".join(command)
        if returncode is not None:
            self.context["returncode"] = returncode
        if stderr:
            self.context["stderr"] = stderr


class SessionTimeoutError(SessionOpError):
    """A tmux command did not finish within its timeout."""

    error_type = ErrorType.TIMEOUT_ERROR


class PickerUnavailableError(WorkspaceError):
    """The fuzzy picker binary could not be found or started."""

    error_type = ErrorType.PICKER_ERROR
