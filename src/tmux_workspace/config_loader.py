"""Configuration loading and workspace setup."""

from __future__ import annotations

import os
import re
import time
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

import platformdirs
from loguru import logger

from .errors import ConfigError, Error, ErrorType, Result
from .logging_config import APP_NAME
from .models import DEFAULT_MARKERS, DEFAULT_MAX_DEPTH, Workspace, WorkspaceOptions
from .path_utils import expand_home
from .scan_dirs import DEFAULT_MAX_WORKERS
from .tmux import (
    DEFAULT_TIMEOUT,
    SessionNameGenerator,
    TemplateNameGenerator,
    UpperCaseNameGenerator,
)

# =============================================================================
# Configuration Loading
# =============================================================================

CONFIG_ENV_VAR = "TMUX_WORKSPACE_CONFIG"
CONFIG_FILENAME = "workspaces.toml"

DEFAULT_CONFIG = {
    "workspaces": [],
    "session_name_template": None,  # None = upper-case project name
    "timeout": DEFAULT_TIMEOUT,
    "max_workers": DEFAULT_MAX_WORKERS,
}

EXPECTED_SHAPE = """\
Invalid setup options. Provide options like this:

    [[workspaces]]
    name = "Workspace1"
    path = "~/path/to/workspace1"
    keymap = "w"

    [[workspaces]]
    name = "Workspace2"
    path = "~/path/to/workspace2"
    keymap = "x"
    [workspaces.opts]
    search_git_subfolders = true
    max_depth = 2
"""


def default_config_path() -> Path:
    """
    Config file location: $TMUX_WORKSPACE_CONFIG, else the platform config dir.

    Linux: ~/.config/tmux-workspace/workspaces.toml
    macOS: ~/Library/Application Support/tmux-workspace/workspaces.toml
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path(platformdirs.user_config_dir(appname=APP_NAME)) / CONFIG_FILENAME


def describe_toml_error(error: tomllib.TOMLDecodeError, file_path: Path) -> tuple[int | None, str]:
    """
    Line number and a readable message for a TOML parse error.

    The offending line is quoted (truncated to 50 chars) when it can be read.
    """
    match = re.search(r"line\s+(\d+)", str(error), re.IGNORECASE)
    if not match:
        return None, f"TOML parse error in {file_path}: {error}"

    line_number = int(match.group(1))
    try:
        lines = file_path.read_text().splitlines()
    except OSError:
        lines = []

    message = f"{file_path}: error on line {line_number}"
    if 0 < line_number <= len(lines):
        line = lines[line_number - 1].rstrip()
        message += f": {line[:50] + '...' if len(line) > 50 else line}"
    return line_number, f"{message}\n\nDetails: {error}"


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dictionary."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config_from_path(config_path: Path) -> Result[dict]:
    """
    Load configuration from a TOML file merged over DEFAULT_CONFIG.

    Args:
        config_path: Path to workspaces.toml

    Returns:
        Result[dict]: Ok with merged config, or Err with error details
    """
    start_time = time.perf_counter()
    logger.debug(
        "Loading config from path",
        operation="load_config_from_path",
        status="started",
        config_path=str(config_path)
    )

    if not config_path.exists():
        logger.error(
            "Config file not found",
            operation="load_config_from_path",
            status="failed",
            config_path=str(config_path)
        )
        return Result.err(Error(
            error_type=ErrorType.FILE_NOT_FOUND,
            message=f"Config file not found: {config_path}\n\n{EXPECTED_SHAPE}",
            context={"config_path": str(config_path)}
        ))

    try:
        with open(config_path, "rb") as f:
            user_config = tomllib.load(f)

        merged = deep_merge(DEFAULT_CONFIG, user_config)
        duration_ms = int((time.perf_counter() - start_time) * 1000)

        logger.debug(
            "Config loaded successfully",
            operation="load_config_from_path",
            status="success",
            config_path=str(config_path),
            metrics={
                "workspaces_count": len(merged.get("workspaces") or []),
                "duration_ms": duration_ms
            }
        )

        return Result.ok(merged)

    except tomllib.TOMLDecodeError as e:
        line_number, message = describe_toml_error(e, config_path)
        logger.error(
            "Invalid TOML syntax in configuration file",
            operation="load_config_from_path",
            status="failed",
            file=str(config_path),
            line_number=line_number,
            error=message
        )
        return Result.err(Error(
            error_type=ErrorType.PARSE_ERROR,
            message=message,
            context={"config_path": str(config_path), "line_number": line_number},
            original_exception=e
        ))
    except OSError as e:
        logger.error(
            "Config file unreadable",
            operation="load_config_from_path",
            status="failed",
            config_path=str(config_path),
            error=str(e)
        )
        return Result.err(Error(
            error_type=ErrorType.FILE_NOT_FOUND,
            message=f"Cannot read config file {config_path}: {e}",
            context={"config_path": str(config_path)},
            original_exception=e
        ))


# =============================================================================
# Setup and Validation
# =============================================================================


@dataclass
class TriggerRegistry:
    """Workspaces keyed by their key trigger, plus the shared session settings."""
    workspaces: dict[str, Workspace] = field(default_factory=dict)
    name_generator: SessionNameGenerator = field(default_factory=UpperCaseNameGenerator)
    timeout: float = DEFAULT_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS

    def __len__(self) -> int:
        return len(self.workspaces)

    def find(self, key_or_name: str) -> Workspace | None:
        """Look up a workspace by key trigger first, then by name."""
        if key_or_name in self.workspaces:
            return self.workspaces[key_or_name]
        for workspace in self.workspaces.values():
            if workspace.name == key_or_name:
                return workspace
        return None


def _non_empty_str(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _parse_keymap(raw) -> tuple[str | None, str | None]:
    """Accept ``"o"``, ``["o"]`` or ``{key = "o", desc = "..."}``."""
    if isinstance(raw, list):
        return (raw[0] if raw and _non_empty_str(raw[0]) else None), None
    if isinstance(raw, dict):
        key = raw.get("key")
        desc = raw.get("desc")
        return (key if _non_empty_str(key) else None), (desc if _non_empty_str(desc) else None)
    return (raw if _non_empty_str(raw) else None), None


def _parse_options(raw, index: int, problems: list[str]) -> WorkspaceOptions:
    if raw is None:
        return WorkspaceOptions()
    if not isinstance(raw, dict):
        problems.append(f"workspaces[{index}].opts must be a table")
        return WorkspaceOptions()

    recurse = raw.get("search_git_subfolders", False)
    max_depth = raw.get("max_depth", DEFAULT_MAX_DEPTH)
    markers = raw.get("markers", list(DEFAULT_MARKERS))

    if not isinstance(recurse, bool):
        problems.append(f"workspaces[{index}].opts.search_git_subfolders must be true or false")
        recurse = False
    if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth < 0:
        problems.append(f"workspaces[{index}].opts.max_depth must be an integer >= 0")
        max_depth = DEFAULT_MAX_DEPTH
    if not isinstance(markers, list) or not markers or not all(_non_empty_str(m) for m in markers):
        problems.append(f"workspaces[{index}].opts.markers must be a non-empty list of names")
        markers = list(DEFAULT_MARKERS)

    return WorkspaceOptions(
        search_git_subfolders=recurse,
        max_depth=max_depth,
        markers=tuple(markers),
    )


def _parse_workspace(raw, index: int, problems: list[str]) -> Workspace | None:
    if not isinstance(raw, dict):
        problems.append(f"workspaces[{index}] must be a table")
        return None

    start = len(problems)
    name = raw.get("name")
    path = raw.get("path")
    key, desc = _parse_keymap(raw.get("keymap"))

    if not _non_empty_str(name):
        problems.append(f"workspaces[{index}] is missing a non-empty 'name'")
    if not _non_empty_str(path):
        problems.append(f"workspaces[{index}] is missing a non-empty 'path'")
    elif not os.path.isdir(expand_home(path)):
        problems.append(f"workspaces[{index}].path does not exist: {path}")
    if key is None:
        problems.append(f"workspaces[{index}] is missing a non-empty 'keymap'")

    options = _parse_options(raw.get("opts"), index, problems)
    if len(problems) > start:
        return None

    return Workspace(name=name, path=path, keymap=key, options=options, description=desc)


def build_name_generator(template) -> SessionNameGenerator:
    if template is None:
        return UpperCaseNameGenerator()
    if not _non_empty_str(template):
        raise ConfigError(
            "session_name_template must be a non-empty string",
            template=repr(template)
        )
    try:
        template.format(project="p", workspace="w")
    except (KeyError, IndexError, ValueError) as e:
        raise ConfigError(
            f"session_name_template may only use {{project}} and {{workspace}}: {e}",
            template=template
        ) from e
    return TemplateNameGenerator(template)


def setup(options: dict | None) -> TriggerRegistry:
    """
    Validate setup options and register one trigger per workspace.

    Validation covers every workspace before anything is registered; any
    problem rejects the whole configuration.

    Raises:
        ConfigError: with every problem found and the expected shape
    """
    options = deep_merge(DEFAULT_CONFIG, options or {})
    raw_workspaces = options.get("workspaces")
    problems: list[str] = []
    workspaces: list[Workspace] = []

    if not isinstance(raw_workspaces, list) or not raw_workspaces:
        problems.append("'workspaces' must be a non-empty list")
    else:
        for index, raw in enumerate(raw_workspaces):
            workspace = _parse_workspace(raw, index, problems)
            if workspace is not None:
                workspaces.append(workspace)

    seen: dict[str, str] = {}
    for workspace in workspaces:
        if workspace.keymap in seen:
            problems.append(
                f"keymap '{workspace.keymap}' is bound to both "
                f"'{seen[workspace.keymap]}' and '{workspace.name}'"
            )
        seen[workspace.keymap] = workspace.name

    timeout = options.get("timeout")
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        problems.append("'timeout' must be a positive number of seconds")
    max_workers = options.get("max_workers")
    if isinstance(max_workers, bool) or not isinstance(max_workers, int) or max_workers < 1:
        problems.append("'max_workers' must be an integer >= 1")

    if problems:
        logger.error(
            "Invalid setup options",
            operation="setup",
            status="failed",
            problems=problems
        )
        raise ConfigError(
            "\n".join(problems) + "\n\n" + EXPECTED_SHAPE,
            problems=problems
        )

    registry = TriggerRegistry(
        workspaces={w.keymap: w for w in workspaces},
        name_generator=build_name_generator(options.get("session_name_template")),
        timeout=float(timeout),
        max_workers=max_workers,
    )

    logger.debug(
        "Workspaces registered",
        operation="setup",
        status="success",
        metrics={"workspaces": len(registry)}
    )
    return registry


def load_registry(config_path: Path | None = None) -> TriggerRegistry:
    """Load the config file and run setup on it. Raises ConfigError."""
    config_path = config_path or default_config_path()
    result = load_config_from_path(config_path)
    if result.is_err():
        raise ConfigError(result.error.message, **result.error.context)
    return setup(result.value)
