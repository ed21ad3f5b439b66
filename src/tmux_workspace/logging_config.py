"""Structured JSONL logging for tmux-workspace (loguru)."""

from __future__ import annotations

import json
import sys
from contextvars import ContextVar
from pathlib import Path
from uuid import uuid4

import platformdirs
from loguru import logger

APP_NAME = "tmux-workspace"

# =============================================================================
# Structured Logging Setup (JSONL format)
# =============================================================================

# Correlation ID for one user-triggered action
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)


def new_trace_id() -> str:
    """Start a new correlation ID for the current action and return it."""
    trace_id = str(uuid4())
    trace_id_var.set(trace_id)
    return trace_id


def json_sink(message) -> None:
    """JSONL sink - writes one JSON object per record to stderr."""
    record = message.record
    log_entry = {
        "timestamp": record["time"].strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
        "level": record["level"].name.lower(),
        "component": record["function"],
        "operation": record["extra"].get("operation", "unknown"),
        "operation_status": record["extra"].get("status", None),
        "trace_id": record["extra"].get("trace_id") or trace_id_var.get(),
        "message": record["message"],
        "context": {k: v for k, v in record["extra"].items()
                    if k not in ("operation", "status", "trace_id", "metrics")},
        "metrics": record["extra"].get("metrics", {}),
    }

    try:
        sys.stderr.write(json.dumps(log_entry, default=str) + "\n")
    except (OSError, TypeError, ValueError) as e:
        sys.stderr.write(f"[LOG_ERROR] Failed to write log: {e}\n")


def setup_logger(verbose: bool = False, log_to_file: bool = True):
    """
    Configure loguru for machine-readable JSONL output.

    The JSONL stderr sink is only added when ``verbose`` is set, since the
    CLI usually runs inside a tmux popup; failures still reach the user
    through the CLI's own error line. The file sink always records DEBUG.

    Linux: ~/.local/state/tmux-workspace/log/
    macOS: ~/Library/Logs/tmux-workspace/
    """
    logger.remove()

    if verbose:
        logger.add(json_sink, level="DEBUG")

    if log_to_file:
        log_dir = Path(platformdirs.user_log_dir(
            appname=APP_NAME,
            ensure_exists=True
        ))

        logger.add(
            str(log_dir / "workspace.jsonl"),
            format="{message}",
            serialize=True,
            rotation="10 MB",
            retention="7 days",
            compression="gz",
            level="DEBUG"
        )

    return logger
