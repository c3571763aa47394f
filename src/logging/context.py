# src/logging/context.py — v2
"""Contextual logging support: attach run_id, workflow_id and tool to records.

The values are set where a run starts or a view sends/receives a handoff,
and read back by the formatters in logger.py.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_workflow_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "workflow_id", default=None
)
_tool: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "tool", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "step", default=None
)


@dataclass
class LogContext:
    """Snapshot of current logging context."""

    run_id: str | None = None
    workflow_id: str | None = None
    tool: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Non-None fields, for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    return LogContext(
        run_id=_run_id.get(),
        workflow_id=_workflow_id.get(),
        tool=_tool.get(),
        step=_step.get(),
    )


def set_run_context(run_id: str, workflow_id: str) -> None:
    """Set run-level context (once per workflow step)."""
    _run_id.set(run_id)
    _workflow_id.set(workflow_id)


def set_tool_context(tool: str, step: str | None = None) -> None:
    """Set the tool view currently acting, and what it is doing."""
    _tool.set(tool)
    _step.set(step)


def clear_context() -> None:
    _run_id.set(None)
    _workflow_id.set(None)
    _tool.set(None)
    _step.set(None)
