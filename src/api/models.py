# src/api/models.py — v2
"""API-level models returned by the orchestrator facade."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from imageflow.core.models import RunContext
from imageflow.core.tools import ToolId

StepStatus = Literal[
    "handed_off",
    "complete",
    "mismatch",
    "incompatible",
    "unavailable",
    "not_found",
]


class StepReport(BaseModel):
    """Outcome of an orchestrator action, safe to show in a tool view.

    ``handed_off``: the artifact waits for ``next_tool_id``.
    ``complete``: the calling tool was the last step of the run.
    ``mismatch``: the run context expects a different tool.
    ``incompatible``: ``next_tool_id`` cannot open the artifact's format.
    ``unavailable``: the artifact could not be read, encoded or stored.
    ``not_found``: unknown workflow, unknown tool, or no active run.
    """

    status: StepStatus
    next_tool_id: ToolId | None = None
    context: RunContext | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.status in ("handed_off", "complete")
