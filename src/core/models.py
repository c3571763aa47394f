# src/core/models.py — v1
"""Domain models: Artifact, WorkflowDefinition, RunContext, HandoffPackage,
RunHistoryEntry and the result types exchanged between components.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from imageflow.core.tools import ToolId

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


# === ARTIFACTS ===


class Artifact(BaseModel):
    """One binary output of an image tool. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    file_name: str
    mime_type: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)


class ArtifactRef(BaseModel):
    """Producer-side handle to an artifact whose bytes live on disk."""

    path: Path
    file_name: str | None = None
    mime_type: str | None = None


# === WORKFLOWS ===


class WorkflowDefinition(BaseModel):
    """Named, reusable pipeline starting at a fixed source tool."""

    id: str = Field(default_factory=new_id)
    name: str = Field(min_length=1)
    source_tool_id: ToolId
    steps: list[ToolId]
    created_at: datetime
    updated_at: datetime
    run_count: int = Field(default=0, ge=0)
    last_run_at: datetime | None = None

    @model_validator(mode="after")
    def check_steps(self) -> WorkflowDefinition:
        if len(self.steps) < 2:
            raise ValueError("a workflow needs the source tool and at least one step")
        if self.steps[0] != self.source_tool_id:
            raise ValueError("steps[0] must be the source tool")
        return self

    @property
    def targets(self) -> list[ToolId]:
        """Downstream steps, without the source tool."""
        return list(self.steps[1:])


class RunContext(BaseModel):
    """Snapshot of one workflow execution: which workflow, which step."""

    model_config = ConfigDict(frozen=True)

    run_id: str = Field(default_factory=new_id)
    workflow_id: str
    workflow_name: str
    source_tool_id: ToolId
    steps: list[ToolId] = Field(min_length=1)
    current_step_index: int
    started_at: datetime

    @model_validator(mode="after")
    def check_index(self) -> RunContext:
        if not 0 <= self.current_step_index < len(self.steps):
            raise ValueError(
                f"current_step_index {self.current_step_index} out of range "
                f"for {len(self.steps)} steps"
            )
        return self

    @property
    def current_tool_id(self) -> ToolId:
        return self.steps[self.current_step_index]

    @property
    def is_last_step(self) -> bool:
        return self.current_step_index == len(self.steps) - 1


class NextStep(BaseModel):
    """Where a run goes after the current tool."""

    next_tool_id: ToolId
    next_context: RunContext


class StepResolution(BaseModel):
    """Tagged outcome of asking a context for its next step.

    "next": there is a following tool (see ``next``).
    "complete": the caller is the last tool of the run.
    "mismatch": the caller is not the tool the context expects.
    "absent": no context was supplied.
    """

    kind: Literal["next", "complete", "mismatch", "absent"]
    next: NextStep | None = None


# === HANDOFF ===


class HandoffPackage(BaseModel):
    """Payload stored in the transient slot between two tool views.

    ``run_context`` is kept raw so a corrupted context never prevents the
    artifact itself from being delivered.
    """

    source_tool_id: ToolId
    target_tool_id: ToolId
    file_name: str
    mime_type: str
    encoded_artifact: str
    created_at: datetime | None = None
    run_context: Any = None


class PendingHandoff(BaseModel):
    """Handle passed to the navigator once a package has been written."""

    model_config = ConfigDict(frozen=True)

    slot_key: str
    source_tool_id: ToolId
    target_tool_id: ToolId
    created_at: datetime
    run_id: str | None = None


class ReceivedHandoff(BaseModel):
    """What a consuming view gets out of the channel."""

    source_tool_id: ToolId
    artifact: Artifact
    run_context: RunContext | None = None


# === HISTORY ===


class RunHistoryEntry(BaseModel):
    """Record of one workflow execution, independent of its definition."""

    id: str = Field(default_factory=new_id)
    run_id: str
    workflow_id: str
    workflow_name: str
    source_tool_id: ToolId
    steps: list[ToolId]
    created_at: datetime
