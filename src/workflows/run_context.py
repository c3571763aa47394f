# src/workflows/run_context.py — v1
"""Run context engine: where a given workflow execution currently is.

All functions are pure. They never mutate their input and never touch a
store; the context travels with the artifact through the handoff channel.

A context at index i means "the tool at steps[i] is the one that should be
working on the artifact now". A fresh run starts at index 1 because
steps[0] is the source tool that has already produced the artifact.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as ModelValidationError

from imageflow.core.models import (
    Clock,
    NextStep,
    RunContext,
    StepResolution,
    WorkflowDefinition,
    new_id,
    utc_now,
)
from imageflow.core.tools import ToolId, parse_tool_id

logger = logging.getLogger(__name__)


def start_run(
    definition: WorkflowDefinition,
    from_step_index: int = 1,
    clock: Clock = utc_now,
) -> RunContext:
    """Snapshot a definition into a new run context.

    The snapshot is taken now: later edits or deletion of the definition
    do not affect the run.

    Raises:
        ValueError: If from_step_index is outside the definition's steps.
    """
    return RunContext(
        run_id=new_id(),
        workflow_id=definition.id,
        workflow_name=definition.name,
        source_tool_id=definition.source_tool_id,
        steps=list(definition.steps),
        current_step_index=from_step_index,
        started_at=clock(),
    )


def current_tool(context: RunContext | None) -> ToolId | None:
    """Tool expected to work on the artifact now; None without a context."""
    return context.current_tool_id if context is not None else None


def next_step(context: RunContext | None, current_tool_id: ToolId | str) -> NextStep | None:
    """Tool that follows current_tool_id in the run, with the advanced context.

    Returns None when there is no context, when current_tool_id is not the
    tool the context expects, or when the run is already at its last step.
    """
    if context is None:
        return None
    tool_id = parse_tool_id(current_tool_id)
    if tool_id is None or context.current_tool_id != tool_id:
        return None
    following = context.current_step_index + 1
    if following >= len(context.steps):
        return None
    return NextStep(
        next_tool_id=context.steps[following],
        next_context=context.model_copy(update={"current_step_index": following}),
    )


def is_finished_at(context: RunContext | None, tool_id: ToolId | str) -> bool:
    """True if tool_id is the expected tool and the last step of the run."""
    if context is None:
        return False
    return context.current_tool_id == parse_tool_id(tool_id) and context.is_last_step


def resolve_step(context: RunContext | None, current_tool_id: ToolId | str) -> StepResolution:
    """Tagged version of next_step() that tells the None cases apart."""
    if context is None:
        return StepResolution(kind="absent")
    if context.current_tool_id != parse_tool_id(current_tool_id):
        return StepResolution(kind="mismatch")
    advanced = next_step(context, current_tool_id)
    if advanced is None:
        return StepResolution(kind="complete")
    return StepResolution(kind="next", next=advanced)


def remaining_steps(context: RunContext) -> list[ToolId]:
    """Tools still to run after the current one."""
    return list(context.steps[context.current_step_index + 1:])


def parse_run_context(raw: Any) -> RunContext | None:
    """Validate a context that came back from storage.

    The minimum shape is a list ``steps`` and an integer
    ``current_step_index``; anything short of a valid RunContext is
    rejected with None.
    """
    if not isinstance(raw, dict):
        return None
    steps = raw.get("steps")
    index = raw.get("current_step_index")
    if not isinstance(steps, list) or isinstance(index, bool) or not isinstance(index, int):
        return None
    try:
        return RunContext.model_validate(raw)
    except ModelValidationError as e:
        logger.debug("Rejecting run context: %s", e.error_count())
        return None
