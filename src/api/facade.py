# src/api/facade.py — v3
"""Public API facade: one object a tool view talks to.

Usage:
    from imageflow.api.facade import WorkflowOrchestrator
    orchestrator = WorkflowOrchestrator(settings)
    report = await orchestrator.run_workflow(workflow_id, artifact)

Control flow of a run:
  1. The source tool produces an artifact and starts a saved workflow.
  2. The artifact and a run context pointing at step 1 go through the
     handoff channel; the target view is activated.
  3. The target view receives the package, processes the artifact and
     calls continue_run() with its output.
  4. Steps repeat until the context reports the run complete.

Errors stay inside the facade and come back as a StepReport. The only
exception a caller sees is ValidationError from save_workflow().
"""

from __future__ import annotations

import logging
from datetime import timedelta

from imageflow.api.models import StepReport
from imageflow.config.settings import Settings
from imageflow.core.errors import CompatibilityError
from imageflow.core.models import (
    Artifact,
    ArtifactRef,
    Clock,
    ReceivedHandoff,
    RunContext,
    RunHistoryEntry,
    WorkflowDefinition,
    utc_now,
)
from imageflow.core.tools import (
    TOOL_CATALOG,
    CompatibilityCheck,
    ToolId,
    is_compatible,
    parse_tool_id,
)
from imageflow.handoff.channel import HandoffChannel, Navigator
from imageflow.history.run_log import RunHistoryLog, entry_from_context
from imageflow.logging.context import set_run_context, set_tool_context
from imageflow.store.safe_store import StoreAdapter
from imageflow.store.store_factory import create_store_adapter
from imageflow.workflows.registry import WorkflowRegistry
from imageflow.workflows.run_context import resolve_step, start_run

logger = logging.getLogger(__name__)


class WorkflowOrchestrator:
    """Wires registry, run engine, handoff channel and history together."""

    def __init__(
        self,
        settings: Settings | None = None,
        stores: StoreAdapter | None = None,
        navigator: Navigator | None = None,
        clock: Clock = utc_now,
        compatibility: CompatibilityCheck | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._stores = stores or create_store_adapter(self._settings)
        self._clock = clock
        self._compatibility = compatibility or is_compatible

        s = self._settings
        self.registry = WorkflowRegistry(
            self._stores.durable,
            clock=clock,
            max_definitions=s.workflow_library_cap,
            max_steps=s.workflow_max_steps,
            name_max_length=s.workflow_name_max_length,
        )
        self.history = RunHistoryLog(
            self._stores.durable,
            max_entries=s.run_history_cap,
            display_limit=s.run_history_display_limit,
        )
        self.channel = HandoffChannel(
            self._stores.transient,
            navigator=navigator,
            clock=clock,
            max_age=timedelta(seconds=s.handoff_max_age_seconds),
            slot_key=s.handoff_slot_key,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def stores(self) -> StoreAdapter:
        return self._stores

    def close(self) -> None:
        self._stores.close()

    # --- Workflow library ---

    def save_workflow(
        self,
        name: str,
        source_tool_id: ToolId | str,
        targets: list[ToolId | str],
    ) -> WorkflowDefinition:
        """Save or update a workflow.

        Raises:
            ValidationError: Message is meant for the user as-is.
        """
        return self.registry.upsert(name, source_tool_id, targets)

    def list_workflows(self, source_tool_id: ToolId | str) -> list[WorkflowDefinition]:
        """Workflows for a tool, most recently updated first."""
        definitions = self.registry.list(source_tool_id)
        return sorted(definitions, key=lambda d: d.updated_at, reverse=True)

    def delete_workflow(self, workflow_id: str) -> None:
        self.registry.remove(workflow_id)

    # --- History ---

    def history_for(self, source_tool_id: ToolId | str) -> list[RunHistoryEntry]:
        return self.history.list_for(source_tool_id)

    def clear_history(self) -> None:
        self.history.clear()

    # --- Runs ---

    async def run_workflow(
        self,
        workflow_id: str,
        artifact: Artifact | ArtifactRef,
    ) -> StepReport:
        """Start a saved workflow from the source tool's output.

        The run is counted (run_count, history entry) once its first
        handoff has been stored.
        """
        definition = self.registry.get(workflow_id)
        if definition is None:
            return StepReport(status="not_found", message="This workflow no longer exists.")

        context = start_run(definition, 1, clock=self._clock)
        set_run_context(context.run_id, definition.id)
        logger.info(
            "Starting workflow %r: %s",
            definition.name, " -> ".join(t.value for t in definition.steps),
        )

        report = await self._send(
            definition.source_tool_id, context.current_tool_id, artifact, context
        )
        if report.status == "handed_off":
            self.registry.record_run(definition.id)
            self.history.append(entry_from_context(context, clock=self._clock))
        return report

    async def continue_run(
        self,
        context: RunContext | None,
        current_tool_id: ToolId | str,
        artifact: Artifact | ArtifactRef,
    ) -> StepReport:
        """Pass current_tool_id's output on to the next step of its run."""
        resolution = resolve_step(context, current_tool_id)

        if context is None or resolution.kind == "absent":
            return StepReport(status="not_found", message="No workflow run is active here.")

        set_run_context(context.run_id, context.workflow_id)

        if resolution.kind == "mismatch":
            logger.info(
                "Run %s expects %s, not %s",
                context.run_id, context.current_tool_id.value,
                getattr(current_tool_id, "value", current_tool_id),
            )
            return StepReport(
                status="mismatch",
                context=context,
                message=f"This run continues in {_title(context.current_tool_id)}.",
            )

        step = resolution.next
        if resolution.kind == "complete" or step is None:
            logger.info("Workflow %r complete", context.workflow_name)
            return StepReport(
                status="complete",
                context=context,
                message=f"Workflow '{context.workflow_name}' complete.",
            )

        return await self._send(
            context.current_tool_id, step.next_tool_id, artifact, step.next_context
        )

    async def hand_off(
        self,
        source_tool_id: ToolId | str,
        target_tool_id: ToolId | str,
        artifact: Artifact | ArtifactRef,
    ) -> StepReport:
        """Single-step handoff, outside any workflow."""
        source = parse_tool_id(source_tool_id)
        target = parse_tool_id(target_tool_id)
        if source is None or target is None:
            return StepReport(status="not_found", message="Unknown tool.")
        return await self._send(source, target, artifact, None)

    def receive(self, tool_id: ToolId | str) -> ReceivedHandoff | None:
        """Take the artifact waiting for tool_id, if any."""
        received = self.channel.receive(tool_id)
        if received is not None and received.run_context is not None:
            ctx = received.run_context
            set_run_context(ctx.run_id, ctx.workflow_id)
            logger.info(
                "Step %d/%d of %r",
                ctx.current_step_index + 1, len(ctx.steps), ctx.workflow_name,
            )
        return received

    async def _send(
        self,
        source: ToolId,
        target: ToolId,
        artifact: Artifact | ArtifactRef,
        context: RunContext | None,
    ) -> StepReport:
        set_tool_context(source.value, step="handoff")
        try:
            sent = await self.channel.send(
                source, target, artifact,
                run_context=context,
                compatibility=self._compatibility,
            )
        except CompatibilityError as e:
            logger.info("Blocked handoff to %s: %s", target.value, e)
            return StepReport(
                status="incompatible", next_tool_id=target, context=context, message=str(e)
            )
        if not sent:
            return StepReport(
                status="unavailable",
                next_tool_id=target,
                context=context,
                message="The file could not be prepared for the next tool.",
            )
        return StepReport(
            status="handed_off",
            next_tool_id=target,
            context=context,
            message=f"Continuing in {_title(target)}.",
        )


def _title(tool_id: ToolId) -> str:
    return TOOL_CATALOG[tool_id].title
