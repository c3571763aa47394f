# src/workflows/registry.py — v2
"""Workflow definition registry: CRUD over named, reusable pipelines.

Definitions live as one JSON array in the durable store. Every mutation is
a read-modify-write of the whole array; concurrent writers can lose an
update (last write wins).
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Iterable

from pydantic import ValidationError as ModelValidationError

from imageflow.core.errors import ValidationError
from imageflow.core.models import Clock, WorkflowDefinition, utc_now
from imageflow.core.tools import ToolId, parse_tool_id
from imageflow.store.safe_store import SafeStore

logger = logging.getLogger(__name__)

WORKFLOW_LIBRARY_KEY = "imageflow.workflow-library"
DEFAULT_LIBRARY_CAP = 60
DEFAULT_MAX_STEPS = 5
DEFAULT_NAME_MAX_LENGTH = 60

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_workflow_name(name: str | None, max_length: int = DEFAULT_NAME_MAX_LENGTH) -> str:
    """Trim, collapse internal whitespace and truncate to max_length."""
    collapsed = _WHITESPACE_RE.sub(" ", name or "").strip()
    return collapsed[:max_length].rstrip()


def normalize_targets(
    source_tool_id: ToolId,
    candidates: Iterable[ToolId | str],
    max_steps: int = DEFAULT_MAX_STEPS,
) -> list[ToolId]:
    """Downstream steps for a workflow starting at source_tool_id.

    Unknown tools and the source itself are dropped, duplicates collapse
    onto their first occurrence, then the list is cut so that the source
    plus its targets hold at most max_steps tools.
    """
    targets: list[ToolId] = []
    for candidate in candidates:
        tool_id = parse_tool_id(candidate)
        if tool_id is None:
            logger.debug("Ignoring unknown workflow step %r", candidate)
            continue
        if tool_id == source_tool_id or tool_id in targets:
            continue
        targets.append(tool_id)
    return targets[: max(max_steps - 1, 0)]


class WorkflowRegistry:
    """Saved workflows, keyed by (source tool, case-insensitive name)."""

    def __init__(
        self,
        store: SafeStore,
        clock: Clock = utc_now,
        max_definitions: int = DEFAULT_LIBRARY_CAP,
        max_steps: int = DEFAULT_MAX_STEPS,
        name_max_length: int = DEFAULT_NAME_MAX_LENGTH,
    ) -> None:
        self._store = store
        self._clock = clock
        self._max_definitions = max_definitions
        self._max_steps = max_steps
        self._name_max_length = name_max_length

    def list(self, source_tool_id: ToolId | str) -> list[WorkflowDefinition]:
        """All saved definitions whose source is source_tool_id."""
        tool_id = parse_tool_id(source_tool_id)
        if tool_id is None:
            return []
        return [d for d in self._load() if d.source_tool_id == tool_id]

    def list_all(self) -> list[WorkflowDefinition]:
        return self._load()

    def get(self, workflow_id: str) -> WorkflowDefinition | None:
        for definition in self._load():
            if definition.id == workflow_id:
                return definition
        return None

    def upsert(
        self,
        name: str,
        source_tool_id: ToolId | str,
        candidate_targets: Iterable[ToolId | str],
    ) -> WorkflowDefinition:
        """Create a definition or replace the steps of an existing one.

        Raises:
            ValidationError: Empty name, unknown source tool, or no valid
                downstream step. Nothing is written in that case.
        """
        clean_name = normalize_workflow_name(name, self._name_max_length)
        if not clean_name:
            raise ValidationError("empty name")

        source = parse_tool_id(source_tool_id)
        if source is None:
            raise ValidationError(f"unknown source tool: {source_tool_id!r}")

        targets = normalize_targets(source, candidate_targets, self._max_steps)
        if not targets:
            raise ValidationError("no steps")

        steps = [source, *targets]
        now = self._clock()
        definitions = self._load()

        index = _find_by_name(definitions, source, clean_name)
        if index is not None:
            existing = definitions[index]
            saved = existing.model_copy(
                update={
                    "name": clean_name,
                    "steps": steps,
                    "updated_at": _advance(existing.updated_at, now),
                }
            )
            definitions[index] = saved
            logger.info("Updated workflow %s (%s)", saved.id, clean_name)
        else:
            saved = WorkflowDefinition(
                name=clean_name,
                source_tool_id=source,
                steps=steps,
                created_at=now,
                updated_at=now,
            )
            definitions.insert(0, saved)
            logger.info("Created workflow %s (%s)", saved.id, clean_name)

        self._save(definitions)
        return saved

    def remove(self, workflow_id: str) -> None:
        """Delete a definition by id. Unknown ids are ignored."""
        definitions = self._load()
        remaining = [d for d in definitions if d.id != workflow_id]
        if len(remaining) == len(definitions):
            logger.debug("Workflow %s not found, nothing to delete", workflow_id)
            return
        self._save(remaining)
        logger.info("Deleted workflow %s", workflow_id)

    def record_run(self, workflow_id: str) -> WorkflowDefinition | None:
        """Bump run statistics; None if the definition no longer exists."""
        definitions = self._load()
        for i, definition in enumerate(definitions):
            if definition.id != workflow_id:
                continue
            now = self._clock()
            updated = definition.model_copy(
                update={
                    "run_count": definition.run_count + 1,
                    "last_run_at": now,
                    "updated_at": _advance(definition.updated_at, now),
                }
            )
            definitions[i] = updated
            self._save(definitions)
            return updated
        logger.info("Workflow %s was deleted; run continues from its snapshot", workflow_id)
        return None

    # --- Persistence ---

    def _load(self) -> list[WorkflowDefinition]:
        raw = self._store.get_json(WORKFLOW_LIBRARY_KEY)
        if not isinstance(raw, list):
            return []
        definitions: list[WorkflowDefinition] = []
        for item in raw:
            try:
                definitions.append(WorkflowDefinition.model_validate(item))
            except ModelValidationError as e:
                logger.warning("Skipping malformed workflow entry: %s", e.error_count())
        return definitions

    def _save(self, definitions: list[WorkflowDefinition]) -> None:
        if len(definitions) > self._max_definitions:
            newest = sorted(definitions, key=lambda d: d.updated_at, reverse=True)
            keep = {d.id for d in newest[: self._max_definitions]}
            definitions = [d for d in definitions if d.id in keep]
        payload: list[dict[str, Any]] = [d.model_dump(mode="json") for d in definitions]
        self._store.set_json(WORKFLOW_LIBRARY_KEY, payload)


def _find_by_name(
    definitions: list[WorkflowDefinition], source: ToolId, name: str
) -> int | None:
    key = name.casefold()
    for i, definition in enumerate(definitions):
        if definition.source_tool_id == source and definition.name.casefold() == key:
            return i
    return None


def _advance(previous: datetime, now: datetime) -> datetime:
    """now, or one microsecond past previous when the clock has not moved."""
    if now > previous:
        return now
    return previous + timedelta(microseconds=1)
