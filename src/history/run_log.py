# src/history/run_log.py — v1
"""Run history: append-only, size-capped record of workflow executions.

Entries copy the workflow name and steps, so history stays readable after
the definition is edited or deleted.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError as ModelValidationError

from imageflow.core.models import Clock, RunContext, RunHistoryEntry, utc_now
from imageflow.core.tools import ToolId, parse_tool_id
from imageflow.store.safe_store import SafeStore

logger = logging.getLogger(__name__)

RUN_HISTORY_KEY = "imageflow.run-history"
DEFAULT_HISTORY_CAP = 40
DEFAULT_DISPLAY_LIMIT = 12


def entry_from_context(context: RunContext, clock: Clock = utc_now) -> RunHistoryEntry:
    return RunHistoryEntry(
        run_id=context.run_id,
        workflow_id=context.workflow_id,
        workflow_name=context.workflow_name,
        source_tool_id=context.source_tool_id,
        steps=list(context.steps),
        created_at=clock(),
    )


class RunHistoryLog:
    """Most-recent-first log shared by every tool view."""

    def __init__(
        self,
        store: SafeStore,
        max_entries: int = DEFAULT_HISTORY_CAP,
        display_limit: int = DEFAULT_DISPLAY_LIMIT,
    ) -> None:
        self._store = store
        self._max_entries = max_entries
        self._display_limit = display_limit

    def append(self, entry: RunHistoryEntry) -> None:
        """Prepend entry and drop the oldest beyond the cap."""
        entries = [entry, *self._load()][: self._max_entries]
        self._store.set_json(RUN_HISTORY_KEY, [e.model_dump(mode="json") for e in entries])
        logger.debug("Recorded run %s of workflow %s", entry.run_id, entry.workflow_id)

    def list_for(self, source_tool_id: ToolId | str) -> list[RunHistoryEntry]:
        """Latest entries started from source_tool_id, capped for display."""
        tool_id = parse_tool_id(source_tool_id)
        if tool_id is None:
            return []
        matching = [e for e in self._load() if e.source_tool_id == tool_id]
        return matching[: self._display_limit]

    def list_all(self) -> list[RunHistoryEntry]:
        return self._load()

    def clear(self) -> None:
        """Empty the whole log, for every tool."""
        self._store.remove(RUN_HISTORY_KEY)
        logger.info("Run history cleared")

    def _load(self) -> list[RunHistoryEntry]:
        raw = self._store.get_json(RUN_HISTORY_KEY)
        if not isinstance(raw, list):
            return []
        entries: list[RunHistoryEntry] = []
        for item in raw:
            try:
                entries.append(RunHistoryEntry.model_validate(item))
            except ModelValidationError:
                continue
        return entries
