# src/handoff/channel.py — v1
"""Handoff channel: single-slot, read-once transport between tool views.

One package (artifact + optional run context) waits in the transient store
under a fixed key until the target view reads it. A second send before the
read overwrites the first: the slot is shared by every view using the same
transient store, so callers must await one send before starting another.
"""

from __future__ import annotations

import logging
from datetime import timedelta, timezone
from typing import Callable

from pydantic import ValidationError as ModelValidationError

from imageflow.codec.artifact_codec import decode_artifact, encode_artifact, resolve_artifact
from imageflow.core.errors import CompatibilityError, EncodingError
from imageflow.core.models import (
    Artifact,
    ArtifactRef,
    Clock,
    HandoffPackage,
    PendingHandoff,
    ReceivedHandoff,
    RunContext,
    utc_now,
)
from imageflow.core.tools import TOOL_CATALOG, CompatibilityCheck, ToolId, parse_tool_id
from imageflow.logging.context import set_tool_context
from imageflow.store.safe_store import SafeStore
from imageflow.workflows.run_context import parse_run_context

logger = logging.getLogger(__name__)

HANDOFF_SLOT_KEY = "imageflow.image-handoff"
DEFAULT_MAX_AGE = timedelta(minutes=20)

# Activates the target tool's view once its package is in the slot.
Navigator = Callable[[PendingHandoff], None]


def _no_navigation(pending: PendingHandoff) -> None:
    logger.debug("No navigator configured; %s is waiting", pending.target_tool_id.value)


class HandoffChannel:
    """Send and receive one pending handoff through the transient store."""

    def __init__(
        self,
        store: SafeStore,
        navigator: Navigator | None = None,
        clock: Clock = utc_now,
        max_age: timedelta = DEFAULT_MAX_AGE,
        slot_key: str = HANDOFF_SLOT_KEY,
    ) -> None:
        self._store = store
        self._navigate = navigator or _no_navigation
        self._clock = clock
        self._max_age = max_age
        self._slot_key = slot_key

    @property
    def slot_key(self) -> str:
        return self._slot_key

    @property
    def max_age(self) -> timedelta:
        return self._max_age

    async def send(
        self,
        source_tool_id: ToolId | str,
        target_tool_id: ToolId | str,
        artifact: Artifact | ArtifactRef,
        run_context: RunContext | None = None,
        compatibility: CompatibilityCheck | None = None,
    ) -> bool:
        """Package an artifact for target_tool_id and navigate there.

        Returns False, without writing anything, when the artifact cannot be
        read or encoded or the slot cannot be written.

        Raises:
            CompatibilityError: compatibility rejects the artifact's format
                for target_tool_id. Raised before any write or navigation.
            ValueError: Unknown tool identifier.
        """
        source = _require_tool(source_tool_id)
        target = _require_tool(target_tool_id)
        set_tool_context(source.value, step="send")

        try:
            resolved = await resolve_artifact(artifact)
        except EncodingError as e:
            logger.warning("Handoff %s -> %s unavailable: %s", source.value, target.value, e)
            return False

        if compatibility is not None and not compatibility(resolved.mime_type, target):
            raise CompatibilityError(
                resolved.mime_type, target.value, list(TOOL_CATALOG[target].accepts)
            )

        try:
            encoded = encode_artifact(resolved)
        except EncodingError as e:
            logger.warning("Handoff %s -> %s unavailable: %s", source.value, target.value, e)
            return False

        created_at = self._clock()
        package = HandoffPackage(
            source_tool_id=source,
            target_tool_id=target,
            file_name=resolved.file_name,
            mime_type=resolved.mime_type,
            encoded_artifact=encoded,
            created_at=created_at,
            run_context=run_context.model_dump(mode="json") if run_context else None,
        )
        written = self._store.set_json(
            self._slot_key,
            package.model_dump(mode="json"),
            ttl_seconds=int(self._max_age.total_seconds()),
        )
        if not written:
            logger.warning("Handoff %s -> %s could not be stored", source.value, target.value)
            return False

        logger.info(
            "Handed off %s (%d bytes) from %s to %s",
            resolved.file_name, resolved.size_bytes, source.value, target.value,
        )
        pending = PendingHandoff(
            slot_key=self._slot_key,
            source_tool_id=source,
            target_tool_id=target,
            created_at=created_at,
            run_id=run_context.run_id if run_context else None,
        )
        try:
            self._navigate(pending)
        except Exception as e:
            logger.warning("Navigation to %s failed: %s", target.value, e)
        return True

    def receive(self, expected_target_tool_id: ToolId | str) -> ReceivedHandoff | None:
        """Take the pending handoff addressed to expected_target_tool_id.

        The slot is cleared on every call, whatever it held. Returns None
        when nothing was pending, the package is for another tool, has no
        or an expired timestamp, or its artifact cannot be decoded. A
        malformed run context is dropped and the artifact still delivered.
        """
        expected = parse_tool_id(expected_target_tool_id)
        if expected is not None:
            set_tool_context(expected.value, step="receive")

        raw = self._store.get_json(self._slot_key)
        self._store.clear(self._slot_key)
        if raw is None:
            return None

        package = _parse_package(raw)
        if package is None:
            return None

        if expected is None or package.target_tool_id != expected:
            logger.info(
                "Discarding handoff for %s seen by %s",
                package.target_tool_id.value, expected_target_tool_id,
            )
            return None

        if not self._is_fresh(package):
            logger.info("Discarding stale handoff from %s", package.source_tool_id.value)
            return None

        artifact = decode_artifact(
            package.encoded_artifact, package.file_name, package.mime_type
        )
        if artifact is None:
            logger.warning("Handoff from %s had an unreadable artifact", package.source_tool_id.value)
            return None

        context = None
        if package.run_context is not None:
            context = parse_run_context(package.run_context)
            if context is None:
                logger.warning("Dropping malformed run context; delivering artifact only")

        return ReceivedHandoff(
            source_tool_id=package.source_tool_id,
            artifact=artifact,
            run_context=context,
        )

    def peek(self) -> HandoffPackage | None:
        """Pending package without consuming it."""
        raw = self._store.get_json(self._slot_key)
        if raw is None:
            return None
        return _parse_package(raw)

    def is_expired(self, package: HandoffPackage) -> bool:
        return not self._is_fresh(package)

    def _is_fresh(self, package: HandoffPackage) -> bool:
        created_at = package.created_at
        if created_at is None:
            return False
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return self._clock() - created_at <= self._max_age


def _require_tool(value: ToolId | str) -> ToolId:
    tool_id = parse_tool_id(value)
    if tool_id is None:
        raise ValueError(f"Unknown tool: {value!r}")
    return tool_id


def _parse_package(raw: object) -> HandoffPackage | None:
    try:
        return HandoffPackage.model_validate(raw)
    except ModelValidationError as e:
        logger.warning("Ignoring malformed handoff package: %s", e.error_count())
        return None
