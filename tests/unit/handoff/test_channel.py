# tests/unit/handoff/test_channel.py — v1
"""Tests for handoff/channel.py — single-slot, read-once transport."""

from __future__ import annotations

import logging

import pytest

from imageflow.core.errors import CompatibilityError
from imageflow.core.models import (
    Artifact,
    ArtifactRef,
    HandoffPackage,
    PendingHandoff,
    RunContext,
)
from imageflow.core.tools import ToolId, is_compatible
from imageflow.handoff.channel import HANDOFF_SLOT_KEY, HandoffChannel
from imageflow.store.memory_store import MemoryStore
from imageflow.store.safe_store import SafeStore

SRC = ToolId.IMAGE_RESIZER
DST = ToolId.IMAGE_COMPRESSOR


@pytest.fixture
def calls() -> list:
    return []


@pytest.fixture
def channel(transient_store, clock, calls) -> HandoffChannel:
    return HandoffChannel(transient_store, navigator=calls.append, clock=clock)


@pytest.fixture
def run_context(clock) -> RunContext:
    return RunContext(
        workflow_id="wf-1",
        workflow_name="web",
        source_tool_id=SRC,
        steps=[SRC, DST, ToolId.PNG_TO_WEBP],
        current_step_index=1,
        started_at=clock.now,
    )


class TestSend:
    @pytest.mark.asyncio
    async def test_writes_slot_and_navigates(self, channel, transient_store, calls, png_artifact, clock):
        assert await channel.send(SRC, DST, png_artifact) is True
        raw = transient_store.get_json(HANDOFF_SLOT_KEY)
        assert raw["source_tool_id"] == "image-resizer"
        assert raw["target_tool_id"] == "image-compressor"
        assert raw["encoded_artifact"].startswith("data:image/png;base64,")
        assert len(calls) == 1
        pending = calls[0]
        assert isinstance(pending, PendingHandoff)
        assert pending.target_tool_id == DST
        assert pending.slot_key == HANDOFF_SLOT_KEY
        assert pending.created_at == clock.now
        assert pending.run_id is None

    @pytest.mark.asyncio
    async def test_pending_carries_run_id(self, channel, calls, png_artifact, run_context):
        await channel.send(SRC, DST, png_artifact, run_context=run_context)
        assert calls[0].run_id == run_context.run_id

    @pytest.mark.asyncio
    async def test_second_send_overwrites(self, channel, png_artifact, jpeg_artifact):
        await channel.send(SRC, DST, png_artifact)
        await channel.send(SRC, DST, jpeg_artifact)
        received = channel.receive(DST)
        assert received.artifact == jpeg_artifact

    @pytest.mark.asyncio
    async def test_incompatible_raises_before_write(self, channel, transient_store, calls, jpeg_artifact):
        with pytest.raises(CompatibilityError) as excinfo:
            await channel.send(SRC, ToolId.PNG_TO_WEBP, jpeg_artifact, compatibility=is_compatible)
        assert excinfo.value.mime_type == "image/jpeg"
        assert excinfo.value.accepted == ["image/png"]
        assert transient_store.get(HANDOFF_SLOT_KEY) is None
        assert calls == []

    @pytest.mark.asyncio
    async def test_compatible_passes(self, channel, png_artifact):
        assert await channel.send(SRC, ToolId.PNG_TO_WEBP, png_artifact, compatibility=is_compatible)

    @pytest.mark.asyncio
    async def test_encoding_failure(self, channel, transient_store, calls):
        broken = Artifact.model_construct(file_name="x.png", mime_type="image/png", data=None)
        assert await channel.send(SRC, DST, broken) is False
        assert transient_store.get(HANDOFF_SLOT_KEY) is None
        assert calls == []

    @pytest.mark.asyncio
    async def test_missing_file(self, channel, calls, tmp_path):
        ref = ArtifactRef(path=tmp_path / "gone.png")
        assert await channel.send(SRC, DST, ref) is False
        assert calls == []

    @pytest.mark.asyncio
    async def test_reads_file_ref(self, channel, jpeg_file):
        assert await channel.send(SRC, DST, ArtifactRef(path=jpeg_file))
        received = channel.receive(DST)
        assert received.artifact.file_name == "photo.jpg"
        assert received.artifact.mime_type == "image/jpeg"
        assert received.artifact.data == jpeg_file.read_bytes()

    @pytest.mark.asyncio
    async def test_storage_failure(self, clock, calls, png_artifact):
        channel = HandoffChannel(SafeStore(None), navigator=calls.append, clock=clock)
        assert await channel.send(SRC, DST, png_artifact) is False
        assert calls == []

    @pytest.mark.asyncio
    async def test_navigator_failure_swallowed(self, transient_store, clock, png_artifact, caplog):
        def explode(pending):
            raise RuntimeError("no such view")

        channel = HandoffChannel(transient_store, navigator=explode, clock=clock)
        with caplog.at_level(logging.WARNING, logger="imageflow.handoff.channel"):
            assert await channel.send(SRC, DST, png_artifact) is True
        assert "Navigation to image-compressor failed" in caplog.text
        assert channel.receive(DST) is not None

    @pytest.mark.asyncio
    async def test_unknown_tool(self, channel, png_artifact):
        with pytest.raises(ValueError, match="Unknown tool"):
            await channel.send(SRC, "teleporter", png_artifact)

    @pytest.mark.asyncio
    async def test_ttl_on_transient_slot(self, clock, png_artifact):
        seen = {}

        class TtlStore(MemoryStore):
            def set(self, key, value, ttl_seconds=None):
                seen[key] = ttl_seconds
                super().set(key, value, ttl_seconds)

        channel = HandoffChannel(SafeStore(TtlStore()), clock=clock)
        await channel.send(SRC, DST, png_artifact)
        assert seen == {HANDOFF_SLOT_KEY: 1200}


class TestReceive:
    @pytest.mark.asyncio
    async def test_round_trip_with_context(self, channel, png_artifact, run_context):
        await channel.send(SRC, DST, png_artifact, run_context=run_context)
        received = channel.receive(DST)
        assert received.source_tool_id == SRC
        assert received.artifact == png_artifact
        assert received.run_context == run_context

    @pytest.mark.asyncio
    async def test_read_once(self, channel, png_artifact):
        await channel.send(SRC, DST, png_artifact)
        assert channel.receive(DST) is not None
        assert channel.receive(DST) is None

    def test_nothing_pending(self, channel):
        assert channel.receive(DST) is None

    @pytest.mark.asyncio
    async def test_wrong_target_clears_slot(self, channel, transient_store, png_artifact):
        await channel.send(SRC, DST, png_artifact)
        assert channel.receive(ToolId.IMAGE_CROPPER) is None
        assert transient_store.get(HANDOFF_SLOT_KEY) is None
        assert channel.receive(DST) is None

    @pytest.mark.asyncio
    async def test_fresh_at_exactly_max_age(self, channel, png_artifact, clock):
        await channel.send(SRC, DST, png_artifact)
        clock.advance(minutes=20)
        assert channel.receive(DST) is not None

    @pytest.mark.asyncio
    async def test_stale_discarded_and_cleared(self, channel, transient_store, png_artifact, clock):
        await channel.send(SRC, DST, png_artifact)
        clock.advance(minutes=20, seconds=1)
        assert channel.receive(DST) is None
        assert transient_store.get(HANDOFF_SLOT_KEY) is None

    @pytest.mark.asyncio
    async def test_missing_timestamp(self, channel, transient_store, png_artifact):
        await channel.send(SRC, DST, png_artifact)
        raw = transient_store.get_json(HANDOFF_SLOT_KEY)
        del raw["created_at"]
        transient_store.set_json(HANDOFF_SLOT_KEY, raw)
        assert channel.receive(DST) is None

    @pytest.mark.asyncio
    async def test_naive_timestamp_read_as_utc(self, channel, transient_store, png_artifact, clock):
        await channel.send(SRC, DST, png_artifact)
        raw = transient_store.get_json(HANDOFF_SLOT_KEY)
        raw["created_at"] = clock.now.replace(tzinfo=None).isoformat()
        transient_store.set_json(HANDOFF_SLOT_KEY, raw)
        assert channel.receive(DST) is not None

    @pytest.mark.asyncio
    async def test_malformed_context_degrades(self, channel, transient_store, png_artifact, run_context):
        await channel.send(SRC, DST, png_artifact, run_context=run_context)
        raw = transient_store.get_json(HANDOFF_SLOT_KEY)
        raw["run_context"] = {"steps": "nope", "current_step_index": 1}
        transient_store.set_json(HANDOFF_SLOT_KEY, raw)
        received = channel.receive(DST)
        assert received.artifact == png_artifact
        assert received.run_context is None

    @pytest.mark.asyncio
    async def test_undecodable_artifact(self, channel, transient_store, png_artifact):
        await channel.send(SRC, DST, png_artifact)
        raw = transient_store.get_json(HANDOFF_SLOT_KEY)
        raw["encoded_artifact"] = "not a data url"
        transient_store.set_json(HANDOFF_SLOT_KEY, raw)
        assert channel.receive(DST) is None
        assert transient_store.get(HANDOFF_SLOT_KEY) is None

    def test_unparseable_package(self, channel, transient_store):
        transient_store.set(HANDOFF_SLOT_KEY, "{broken")
        assert channel.receive(DST) is None
        transient_store.set_json(HANDOFF_SLOT_KEY, {"target_tool_id": "image-compressor"})
        assert channel.receive(DST) is None
        assert transient_store.get(HANDOFF_SLOT_KEY) is None

    def test_storage_unavailable(self, clock):
        assert HandoffChannel(SafeStore(None), clock=clock).receive(DST) is None


class TestPeek:
    @pytest.mark.asyncio
    async def test_does_not_consume(self, channel, png_artifact, clock):
        await channel.send(SRC, DST, png_artifact)
        package = channel.peek()
        assert package.target_tool_id == DST
        assert package.created_at == clock.now
        assert channel.is_expired(package) is False
        assert channel.receive(DST) is not None

    @pytest.mark.asyncio
    async def test_expired(self, channel, png_artifact, clock):
        await channel.send(SRC, DST, png_artifact)
        clock.advance(hours=1)
        assert channel.is_expired(channel.peek()) is True

    def test_empty(self, channel):
        assert channel.peek() is None

    def test_is_expired_without_timestamp(self, channel):
        undated = HandoffPackage(
            source_tool_id=SRC,
            target_tool_id=DST,
            file_name="a.png",
            mime_type="image/png",
            encoded_artifact="data:image/png;base64,AA==",
        )
        assert channel.is_expired(undated) is True
