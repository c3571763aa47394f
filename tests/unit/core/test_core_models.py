# tests/unit/core/test_core_models.py — v1
"""Tests for core/models.py — invariants of the domain models."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as ModelValidationError

from imageflow.core.errors import CompatibilityError
from imageflow.core.models import Artifact, RunContext, WorkflowDefinition
from imageflow.core.tools import ToolId

NOW = datetime(2026, 2, 16, 9, 0, tzinfo=timezone.utc)


def _definition(**overrides):
    data = dict(
        name="shrink",
        source_tool_id=ToolId.IMAGE_RESIZER,
        steps=[ToolId.IMAGE_RESIZER, ToolId.IMAGE_COMPRESSOR],
        created_at=NOW,
        updated_at=NOW,
    )
    data.update(overrides)
    return WorkflowDefinition(**data)


def _context(**overrides):
    data = dict(
        workflow_id="wf-1",
        workflow_name="shrink",
        source_tool_id=ToolId.IMAGE_RESIZER,
        steps=[ToolId.IMAGE_RESIZER, ToolId.IMAGE_COMPRESSOR],
        current_step_index=1,
        started_at=NOW,
    )
    data.update(overrides)
    return RunContext(**data)


class TestArtifact:
    def test_frozen(self, png_artifact):
        with pytest.raises(ModelValidationError):
            png_artifact.file_name = "other.png"

    def test_equality_by_value(self):
        a = Artifact(file_name="a.png", mime_type="image/png", data=b"\x01")
        b = Artifact(file_name="a.png", mime_type="image/png", data=b"\x01")
        assert a == b

    def test_size(self, png_artifact):
        assert png_artifact.size_bytes == len(png_artifact.data)


class TestWorkflowDefinition:
    def test_defaults(self):
        d = _definition()
        assert d.run_count == 0
        assert d.last_run_at is None
        assert d.id
        assert d.targets == [ToolId.IMAGE_COMPRESSOR]

    def test_requires_downstream_step(self):
        with pytest.raises(ModelValidationError):
            _definition(steps=[ToolId.IMAGE_RESIZER])

    def test_first_step_is_source(self):
        with pytest.raises(ModelValidationError):
            _definition(steps=[ToolId.IMAGE_COMPRESSOR, ToolId.IMAGE_RESIZER])

    def test_negative_run_count(self):
        with pytest.raises(ModelValidationError):
            _definition(run_count=-1)

    def test_json_round_trip(self):
        d = _definition()
        assert WorkflowDefinition.model_validate(d.model_dump(mode="json")) == d


class TestRunContext:
    def test_current_tool(self):
        ctx = _context()
        assert ctx.current_tool_id is ToolId.IMAGE_COMPRESSOR
        assert ctx.is_last_step is True

    @pytest.mark.parametrize("index", [-1, 2])
    def test_index_out_of_range(self, index):
        with pytest.raises(ModelValidationError):
            _context(current_step_index=index)

    def test_empty_steps(self):
        with pytest.raises(ModelValidationError):
            _context(steps=[], current_step_index=0)


class TestCompatibilityError:
    def test_message_lists_accepted_formats(self):
        err = CompatibilityError("image/jpeg", "png-to-webp", ["image/png"])
        assert "png-to-webp" in str(err)
        assert "image/png" in str(err)
        assert err.mime_type == "image/jpeg"

    def test_message_for_tool_without_input(self):
        err = CompatibilityError("image/png", "qr-code-generator", [])
        assert "does not take file input" in str(err)
