# tests/conftest.py — v2
"""Shared test fixtures for unit and integration tests.

Provides a controllable clock, in-memory stores, small artifacts of each
supported type and an orchestrator wired to a recording navigator.
No external services: Redis is always mocked.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from imageflow.api.facade import WorkflowOrchestrator
from imageflow.config.settings import Settings
from imageflow.core.models import Artifact, PendingHandoff
from imageflow.logging.context import clear_context
from imageflow.store.memory_store import MemoryStore
from imageflow.store.safe_store import SafeStore, StoreAdapter, memory_adapter

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06"
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9"
WEBP_BYTES = b"RIFF\x1a\x00\x00\x00WEBPVP8L\x0d\x00\x00\x00\x2f\x00\x00\x00\x10\x07\x10"
PDF_BYTES = b"%PDF-1.7\n1 0 obj\n<< /Type /Catalog >>\nendobj\n%%EOF\n"


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingNavigator:
    """Navigator that remembers every activation request."""

    def __init__(self) -> None:
        self.calls: list[PendingHandoff] = []

    def __call__(self, pending: PendingHandoff) -> None:
        self.calls.append(pending)

    @property
    def last(self) -> PendingHandoff | None:
        return self.calls[-1] if self.calls else None


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()


# === FIXTURES: Time and stores ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 2, 16, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def durable_store() -> SafeStore:
    return SafeStore(MemoryStore(), label="durable")


@pytest.fixture
def transient_store() -> SafeStore:
    return SafeStore(MemoryStore(), label="transient")


@pytest.fixture
def stores() -> StoreAdapter:
    return memory_adapter()


@pytest.fixture
def memory_settings() -> Settings:
    return Settings(_env_file=None, durable_backend="memory", transient_backend="memory")


# === FIXTURES: Artifacts ===


@pytest.fixture
def png_artifact() -> Artifact:
    return Artifact(file_name="photo.png", mime_type="image/png", data=PNG_BYTES)


@pytest.fixture
def jpeg_artifact() -> Artifact:
    return Artifact(file_name="photo.jpg", mime_type="image/jpeg", data=JPEG_BYTES)


@pytest.fixture
def webp_artifact() -> Artifact:
    return Artifact(file_name="photo.webp", mime_type="image/webp", data=WEBP_BYTES)


@pytest.fixture
def pdf_artifact() -> Artifact:
    return Artifact(file_name="scan.pdf", mime_type="application/pdf", data=PDF_BYTES)


@pytest.fixture
def jpeg_file(tmp_path: Path) -> Path:
    path = tmp_path / "photo.jpg"
    path.write_bytes(JPEG_BYTES)
    return path


# === FIXTURES: Orchestrator ===


@pytest.fixture
def navigator() -> RecordingNavigator:
    return RecordingNavigator()


@pytest.fixture
def orchestrator(memory_settings, stores, navigator, clock) -> WorkflowOrchestrator:
    return WorkflowOrchestrator(
        settings=memory_settings,
        stores=stores,
        navigator=navigator,
        clock=clock,
    )
