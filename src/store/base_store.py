# src/store/base_store.py — v1
"""Abstract key-value store interface.

Backends store opaque text under string keys and are free to raise on
failure; SafeStore is the layer that turns failures into "absent".
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class BaseKeyValueStore(ABC):
    """Unified interface for text key-value backends."""

    name: str = "base"

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the text stored under key, or None."""

    @abstractmethod
    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        """Store text under key, replacing any previous value."""

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete key. Missing keys are not an error."""

    def close(self) -> None:
        """Release backend resources."""
