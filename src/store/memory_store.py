# src/store/memory_store.py — v1
"""In-process store. Used for tests and when persistence is disabled."""

from __future__ import annotations

from imageflow.store.base_store import BaseKeyValueStore


class MemoryStore(BaseKeyValueStore):
    """Dict-backed store; contents die with the process."""

    name = "memory"

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)
