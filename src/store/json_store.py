# src/store/json_store.py — v1
"""File-based store (default backend).

Each key is one file under the store root. Writes go through a temporary
file and an atomic rename so a reader in another process never sees a
half-written value.
"""

from __future__ import annotations

import os
from pathlib import Path

from imageflow.store.base_store import BaseKeyValueStore


class JsonFileStore(BaseKeyValueStore):
    """One JSON file per key under ``root``."""

    name = "json"

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    def get(self, key: str) -> str | None:
        path = self._entry_path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        path = self._entry_path(key)
        tmp = path.with_suffix(f".{os.getpid()}.tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def remove(self, key: str) -> None:
        path = self._entry_path(key)
        if path.exists():
            path.unlink()

    def _entry_path(self, key: str) -> Path:
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_key}.json"
