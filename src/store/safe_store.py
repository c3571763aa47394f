# src/store/safe_store.py — v1
"""Exception-safe wrapper around a key-value backend.

Storage problems (disabled storage, full disk, unreachable server) must
never break a tool view. Every backend failure is logged and degrades to
"absent" for reads and a no-op for writes.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from imageflow.store.base_store import BaseKeyValueStore

logger = logging.getLogger(__name__)


class SafeStore:
    """Typed get/set/remove that never raises.

    A SafeStore without a backend behaves as unsupported storage: reads
    return None and writes report False.
    """

    def __init__(self, backend: BaseKeyValueStore | None, label: str = "store") -> None:
        self._backend = backend
        self._label = label

    @property
    def backend(self) -> BaseKeyValueStore | None:
        return self._backend

    @property
    def available(self) -> bool:
        return self._backend is not None

    def get(self, key: str) -> str | None:
        if self._backend is None:
            return None
        try:
            return self._backend.get(key)
        except Exception as e:
            logger.warning("%s read failed for %s: %s", self._label, key, e)
            return None

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> bool:
        if self._backend is None:
            return False
        try:
            self._backend.set(key, value, ttl_seconds=ttl_seconds)
            return True
        except Exception as e:
            logger.warning("%s write failed for %s: %s", self._label, key, e)
            return False

    def remove(self, key: str) -> bool:
        if self._backend is None:
            return False
        try:
            self._backend.remove(key)
            return True
        except Exception as e:
            logger.warning("%s delete failed for %s: %s", self._label, key, e)
            return False

    def clear(self, key: str) -> bool:
        """Single-use slot release; same as remove()."""
        return self.remove(key)

    def get_json(self, key: str) -> Any | None:
        """Read and parse a JSON value; unparseable text counts as absent."""
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning("%s holds invalid JSON under %s: %s", self._label, key, e)
            return None

    def set_json(self, key: str, value: Any, ttl_seconds: int | None = None) -> bool:
        try:
            text = json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            logger.warning("Cannot serialize value for %s: %s", key, e)
            return False
        return self.set(key, text, ttl_seconds=ttl_seconds)

    def close(self) -> None:
        if self._backend is None:
            return
        try:
            self._backend.close()
        except Exception as e:
            logger.debug("%s close failed: %s", self._label, e)


@dataclass
class StoreAdapter:
    """The two durability classes used by the orchestrator."""

    durable: SafeStore
    transient: SafeStore

    def close(self) -> None:
        self.durable.close()
        self.transient.close()


def memory_adapter() -> StoreAdapter:
    """Adapter over two fresh in-process stores."""
    from imageflow.store.memory_store import MemoryStore

    return StoreAdapter(
        durable=SafeStore(MemoryStore(), label="durable"),
        transient=SafeStore(MemoryStore(), label="transient"),
    )
