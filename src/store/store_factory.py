# src/store/store_factory.py — v1
"""Factory for store adapter instantiation from Settings."""

from __future__ import annotations

import logging

from imageflow.config.settings import Settings
from imageflow.store.base_store import BaseKeyValueStore
from imageflow.store.safe_store import SafeStore, StoreAdapter

logger = logging.getLogger(__name__)


def create_backend(backend: str, settings: Settings, durable: bool) -> BaseKeyValueStore:
    """Instantiate one backend.

    Raises:
        ValueError: If the backend name is unknown.
    """
    if backend == "memory":
        from imageflow.store.memory_store import MemoryStore
        return MemoryStore()

    if backend == "json":
        from imageflow.store.json_store import JsonFileStore
        root = settings.durable_root if durable else settings.transient_root
        return JsonFileStore(root=root)

    if backend == "sqlite":
        from imageflow.store.sqlite_store import SqliteStore
        return SqliteStore(db_path=settings.durable_root / "imageflow.db")

    if backend == "redis":
        from imageflow.store.redis_store import RedisStore
        if not settings.redis_url:
            raise ValueError("IMAGEFLOW_REDIS_URL must be set when backend=redis")
        prefix = "imageflow:durable:" if durable else "imageflow:transient:"
        return RedisStore(redis_url=settings.redis_url, key_prefix=prefix)

    raise ValueError(f"Unsupported store backend: {backend!r}")


def create_store_adapter(settings: Settings | None = None) -> StoreAdapter:
    """Build the durable + transient stores described by settings.

    A backend that cannot be opened is reported once and replaced by
    unsupported storage, so the calling tool keeps working standalone.
    """
    settings = settings or Settings()
    return StoreAdapter(
        durable=_open(settings.durable_backend, settings, durable=True),
        transient=_open(settings.transient_backend, settings, durable=False),
    )


def _open(backend: str, settings: Settings, durable: bool) -> SafeStore:
    label = "durable" if durable else "transient"
    try:
        return SafeStore(create_backend(backend, settings, durable), label=label)
    except ValueError:
        raise
    except Exception as e:
        logger.warning("%s store %r unavailable: %s", label, backend, e)
        return SafeStore(None, label=label)
