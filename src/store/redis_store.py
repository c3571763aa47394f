# src/store/redis_store.py — v1
"""Redis-backed store (backend=redis).

Requires the 'redis' package. Suitable when tool views run on several
hosts. Transient values get a TTL so an abandoned handoff expires on the
server as well as through the channel's own age check.
"""

from __future__ import annotations

from imageflow.store.base_store import BaseKeyValueStore


_KEY_PREFIX = "imageflow:"


class RedisStore(BaseKeyValueStore):
    """Redis string keys under the ``imageflow:`` prefix."""

    name = "redis"

    def __init__(self, redis_url: str, key_prefix: str = _KEY_PREFIX) -> None:
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._prefix = key_prefix

    def get(self, key: str) -> str | None:
        return self._client.get(f"{self._prefix}{key}")

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        if ttl_seconds:
            self._client.set(f"{self._prefix}{key}", value, ex=ttl_seconds)
        else:
            self._client.set(f"{self._prefix}{key}", value)

    def remove(self, key: str) -> None:
        self._client.delete(f"{self._prefix}{key}")

    def close(self) -> None:
        self._client.close()
