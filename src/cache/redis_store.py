# src/cache/redis_store.py — v1
"""Redis snippet storage (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Lets several editor instances on different machines share one cache.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from tabautocomplete.cache.base_cache_store import (
    DEFAULT_NAMESPACE,
    BaseSnippetStorage,
    StorageError,
)

logger = logging.getLogger(__name__)

_KEY_PREFIX = "tabautocomplete:"


class RedisSnippetStorage(BaseSnippetStorage):
    """Redis-backed snippet storage: one string key per namespace."""

    def __init__(self, redis_url: str, namespace: str = DEFAULT_NAMESPACE) -> None:
        super().__init__(namespace)
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)

    @property
    def key(self) -> str:
        return f"{_KEY_PREFIX}{self._namespace}"

    async def load(self) -> list[dict[str, Any]]:
        """Read the snippet array from Redis."""
        try:
            data = self._client.get(self.key)
        except Exception as e:
            raise StorageError(f"Redis read failed for {self.key}: {e}") from e
        if data is None:
            return []
        try:
            records = json.loads(data)
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt snippet array at {self.key}: {e}") from e
        return [r for r in records if isinstance(r, dict)] if isinstance(records, list) else []

    async def save(self, records: list[dict[str, Any]]) -> None:
        """Replace the snippet array."""
        try:
            self._client.set(self.key, json.dumps(records, ensure_ascii=False, default=str))
        except Exception as e:
            raise StorageError(f"Redis write failed for {self.key}: {e}") from e

    async def clear(self) -> None:
        """Delete the namespace key."""
        self._client.delete(self.key)

    async def close(self) -> None:
        self._client.close()
