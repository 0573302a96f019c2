# src/cache/memory_store.py — v1
"""In-process snippet storage (CACHE_BACKEND=memory).

Nothing survives the process; used for ephemeral sessions and tests.
Records are deep-copied through JSON so callers never share state with the
stored array.
"""

from __future__ import annotations

import json
from typing import Any

from tabautocomplete.cache.base_cache_store import DEFAULT_NAMESPACE, BaseSnippetStorage


class MemorySnippetStorage(BaseSnippetStorage):
    """Dictionary-backed snippet storage keyed by namespace."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE) -> None:
        super().__init__(namespace)
        self._data: dict[str, str] = {}
        self.save_count = 0

    async def load(self) -> list[dict[str, Any]]:
        raw = self._data.get(self._namespace)
        return json.loads(raw) if raw else []

    async def save(self, records: list[dict[str, Any]]) -> None:
        self._data[self._namespace] = json.dumps(records, default=str)
        self.save_count += 1

    async def clear(self) -> None:
        self._data.pop(self._namespace, None)
