# src/cache/json_store.py — v1
"""JSON file snippet storage (default CACHE_BACKEND=json).

The whole snippet array lives in ``<cache_root>/<namespace>.json``.
Writes go to a temporary sibling first and are renamed into place so a crash
never leaves a truncated cache file behind.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from tabautocomplete.cache.base_cache_store import (
    DEFAULT_NAMESPACE,
    BaseSnippetStorage,
    StorageError,
)

logger = logging.getLogger(__name__)


class JsonSnippetStorage(BaseSnippetStorage):
    """File-based snippet storage using a single JSON document."""

    def __init__(self, cache_root: Path | str, namespace: str = DEFAULT_NAMESPACE) -> None:
        super().__init__(namespace)
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        safe_name = self._namespace.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_name}.json"

    async def load(self) -> list[dict[str, Any]]:
        """Read the snippet array; a missing file is an empty cache."""
        path = self.path
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}") from e
        if not isinstance(data, list):
            logger.warning("Ignoring cache file %s: expected a JSON array", path)
            return []
        return [r for r in data if isinstance(r, dict)]

    async def save(self, records: list[dict[str, Any]]) -> None:
        """Atomically replace the snippet array."""
        path = self.path
        tmp_path = path.with_suffix(".json.tmp")
        try:
            tmp_path.write_text(
                json.dumps(records, ensure_ascii=False, default=str),
                encoding="utf-8",
            )
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    async def clear(self) -> None:
        """Remove the cache file."""
        if self.path.exists():
            self.path.unlink()
