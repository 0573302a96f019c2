# src/cache/sqlite_store.py — v1
"""SQLite snippet storage (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3 — no external dependency. One row per namespace holds
the serialized snippet array, so several editor profiles can share a file.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

from tabautocomplete.cache.base_cache_store import (
    DEFAULT_NAMESPACE,
    BaseSnippetStorage,
    StorageError,
)

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS snippet_store (
    namespace TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


class SqliteSnippetStorage(BaseSnippetStorage):
    """SQLite-backed key/value snippet storage."""

    def __init__(self, db_path: Path | str, namespace: str = DEFAULT_NAMESPACE) -> None:
        super().__init__(namespace)
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def load(self) -> list[dict[str, Any]]:
        """Read the snippet array stored under the namespace."""
        try:
            row = self._conn.execute(
                "SELECT data FROM snippet_store WHERE namespace = ?",
                (self._namespace,),
            ).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to read namespace {self._namespace}: {e}") from e
        if row is None:
            return []
        try:
            data = json.loads(row[0])
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt snippet array in {self._db_path}: {e}") from e
        return [r for r in data if isinstance(r, dict)] if isinstance(data, list) else []

    async def save(self, records: list[dict[str, Any]]) -> None:
        """Replace the snippet array (upsert)."""
        try:
            self._conn.execute(
                """INSERT OR REPLACE INTO snippet_store (namespace, data, updated_at)
                   VALUES (?, ?, CURRENT_TIMESTAMP)""",
                (self._namespace, json.dumps(records, ensure_ascii=False, default=str)),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"Failed to write namespace {self._namespace}: {e}") from e

    async def clear(self) -> None:
        """Remove the namespace row."""
        self._conn.execute(
            "DELETE FROM snippet_store WHERE namespace = ?", (self._namespace,)
        )
        self._conn.commit()

    async def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
