# src/cache/base_cache_store.py — v1
"""Abstract durable storage for the snippet cache.

Backends persist one serialized array of CodeSnippet records under a single
namespace key. The whole array is read at startup and rewritten after every
cache mutation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

DEFAULT_NAMESPACE = "tabAutocompleteCache"


class StorageError(Exception):
    """Durable storage could not be read or written."""


class BaseSnippetStorage(ABC):
    """Unified interface for snippet storage backends."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE) -> None:
        self._namespace = namespace

    @property
    def namespace(self) -> str:
        return self._namespace

    @abstractmethod
    async def load(self) -> list[dict[str, Any]]:
        """Return every persisted record (empty list when nothing is stored)."""

    @abstractmethod
    async def save(self, records: list[dict[str, Any]]) -> None:
        """Replace the persisted array with ``records``."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove the persisted array."""

    async def close(self) -> None:
        """Release backend resources (no-op by default)."""
