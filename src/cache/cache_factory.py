# src/cache/cache_factory.py — v1
"""Factory for snippet storage instantiation."""

from __future__ import annotations

from tabautocomplete.cache.base_cache_store import DEFAULT_NAMESPACE, BaseSnippetStorage
from tabautocomplete.config.settings import Settings


class UnsupportedBackendError(ValueError):
    """Raised when CACHE_BACKEND names an unknown backend."""


def create_snippet_storage(settings: Settings | None = None) -> BaseSnippetStorage:
    """Instantiate the configured storage backend.

    Args:
        settings: Application settings. Defaults to the JSON backend under
            ``~/.tabautocomplete/cache``.

    Returns:
        Configured BaseSnippetStorage implementation.
    """
    backend = "json" if settings is None else settings.cache_backend
    namespace = DEFAULT_NAMESPACE if settings is None else settings.cache_namespace
    cache_root = "~/.tabautocomplete/cache" if settings is None else str(settings.cache_root)

    if backend == "json":
        from tabautocomplete.cache.json_store import JsonSnippetStorage
        return JsonSnippetStorage(cache_root=cache_root, namespace=namespace)

    if backend == "sqlite":
        from tabautocomplete.cache.sqlite_store import SqliteSnippetStorage
        return SqliteSnippetStorage(
            db_path=f"{cache_root}/tabautocomplete_cache.db", namespace=namespace
        )

    if backend == "redis":
        from tabautocomplete.cache.redis_store import RedisSnippetStorage
        if settings is None or not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisSnippetStorage(redis_url=settings.cache_redis_url, namespace=namespace)

    if backend == "memory":
        from tabautocomplete.cache.memory_store import MemorySnippetStorage
        return MemorySnippetStorage(namespace=namespace)

    raise UnsupportedBackendError(f"Unsupported cache backend: {backend!r}")
