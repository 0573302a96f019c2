# src/api/facade.py — v1
"""Public API facade — single entry point for the editor integration.

Usage:
    from tabautocomplete.api.facade import create_service
    service = create_service()
    await service.start()
    payload = await service.complete(text, offset, "python", "app.py")

The editor hands over the whole buffer and a cursor offset; the facade cuts
the context window, checks file-type support and delegates to the
RequestCoordinator. It answers with the editor payload or None.
"""

from __future__ import annotations

import logging
from pathlib import PurePath
from typing import TYPE_CHECKING, Any

from tabautocomplete.cache.models import BufferChange, CacheStats
from tabautocomplete.cache.snippet_cache import SnippetCache
from tabautocomplete.config.settings import GenerationConfig, Settings
from tabautocomplete.core.models import CompletionOutcome, CompletionResult, Failed
from tabautocomplete.llm.models import ConnectionStatus
from tabautocomplete.llm.prompts import PromptBuilder
from tabautocomplete.pipeline.coordinator import RequestCoordinator

if TYPE_CHECKING:
    from tabautocomplete.cache.base_cache_store import BaseSnippetStorage
    from tabautocomplete.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Languages supported unless explicitly disabled.
COMMON_LANGUAGES = frozenset({
    "javascript", "typescript", "python", "java", "c", "cpp",
    "csharp", "go", "rust", "php", "ruby", "html", "css",
})


def split_at_cursor(document_text: str, cursor_offset: int, max_lines: int) -> tuple[str, str]:
    """Prefix and suffix around the cursor, each bounded to ``max_lines`` lines."""
    offset = max(0, min(cursor_offset, len(document_text)))
    before = document_text[:offset]
    after = document_text[offset:]
    before_lines = before.split("\n")
    after_lines = after.split("\n")
    prefix = "\n".join(before_lines[-max_lines:])
    suffix = "\n".join(after_lines[:max_lines])
    return prefix, suffix


def _matches(patterns: list[str], extension: str, language: str) -> bool:
    for pattern in patterns:
        if pattern in ("*", "all"):
            return True
        if pattern in (extension, language):
            return True
        if pattern.endswith("*") and len(pattern) > 1:
            stem = pattern[:-1]
            if extension.startswith(stem) or language.startswith(stem):
                return True
    return False


class CompletionService:
    """Editor-facing completion service.

    Args:
        settings: Application settings.
        client: Generation endpoint.
        cache: Snippet cache (loaded by ``start``).
    """

    def __init__(self, settings: Settings, client: BaseLLMClient, cache: SnippetCache) -> None:
        self._settings = settings
        self._client = client
        self._cache = cache
        self._coordinator = RequestCoordinator(
            client=client,
            cache=cache,
            prompt_builder=PromptBuilder(
                template=settings.prompt_template,
                max_prompt_chars=settings.max_prompt_chars,
            ),
            default_config=GenerationConfig.from_settings(settings),
            related_snippets=settings.related_snippets if settings.include_related_snippets else 0,
        )
        self._last_prefix: str | None = None
        self._last_completion: str | None = None
        self.last_outcome: CompletionOutcome | None = None

    @property
    def coordinator(self) -> RequestCoordinator:
        return self._coordinator

    @property
    def cache(self) -> SnippetCache:
        return self._cache

    async def start(self) -> None:
        """Load the persisted snippet cache."""
        await self._cache.load()

    async def close(self) -> None:
        """Cancel the live attempt and release the HTTP client and storage."""
        self._coordinator.cancel("shutdown")
        await self._client.close()
        await self._cache.close()

    def is_file_type_supported(self, file_path: str, language: str) -> bool:
        """Disabled list wins, then enabled list, then the common languages."""
        if not self._settings.enabled:
            return False
        extension = PurePath(file_path).suffix.lower() if file_path else ""
        if _matches(self._settings.disabled_file_types_list, extension, language):
            return False
        if _matches(self._settings.enabled_file_types_list, extension, language):
            return True
        return language in COMMON_LANGUAGES

    async def complete(
        self,
        document_text: str,
        cursor_offset: int,
        language: str,
        file_path: str = "",
        trigger_kind: str = "automatic",
    ) -> dict[str, Any] | None:
        """Completion payload for the cursor position, or None."""
        if not self.is_file_type_supported(file_path, language):
            logger.debug("Completion skipped: %s (%s) not supported", file_path or "-", language)
            return None

        prefix, suffix = split_at_cursor(
            document_text, cursor_offset, self._settings.max_context_lines
        )
        logger.debug("Completion requested (%s trigger) in %s", trigger_kind, file_path or "-")
        outcome = await self._coordinator.request_completion(
            prefix, suffix, language, file_path=file_path
        )
        self.last_outcome = outcome

        if isinstance(outcome, CompletionResult):
            self._last_prefix = prefix
            self._last_completion = outcome.completion_text
            logger.info(
                "Completion ready (%d lines, cache_hit=%s, %dms)",
                outcome.num_lines, outcome.cache_hit, outcome.elapsed_ms,
            )
            return outcome.to_payload()
        if isinstance(outcome, Failed):
            logger.warning("Completion failed: %s", outcome.reason)
        return None

    def cancel(self) -> None:
        self._coordinator.cancel("editor")

    async def accept(self, completion_text: str | None = None) -> bool:
        """Store the last shown completion under its prefix.

        Returns:
            True when something was cached.
        """
        if self._last_prefix is None:
            return False
        text = completion_text if completion_text is not None else self._last_completion
        if not text or not text.strip():
            return False
        await self._cache.put_exact(self._last_prefix, text)
        logger.debug("Accepted completion cached (%d chars)", len(text))
        self._last_prefix = None
        self._last_completion = None
        return True

    async def on_buffer_change(self, change: BufferChange) -> None:
        """Feed an edit made outside the completion flow to the fuzzy cache."""
        if not change.is_significant:
            return
        try:
            await self._cache.record_edit(change)
        except Exception as e:
            logger.warning("Failed to record edit: %s", e)

    async def clear_cache(self) -> None:
        await self._cache.clear()

    def stats(self) -> CacheStats:
        return self._cache.stats()

    async def test_connection(self) -> ConnectionStatus:
        return await self._client.test_connection()


def create_service(
    settings: Settings | None = None,
    client: BaseLLMClient | None = None,
    storage: BaseSnippetStorage | None = None,
) -> CompletionService:
    """Wire a CompletionService from settings.

    Args:
        settings: Global settings. Loaded from .env if None.
        client: Generation client. Built by ``create_llm_client`` if None.
        storage: Snippet storage. Built by ``create_snippet_storage`` if None.
    """
    settings = settings or Settings()

    if client is None:
        from tabautocomplete.llm.client_factory import create_llm_client

        client = create_llm_client(settings)

    if storage is None:
        from tabautocomplete.cache.cache_factory import create_snippet_storage

        storage = create_snippet_storage(settings)

    cache = SnippetCache(
        storage=storage,
        max_snippets=settings.max_snippets,
        retention_hours=settings.retention_period_hours,
        enabled=settings.cache_enabled,
    )
    return CompletionService(settings=settings, client=client, cache=cache)
