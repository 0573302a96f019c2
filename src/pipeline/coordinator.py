# src/pipeline/coordinator.py — v1
"""Request coordinator: one live completion attempt at a time.

Each call to ``request_completion`` supersedes the previous attempt (its
token is cancelled), then runs cache lookup → generate → decode → sanitize →
echo suppression → overlap trimming → cache store. After every await the
attempt must still be current; a stale attempt ends as Cancelled and never
touches the cache.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from tabautocomplete.config.settings import GenerationConfig
from tabautocomplete.core.models import (
    Cancelled,
    CompletionOutcome,
    CompletionResult,
    Failed,
    NoSuggestion,
)
from tabautocomplete.llm.base_client import TransportError
from tabautocomplete.llm.decoder import ResponseDecoder
from tabautocomplete.llm.prompts import PromptBuilder
from tabautocomplete.llm.sanitizer import CompletionSanitizer
from tabautocomplete.logging.context import clear_context, set_attempt_context, set_stage
from tabautocomplete.pipeline.cancellation import (
    CompletionAttempt,
    OperationCancelled,
    run_cancellable,
)
from tabautocomplete.pipeline.postprocess import is_echo, trim_overlap

if TYPE_CHECKING:
    from tabautocomplete.cache.snippet_cache import SnippetCache
    from tabautocomplete.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Tail of the prefix scored against cached snippets.
RELATED_CONTEXT_CHARS = 500


class RequestCoordinator:
    """Sequences one completion attempt through the pipeline.

    Args:
        client: Generation endpoint.
        cache: Snippet cache (exact lookups and related snippets).
        prompt_builder: Renders the prompt; defaults to the stock template.
        default_config: Used when ``request_completion`` gets no config.
        related_snippets: How many related snippets to add to the prompt
            (0 disables the lookup).
    """

    def __init__(
        self,
        client: BaseLLMClient,
        cache: SnippetCache,
        prompt_builder: PromptBuilder | None = None,
        decoder: ResponseDecoder | None = None,
        sanitizer: CompletionSanitizer | None = None,
        default_config: GenerationConfig | None = None,
        related_snippets: int = 3,
    ) -> None:
        self._client = client
        self._cache = cache
        self._prompts = prompt_builder or PromptBuilder()
        self._decoder = decoder or ResponseDecoder()
        self._sanitizer = sanitizer or CompletionSanitizer()
        self._default_config = default_config or GenerationConfig(model_name=client.model)
        self._related_snippets = related_snippets
        self._current: CompletionAttempt | None = None

    @property
    def current_attempt_id(self) -> str | None:
        return self._current.attempt_id if self._current else None

    def is_current(self, attempt_id: str) -> bool:
        current = self._current
        return current is not None and current.attempt_id == attempt_id and not current.cancelled

    def cancel(self, reason: str = "cancelled") -> None:
        """Cancel the live attempt, if any."""
        if self._current is not None and not self._current.cancelled:
            logger.debug("Cancelling attempt %s (%s)", self._current.attempt_id, reason)
            self._current.token.cancel(reason)

    async def request_completion(
        self,
        prefix: str,
        suffix: str,
        language: str,
        config: GenerationConfig | None = None,
        file_path: str = "",
    ) -> CompletionOutcome:
        """Run one attempt; never raises for transport or pipeline faults."""
        self.cancel("superseded")
        attempt = CompletionAttempt(prefix_text=prefix, suffix_text=suffix, language=language)
        self._current = attempt
        set_attempt_context(attempt.attempt_id, language)
        logger.debug("Attempt started (file=%s, prefix_chars=%d)", file_path or "-", len(prefix))

        try:
            return await self._run(attempt, config or self._default_config)
        except OperationCancelled as e:
            logger.debug("Attempt cancelled: %s", e)
            return Cancelled(attempt_id=attempt.attempt_id)
        except TransportError as e:
            logger.warning("Generation failed: %s", e)
            return Failed(reason=str(e), error_type="transport", attempt_id=attempt.attempt_id)
        except Exception as e:
            logger.exception("Completion pipeline error")
            return Failed(
                reason=f"{type(e).__name__}: {e}",
                error_type="internal",
                attempt_id=attempt.attempt_id,
            )
        finally:
            clear_context()

    def _ensure_current(self, attempt: CompletionAttempt) -> None:
        if self._current is not attempt:
            raise OperationCancelled("superseded")
        attempt.token.raise_if_cancelled()

    async def _run(self, attempt: CompletionAttempt, config: GenerationConfig) -> CompletionOutcome:
        prefix, suffix, language = attempt.prefix_text, attempt.suffix_text, attempt.language

        if config.cache_enabled:
            set_stage("cache")
            try:
                cached = await self._cache.get_exact(prefix)
            except Exception as e:
                logger.warning("Cache lookup failed, treating as miss: %s", e)
                cached = None
            self._ensure_current(attempt)
            if cached:
                logger.debug("Exact cache hit")
                return CompletionResult(
                    completion_text=cached,
                    cache_hit=True,
                    elapsed_ms=attempt.elapsed_ms(),
                    num_lines=cached.count("\n") + 1,
                    attempt_id=attempt.attempt_id,
                    model=config.model_name,
                    provider=self._client.provider_name,
                )

        set_stage("prompt")
        prompt = self._prompts.build(prefix, suffix, language, self._related(prefix, language, config))

        set_stage("generate")
        response = await run_cancellable(
            self._client.generate(
                prompt,
                model=config.model_name,
                temperature=config.temperature,
                max_tokens=config.max_tokens,
                token=attempt.token,
            ),
            attempt.token,
        )
        self._ensure_current(attempt)
        logger.debug("Generation returned %d chars in %dms", len(response.raw_text), response.latency_ms)

        set_stage("decode")
        decoded = self._decoder.decode(response.raw_text)
        if decoded.strategy is not None:
            logger.debug("Decoded via %s", decoded.strategy.value)

        set_stage("sanitize")
        text = self._sanitizer.sanitize(decoded.text, language)
        if not text.strip():
            return NoSuggestion(reason="empty", attempt_id=attempt.attempt_id, elapsed_ms=attempt.elapsed_ms())
        if is_echo(text, prefix, suffix):
            logger.debug("Completion echoes the buffer, suppressed")
            return NoSuggestion(reason="echo", attempt_id=attempt.attempt_id, elapsed_ms=attempt.elapsed_ms())
        text = trim_overlap(text, prefix)
        if not text.strip():
            return NoSuggestion(reason="echo", attempt_id=attempt.attempt_id, elapsed_ms=attempt.elapsed_ms())

        if config.cache_enabled:
            set_stage("store")
            self._ensure_current(attempt)
            try:
                await self._cache.put_exact(prefix, text)
            except Exception as e:
                logger.warning("Cache store failed: %s", e)
            self._ensure_current(attempt)

        return CompletionResult(
            completion_text=text,
            cache_hit=False,
            elapsed_ms=attempt.elapsed_ms(),
            num_lines=text.count("\n") + 1,
            attempt_id=attempt.attempt_id,
            model=response.model,
            provider=response.provider,
        )

    def _related(self, prefix: str, language: str, config: GenerationConfig) -> list[str]:
        if not config.cache_enabled or self._related_snippets < 1:
            return []
        try:
            return list(
                self._cache.find_relevant(
                    prefix[-RELATED_CONTEXT_CHARS:], language, self._related_snippets
                )
            )
        except Exception as e:
            logger.warning("Related snippet lookup failed: %s", e)
            return []
