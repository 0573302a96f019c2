# src/llm/adapters/openai_adapter.py — v1
"""OpenAI-compatible chat adapter implementing BaseLLMClient.

Uses the official openai SDK pointed at any ``/chat/completions`` endpoint
(DeepSeek, OpenAI, local gateways). The completion object is serialized back
to JSON so the decoder reads ``choices[0].message.content`` like any other
record.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from tabautocomplete.llm.base_client import BaseLLMClient, ConnectionFailed, TransportError
from tabautocomplete.llm.models import ConnectionStatus, GenerationResponse
from tabautocomplete.llm.retry import with_retry
from tabautocomplete.pipeline.cancellation import CancellationToken

logger = logging.getLogger(__name__)

DEEPSEEK_BASE_URL = "https://api.deepseek.com/v1"
OPENAI_BASE_URL = "https://api.openai.com/v1"


class OpenAICompatibleAdapter(BaseLLMClient):
    """Chat-completions adapter for DeepSeek and other OpenAI-style APIs."""

    def __init__(
        self,
        model: str = "deepseek-coder",
        api_key: str = "",
        base_url: str = DEEPSEEK_BASE_URL,
        provider: str = "deepseek",
        timeout_s: float = 30.0,
        max_retries: int = 0,
        http_client: httpx.AsyncClient | None = None,
        **kwargs: Any,
    ):
        if not api_key:
            raise ValueError(f"{provider} requires an API key")
        import openai

        self._model = model
        self._provider = provider
        self._base_url = base_url.rstrip("/")
        self._max_retries = max_retries
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=self._base_url,
            timeout=timeout_s,
            max_retries=0,
            http_client=http_client,
        )

    async def generate(
        self,
        prompt: str,
        *,
        model: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 300,
        token: CancellationToken | None = None,
    ) -> GenerationResponse:
        if token is not None:
            token.raise_if_cancelled()

        model_name = model or self._model
        kwargs: dict[str, Any] = {
            "model": model_name,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        logger.debug(
            "POST %s/chat/completions model=%s temperature=%s max_tokens=%d",
            self._base_url, model_name, temperature, max_tokens,
        )

        t0 = time.monotonic()
        if self._max_retries > 0:
            completion = await with_retry(
                self._create, kwargs,
                operation=f"{self._provider}.generate", max_retries=self._max_retries,
            )
        else:
            completion = await self._create(kwargs)
        latency = int((time.monotonic() - t0) * 1000)

        return GenerationResponse(
            raw_text=completion.model_dump_json(exclude_none=True),
            model=model_name,
            provider=self._provider,
            latency_ms=latency,
        )

    async def _create(self, kwargs: dict[str, Any]) -> Any:
        import openai

        try:
            return await self._client.chat.completions.create(**kwargs)
        except openai.APIStatusError as e:
            raise TransportError(
                f"{self._provider} API error {e.status_code}: {e.message}",
                status_code=e.status_code,
            ) from e
        except openai.APIConnectionError as e:
            raise ConnectionFailed(f"Cannot reach {self._base_url}: {e}") from e

    async def test_connection(self) -> ConnectionStatus:
        import openai

        try:
            page = await self._client.models.list()
        except openai.APIStatusError as e:
            return ConnectionStatus(
                success=False, message=f"{self._provider} API error {e.status_code}: {e.message}"
            )
        except openai.APIConnectionError as e:
            logger.error("%s connection test failed: %s", self._provider, e)
            return ConnectionStatus(success=False, message=f"Cannot connect: {e}")

        models = [m.id for m in page.data]
        return ConnectionStatus(
            success=True, message=f"Connected to {self._provider}", models=models
        )

    @property
    def provider_name(self) -> str:
        return self._provider

    @property
    def model(self) -> str:
        return self._model

    async def close(self) -> None:
        await self._client.close()
