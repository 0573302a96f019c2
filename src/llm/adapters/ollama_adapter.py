# src/llm/adapters/ollama_adapter.py — v1
"""Ollama adapter implementing BaseLLMClient.

Talks to ``/api/generate`` over httpx and returns the body text untouched:
depending on the server version and flags it is a single JSON object or a
stream of newline-delimited JSON chunks, and ResponseDecoder sorts that out.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import httpx

from tabautocomplete.llm.base_client import BaseLLMClient, ConnectionFailed, TransportError
from tabautocomplete.llm.models import ConnectionStatus, GenerationResponse
from tabautocomplete.llm.retry import with_retry
from tabautocomplete.pipeline.cancellation import CancellationToken

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"


class OllamaAdapter(BaseLLMClient):
    """Ollama local inference adapter."""

    def __init__(
        self,
        model: str = "qwen2.5-coder:1.5b",
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = 30.0,
        max_retries: int = 0,
        http_client: httpx.AsyncClient | None = None,
        **kwargs: Any,
    ):
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._max_retries = max_retries
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_s)

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
        payload: dict[str, Any] = {
            "model": model_name,
            "prompt": prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "options": {"num_predict": max_tokens},
        }
        logger.debug(
            "POST %s/api/generate model=%s temperature=%s max_tokens=%d prompt_chars=%d",
            self._base_url, model_name, temperature, max_tokens, len(prompt),
        )

        t0 = time.monotonic()
        if self._max_retries > 0:
            resp = await with_retry(
                self._post, payload, operation="ollama.generate", max_retries=self._max_retries,
            )
        else:
            resp = await self._post(payload)
        latency = int((time.monotonic() - t0) * 1000)

        return GenerationResponse(
            raw_text=resp.text,
            model=model_name,
            provider="ollama",
            latency_ms=latency,
            status_code=resp.status_code,
        )

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        url = f"{self._base_url}/api/generate"
        try:
            resp = await self._client.post(url, json=payload)
        except httpx.HTTPError as e:
            raise ConnectionFailed(f"Cannot reach Ollama at {self._base_url}: {e}") from e
        if not resp.is_success:
            raise TransportError(
                f"Ollama API error {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )
        return resp

    async def test_connection(self) -> ConnectionStatus:
        url = f"{self._base_url}/api/tags"
        try:
            resp = await self._client.get(url)
        except httpx.HTTPError as e:
            logger.error("Ollama connection test failed: %s", e)
            if isinstance(e, httpx.ConnectError):
                return ConnectionStatus(
                    success=False, message="Ollama service is not running or unreachable"
                )
            return ConnectionStatus(success=False, message=f"Cannot connect to Ollama: {e}")

        if resp.is_success:
            try:
                data = resp.json()
            except json.JSONDecodeError:
                return ConnectionStatus(
                    success=False,
                    message=f"Invalid JSON from Ollama: {resp.text[:100]}",
                )
            if isinstance(data, dict) and isinstance(data.get("models"), list):
                models = [m["name"] for m in data["models"] if isinstance(m, dict) and "name" in m]
                logger.info("Connected to Ollama, %d models available", len(models))
                return ConnectionStatus(
                    success=True, message="Connected to Ollama", models=models
                )
        else:
            logger.warning("Ollama /api/tags answered %d", resp.status_code)

        return ConnectionStatus(
            success=True, message="Connected to Ollama, but could not list models"
        )

    @property
    def provider_name(self) -> str:
        return "ollama"

    @property
    def model(self) -> str:
        return self._model

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
