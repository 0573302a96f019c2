# src/llm/base_client.py — v1
"""Abstract generation client interface and transport errors."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from tabautocomplete.llm.models import ConnectionStatus, GenerationResponse

if TYPE_CHECKING:
    from tabautocomplete.pipeline.cancellation import CancellationToken


class TransportError(Exception):
    """Endpoint unreachable or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ConnectionFailed(TransportError):
    """No HTTP response at all (refused, DNS, timeout)."""


class BaseLLMClient(ABC):
    """Unified interface for generation endpoints."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        model: str | None = None,
        temperature: float = 0.3,
        max_tokens: int = 300,
        token: CancellationToken | None = None,
    ) -> GenerationResponse:
        """Send one prompt; return the endpoint's raw output.

        Raises:
            TransportError: Non-2xx status or unreachable endpoint.
            OperationCancelled: ``token`` fired before the request was sent.
        """

    @abstractmethod
    async def test_connection(self) -> ConnectionStatus:
        """Check the endpoint and list the models it serves."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (ollama, deepseek, openai)."""

    @property
    @abstractmethod
    def model(self) -> str:
        """Default model used when ``generate`` gets none."""

    async def close(self) -> None:
        """Release the underlying HTTP client (no-op by default)."""
