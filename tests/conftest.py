# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a scripted generation client, an adjustable clock, in-memory
snippet storage and settings isolated from any .env file.
No external services — all I/O is in memory or under tmp_path.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from tabautocomplete.cache.memory_store import MemorySnippetStorage
from tabautocomplete.cache.snippet_cache import SnippetCache
from tabautocomplete.config.settings import Settings
from tabautocomplete.llm.base_client import BaseLLMClient
from tabautocomplete.llm.models import ConnectionStatus, GenerationResponse


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeLLMClient(BaseLLMClient):
    """Generation client answering with scripted raw texts.

    ``responses`` are consumed in order (the last one repeats). An Exception
    instance is raised instead of returned. ``delay`` suspends each call.
    """

    def __init__(self, responses: list[object] | None = None, delay: float = 0.0) -> None:
        self.responses = list(responses or ['{"response": "pass"}'])
        self.delay = delay
        self.prompts: list[str] = []
        self.calls: list[dict] = []
        self.closed = False

    async def generate(self, prompt, *, model=None, temperature=0.3, max_tokens=300, token=None):
        self.prompts.append(prompt)
        self.calls.append(
            {"model": model, "temperature": temperature, "max_tokens": max_tokens, "token": token}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return GenerationResponse(
            raw_text=str(item), model=model or "fake-model", provider="fake", latency_ms=1,
        )

    async def test_connection(self) -> ConnectionStatus:
        return ConnectionStatus(success=True, message="ok", models=["fake-model"])

    @property
    def provider_name(self) -> str:
        return "fake"

    @property
    def model(self) -> str:
        return "fake-model"

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_storage() -> MemorySnippetStorage:
    return MemorySnippetStorage()


@pytest.fixture
def snippet_cache(memory_storage, clock) -> SnippetCache:
    return SnippetCache(storage=memory_storage, max_snippets=100, retention_hours=24, clock=clock)


@pytest.fixture
def fake_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def settings() -> Settings:
    """Settings with no .env influence and an in-memory cache."""
    return Settings(_env_file=None, cache_backend="memory")


@pytest.fixture
def make_client():
    """Factory for FakeLLMClient with scripted responses."""
    return FakeLLMClient
