# tests/integration/test_int_pipeline.py — v1
"""End-to-end completion flow: facade → coordinator → Ollama adapter → decoder
→ sanitizer → snippet cache persisted as JSON under tmp_path.

The endpoint is an httpx MockTransport, so no server is needed.
"""

from __future__ import annotations

import json

import httpx
import pytest

from tabautocomplete.api.facade import create_service
from tabautocomplete.cache.json_store import JsonSnippetStorage
from tabautocomplete.cache.models import BufferChange
from tabautocomplete.config.settings import Settings
from tabautocomplete.llm.adapters.ollama_adapter import OllamaAdapter
from tabautocomplete.llm.prompts import RELATED_HEADER

_DOC = (
    "function sum(values) {\n"
    "  return values.reduce((a, b) => a + b, 0);\n"
    "}\n"
    "\n"
    "function average(values) {\n"
    "  return \n"
    "}\n"
)
_CURSOR = _DOC.index("  return \n") + len("  return ")

_STREAM = (
    '{"model":"qwen2.5-coder:1.5b","response":"sum(values)","done":false}\n'
    '{"model":"qwen2.5-coder:1.5b","response":" / values.length;","done":false}\n'
    '{"model":"qwen2.5-coder:1.5b","response":"","done":true}\n'
)


class _Endpoint:
    """Records prompts and answers with a fixed body."""

    def __init__(self, body: str, status: int = 200) -> None:
        self.body = body
        self.status = status
        self.prompts: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/tags":
            return httpx.Response(200, json={"models": [{"name": "qwen2.5-coder:1.5b"}]})
        self.prompts.append(json.loads(request.content)["prompt"])
        return httpx.Response(self.status, text=self.body)


def _build(tmp_path, endpoint: _Endpoint):
    settings = Settings(_env_file=None, cache_root=tmp_path / "cache")
    client = OllamaAdapter(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(endpoint))
    )
    storage = JsonSnippetStorage(settings.cache_root, settings.cache_namespace)
    return create_service(settings=settings, client=client, storage=storage), storage


class TestPipelineEndToEnd:
    @pytest.mark.asyncio
    async def test_streamed_completion_cached_on_disk(self, tmp_path):
        endpoint = _Endpoint(_STREAM)
        service, storage = _build(tmp_path, endpoint)
        await service.start()

        payload = await service.complete(_DOC, _CURSOR, "javascript", "stats.js")

        assert payload == {
            "completionText": "sum(values) / values.length;",
            "cacheHit": False,
            "elapsedMs": payload["elapsedMs"],
            "numLines": 1,
        }
        assert "<CURSOR>" in endpoint.prompts[0]
        records = json.loads(storage.path.read_text(encoding="utf-8"))
        assert [r["code"] for r in records] == ["sum(values) / values.length;"]
        await service.close()

    @pytest.mark.asyncio
    async def test_cache_survives_restart(self, tmp_path):
        endpoint = _Endpoint(_STREAM)
        first, _ = _build(tmp_path, endpoint)
        await first.start()
        await first.complete(_DOC, _CURSOR, "javascript", "stats.js")
        await first.close()

        second, _ = _build(tmp_path, endpoint)
        await second.start()
        payload = await second.complete(_DOC, _CURSOR, "javascript", "stats.js")
        await second.close()

        assert payload["cacheHit"] is True
        assert len(endpoint.prompts) == 1

    @pytest.mark.asyncio
    async def test_python_leakage_repaired(self, tmp_path):
        body = json.dumps({"response": "```python\nif self.ready:\n    return None\n```"})
        service, _ = _build(tmp_path, _Endpoint(body))

        payload = await service.complete(_DOC, _CURSOR, "javascript", "stats.js")
        await service.close()

        assert payload["completionText"] == "if (this.ready) {\n    return null"
        assert payload["numLines"] == 2

    @pytest.mark.asyncio
    async def test_related_edit_reaches_prompt(self, tmp_path):
        endpoint = _Endpoint(_STREAM)
        service, _ = _build(tmp_path, endpoint)
        await service.on_buffer_change(BufferChange(
            document_text=_DOC, start_line=1, end_line=1,
            text="return values.reduce((a, b) => a + b, 0);",
            language="javascript", file_path="stats.js",
        ))

        await service.complete(_DOC, _CURSOR, "javascript", "stats.js")
        await service.close()

        assert RELATED_HEADER in endpoint.prompts[0]
        assert "values.reduce" in endpoint.prompts[0].split(RELATED_HEADER)[1]

    @pytest.mark.asyncio
    async def test_endpoint_error_yields_nothing(self, tmp_path):
        service, storage = _build(tmp_path, _Endpoint("model not found", status=404))
        assert await service.complete(_DOC, _CURSOR, "javascript", "stats.js") is None
        assert service.last_outcome.status == "failed"
        assert not storage.path.exists()
        await service.close()

    @pytest.mark.asyncio
    async def test_connection_check(self, tmp_path):
        service, _ = _build(tmp_path, _Endpoint(_STREAM))
        status = await service.test_connection()
        await service.close()
        assert status.success
        assert status.models == ["qwen2.5-coder:1.5b"]
