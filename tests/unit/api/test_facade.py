# tests/unit/api/test_facade.py — v1
"""Tests for api/facade.py — editor-facing CompletionService."""

from __future__ import annotations

import pytest

from tabautocomplete.api.facade import CompletionService, create_service, split_at_cursor
from tabautocomplete.cache.memory_store import MemorySnippetStorage
from tabautocomplete.cache.models import BufferChange
from tabautocomplete.config.settings import Settings
from tabautocomplete.core.models import Failed, NoSuggestion
from tabautocomplete.llm.base_client import TransportError

_DOC = "import math\n\ndef area(radius):\n    return \n\nprint(area(2))\n"
_CURSOR = _DOC.index("return ") + len("return ")


def _service(settings, client, storage=None) -> CompletionService:
    return create_service(settings=settings, client=client, storage=storage or MemorySnippetStorage())


class TestSplitAtCursor:
    def test_split(self):
        prefix, suffix = split_at_cursor("ab\ncd\nef", 4, max_lines=10)
        assert prefix == "ab\nc"
        assert suffix == "d\nef"

    def test_line_bounds(self):
        doc = "\n".join(str(i) for i in range(10))
        prefix, suffix = split_at_cursor(doc, doc.index("5"), max_lines=2)
        assert prefix == "4\n"
        assert suffix == "5\n6"

    def test_offset_clamped(self):
        assert split_at_cursor("abc", 99, 5) == ("abc", "")
        assert split_at_cursor("abc", -3, 5) == ("", "abc")


class TestFileTypeSupport:
    def test_default_lists(self, settings, fake_client):
        service = _service(settings, fake_client)
        assert service.is_file_type_supported("app.py", "python")
        assert service.is_file_type_supported("notes.xyz", "plaintext")
        assert not service.is_file_type_supported("notes.txt", "plaintext")
        assert not service.is_file_type_supported("config.YAML", "yaml")

    def test_explicit_lists(self, fake_client):
        settings = Settings(
            _env_file=None, cache_backend="memory",
            enabled_file_types=".py,type*", disabled_file_types="javascript",
        )
        service = _service(settings, fake_client)
        assert service.is_file_type_supported("a.py", "python")
        assert service.is_file_type_supported("a.ts", "typescript")
        assert not service.is_file_type_supported("a.js", "javascript")
        assert service.is_file_type_supported("a.go", "go")
        assert not service.is_file_type_supported("a.lua", "lua")

    def test_globally_disabled(self, fake_client):
        settings = Settings(_env_file=None, cache_backend="memory", enabled=False)
        assert not _service(settings, fake_client).is_file_type_supported("a.py", "python")


class TestComplete:
    @pytest.mark.asyncio
    async def test_payload(self, settings, make_client):
        service = _service(settings, make_client(['{"response": "math.pi * radius ** 2"}']))
        await service.start()

        payload = await service.complete(_DOC, _CURSOR, "python", "geometry.py")

        assert payload["completionText"] == "math.pi * radius ** 2"
        assert payload["cacheHit"] is False
        assert payload["numLines"] == 1
        assert isinstance(payload["elapsedMs"], int)

    @pytest.mark.asyncio
    async def test_unsupported_file(self, settings, fake_client):
        service = _service(settings, fake_client)
        assert await service.complete("hello", 5, "plaintext", "notes.txt") is None
        assert fake_client.prompts == []

    @pytest.mark.asyncio
    async def test_no_suggestion(self, settings, make_client):
        service = _service(settings, make_client(['{"response": ""}']))
        assert await service.complete(_DOC, _CURSOR, "python", "geometry.py") is None
        assert isinstance(service.last_outcome, NoSuggestion)

    @pytest.mark.asyncio
    async def test_failure(self, settings, make_client):
        service = _service(settings, make_client([TransportError("down")]))
        assert await service.complete(_DOC, _CURSOR, "python", "geometry.py") is None
        assert isinstance(service.last_outcome, Failed)

    @pytest.mark.asyncio
    async def test_related_snippets_disabled(self, make_client):
        settings = Settings(_env_file=None, cache_backend="memory", include_related_snippets=False)
        service = _service(settings, make_client(['{"response": "radius"}']))
        await service.on_buffer_change(BufferChange(
            document_text="def area(r):\n    return 3.14 * r * r", start_line=1, end_line=1,
            text="return 3.14 * r * r", language="python",
        ))
        await service.complete(_DOC, _CURSOR, "python", "geometry.py")
        assert "Similar code" not in service._client.prompts[0]


class TestAcceptAndEdits:
    @pytest.mark.asyncio
    async def test_accept_edited_text(self, settings, make_client):
        service = _service(settings, make_client(['{"response": "math.pi * radius ** 2"}']))
        await service.complete(_DOC, _CURSOR, "python", "geometry.py")

        assert await service.accept("math.pi * radius * radius") is True
        assert await service.accept() is False
        prefix, _ = split_at_cursor(_DOC, _CURSOR, settings.max_context_lines)
        assert await service.cache.get_exact(prefix) == "math.pi * radius * radius"

    @pytest.mark.asyncio
    async def test_accept_with_cache_disabled(self, make_client):
        settings = Settings(_env_file=None, cache_backend="memory", cache_enabled=False)
        service = _service(settings, make_client(['{"response": "math.pi * radius ** 2"}']))
        await service.complete(_DOC, _CURSOR, "python", "geometry.py")

        assert await service.accept() is True
        assert len(service.cache) == 0

    @pytest.mark.asyncio
    async def test_accept_without_completion(self, settings, fake_client):
        assert await _service(settings, fake_client).accept() is False

    @pytest.mark.asyncio
    async def test_buffer_change_recorded(self, settings, fake_client):
        service = _service(settings, fake_client)
        await service.on_buffer_change(BufferChange(
            document_text="def area(r):\n    return 3.14 * r * r", start_line=1, end_line=1,
            text="return 3.14 * r * r", language="python",
        ))
        await service.on_buffer_change(BufferChange(document_text="x", text=" \n"))
        assert service.stats().snippet_count == 1

    @pytest.mark.asyncio
    async def test_clear_cache(self, settings, fake_client):
        service = _service(settings, fake_client)
        await service.cache.put_exact("p", "value")
        await service.clear_cache()
        assert service.stats().snippet_count == 0


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_loads_persisted_snippets(self, settings, fake_client):
        storage = MemorySnippetStorage()
        first = _service(settings, fake_client, storage)
        await first.cache.put_exact("p", "value")

        second = _service(settings, fake_client, storage)
        await second.start()
        assert second.stats().snippet_count == 1

    @pytest.mark.asyncio
    async def test_close(self, settings, fake_client):
        service = _service(settings, fake_client)
        await service.close()
        assert fake_client.closed

    @pytest.mark.asyncio
    async def test_connection(self, settings, fake_client):
        status = await _service(settings, fake_client).test_connection()
        assert status.success
        assert status.models == ["fake-model"]

    def test_cache_settings_applied(self, fake_client):
        settings = Settings(_env_file=None, cache_backend="memory", max_snippets=7,
                            cache_enabled=False)
        service = _service(settings, fake_client)
        assert service.cache.max_snippets == 7
        assert service.cache.enabled is False
