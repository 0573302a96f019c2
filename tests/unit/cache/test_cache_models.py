# tests/unit/cache/test_cache_models.py — v1
"""Tests for cache/models.py."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from tabautocomplete.cache.models import BufferChange, CodeSnippet

_T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class TestCodeSnippet:
    def test_naive_timestamps_read_as_utc(self):
        snippet = CodeSnippet(id="a", code="x", created_at=datetime(2026, 3, 1, 12, 0))
        assert snippet.created_at == _T0

    def test_tags_deduplicated(self):
        snippet = CodeSnippet(id="a", code="x", tags=["f", "g", "f", ""])
        assert snippet.tags == ["f", "g"]

    def test_frequency_positive(self):
        with pytest.raises(ValidationError):
            CodeSnippet(id="a", code="x", frequency=0)

    def test_expiry(self):
        snippet = CodeSnippet(id="a", code="x", created_at=_T0)
        retention = timedelta(hours=24)
        assert not snippet.is_expired(_T0 + timedelta(hours=24), retention)
        assert snippet.is_expired(_T0 + timedelta(hours=24, seconds=1), retention)

    def test_age_hours(self):
        snippet = CodeSnippet(id="a", code="x", created_at=_T0)
        assert snippet.age_hours(_T0 + timedelta(hours=6)) == pytest.approx(6.0)
        assert snippet.age_hours(_T0 - timedelta(hours=1)) == 0.0

    def test_json_round_trip(self):
        snippet = CodeSnippet(id="a", code="x", created_at=_T0, last_touched_at=_T0, tags=["t"])
        assert CodeSnippet.model_validate(snippet.model_dump(mode="json")) == snippet


class TestBufferChange:
    @pytest.mark.parametrize("text,expected", [
        ("\n", False), ("   ", False), ("abc", False), ("abcd", True), ("  x = 1  ", True),
    ])
    def test_is_significant(self, text, expected):
        assert BufferChange(document_text="", text=text).is_significant is expected

    def test_context_window_clamped(self):
        doc = "\n".join(f"line {i}" for i in range(30))
        change = BufferChange(document_text=doc, start_line=12, end_line=13, text="edit")
        window = change.context_window().split("\n")
        assert window[0] == "line 2"
        assert window[-1] == "line 18"

    def test_context_window_at_edges(self):
        change = BufferChange(document_text="a\nb\nc", start_line=1, end_line=1, text="edit")
        assert change.context_window() == "a\nb\nc"
