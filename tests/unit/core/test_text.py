# tests/unit/core/test_text.py — v2
"""Tests for core/text.py — edit distance, similarity, hashing, fences."""

from __future__ import annotations

import pytest

from tabautocomplete.core.text import (
    context_lines,
    hash_prefix,
    is_exact_key,
    is_only_fence,
    levenshtein_distance,
    similarity,
    strip_code_fences,
    unescape_json_fragment,
)


class TestLevenshtein:
    @pytest.mark.parametrize(
        "a,b,expected",
        [("", "", 0), ("abc", "", 3), ("kitten", "sitting", 3), ("flaw", "lawn", 2)],
    )
    def test_distance(self, a, b, expected):
        assert levenshtein_distance(a, b) == expected


class TestSimilarity:
    @pytest.mark.parametrize("text", ["", "a", "def foo():\n    return 1", "ünïcødé"])
    def test_identity(self, text):
        assert similarity(text, text) == 1.0

    def test_both_empty(self):
        assert similarity("", "") == 1.0

    def test_one_empty(self):
        assert similarity("abc", "") == 0.0

    def test_partial(self):
        # 3 edits over 7 chars
        assert similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)

    def test_symmetric(self):
        assert similarity("foo bar", "foo baz") == similarity("foo baz", "foo bar")


class TestHashPrefix:
    def test_deterministic(self):
        assert hash_prefix("def foo(") == hash_prefix("def foo(")

    def test_format(self):
        key = hash_prefix("x = 1")
        assert key.startswith("hash_")
        assert len(key) == len("hash_") + 16

    def test_distinct(self):
        assert hash_prefix("a") != hash_prefix("b")

    def test_empty_prefix(self):
        assert hash_prefix("").startswith("hash_")

    def test_exact_key(self):
        assert is_exact_key(hash_prefix("x = 1"))
        assert not is_exact_key("3f2a9c0d")


class TestStripCodeFences:
    def test_language_tagged(self):
        assert strip_code_fences("```python\nprint(1)\n```") == "print(1)"

    def test_bare_fence(self):
        assert strip_code_fences("```\nx = 1\n```") == "x = 1"

    def test_opening_only(self):
        assert strip_code_fences("```js\nlet a = 1;") == "let a = 1;"

    def test_closing_only(self):
        assert strip_code_fences("x = 1\n```") == "x = 1"

    def test_no_fence_unchanged(self):
        assert strip_code_fences("  x = 1\n") == "  x = 1\n"

    def test_inner_fence_kept(self):
        text = 'doc = """\n```\nexample\n```\n"""'
        assert "example" in strip_code_fences(text)

    def test_only_fence(self):
        assert strip_code_fences("```") == ""


class TestHelpers:
    def test_is_only_fence(self):
        assert is_only_fence("```")
        assert is_only_fence(" `` ")
        assert not is_only_fence("```py\nx")
        assert not is_only_fence("")

    def test_unescape(self):
        assert unescape_json_fragment(r"a\nb\tc \"q\" \\ \/") == 'a\nb\tc "q" \\ /'

    def test_unescape_unknown_kept(self):
        assert unescape_json_fragment(r"\d+") == r"\d+"

    def test_context_lines(self):
        assert context_lines("  a\nb  \n\n") == {"a", "b", ""}
