# src/core/text.py — v2
"""Text utilities shared by the cache, decoder and sanitizer.

Edit distance comes from rapidfuzz (C implementation); the rest is plain
string handling.
"""

from __future__ import annotations

import hashlib
import re

from rapidfuzz.distance import Levenshtein

EXACT_KEY_PREFIX = "hash_"

_FENCE_OPEN_RE = re.compile(r"^\s*```[\w.+#-]*[ \t]*(?:\r?\n|$)")
_FENCE_CLOSE_RE = re.compile(r"(?:\r?\n)?[ \t]*```\s*$")

_JSON_ESCAPES = {
    "n": "\n",
    "r": "\r",
    "t": "\t",
    '"': '"',
    "\\": "\\",
    "/": "/",
}
_ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)


def levenshtein_distance(a: str, b: str) -> int:
    """Minimum number of single-character edits turning ``a`` into ``b``."""
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """Normalized edit similarity in [0, 1].

    ``1 - distance / max(len(a), len(b))``; two empty strings are identical.
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / longest


def hash_prefix(text: str) -> str:
    """Stable cache key for a prefix (identical across processes)."""
    digest = hashlib.sha256(text.encode("utf-8")).hexdigest()
    return f"{EXACT_KEY_PREFIX}{digest[:16]}"


def is_exact_key(key: str) -> bool:
    return key.startswith(EXACT_KEY_PREFIX)


def strip_code_fences(text: str) -> str:
    """Remove a leading ```lang marker and a trailing ``` marker.

    Text without fences is returned unchanged (including whitespace).
    """
    if "```" not in text:
        return text
    stripped = _FENCE_OPEN_RE.sub("", text, count=1)
    opened = stripped != text
    stripped = _FENCE_CLOSE_RE.sub("", stripped, count=1)
    if opened or stripped != text:
        return stripped.strip("\r\n")
    return text


def is_only_fence(text: str) -> bool:
    """True for output that is nothing but fence ticks (``` or ``)."""
    return bool(text.strip()) and not text.strip().strip("`")


def unescape_json_fragment(text: str) -> str:
    """Decode the common JSON string escapes in a regex-salvaged fragment.

    Unknown escapes keep their backslash.
    """

    def _replace(match: re.Match[str]) -> str:
        char = match.group(1)
        return _JSON_ESCAPES.get(char, match.group(0))

    return _ESCAPE_RE.sub(_replace, text)


def context_lines(text: str) -> set[str]:
    """Set of stripped lines present in ``text``."""
    return {line.strip() for line in text.split("\n")}
