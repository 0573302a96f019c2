# src/llm/decoder.py — v2
"""Recover a completion string from raw endpoint output.

Generation endpoints answer with a single JSON object, newline-delimited JSON
chunks, plain text, or a corrupted mix (truncated stream, stray braces).
ResponseDecoder walks an explicit fallback ladder and reports which rung
produced the text. Decoding never raises: the worst case is an empty string.

The JSON rungs return None when they find no completion field at all, and the
field's value (possibly short or empty) otherwise. Only the streamed-records
rung discards short text; plain text runs only when no rung found a field.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from tabautocomplete.core.text import is_only_fence, strip_code_fences, unescape_json_fragment

logger = logging.getLogger(__name__)

MIN_USABLE_CHARS = 3
MIN_PLAIN_TEXT_CHARS = 5
MAX_COMBINED_LINES = 5

_STRING_BODY = r'((?:[^"\\]|\\.)*)'
_RESPONSE_FRAGMENT_RE = re.compile(r'"response"\s*:\s*"' + _STRING_BODY + '"', re.DOTALL)
_CONTENT_FRAGMENT_RE = re.compile(r'"content"\s*:\s*"' + _STRING_BODY + '"', re.DOTALL)
_QUOTED_TEXT_RE = re.compile(r'"((?:[^"\\]|\\.){5,})"', re.DOTALL)
_JSON_PUNCTUATION_RE = re.compile(r'[{}\[\]"]')
_WHITESPACE_RE = re.compile(r"\s+")

_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


class DecodeStrategy(str, Enum):
    """Rungs of the fallback ladder, in the order they are tried."""

    STREAMED_RECORDS = "streamed_records"
    REGEX_SALVAGE = "regex_salvage"
    STRUCTURAL_REPAIR = "structural_repair"
    PLAIN_TEXT = "plain_text"


@dataclass
class DecodeOutcome:
    """Decoded text plus the strategy that produced it.

    ``strategy`` is None when every rung came up empty; ``attempts`` lists
    the rungs tried, in order.
    """

    text: str
    strategy: DecodeStrategy | None = None
    attempts: list[DecodeStrategy] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.strategy is not None


def content_of(obj: Any) -> str | None:
    """Completion text carried by one parsed record, if any.

    Understands Ollama generate (``response``), Ollama chat
    (``message.content``), and OpenAI style ``choices`` payloads.
    """
    if not isinstance(obj, dict):
        return None
    for key in ("response", "content"):
        value = obj.get(key)
        if isinstance(value, str):
            return value
    message = obj.get("message")
    if isinstance(message, dict) and isinstance(message.get("content"), str):
        return message["content"]
    choices = obj.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        choice = choices[0]
        if isinstance(choice.get("text"), str):
            return choice["text"]
        for key in ("message", "delta"):
            inner = choice.get(key)
            if isinstance(inner, dict) and isinstance(inner.get("content"), str):
                return inner["content"]
    return None


def _is_usable(text: str, min_chars: int = 0) -> bool:
    return len(text.strip()) > min_chars and not is_only_fence(text)


def _try_parse(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


# --- Ladder rungs ---


def decode_streamed_records(raw: str) -> str | None:
    """Concatenate the content field of every parseable JSON line."""
    parts: list[str] = []
    found = False
    for line in raw.split("\n"):
        line = line.strip()
        if not line:
            continue
        value = content_of(_try_parse(line))
        if value is not None:
            found = True
            parts.append(value)
    return "".join(parts) if found else None


def decode_regex_salvage(raw: str) -> str | None:
    """Concatenate every ``"response": "..."`` fragment found in the text."""
    fragments = [unescape_json_fragment(m.group(1)) for m in _RESPONSE_FRAGMENT_RE.finditer(raw)]
    return "".join(fragments) if fragments else None


def _first_complete_object(text: str) -> str:
    """First line, or first few lines combined, that parse as one object."""
    lines = text.split("\n")
    if len(lines) < 2:
        return text
    first = lines[0].strip()
    if first.startswith("{") and first.endswith("}") and _try_parse(first) is not None:
        return first

    combined = ""
    depth = 0
    for line in lines[:MAX_COMBINED_LINES]:
        combined += line + "\n"
        depth += line.count("{") - line.count("}")
        candidate = combined.strip()
        if depth == 0 and candidate.startswith("{") and candidate.endswith("}"):
            if _try_parse(candidate) is not None:
                return candidate
    return text


def _balance(text: str) -> str:
    """Escape raw control characters in strings and balance braces.

    Closing braces with no opener are dropped; missing closers are appended,
    after terminating a string left open by truncation.
    """
    out: list[str] = []
    depth = 0
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            elif char < " ":
                out.append(_CONTROL_ESCAPES.get(char, " "))
                continue
            out.append(char)
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            if depth == 0:
                continue
            depth -= 1
        out.append(char)

    if in_string:
        if escaped:
            out.pop()
        out.append('"')
    out.append("}" * depth)
    return "".join(out)


def decode_structural_repair(raw: str) -> str | None:
    """Coerce the text into one JSON object and read its content field."""
    cleaned = raw.lstrip("\ufeff").strip()
    if not cleaned:
        return None

    if '"response"' not in cleaned:
        fragments = _CONTENT_FRAGMENT_RE.findall(cleaned)
        if len(fragments) > 1 or ('"done"' in cleaned and fragments):
            logger.debug("Merging %d chat-stream content fragments", len(fragments))
            return "".join(unescape_json_fragment(f) for f in fragments)

    cleaned = _first_complete_object(cleaned)

    split_at = cleaned.find("}{")
    if split_at > 0:
        cleaned = cleaned[: split_at + 1]

    start = cleaned.find("{")
    if start < 0:
        return None
    repaired = _balance(cleaned[start:])

    obj = _try_parse(repaired)
    if isinstance(obj, dict):
        value = content_of(obj)
        if value is not None:
            return value
        # No recognised content key: the first substantial string value
        # stands in for the response.
        for value in obj.values():
            if isinstance(value, str) and len(value) >= MIN_PLAIN_TEXT_CHARS:
                return value
        return None

    match = _QUOTED_TEXT_RE.search(repaired)
    if match:
        return unescape_json_fragment(match.group(1))
    return None


def decode_plain_text(raw: str) -> str:
    """Strip JSON punctuation and keep what looks like prose or code."""
    if "{" not in raw and "}" not in raw:
        return raw.strip()
    content = _JSON_PUNCTUATION_RE.sub(" ", raw)
    colon = content.find(":")
    if colon > 0:
        content = content[colon + 1 :]
    content = content.replace("\\n", "\n")
    content = _WHITESPACE_RE.sub(" ", content).strip()
    return content if len(content) >= MIN_PLAIN_TEXT_CHARS else ""


_LADDER = (
    (DecodeStrategy.STREAMED_RECORDS, decode_streamed_records),
    (DecodeStrategy.REGEX_SALVAGE, decode_regex_salvage),
    (DecodeStrategy.STRUCTURAL_REPAIR, decode_structural_repair),
    (DecodeStrategy.PLAIN_TEXT, decode_plain_text),
)


class ResponseDecoder:
    """Applies the fallback ladder to raw endpoint output."""

    def decode(self, raw_text: str | None) -> DecodeOutcome:
        if not raw_text or not raw_text.strip():
            return DecodeOutcome(text="")

        attempts: list[DecodeStrategy] = []
        field_found = False
        for strategy, rung in _LADDER:
            if strategy is DecodeStrategy.PLAIN_TEXT and field_found:
                logger.debug("Completion field present but empty, plain text skipped")
                break
            attempts.append(strategy)
            try:
                candidate = rung(raw_text)
            except Exception:
                logger.exception("Decoder rung %s crashed", strategy.value)
                continue
            if candidate is None:
                logger.debug("Decoder rung %s found no completion field", strategy.value)
                continue
            field_found = True
            # Only streamed text is held to the minimum length.
            min_chars = MIN_USABLE_CHARS if strategy is DecodeStrategy.STREAMED_RECORDS else 0
            if _is_usable(candidate, min_chars):
                logger.debug("Decoded %d chars via %s", len(candidate), strategy.value)
                return DecodeOutcome(
                    text=strip_code_fences(candidate),
                    strategy=strategy,
                    attempts=attempts,
                )
            logger.debug("Decoder rung %s yielded nothing usable", strategy.value)

        return DecodeOutcome(text="", attempts=attempts)


def decode_text(raw_text: str | None) -> str:
    """Convenience wrapper returning only the decoded string."""
    return ResponseDecoder().decode(raw_text).text
