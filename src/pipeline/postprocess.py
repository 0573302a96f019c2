# src/pipeline/postprocess.py — v2
"""Context-aware clean-up applied after sanitizing: echo suppression and
overlap trimming against the text already in the buffer."""

from __future__ import annotations

import logging

from tabautocomplete.core.text import context_lines

logger = logging.getLogger(__name__)


def is_echo(completion: str, prefix: str, suffix: str) -> bool:
    """True when every non-blank completion line already occurs in the buffer.

    Lines are compared trimmed. A completion with no non-blank line is not an
    echo (it is simply empty).
    """
    lines = [line.strip() for line in completion.split("\n") if line.strip()]
    if not lines:
        return False
    known = context_lines(prefix + suffix)
    return all(line in known for line in lines)


def trim_overlap(completion: str, prefix: str) -> str:
    """Drop text a completion repeats from the current line.

    Single-line completions lose a re-typed copy of the whole current line,
    or of its tail (``import o`` + ``os`` inserts ``s``). Multi-line
    completions go through :func:`_trim_multi_line`.
    """
    text = completion.strip("\r\n")
    current_line = prefix.rsplit("\n", 1)[-1]
    if "\n" in text:
        return _trim_multi_line(text, current_line)

    typed = current_line.lstrip()
    if not typed:
        return text

    if text.startswith(current_line):
        logger.debug("Completion repeats the current line")
        return text[len(current_line):]
    if text.startswith(typed):
        logger.debug("Completion repeats the current line")
        return text[len(typed):]

    overlap = 0
    for size in range(min(len(current_line), len(text)), 0, -1):
        if current_line.endswith(text[:size]):
            overlap = size
            break
    if overlap:
        logger.debug("Trimmed %d overlapping chars", overlap)
        return text[overlap:]
    return text


def _trim_multi_line(text: str, current_line: str) -> str:
    """Drop a repeated last word from the first line and indent the rest.

    ``return total`` + ``total + tax`` inserts `` + tax``. When a later line
    sits left of the current line's indent, the block is taken as relative
    to column 0 and every later line is indented by the current indent.
    """
    lines = text.split("\n")
    words = current_line.split()
    last_word = words[-1] if words and not current_line[-1:].isspace() else ""
    first = lines[0].lstrip()
    if last_word and first.startswith(last_word):
        rest = first[len(last_word):]
        if not rest[:1].isalnum() and rest[:1] != "_":
            logger.debug("Dropped repeated word %r from the first line", last_word)
            lines[0] = rest

    indent = current_line[: len(current_line) - len(current_line.lstrip())]
    later = [line for line in lines[1:] if line.strip()]
    if indent and any(not line.startswith(indent) for line in later):
        lines[1:] = [indent + line if line.strip() else line for line in lines[1:]]
    return "\n".join(lines)
