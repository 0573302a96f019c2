# src/llm/prompts.py — v1
"""Prompt construction for code completion.

The template is a ``string.Template`` with a mandatory ``${prefix}``
placeholder and optional ``${suffix}`` and ``${language}`` placeholders.
When the template has no ``${suffix}``, the text after the cursor is folded
into ``${prefix}`` behind a ``<CURSOR>`` marker.
"""

from __future__ import annotations

import logging
from string import Template
from typing import Iterable

from tabautocomplete.config.settings import DEFAULT_PROMPT_TEMPLATE

logger = logging.getLogger(__name__)

CURSOR_MARKER = "<CURSOR>"
RELATED_HEADER = "# Similar code for reference (don't repeat this):"

_BLOCK_COMMENT_LANGUAGES = frozenset({
    "javascript", "typescript", "javascriptreact", "typescriptreact",
    "java", "c", "cpp", "csharp", "go", "rust", "php",
})

_COMMENT_INSTRUCTION = (
    "You are an expert {language} programmer. Continue the documentation "
    "comment at the cursor position. Only complete the comment, do not write "
    "any code. Do NOT return JSON or structures like obj['complete_code']; "
    "output plain comment text only.\n\n"
)


def is_in_block_comment(text: str, language: str) -> bool:
    """True when ``text`` ends inside an unclosed block comment or docstring."""
    if language in _BLOCK_COMMENT_LANGUAGES:
        return text.count("/*") > text.count("*/")
    if language == "python":
        return text.count("'''") % 2 != 0 or text.count('"""') % 2 != 0
    return False


class PromptBuilder:
    """Renders the completion prompt for one attempt.

    Args:
        template: Template containing ``${prefix}``.
        max_prompt_chars: Budget for the code context; the prefix keeps its
            tail, the suffix its head (a quarter of the budget).
    """

    def __init__(
        self,
        template: str = DEFAULT_PROMPT_TEMPLATE,
        max_prompt_chars: int = 2000,
    ) -> None:
        if "${prefix}" not in template:
            raise ValueError("prompt template must contain ${prefix}")
        self._template = Template(template)
        self._has_suffix_slot = "${suffix}" in template
        self._max_prompt_chars = max_prompt_chars

    def build(
        self,
        prefix: str,
        suffix: str,
        language: str,
        related: Iterable[str] = (),
    ) -> str:
        prefix_part = prefix[-self._max_prompt_chars :] if self._max_prompt_chars else prefix
        suffix_part = suffix[: self._max_prompt_chars // 4]

        if self._has_suffix_slot:
            prompt = self._template.safe_substitute(
                prefix=prefix_part, suffix=suffix_part, language=language
            )
        else:
            context = f"{prefix_part}{CURSOR_MARKER}{suffix_part}"
            prompt = self._template.safe_substitute(prefix=context, language=language)

        if is_in_block_comment(prefix, language):
            logger.debug("Cursor inside a block comment, using comment mode")
            prompt = _COMMENT_INSTRUCTION.format(language=language) + prompt

        snippets = [s for s in related if s.strip()]
        if snippets:
            prompt += f"\n\n{RELATED_HEADER}\n" + "\n\n".join(snippets) + "\n"

        return prompt
