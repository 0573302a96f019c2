# src/llm/sanitizer.py — v2
"""Post-processing of decoded completions.

Models occasionally wrap code in Markdown fences or an object literal
(``obj['complete_code'] = "..."``), or answer in the wrong language. The
sanitizer unwraps the payload and, when a wrong-language signature is
detected, applies a best-effort token substitution. It is a heuristic, not a
translator.
"""

from __future__ import annotations

import json
import logging
import re

from tabautocomplete.core.text import strip_code_fences, unescape_json_fragment

logger = logging.getLogger(__name__)

WRAPPER_KEYS = ("code", "complete_code", "completion", "content", "result")

C_FAMILY_LANGUAGES = frozenset({
    "javascript", "typescript", "javascriptreact", "typescriptreact",
    "java", "c", "cpp", "csharp", "go", "rust", "php",
})
_JS_LANGUAGES = frozenset(
    {"javascript", "typescript", "javascriptreact", "typescriptreact"}
)

_ASSIGNMENT_RE = re.compile(
    r"""^\s*(?:(?:let|const|var)\s+)?
        (?:obj|result|response|output|completion)\s*
        (?:\[\s*['"](\w+)['"]\s*\]|\.(\w+))\s*
        (?:=\s*)?(['"])(.*)\3\s*;?\s*$""",
    re.DOTALL | re.VERBOSE,
)
_COMPLETE_CODE_RE = re.compile(
    r"""obj\s*\[\s*['"]complete_code['"]\s*\]\s*=?\s*(['"])([\s\S]*?)\1"""
)

# Wrong-language signatures
_JS_TOKENS_RE = re.compile(
    r"\bfunction\s+|\b(?:var|let|const)\s+|===|!==|\bthis\.|\bprototype\.|=>|\};"
)
_PY_TOKENS_RE = re.compile(r"\bdef\s+|\belif\s+|\bself\.|:[ \t]*$", re.MULTILINE)
# `case x:`, `default:`, `public:` and goto labels; `else:` and friends are Python blocks.
_LABEL_LINE_RE = re.compile(
    r"^\s*(?:case\b.*|(?!(?:else|try|finally|except)\s*:)[A-Za-z_]\w*)\s*:\s*$"
)
_COMMENT_LINE_RE = re.compile(r"^\s*(?://|/\*|\*|#)")


def _is_label_or_comment(line: str) -> bool:
    return bool(_LABEL_LINE_RE.match(line) or _COMMENT_LINE_RE.match(line))


def _unescape_payload(text: str) -> str:
    return unescape_json_fragment(text).replace("\\'", "'")


def unwrap_object_literal(text: str) -> str:
    """Extract code from JSON or assignment-style wrappers; else return as-is."""
    stripped = text.strip()
    if stripped.startswith("{") and stripped.endswith("}"):
        try:
            obj = json.loads(stripped)
        except ValueError:
            obj = None
        if isinstance(obj, dict):
            for key in WRAPPER_KEYS:
                value = obj.get(key)
                if isinstance(value, str) and value:
                    logger.debug("Unwrapped JSON field %r", key)
                    return value

    match = _ASSIGNMENT_RE.match(text)
    if match and match.group(4):
        logger.debug("Unwrapped assignment-style wrapper")
        return _unescape_payload(match.group(4))

    match = _COMPLETE_CODE_RE.search(text)
    if match and match.group(2):
        logger.debug("Unwrapped obj['complete_code'] wrapper")
        return _unescape_payload(match.group(2))

    return text


def _python_from_js(text: str) -> str:
    text = re.sub(r"\bfunction\s+([a-zA-Z0-9_]+)\s*\(", r"def \1(", text)
    text = re.sub(r"\b(?:var|let|const)\s+", "", text)
    text = re.sub(r"\bthis\.", "self.", text)
    text = text.replace("!==", "!=").replace("===", "==")
    text = text.replace(";", "")
    text = re.sub(r"\btrue\b", "True", text)
    text = re.sub(r"\bfalse\b", "False", text)
    return re.sub(r"\bnull\b", "None", text)


def _wrap_condition(condition: str) -> str:
    condition = condition.strip()
    if condition.startswith("(") and condition.endswith(")"):
        return condition
    return f"({condition})"


def _convert_block_line(line: str) -> str:
    if _is_label_or_comment(line):
        return line
    match = re.match(r"^(\s*)elif\s+(.+?)\s*:\s*$", line)
    if match:
        return f"{match.group(1)}else if {_wrap_condition(match.group(2))} {{"
    match = re.match(r"^(\s*)(if|while)\s+(.+?)\s*:\s*$", line)
    if match:
        return f"{match.group(1)}{match.group(2)} {_wrap_condition(match.group(3))} {{"
    if line.rstrip().endswith(":"):
        return re.sub(r"\s*:\s*$", " {", line)
    return line


def _c_family_from_python(text: str, language: str) -> str:
    if language in _JS_LANGUAGES:
        text = re.sub(r"\bdef\s+([a-zA-Z0-9_]+)\s*\(", r"function \1(", text)
    text = re.sub(r"\bself\.", "this.", text)
    text = re.sub(r"\bTrue\b", "true", text)
    text = re.sub(r"\bFalse\b", "false", text)
    text = re.sub(r"\bNone\b", "null", text)
    return "\n".join(_convert_block_line(line) for line in text.split("\n"))


def _has_python_signature(text: str) -> bool:
    for match in _PY_TOKENS_RE.finditer(text):
        if match.group(0).startswith(":"):
            line_start = text.rfind("\n", 0, match.start()) + 1
            if _is_label_or_comment(text[line_start : match.end()]):
                continue
        return True
    return False


def repair_language_leakage(text: str, language: str) -> str:
    """Swap obvious wrong-language tokens for the target language's."""
    if language == "python":
        if _JS_TOKENS_RE.search(text):
            logger.debug("JavaScript tokens in a python completion, repairing")
            return _python_from_js(text)
    elif language in C_FAMILY_LANGUAGES:
        if _has_python_signature(text):
            logger.debug("Python tokens in a %s completion, repairing", language)
            return _c_family_from_python(text, language)
    return text


class CompletionSanitizer:
    """Strips incidental formatting and repairs cross-language leakage."""

    def sanitize(self, decoded_text: str | None, language: str) -> str:
        if not decoded_text or not decoded_text.strip():
            return ""
        text = strip_code_fences(decoded_text)
        unwrapped = unwrap_object_literal(text)
        if unwrapped is not text:
            text = strip_code_fences(unwrapped)
        text = repair_language_leakage(text, language)
        return text if text.strip() else ""


def sanitize(decoded_text: str | None, language: str) -> str:
    return CompletionSanitizer().sanitize(decoded_text, language)
