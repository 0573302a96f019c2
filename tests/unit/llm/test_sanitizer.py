# tests/unit/llm/test_sanitizer.py — v2
"""Tests for llm/sanitizer.py — unwrapping and cross-language repair."""

from __future__ import annotations

import pytest

from tabautocomplete.llm.sanitizer import (
    CompletionSanitizer,
    repair_language_leakage,
    sanitize,
    unwrap_object_literal,
)


@pytest.fixture
def sanitizer() -> CompletionSanitizer:
    return CompletionSanitizer()


class TestBasics:
    @pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
    def test_blank_input(self, sanitizer, text):
        assert sanitizer.sanitize(text, "python") == ""

    def test_fenced_block(self, sanitizer):
        assert sanitizer.sanitize("```python\nprint(1)\n```", "python") == "print(1)"

    def test_plain_code_untouched(self, sanitizer):
        code = "    return a + b"
        assert sanitizer.sanitize(code, "python") == code

    def test_module_helper(self):
        assert sanitize("```\nx = 1\n```", "python") == "x = 1"


class TestUnwrap:
    @pytest.mark.parametrize("key", ["code", "complete_code", "completion", "content", "result"])
    def test_json_wrapper_keys(self, key):
        assert unwrap_object_literal('{"%s": "x = 1"}' % key) == "x = 1"

    def test_json_without_known_key(self):
        text = '{"other": "x = 1"}'
        assert unwrap_object_literal(text) == text

    def test_bracket_assignment(self):
        text = "obj['complete_code'] = \"def f():\\n    return 1\""
        assert unwrap_object_literal(text) == "def f():\n    return 1"

    def test_dotted_assignment_with_declaration(self):
        text = "const result.completion = 'total += 1';"
        assert unwrap_object_literal(text) == "total += 1"

    def test_complete_code_inside_prose(self):
        text = "Here you go: obj['complete_code'] = \"a = [1, 2]\" done"
        assert unwrap_object_literal(text) == "a = [1, 2]"

    def test_regular_code_not_unwrapped(self):
        text = "result = compute(x)"
        assert unwrap_object_literal(text) == text

    def test_unwrapped_payload_fences_stripped(self, sanitizer):
        text = '{"code": "```python\\nprint(2)\\n```"}'
        assert sanitizer.sanitize(text, "python") == "print(2)"


class TestPythonTarget:
    def test_js_converted(self):
        js = "function add(a, b) {\n  const total = a + b;\n  return this.ok === true;\n}"
        out = repair_language_leakage(js, "python")
        assert "def add(a, b)" in out
        assert "const" not in out
        assert "self.ok == True" in out
        assert ";" not in out

    def test_null_and_false(self):
        out = repair_language_leakage("let x = null;\nlet y = false;", "python")
        assert out == "x = None\ny = False"

    def test_word_boundaries(self):
        out = repair_language_leakage("var trueValue = nullable;", "python")
        assert out == "trueValue = nullable"

    def test_clean_python_untouched(self):
        code = "if x:\n    y = True"
        assert repair_language_leakage(code, "python") == code


class TestCFamilyTarget:
    def test_python_in_javascript(self):
        py = "def greet(name):\n    if self.ready:\n        return True\n    elif name:\n        return None"
        out = repair_language_leakage(py, "javascript")
        assert "function greet(name) {" in out
        assert "if (this.ready) {" in out
        assert "return true" in out
        assert "else if (name) {" in out
        assert "return null" in out

    def test_def_kept_outside_js(self):
        out = repair_language_leakage("def run(self):\n    self.go()", "java")
        assert out.startswith("def run(self) {")
        assert "this.go()" in out

    def test_case_labels_not_python(self):
        code = "switch (x) {\n  case 1:\n    break;\n  default:\n    y();\n}"
        assert repair_language_leakage(code, "c") == code

    def test_goto_labels_not_python(self):
        code = "if (!buf)\n    goto cleanup;\ncleanup:\n    free(buf);\n    return NULL;"
        assert repair_language_leakage(code, "c") == code

    @pytest.mark.parametrize("comment", ["// Steps:", "/* Returns:", " * Note:"])
    def test_comment_lines_not_python(self, comment):
        code = f"{comment}\nint ok = flag == None;"
        assert repair_language_leakage(code, "cpp") == code

    def test_comment_kept_during_repair(self):
        out = repair_language_leakage("// Steps:\nif self.ready:\n    go()", "javascript")
        assert out.startswith("// Steps:\nif (this.ready) {")

    def test_python_else_still_detected(self):
        out = repair_language_leakage("else:\n    x = None", "go")
        assert out == "else {\n    x = null"

    def test_clean_c_untouched(self):
        code = "for (int i = 0; i < n; i++) {\n  sum += i;\n}"
        assert repair_language_leakage(code, "cpp") == code

    def test_other_language_untouched(self):
        code = "def f():\n  function x() {}"
        assert repair_language_leakage(code, "ruby") == code
