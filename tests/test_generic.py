"""Tests for the generic fallback formatter."""

import pytest

from codelens.rules.generic import bracket_structured, refactor_generic


class TestGenericFormatter:
    """Test whitespace-level rewrites."""

    def test_collapses_blank_line_runs(self):
        assert refactor_generic("a\n\n\nb") == "a\n\nb"

    def test_collapses_whitespace_only_blank_lines(self):
        assert refactor_generic("a\n  \n\t\n   \nb") == "a\n\nb"

    def test_strips_trailing_whitespace(self):
        assert refactor_generic("key: value   \nother: 1\t") == "key: value\nother: 1"

    def test_reindents_bracket_structured_text(self):
        text = "fn main() {\nlet x=1;\nif x==1 {\nprint(x);\n}\n}"
        expected = "fn main() {\n  let x = 1;\n  if x == 1 {\n    print(x);\n  }\n}"
        assert refactor_generic(text) == expected

    def test_operators_inside_strings_untouched(self):
        text = 'fn main() {\nlet url = "http://x?a=b";\nx=1 // a=b\n}'
        expected = 'fn main() {\n  let url = "http://x?a=b";\n  x = 1 // a=b\n}'
        assert refactor_generic(text) == expected

    def test_json_string_values_untouched(self):
        text = '{\n"query": "a=b&c==d"\n}'
        assert refactor_generic(text) == '{\n  "query": "a=b&c==d"\n}'

    def test_shell_assignments_untouched(self):
        text = "#!/bin/sh\nNAME=codelens\nURL=https://example.com/?q=1\n"
        assert refactor_generic(text) == text

    def test_yaml_untouched(self):
        text = "server:\n  port: 8080\n  hosts:\n    - a\n    - b\n"
        assert refactor_generic(text) == text

    @pytest.mark.parametrize("text", [
        "a\n\n\n\nb   \n",
        "fn main() {\nlet x=1;\n\n\n}\n",
        "{\n\"a\": [\n1,\n2\n]\n}",
        "plain prose\n\n\nwith gaps  ",
    ])
    def test_idempotent(self, text):
        once = refactor_generic(text)
        assert refactor_generic(once) == once

    def test_bracket_structured(self):
        assert bracket_structured("if (x) {\n}")
        assert not bracket_structured("a = 1\nb = 2")
