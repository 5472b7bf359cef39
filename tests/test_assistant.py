"""Tests for the model-backed assistant and its heuristic fallback."""

from unittest.mock import MagicMock

import pytest

from codelens.assistant import CodeAssistant, strip_code_fence
from codelens.engine import RefactorOptions
from codelens.languages import SourceUnit
from codelens.model import ModelError, OllamaClient
from codelens.report import analyze
from codelens.scoring import CATEGORY_WEIGHTS, round_half_up

JS_UNIT = SourceUnit("var x = 1;\nfunction foo() { return x; }", "javascript")


@pytest.fixture
def mock_client():
    """Create a mock OllamaClient that returns structured responses."""
    client = MagicMock(spec=OllamaClient)
    client.model = "qwen2.5-coder:7b"
    client.generate_json.return_value = {
        "readability_score": 80,
        "maintainability_score": "75",
        "performance_score": 140,
        "security_score": -10,
        "code_smell_score": 66.6,
        "issues": ["Line 1: var declaration", 42, None, "  "],
        "recommendations": "Use const",
        "summary": "Reasonable code with legacy syntax.",
    }
    client.generate.return_value = (
        "Here is the refactored code:\n\n"
        "```javascript\n"
        "const x = 1;\n"
        "const foo = () => x;\n"
        "```\n"
    )
    return client


class TestAnalyze:
    """Test model-backed analysis."""

    def test_without_client_matches_heuristic(self):
        assert CodeAssistant().analyze(JS_UNIT).to_dict() == analyze(JS_UNIT).to_dict()

    def test_scores_clamped_and_coerced(self, mock_client):
        result = CodeAssistant(mock_client).analyze(JS_UNIT)
        assert result.readability_score == 80
        assert result.maintainability_score == 75
        assert result.performance_score == 100
        assert result.security_score == 0
        assert result.code_smell_score == 67

    def test_overall_recomputed_with_weights(self, mock_client):
        result = CodeAssistant(mock_client).analyze(JS_UNIT)
        expected = round_half_up(sum(CATEGORY_WEIGHTS[c.name] * c.score for c in result.categories))
        assert result.score == expected

    def test_lists_coerced_to_strings(self, mock_client):
        result = CodeAssistant(mock_client).analyze(JS_UNIT)
        assert result.issues == ["Line 1: var declaration", "42"]
        assert result.recommendations == ["Use const"]
        assert result.summary == "Reasonable code with legacy syntax."

    def test_provider_is_model_name(self, mock_client):
        assert CodeAssistant(mock_client).analyze(JS_UNIT).provider == "qwen2.5-coder:7b"

    def test_missing_scores_keep_heuristic(self, mock_client):
        mock_client.generate_json.return_value = {"security_score": 10}
        heuristic = analyze(JS_UNIT)
        result = CodeAssistant(mock_client).analyze(JS_UNIT)
        assert result.security_score == 10
        assert result.readability_score == heuristic.readability_score
        assert result.recommendations == heuristic.recommendations

    def test_model_error_falls_back(self, mock_client):
        mock_client.generate_json.side_effect = ModelError("Cannot connect to Ollama")
        result = CodeAssistant(mock_client).analyze(JS_UNIT)
        heuristic = analyze(JS_UNIT)
        assert result.score == heuristic.score
        assert result.provider == "heuristic"
        assert result.errors == ["Cannot connect to Ollama"]

    def test_empty_input_skips_model(self, mock_client):
        result = CodeAssistant(mock_client).analyze(SourceUnit("", "python"))
        assert result.score == 0
        mock_client.generate_json.assert_not_called()


class TestRefactor:
    """Test model-backed refactoring."""

    def test_without_client_uses_rules(self):
        result = CodeAssistant().refactor(JS_UNIT)
        assert result.provider == "heuristic"
        assert "var " not in result.refactored_code

    def test_model_output_used(self, mock_client):
        result = CodeAssistant(mock_client).refactor(JS_UNIT)
        assert result.refactored_code == "const x = 1;\nconst foo = () => x;"
        assert result.provider == "qwen2.5-coder:7b"
        assert result.improvement_count >= 2
        assert result.language == "javascript"

    def test_instructions_in_prompt(self, mock_client):
        CodeAssistant(mock_client).refactor(JS_UNIT, RefactorOptions(instructions="remove comments"))
        prompt = mock_client.generate.call_args.args[0]
        assert "remove comments" in prompt

    def test_model_error_falls_back(self, mock_client):
        mock_client.generate.side_effect = ModelError("Model generation timed out after 300s")
        result = CodeAssistant(mock_client).refactor(JS_UNIT)
        assert result.provider == "heuristic"
        assert "var " not in result.refactored_code
        assert result.errors == ["Model generation timed out after 300s"]

    def test_empty_output_falls_back(self, mock_client):
        mock_client.generate.return_value = "```\n```"
        result = CodeAssistant(mock_client).refactor(JS_UNIT)
        assert result.provider == "heuristic"
        assert result.errors


class TestStripCodeFence:
    """Test code fence extraction."""

    def test_fenced(self):
        assert strip_code_fence("text\n```python\nx = 1\n```\nmore") == "x = 1"

    def test_unfenced(self):
        assert strip_code_fence("  x = 1\n") == "x = 1"

    def test_cpp_language_tag(self):
        assert strip_code_fence("```c++\nint x;\n```") == "int x;"
