"""Model-backed analysis and refactoring with a deterministic fallback.

The heuristic engine always runs first; a model, when configured, only
replaces its output. Any ModelError leaves the heuristic result in place
with the error recorded.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from .engine import RefactorOptions, RefactoringResult, count_improvements, improvement_score, refactor_unit
from .languages import SourceUnit
from .model import ModelError, OllamaClient
from .prompts import SYSTEM_PROMPT, analysis_prompt, refactor_prompt
from .report import QualityResult, analyze, summarize
from .scoring import CATEGORY_NAMES, CategoryScore, clamp_score, overall_score

logger = logging.getLogger(__name__)

CODE_FENCE = re.compile(r"```[\w+#.-]*[ \t]*\n(.*?)\n?```", re.S)

# Category -> key in the model's JSON reply
SCORE_KEYS = {
    "Readability": "readability_score",
    "Maintainability": "maintainability_score",
    "Performance": "performance_score",
    "Security": "security_score",
    "Code Smell": "code_smell_score",
}


class CodeAssistant:
    """Analyzes and refactors source units, optionally through a local model."""

    def __init__(self, client: OllamaClient | None = None):
        self.client = client

    def analyze(self, unit: SourceUnit, include_refactor: bool = False) -> QualityResult:
        result = analyze(unit, include_refactor=include_refactor)
        if self.client is None or not unit.text or not unit.text.strip():
            return result

        try:
            reply = self.client.generate_json(
                analysis_prompt(unit.language_id, unit.text),
                system=SYSTEM_PROMPT,
            )
        except ModelError as e:
            logger.warning("Model analysis failed, using heuristic scores: %s", e)
            result.errors.append(str(e))
            return result

        _merge_analysis(result, reply)
        result.provider = self.client.model
        return result

    def refactor(self, unit: SourceUnit, options: RefactorOptions | None = None) -> RefactoringResult:
        options = options or RefactorOptions()
        if self.client is None:
            return refactor_unit(unit, options)

        text = unit.text if isinstance(unit.text, str) else ""
        if not text.strip():
            return refactor_unit(unit, options)

        try:
            reply = self.client.generate(
                refactor_prompt(unit.language_id, text, options.instructions),
                system=SYSTEM_PROMPT,
            )
        except ModelError as e:
            logger.warning("Model refactoring failed, using rule tables: %s", e)
            fallback = refactor_unit(unit, options)
            fallback.errors.append(str(e))
            return fallback

        code = strip_code_fence(reply)
        if not code.strip():
            logger.warning("Model returned no code, using rule tables")
            fallback = refactor_unit(unit, options)
            fallback.errors.append("Model returned an empty response")
            return fallback

        count, improvements = count_improvements(text, code, unit.family)
        return RefactoringResult(
            refactored_code=code,
            improvement_count=count,
            improvements=improvements,
            quality_score=improvement_score(count),
            language=unit.family.value,
            provider=self.client.model,
        )


def strip_code_fence(text: str) -> str:
    """Return the body of the first fenced block, or the text itself."""
    match = CODE_FENCE.search(text)
    if match:
        return match.group(1)
    return text.strip()


def _merge_analysis(result: QualityResult, reply: dict[str, Any]) -> None:
    categories = []
    for name in CATEGORY_NAMES:
        value = _score(reply.get(SCORE_KEYS[name]))
        categories.append(CategoryScore(name, result.category(name) if value is None else value))
    result.categories = categories
    result.score = overall_score(categories)

    issues = _strings(reply.get("issues"))
    if issues:
        result.issues = issues
    recommendations = _strings(reply.get("recommendations"))
    if recommendations:
        result.recommendations = recommendations
    summary = reply.get("summary")
    result.summary = summary.strip() if isinstance(summary, str) and summary.strip() else summarize(result.score)


def _score(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if isinstance(value, (int, float)):
        return clamp_score(value)
    return None


def _strings(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if item is not None and str(item).strip()]
