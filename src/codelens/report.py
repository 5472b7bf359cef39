"""Quality report assembler.

Combines category scores into the overall weighted score and attaches
recommendations, line-located findings and a summary sentence.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from .engine import HEURISTIC_PROVIDER, profile_for, refactor
from .languages import DEFAULT_LANGUAGE, RuleFamily, SourceUnit, family_for
from .metrics import MetricSet, compute_metrics
from .notebook import cell_source, is_code_cell, parse_notebook
from .scoring import (
    CODE_SMELL,
    MAINTAINABILITY,
    PERFORMANCE,
    READABILITY,
    SECURITY,
    CategoryScore,
    overall_score,
    score_categories,
    zero_categories,
)

EMPTY_RECOMMENDATION = "Please provide code to analyze."
EMPTY_SUMMARY = "No code to analyze."

LONG_LINE = 100
MAX_RECOMMENDATIONS = 3
MAX_NESTED_FINDINGS = 2
MAX_MAGIC_FINDINGS = 3

NESTED_PATTERN = re.compile(
    r"^([ \t]*)(?:if|for|while)\b[^\n]*\n(\1[ \t]+)(?:if|for|while)\b[^\n]*\n\2[ \t]+(?:if|for|while)\b",
    re.M,
)
MAGIC_NUMBER = re.compile(r"(?<![\w.])\d{3,}(?![\w.])")
CONSTANT_LINE = re.compile(
    r"^\s*(?:(?:export|const|static|final|public|private|let)\s+)*(?:#define\s+)?[A-Z][A-Z0-9_]+\b"
)

# metric field, threshold, advisory
RECOMMENDATIONS = (
    ("line_length", 70, "Break long lines into shorter statements to improve readability"),
    ("comment_ratio", 60, "Add comments and docstrings that explain the purpose of functions and modules"),
    ("complexity_score", 70, "Reduce nesting and branching by extracting conditions into small named functions"),
    ("security_score", 85, "Avoid eval(), innerHTML and shell commands built from input; validate and sanitize user data"),
    ("consistency_score", 80, "Use one quote style and one indentation style (tabs or spaces) throughout the file"),
    (
        "best_practices_score",
        75,
        "Replace legacy constructs such as var, alert() and stray console.log calls, and resolve TODO/FIXME markers",
    ),
)
NOTEBOOK_RECOMMENDATIONS = {
    "security_score": "Store credentials in environment variables, not in notebook cells",
    "complexity_score": "Break long notebook cells into smaller, focused cells",
}

SUMMARY_BANDS = (
    (90, "Excellent {subject} quality. Well-structured and maintainable."),
    (80, "Strong {subject} quality with only minor issues."),
    (70, "Good {subject} quality with some room for improvement."),
    (60, "Acceptable {subject} quality. Several areas need attention."),
    (50, "Poor {subject} quality. Significant refactoring recommended."),
    (0, "Critical {subject} quality issues. Restructuring is required."),
)


@dataclass
class Snippet:
    """A line-located finding with a suggested fix."""

    title: str
    code: str
    suggestion: str = ""
    line: int | None = None
    cell: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "title": self.title,
            "code": self.code,
            "suggestion": self.suggestion,
            "line": self.line,
        }
        if self.cell is not None:
            data["cell"] = self.cell
        return data


@dataclass
class QualityResult:
    """Complete quality report for one source unit."""

    score: int = 0
    categories: list[CategoryScore] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    snippets: list[Snippet] = field(default_factory=list)
    summary: str = ""
    refactored_code: str | None = None
    metrics: MetricSet | None = None
    language: str = DEFAULT_LANGUAGE
    provider: str = HEURISTIC_PROVIDER
    errors: list[str] = field(default_factory=list)

    def category(self, name: str) -> int:
        for c in self.categories:
            if c.name == name:
                return c.score
        return 0

    @property
    def readability_score(self) -> int:
        return self.category(READABILITY)

    @property
    def maintainability_score(self) -> int:
        return self.category(MAINTAINABILITY)

    @property
    def performance_score(self) -> int:
        return self.category(PERFORMANCE)

    @property
    def security_score(self) -> int:
        return self.category(SECURITY)

    @property
    def code_smell_score(self) -> int:
        return self.category(CODE_SMELL)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "score": self.score,
            "readability_score": self.readability_score,
            "maintainability_score": self.maintainability_score,
            "performance_score": self.performance_score,
            "security_score": self.security_score,
            "code_smell_score": self.code_smell_score,
            "categories": [c.to_dict() for c in self.categories],
            "issues": self.issues,
            "recommendations": self.recommendations,
            "snippets": [s.to_dict() for s in self.snippets],
            "summary": self.summary,
            "language": self.language,
            "provider": self.provider,
        }
        if self.metrics is not None:
            data["metrics"] = self.metrics.to_dict()
        if self.refactored_code is not None:
            data["refactored_code"] = self.refactored_code
        if self.errors:
            data["errors"] = self.errors
        return data


def analyze(unit: SourceUnit, include_refactor: bool = False) -> QualityResult:
    """Run metrics, scoring and report assembly for a source unit."""
    text = unit.text if isinstance(unit.text, str) else ""
    if not text.strip():
        return empty_result(unit.language_id)

    profile = profile_for(unit.language_id)
    metrics = compute_metrics(text, profile.metrics)
    result = assemble_report(score_categories(metrics), metrics, unit.language_id, text=text)
    if include_refactor:
        result.refactored_code = refactor(text, unit.language_id)
    return result


def empty_result(language_id: str = DEFAULT_LANGUAGE) -> QualityResult:
    """Fixed result for empty input: score 0 and every category at 0."""
    return QualityResult(
        score=0,
        categories=zero_categories(),
        recommendations=[EMPTY_RECOMMENDATION],
        summary=EMPTY_SUMMARY,
        language=language_id,
    )


def assemble_report(
    categories: list[CategoryScore],
    metrics: MetricSet,
    language_id: str,
    text: str = "",
) -> QualityResult:
    """Package scores, recommendations, findings and summary."""
    is_notebook = parse_notebook(text) is not None if text else False
    score = overall_score(categories)
    snippets = find_snippets(text, language_id) if text else []

    return QualityResult(
        score=score,
        categories=list(categories),
        issues=[_issue_text(s) for s in snippets],
        recommendations=build_recommendations(metrics, is_notebook),
        snippets=snippets,
        summary=summarize(score, is_notebook),
        metrics=metrics,
        language=language_id,
    )


def build_recommendations(metrics: MetricSet, is_notebook: bool = False) -> list[str]:
    """Advisories for metrics under their threshold, worst first."""
    triggered = []
    for index, (attr, threshold, advice) in enumerate(RECOMMENDATIONS):
        value = getattr(metrics, attr)
        if value < threshold:
            if is_notebook:
                advice = NOTEBOOK_RECOMMENDATIONS.get(attr, advice)
            triggered.append((value, index, advice))
    triggered.sort()
    return [advice for _value, _index, advice in triggered[:MAX_RECOMMENDATIONS]]


def summarize(score: int, is_notebook: bool = False) -> str:
    subject = "notebook" if is_notebook else "code"
    template = next((t for floor, t in SUMMARY_BANDS if score >= floor), SUMMARY_BANDS[-1][1])
    return template.format(subject=subject)


def find_snippets(text: str, language_id: str = DEFAULT_LANGUAGE) -> list[Snippet]:
    """Line-located findings: long lines, deep nesting, magic numbers."""
    comment = _comment_prefix(family_for(language_id))
    notebook = parse_notebook(text)
    if notebook is None:
        return _scan(text, comment)

    snippets = []
    for index, cell in enumerate(notebook["cells"], start=1):
        if is_code_cell(cell):
            snippets.extend(_scan(cell_source(cell), "#", cell=index))
    return snippets


def line_number(text: str, offset: int) -> int:
    """1-based line of a character offset."""
    return text.count("\n", 0, offset) + 1


def _scan(text: str, comment: str, cell: int | None = None) -> list[Snippet]:
    snippets = []

    for number, line in enumerate(text.split("\n"), start=1):
        if len(line) > LONG_LINE:
            snippets.append(Snippet(
                title=f"Line too long ({len(line)} characters)",
                code=line,
                suggestion=f"{line[:50]}...\n{comment} Consider breaking this line into multiple statements",
                line=number,
                cell=cell,
            ))

    for match in list(NESTED_PATTERN.finditer(text))[:MAX_NESTED_FINDINGS]:
        snippets.append(Snippet(
            title="Deeply nested control flow",
            code=match.group(0),
            suggestion=f"{comment} Extract the inner conditions into named functions or return early",
            line=line_number(text, match.start()),
            cell=cell,
        ))

    lines = text.split("\n")
    magic = []
    for match in MAGIC_NUMBER.finditer(text):
        number = line_number(text, match.start())
        if CONSTANT_LINE.match(lines[number - 1]):
            continue
        magic.append((match, number))
    for match, number in magic[:MAX_MAGIC_FINDINGS]:
        snippets.append(Snippet(
            title=f"Magic number {match.group(0)} should be a named constant",
            code=lines[number - 1].strip(),
            suggestion=f"{comment} Define CONSTANT_{match.group(0)} = {match.group(0)} once and reuse it",
            line=number,
            cell=cell,
        ))

    return snippets


def _issue_text(snippet: Snippet) -> str:
    location = [f"line {snippet.line}"] if snippet.line is not None else []
    if snippet.cell is not None:
        location.insert(0, f"cell {snippet.cell}")
    if not location:
        return snippet.title
    return f"{', '.join(location).capitalize()}: {snippet.title}"


def _comment_prefix(family: RuleFamily) -> str:
    if family == RuleFamily.PYTHON:
        return "#"
    if family == RuleFamily.SQL:
        return "--"
    return "//"
