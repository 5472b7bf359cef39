"""Metric calculator - raw numeric signals derived from source text.

Every metric is a heuristic text scan (no parsing) mapped onto a 0-100
scale where higher is better. Results are always clamped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields

from .notebook import code_cell_sources, is_markdown_cell, parse_notebook

SMALL_FILE_LINES = 10
SMALL_FILE_BASELINE = 90.0
LINE_LENGTH_THRESHOLD = 35
SECURITY_BASELINE = 90.0


@dataclass(frozen=True)
class MetricProfile:
    """Comment syntax used when scanning a language."""

    name: str
    comment_prefixes: tuple[str, ...]
    doc_markers: tuple[str, ...] = ("/**", '"""', "'''", "@param", ":param", "Returns:")


GENERIC_PROFILE = MetricProfile("generic", ("//", "#", "/*", "*", "--", '"""', "'''"))
PYTHON_PROFILE = MetricProfile("python", ("#", '"""', "'''"))
C_STYLE_PROFILE = MetricProfile("c-style", ("//", "/*", "*"))
SQL_PROFILE = MetricProfile("sql", ("--", "/*", "*"))


@dataclass
class MetricSet:
    """Named quality signals, each clamped to [0, 100]."""

    line_length: float = 100.0
    comment_ratio: float = 100.0
    complexity_score: float = 100.0
    security_score: float = 100.0
    consistency_score: float = 100.0
    best_practices_score: float = 100.0

    def __post_init__(self):
        for f in fields(self):
            setattr(self, f.name, _clamp(getattr(self, f.name)))

    def to_dict(self) -> dict[str, float]:
        return {f.name: round(getattr(self, f.name), 1) for f in fields(self)}


# name, pattern, penalty per occurrence
SECURITY_PATTERNS = (
    ("eval", re.compile(r"\beval\s*\("), 25),
    ("exec", re.compile(r"\bexec\s*\("), 15),
    ("innerHTML", re.compile(r"\binnerHTML\b"), 15),
    ("dangerouslySetInnerHTML", re.compile(r"\bdangerouslySetInnerHTML\b"), 15),
    ("os.system", re.compile(r"\bos\.system\s*\("), 15),
    ("shell=True", re.compile(r"\bshell\s*=\s*True\b"), 20),
    (
        "hardcoded secret",
        re.compile(r"""\b(?:password|passwd|secret|token|api[_-]?key)\s*[:=]\s*["'][^"'\n]+["']""", re.I),
        30,
    ),
    (
        "interpolated sql",
        re.compile(r"""["'`]\s*(?:SELECT|INSERT|UPDATE|DELETE)\b[^"'`\n]*(?:["'`]\s*\+|\$\{)""", re.I),
        30,
    ),
    ("sql f-string", re.compile(r"""\bf["'](?:SELECT|INSERT|UPDATE|DELETE)\b[^"'\n]*\{""", re.I), 30),
)
VALIDATION_PATTERN = re.compile(r"\b(?:validate|sanitize|escape)\w*\s*\(", re.I)

BRANCH_KEYWORDS = re.compile(r"\b(?:if|elif|else|for|while|switch|case|catch|except)\b")
DEFINITION_PATTERN = re.compile(r"\b(?:def|function|class)\b|=>")

DOUBLE_QUOTED = re.compile(r'"[^"\n]*"')
SINGLE_QUOTED = re.compile(r"'[^'\n]*'")

LEGACY_PATTERNS = (
    (re.compile(r"\bvar\s+"), 5),
    (re.compile(r"\bconsole\.log\("), 3),
    (re.compile(r"\balert\("), 10),
    (re.compile(r"\b(?:TODO|FIXME)\b"), 2),
)


def compute_metrics(text: str, profile: MetricProfile | None = None) -> MetricSet:
    """Compute the MetricSet for a piece of source text."""
    profile = profile or GENERIC_PROFILE
    if not isinstance(text, str):
        text = ""

    has_markdown = False
    notebook = parse_notebook(text)
    if notebook is not None:
        has_markdown = any(is_markdown_cell(c) for c in notebook["cells"])
        text = "\n\n".join(code_cell_sources(notebook))

    lines = text.split("\n")
    non_empty = [line.rstrip() for line in lines if line.strip()]
    security = _security_score(text)

    if len(non_empty) < SMALL_FILE_LINES:
        return MetricSet(
            line_length=SMALL_FILE_BASELINE,
            comment_ratio=SMALL_FILE_BASELINE,
            complexity_score=SMALL_FILE_BASELINE,
            security_score=security,
            consistency_score=SMALL_FILE_BASELINE,
            best_practices_score=SMALL_FILE_BASELINE,
        )

    return MetricSet(
        line_length=_line_length_score(non_empty),
        comment_ratio=_comment_score(text, non_empty, profile, has_markdown),
        complexity_score=_complexity_score(text, non_empty),
        security_score=security,
        consistency_score=_consistency_score(text, lines),
        best_practices_score=_best_practices_score(text),
    )


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


def _line_length_score(non_empty: list[str]) -> float:
    average = sum(len(line) for line in non_empty) / len(non_empty)
    return _clamp(100 - 2 * max(0.0, average - LINE_LENGTH_THRESHOLD))


def _comment_score(text: str, non_empty: list[str], profile: MetricProfile, has_markdown: bool) -> float:
    comment_lines = sum(
        1 for line in non_empty if line.lstrip().startswith(profile.comment_prefixes)
    )
    score = comment_lines / len(non_empty) * 250
    if has_markdown or any(marker in text for marker in profile.doc_markers):
        score += 15
    return _clamp(score)


def _complexity_score(text: str, non_empty: list[str]) -> float:
    count = len(non_empty)
    braces = text.count("{")
    branches = len(BRANCH_KEYWORDS.findall(text))
    score = 100 - 20 * braces / count - 60 * branches / count
    # Functions and classes are a modularity signal
    if DEFINITION_PATTERN.search(text):
        score += 5
    return _clamp(score)


def _security_score(text: str) -> float:
    score = SECURITY_BASELINE
    for _name, pattern, penalty in SECURITY_PATTERNS:
        score -= penalty * len(pattern.findall(text))
    if VALIDATION_PATTERN.search(text):
        score += 10
    return _clamp(score)


def _consistency_score(text: str, lines: list[str]) -> float:
    score = 100.0
    doubles = len(DOUBLE_QUOTED.findall(text))
    singles = len(SINGLE_QUOTED.findall(text))
    total = doubles + singles
    if doubles and singles and min(doubles, singles) / total >= 0.1:
        score -= 20

    tab_indented = any(line.startswith("\t") and line.strip() for line in lines)
    space_indented = any(line.startswith(" ") and line.strip() for line in lines)
    if tab_indented and space_indented:
        score -= 30
    return _clamp(score)


def _best_practices_score(text: str) -> float:
    score = 100.0
    for pattern, penalty in LEGACY_PATTERNS:
        score -= penalty * len(pattern.findall(text))
    return _clamp(score)
