"""Fallback formatter for languages without a dedicated table.

Only whitespace-level rewrites, so it is safe on anything from shell
scripts to YAML. Applying it twice gives the same result as applying it
once.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from .base import Rule, TextRule, apply_rules, rule, sub_outside_literals

if TYPE_CHECKING:
    from ..engine import RefactorOptions

INDENT = "  "
OPENERS = ("{", "[", "(")
CLOSERS = ("}", "]", ")")
OPERATOR = re.compile(r"(?<=[\w\)\]])[ \t]*(==|!=|<=|>=|\+=|-=|\*=|/=|=)[ \t]*(?=[\w\(\[\"'])")


def bracket_structured(text: str) -> bool:
    """True when some line ends with an opening bracket."""
    return any(line.rstrip().endswith(OPENERS) for line in text.split("\n"))


def _operator_spacing(text: str) -> str:
    # Shell assignments, URLs and YAML scalars use a bare "=".
    if not bracket_structured(text):
        return text
    return sub_outside_literals(OPERATOR, r" \1 ", text)


def _reindent(text: str) -> str:
    """Re-indent by bracket depth."""
    if not bracket_structured(text):
        return text
    lines = text.split("\n")
    depth = 0
    out = []
    for line in lines:
        stripped = line.strip()
        if not stripped:
            out.append("")
            continue
        if stripped.startswith(CLOSERS):
            depth = max(0, depth - 1)
        out.append(INDENT * depth + stripped)
        if stripped.endswith(OPENERS):
            depth += 1
    return "\n".join(out)


GENERIC_RULES: tuple[Rule | TextRule, ...] = (
    rule("trailing_whitespace", r"[ \t]+$", "", re.M),
    rule("blank_line_runs", r"\n[ \t]*\n(?:[ \t]*\n)+", "\n\n"),
    TextRule("operator_spacing", _operator_spacing),
    TextRule("bracket_indentation", _reindent),
)


def refactor_generic(text: str, options: RefactorOptions | None = None) -> str:
    return apply_rules(text, GENERIC_RULES)
