"""Refactoring engine.

Dispatches text to the rule table of its language family, applies free-text
instructions and measures the result with a per-family checklist of
before/after pattern counts.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping

from .languages import DEFAULT_LANGUAGE, RuleFamily, SourceUnit, family_for
from .metrics import C_STYLE_PROFILE, GENERIC_PROFILE, PYTHON_PROFILE, SQL_PROFILE, MetricProfile
from .notebook import (
    cell_source,
    code_cell_sources,
    dump_notebook,
    is_code_cell,
    looks_like_notebook,
    parse_notebook,
    source_lines,
)
from .rules import (
    refactor_cpp,
    refactor_generic,
    refactor_java,
    refactor_javascript,
    refactor_python,
    refactor_sql,
)
from .rules.base import C_LITERAL, PYTHON_LITERAL, code_only, indent_of, sub_outside_literals
from .rules.javascript import import_block_end as javascript_import_end
from .rules.notebook import COMMON_NUMBERS, NUMBER, constant_name
from .rules.python import import_block_end as python_import_end
from .rules.sql import LITERAL as SQL_LITERAL

logger = logging.getLogger(__name__)

HEURISTIC_PROVIDER = "heuristic"
BASE_QUALITY = 91
MAX_QUALITY_BONUS = 9
IMPROVEMENT_FLOOR = 3
FLOOR_LENGTH_DELTA = 100
MAX_REINDENT_CREDIT = 5
CONSTANT_MIN_OCCURRENCES = 3
FALLBACK_DESCRIPTION = "Restructured and reformatted code for readability"

REMOVED = "removed"
ADDED = "added"


@dataclass
class RefactorOptions:
    """Knobs for a refactoring run."""

    aggressive: bool = False
    add_comments: bool = True
    restructure_notebooks: bool = True
    instructions: str = ""


@dataclass(frozen=True)
class LanguageProfile:
    """Rule table and metric profile for one language family."""

    family: RuleFamily
    refactor: Callable[[str, RefactorOptions | None], str]
    metrics: MetricProfile


REGISTRY: Mapping[RuleFamily, LanguageProfile] = MappingProxyType({
    RuleFamily.JAVASCRIPT: LanguageProfile(RuleFamily.JAVASCRIPT, refactor_javascript, C_STYLE_PROFILE),
    RuleFamily.PYTHON: LanguageProfile(RuleFamily.PYTHON, refactor_python, PYTHON_PROFILE),
    RuleFamily.CPP: LanguageProfile(RuleFamily.CPP, refactor_cpp, C_STYLE_PROFILE),
    RuleFamily.JAVA: LanguageProfile(RuleFamily.JAVA, refactor_java, C_STYLE_PROFILE),
    RuleFamily.SQL: LanguageProfile(RuleFamily.SQL, refactor_sql, SQL_PROFILE),
    RuleFamily.GENERIC: LanguageProfile(RuleFamily.GENERIC, refactor_generic, GENERIC_PROFILE),
})


def profile_for(language_id: str | None) -> LanguageProfile:
    """Registry entry for a language id; unknown ids get the generic profile."""
    return REGISTRY.get(family_for(language_id), REGISTRY[RuleFamily.GENERIC])


def refactor(text: str, language_id: str = DEFAULT_LANGUAGE, options: RefactorOptions | None = None) -> str:
    """Refactor source text with its language's rule table.

    Never raises: if a table fails the generic formatter is tried, and if
    that fails too the text comes back unchanged.
    """
    if not isinstance(text, str):
        return ""
    if not text.strip():
        return text

    options = options or RefactorOptions()
    profile = profile_for(language_id)
    logger.debug("Refactoring %d chars of %r with the %s table", len(text), language_id, profile.family.value)

    try:
        result = profile.refactor(text, options)
    except Exception:
        logger.exception("%s rules failed, falling back to generic formatting", profile.family.value)
        try:
            result = refactor_generic(text, options)
        except Exception:
            logger.exception("Generic formatting failed, returning the text unchanged")
            return text

    if options.instructions:
        if looks_like_notebook(result):
            result = _notebook_instructions(result, options.instructions)
        else:
            result = apply_instructions(result, profile.family, options.instructions)
    return result


# -- Instructions --------------------------------------------------------------

COMMENT_PREFIXES = {
    RuleFamily.JAVASCRIPT: ("//",),
    RuleFamily.PYTHON: ("#",),
    RuleFamily.CPP: ("//",),
    RuleFamily.JAVA: ("//",),
    RuleFamily.SQL: ("--",),
    RuleFamily.GENERIC: ("//", "#"),
}

LITERALS = {
    RuleFamily.PYTHON: PYTHON_LITERAL,
    RuleFamily.SQL: SQL_LITERAL,
}
DEFINITION_ANCHORS = {
    RuleFamily.PYTHON: python_import_end,
    RuleFamily.JAVASCRIPT: javascript_import_end,
}


def apply_instructions(text: str, family: RuleFamily, instructions: str) -> str:
    """Honor the free-text instructions the engine understands."""
    wanted = instructions.lower()
    if "remove comments" in wanted:
        text = remove_comments(text, family)
    if "extract constants" in wanted:
        text = extract_constants(text, family)
    return text


def remove_comments(text: str, family: RuleFamily) -> str:
    prefixes = COMMENT_PREFIXES.get(family, COMMENT_PREFIXES[RuleFamily.GENERIC])
    kept = [
        line for line in text.split("\n")
        if line.lstrip().startswith("#!") or not line.lstrip().startswith(prefixes)
    ]
    return "\n".join(kept)


def extract_constants(text: str, family: RuleFamily) -> str:
    literal = LITERALS.get(family, C_LITERAL)
    counts = Counter(NUMBER.findall(code_only(text, literal)))
    numbers = [n for n, c in counts.items() if c >= CONSTANT_MIN_OCCURRENCES and n not in COMMON_NUMBERS]
    if not numbers:
        return text
    text = sub_outside_literals(
        NUMBER, lambda m: constant_name(m.group(0)) if m.group(0) in numbers else m.group(0), text, literal
    )
    if family == RuleFamily.JAVASCRIPT:
        definitions = [f"const {constant_name(n)} = {n};" for n in numbers]
    else:
        definitions = [f"{constant_name(n)} = {n}" for n in numbers]

    # After any docstring, imports and directives, separated by blank lines.
    lines = text.split("\n")
    anchor = DEFINITION_ANCHORS.get(family)
    position = anchor(lines) if anchor else 0
    if position > 0:
        definitions = [""] + definitions
    if position >= len(lines) or lines[position].strip():
        definitions = definitions + [""]
    lines[position:position] = definitions
    return "\n".join(lines)


def _notebook_instructions(text: str, instructions: str) -> str:
    """Apply instructions to each code cell of a notebook."""
    notebook = parse_notebook(text)
    if notebook is None:
        logger.debug("Notebook does not parse; instructions skipped")
        return text
    for cell in notebook["cells"]:
        if is_code_cell(cell):
            source = cell_source(cell)
            updated = apply_instructions(source, RuleFamily.PYTHON, instructions)
            if updated != source:
                cell["source"] = source_lines(updated)
    return dump_notebook(notebook)


# -- Improvement counting ------------------------------------------------------

@dataclass(frozen=True)
class Check:
    """A before/after pattern count that signals one kind of improvement."""

    name: str
    pattern: re.Pattern
    kind: str
    weight: int
    message: str

    def delta(self, original: str, refactored: str) -> int:
        before = len(self.pattern.findall(original))
        after = len(self.pattern.findall(refactored))
        return before - after if self.kind == REMOVED else after - before


def check(name: str, pattern: str, kind: str, message: str, weight: int = 1, flags: int = 0) -> Check:
    return Check(name, re.compile(pattern, flags), kind, weight, message)


JAVASCRIPT_CHECKS = (
    check("var", r"\bvar\s", REMOVED, "Replaced var declarations with const/let"),
    check("function", r"\bfunction\b", REMOVED, "Converted functions to arrow functions"),
    check("template", r"\$\{", ADDED, "Converted string concatenation to template literals"),
    check("console", r"\bconsole\.log\(", REMOVED, "Removed debug console.log statements"),
    check("else", r"\belse\s*\{", REMOVED, "Collapsed if/else returns into ternaries"),
    check("require", r"\brequire\(", REMOVED, "Converted require() calls to ES module imports"),
    check("jsdoc", r"/\*\*", ADDED, "Added JSDoc comments"),
    check("destructuring", r"\b(?:const|let)\s*\{", ADDED, "Used object destructuring"),
    check("optional_chaining", r"\?\.", ADDED, "Used optional chaining"),
    check("array_methods", r"\.(?:map|filter|forEach)\(", ADDED, "Replaced index loops with array methods"),
    check("try", r"\btry\s*\{", ADDED, "Added error handling"),
)

PYTHON_CHECKS = (
    check(
        "comprehension", r"\[[^\[\]\n]+\bfor\b[^\[\]\n]+\bin\b[^\[\]\n]*\]", ADDED,
        "Converted loops to list comprehensions", weight=2,
    ),
    check(
        "dict_comprehension", r"\{[^{}\n]+:[^{}\n]+\bfor\b[^{}\n]+\bin\b[^{}\n]*\}", ADDED,
        "Converted loops to dict comprehensions", weight=2,
    ),
    check("range_len", r"\brange\(\s*len\(", REMOVED, "Iterated directly instead of over range(len())"),
    check("fstring", r"\bf[\"']", ADDED, "Converted string formatting to f-strings"),
    check("with_open", r"\bwith\s+open\(", ADDED, "Used context managers for file handling"),
    check("bool_compare", r"==\s*(?:True|False)\b", REMOVED, "Simplified boolean comparisons"),
    check("none_compare", r"[!=]=\s*None\b", REMOVED, "Used identity comparisons with None"),
    check("type_hints", r"->", ADDED, "Added type hints"),
    check("docstrings", r'""".*?"""', ADDED, "Added docstrings", flags=re.S),
    check("literal_eval", r"\bast\.literal_eval\(", ADDED, "Replaced eval() with ast.literal_eval()"),
    check("shell", r"\bshell\s*=\s*True\b", REMOVED, "Disabled shell=True in subprocess calls"),
    check(
        "mutable_default", r"=\s*(?:\[\]|\{\}|list\(\)|dict\(\)|set\(\))\s*[,)]", REMOVED,
        "Replaced mutable default arguments",
    ),
)

CPP_CHECKS = (
    check("nullptr", r"\bnullptr\b", ADDED, "Replaced NULL with nullptr"),
    check("auto", r"\bauto\b", ADDED, "Used auto for verbose declarations"),
    check("make_unique", r"\bstd::make_unique\b", ADDED, "Replaced raw new/delete with std::make_unique"),
    check("range_for", r"\bfor\s*\([^;()]*\s:\s", ADDED, "Converted index loops to range-based for"),
    check("cerr", r"\bstd::cerr\b", ADDED, "Logged caught exceptions"),
    check("using", r"\busing\s+\w+\s*=", ADDED, "Replaced typedef with using aliases"),
    check("emplace", r"\.emplace_back\(", ADDED, "Used emplace_back"),
)

JAVA_CHECKS = (
    check("enhanced_for", r"\bfor\s*\(\s*var\s+\w+\s*:", ADDED, "Converted index loops to enhanced for"),
    check("var", r"\bvar\s+\w+\s*=", ADDED, "Used var for local declarations"),
    check("stream", r"\.stream\(\)", ADDED, "Converted loops to stream pipelines", weight=2),
    check("override", r"@Override\b", ADDED, "Added @Override annotations"),
    check("javadoc", r"/\*\*", ADDED, "Added Javadoc comments"),
    check("diamond", r"<>\(", ADDED, "Used the diamond operator"),
    check("try_with_resources", r"\btry\s*\(", ADDED, "Used try-with-resources"),
)

SQL_CHECKS = (
    check(
        "clauses", r"^\s*(?:SELECT|FROM|WHERE|GROUP BY|HAVING|ORDER BY|LIMIT|UNION)\b", ADDED,
        "Placed each clause on its own line", flags=re.M,
    ),
    check("joins", r"^\s*(?:\w+\s+)*JOIN\b", ADDED, "Placed each join on its own line", flags=re.M),
    check(
        "lowercase_keywords", r"\b(?:select|from|where|join|group by|order by|having|and|or)\b", REMOVED,
        "Upper-cased SQL keywords",
    ),
    check("comments", r"^--", ADDED, "Added explanatory comments", flags=re.M),
)

GENERIC_CHECKS = (
    check("blank_runs", r"\n[ \t]*\n(?:[ \t]*\n)+", REMOVED, "Collapsed runs of blank lines"),
    check("trailing_whitespace", r"[ \t]+$", REMOVED, "Removed trailing whitespace", flags=re.M),
)

CHECKLISTS = MappingProxyType({
    RuleFamily.JAVASCRIPT: JAVASCRIPT_CHECKS,
    RuleFamily.PYTHON: PYTHON_CHECKS,
    RuleFamily.CPP: CPP_CHECKS,
    RuleFamily.JAVA: JAVA_CHECKS,
    RuleFamily.SQL: SQL_CHECKS,
    RuleFamily.GENERIC: GENERIC_CHECKS,
})


def count_improvements(original: str, refactored: str, family: RuleFamily = RuleFamily.GENERIC) -> tuple[int, list[str]]:
    """Weighted tally of detected improvements and their descriptions."""
    if original == refactored:
        return 0, []

    count, improvements = 0, []
    before_nb, after_nb = parse_notebook(original), parse_notebook(refactored)
    if before_nb is not None and after_nb is not None:
        added_cells = len(after_nb["cells"]) - len(before_nb["cells"])
        if added_cells > 0:
            count += added_cells
            improvements.append(f"Added {added_cells} notebook cell(s) for constants, helpers or split sections")
        original = "\n\n".join(code_cell_sources(before_nb))
        refactored = "\n\n".join(code_cell_sources(after_nb))

    for item in CHECKLISTS.get(family, GENERIC_CHECKS):
        delta = item.delta(original, refactored)
        if delta > 0:
            count += delta * item.weight
            improvements.append(item.message)

    if family == RuleFamily.GENERIC:
        reindented = _reindented_lines(original, refactored)
        if reindented // 3:
            count += min(MAX_REINDENT_CREDIT, reindented // 3)
            improvements.append(f"Re-indented {reindented} lines by nesting depth")

    if original != refactored and abs(len(refactored) - len(original)) > FLOOR_LENGTH_DELTA and count < IMPROVEMENT_FLOOR:
        count = IMPROVEMENT_FLOOR
        if not improvements:
            improvements.append(FALLBACK_DESCRIPTION)
    return count, improvements


def _reindented_lines(original: str, refactored: str) -> int:
    before = [line for line in original.split("\n") if line.strip()]
    after = [line for line in refactored.split("\n") if line.strip()]
    if len(before) != len(after):
        return 0
    return sum(1 for a, b in zip(before, after) if a.strip() == b.strip() and indent_of(a) != indent_of(b))


def improvement_score(count: int) -> int:
    return min(100, BASE_QUALITY + min(count, MAX_QUALITY_BONUS))


@dataclass
class RefactoringResult:
    """Refactored text plus a measure of how much it improved."""

    refactored_code: str
    improvement_count: int = 0
    improvements: list[str] = field(default_factory=list)
    quality_score: int = BASE_QUALITY
    language: str = RuleFamily.GENERIC.value
    provider: str = HEURISTIC_PROVIDER
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "refactored_code": self.refactored_code,
            "improvement_count": self.improvement_count,
            "improvements": self.improvements,
            "quality_score": self.quality_score,
            "language": self.language,
            "provider": self.provider,
        }
        if self.errors:
            data["errors"] = self.errors
        return data


def refactor_unit(unit: SourceUnit, options: RefactorOptions | None = None) -> RefactoringResult:
    """Refactor a source unit and count what changed."""
    text = unit.text if isinstance(unit.text, str) else ""
    refactored = refactor(text, unit.language_id, options)
    count, improvements = count_improvements(text, refactored, unit.family)
    return RefactoringResult(
        refactored_code=refactored,
        improvement_count=count,
        improvements=improvements,
        quality_score=improvement_score(count),
        language=unit.family.value,
    )
