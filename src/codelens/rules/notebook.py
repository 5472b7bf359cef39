"""Notebook restructuring for the Python rule family.

Works on the parsed cell list: repeated literals are hoisted into a
constants cell, each code cell gets the per-cell Python rules, long cells
are split and duplicated top-level blocks become helper functions. Cells
are only ever added, never removed.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import TYPE_CHECKING, Any

from ..notebook import cell_source, dump_notebook, is_code_cell, new_cell, parse_notebook, source_lines
from .base import PYTHON_LITERAL, apply_rules, code_only, sub_outside_literals
from .python import CELL_RULES

if TYPE_CHECKING:
    from ..engine import RefactorOptions

logger = logging.getLogger(__name__)

CELL_SPLIT_LINES = 40
MIN_DUPLICATE_CHARS = 40
DUPLICATE_WINDOWS = range(3, 11)
MAX_HELPERS = 3

NUMBER = re.compile(r"(?<![\w.])\d{3,}(?![\w.])")
COMMON_NUMBERS = {"100", "1000"}
KNOWN_CONSTANTS = {
    "365": "DAYS_PER_YEAR",
    "1024": "BYTES_PER_KB",
    "3600": "SECONDS_PER_HOUR",
    "86400": "SECONDS_PER_DAY",
}
CONSTANTS_HEADER = "# Constants extracted from repeated literals"
HELPERS_HEADER = "# Helper functions extracted from repeated code"

BOUND_NAME = re.compile(
    r"^(?:(\w+)\s*(?:[-+*/%]|//|\*\*)?=(?!=)"
    r"|(?:def|class)\s+(\w+)"
    r"|import\s+(\w+)"
    r"|from\s+\S+\s+import\s+(\w+)"
    r"|for\s+(\w+)\s+in\b)"
)


def refactor_notebook(text: str, options: RefactorOptions | None = None) -> str:
    notebook = parse_notebook(text)
    if notebook is None:
        logger.debug("Text looks like a notebook but does not parse; leaving it unchanged")
        return text

    restructure = options is None or options.restructure_notebooks
    cells: list[dict[str, Any]] = notebook["cells"]
    if restructure:
        cells = hoist_constants(cells)
    for cell in cells:
        if is_code_cell(cell):
            _rewrite(cell, apply_rules(cell_source(cell), CELL_RULES))
    if restructure:
        cells = split_long_cells(cells)
        cells = extract_duplicates(cells)

    notebook["cells"] = cells
    return dump_notebook(notebook)


def constant_name(number: str) -> str:
    return KNOWN_CONSTANTS.get(number, f"CONSTANT_{number}")


def _constant_or_literal(m: re.Match, numbers: list[str]) -> str:
    return constant_name(m.group(0)) if m.group(0) in numbers else m.group(0)


def hoist_constants(cells: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Move literals repeated across code cells into a constants cell."""
    counts: Counter[str] = Counter()
    for cell in cells:
        if is_code_cell(cell):
            counts.update(NUMBER.findall(code_only(cell_source(cell), PYTHON_LITERAL)))
    numbers = [n for n, count in counts.items() if count >= 2 and n not in COMMON_NUMBERS]
    if not numbers:
        return cells

    for cell in cells:
        if not is_code_cell(cell):
            continue
        source = cell_source(cell)
        updated = sub_outside_literals(NUMBER, lambda m: _constant_or_literal(m, numbers), source, PYTHON_LITERAL)
        if updated != source:
            _rewrite(cell, updated)

    definitions = "\n".join(f"{constant_name(n)} = {n}" for n in numbers)
    explanation = new_cell(
        "markdown",
        "## Named constants\nRepeated numeric literals were extracted into named constants.",
    )
    constants = new_cell("code", f"{CONSTANTS_HEADER}\n{definitions}")
    position = next(i for i, cell in enumerate(cells) if is_code_cell(cell))
    return cells[:position] + [explanation, constants] + cells[position:]


def split_long_cells(cells: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Split code cells longer than CELL_SPLIT_LINES at logical boundaries."""
    result = []
    for cell in cells:
        if not is_code_cell(cell):
            result.append(cell)
            continue
        lines = cell_source(cell).split("\n")
        points = break_points(lines) if len(lines) > CELL_SPLIT_LINES else []
        if len(points) < 3:
            result.append(cell)
            continue

        result.append(new_cell(
            "markdown",
            "## Cell split\nThe following code was split into smaller cells for readability.",
        ))
        for start, end in zip(points, points[1:]):
            section = "\n".join(lines[start:end]).strip("\n")
            if section:
                result.append(new_cell("code", section))
    return result


def break_points(lines: list[str]) -> list[int]:
    """Line indexes where a long cell can be split, including 0 and len(lines)."""
    points = [0]
    for i, raw in enumerate(lines):
        line = raw.strip()
        since = i - points[-1]
        if raw[:1] in (" ", "\t"):
            continue
        if line.startswith(("import ", "from ", "def ", "class ", "@")):
            if since > 5:
                points.append(i)
        elif line.startswith("# ") and len(line) > 5 and not lines[i - 1].strip().startswith("#"):
            if since > 10:
                points.append(i)
        elif line == "" and since > 15:
            following = next((l for l in lines[i + 1:] if l.strip()), "")
            has_code = any(l.strip() and not l.strip().startswith("#") for l in lines[points[-1]:i])
            if has_code and following[:1] not in (" ", "\t"):
                points.append(i)
    points.append(len(lines))
    return points


def find_duplicates(blocks: list[str]) -> list[str]:
    """Top-level multi-line blocks that occur at least twice across cells."""
    found = []
    for block in blocks:
        lines = block.split("\n")
        for size in DUPLICATE_WINDOWS:
            for start in range(0, len(lines) - size + 1):
                window = lines[start:start + size]
                if window[0][:1] in (" ", "\t", "#", "@") or not window[0].strip():
                    continue
                following = lines[start + size] if start + size < len(lines) else ""
                if following[:1] in (" ", "\t"):
                    continue
                pattern = "\n".join(window)
                if len(pattern.strip()) < MIN_DUPLICATE_CHARS or pattern in found:
                    continue
                if sum(len(_block_pattern(pattern).findall(b)) for b in blocks) >= 2:
                    found.append(pattern)

    # Prefer the longest blocks; drop any that overlap one already chosen.
    chosen: list[str] = []
    for pattern in sorted(found, key=len, reverse=True):
        if any(pattern in c or c in pattern for c in chosen):
            continue
        chosen.append(pattern)
        if len(chosen) == MAX_HELPERS:
            break
    return chosen


def extract_duplicates(cells: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Replace duplicated blocks with calls to generated helper functions."""
    duplicates = find_duplicates([cell_source(c) for c in cells if is_code_cell(c)])
    if not duplicates:
        return cells

    definitions = []
    for n, pattern in enumerate(duplicates, start=1):
        name = f"helper_function_{n}"
        for cell in cells:
            if is_code_cell(cell):
                _rewrite(cell, _block_pattern(pattern).sub(f"{name}()", cell_source(cell)))
        definitions.append(_helper_source(name, pattern))

    helpers = new_cell("code", HELPERS_HEADER + "\n" + "\n\n\n".join(definitions))
    explanation = new_cell(
        "markdown",
        "## Code deduplication\nRepeated blocks were extracted into helper functions.",
    )
    position = _helper_position(cells)
    return cells[:position] + [explanation, helpers] + cells[position:]


def _helper_source(name: str, pattern: str) -> str:
    bound = []
    for line in pattern.split("\n"):
        m = BOUND_NAME.match(line)
        if m:
            bound.extend(g for g in m.groups() if g and g not in bound)
    body = ["    " + line if line.strip() else "" for line in pattern.split("\n")]
    lines = [f"def {name}():", '    """Run a block that was repeated in this notebook."""']
    if bound:
        lines.append(f"    global {', '.join(bound)}")
    return "\n".join(lines + body)


def _helper_position(cells: list[dict[str, Any]]) -> int:
    """First code cell that is neither imports nor constants, or the first call site."""
    candidates = []
    for i, cell in enumerate(cells):
        if is_code_cell(cell) and "helper_function_" in cell_source(cell):
            candidates.append(i)
            break
    for i, cell in enumerate(cells):
        if is_code_cell(cell):
            source = cell_source(cell)
            if "import " not in source and not source.startswith(CONSTANTS_HEADER):
                candidates.append(i)
                break
    return min(candidates, default=len(cells))


def _block_pattern(pattern: str) -> re.Pattern:
    return re.compile(rf"^{re.escape(pattern)}(?=\n|\Z)", re.M)


def _rewrite(cell: dict[str, Any], text: str) -> None:
    if text != cell_source(cell):
        cell["source"] = source_lines(text)
