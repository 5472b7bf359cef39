"""SQL formatter.

Keyword casing and line breaking only touch text outside string literals,
quoted identifiers and ``--`` comments. Running the formatter over its own
output changes nothing.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from ..engine import RefactorOptions

KEYWORDS = (
    "SELECT", "FROM", "WHERE", "HAVING", "LIMIT", "OFFSET", "JOIN", "LEFT", "RIGHT", "INNER",
    "OUTER", "FULL", "CROSS", "ON", "AS", "AND", "OR", "IN", "NOT", "NULL", "IS", "LIKE",
    "BETWEEN", "EXISTS", "DISTINCT", "UNION", "ALL", "INSERT", "INTO", "VALUES", "UPDATE",
    "SET", "DELETE", "CREATE", "TABLE", "ALTER", "DROP", "CASE", "WHEN", "THEN", "ELSE",
    "END", "ASC", "DESC", "WITH",
)
AGGREGATES = ("COUNT", "SUM", "AVG", "MIN", "MAX")

LITERAL = re.compile(r"""('(?:[^']|'')*'|"[^"]*"|`[^`]*`|--[^\n]*)""")
KEYWORD = re.compile(rf"\b(?:{'|'.join(KEYWORDS)})\b", re.I)
AGGREGATE = re.compile(rf"\b({'|'.join(AGGREGATES)})(?=\s*\()", re.I)
GROUP_ORDER = re.compile(r"\b(group|order)\s+by\b", re.I)
CLAUSE = re.compile(r"\s*\b(SELECT|FROM|WHERE|GROUP BY|HAVING|ORDER BY|LIMIT|UNION(?: ALL)?)\b")
JOIN = re.compile(r"\s*\b((?:(?:LEFT|RIGHT|FULL)(?:\s+OUTER)?|INNER|CROSS|OUTER)\s+)?JOIN\b")
SELECT_LIST = re.compile(r"\bSELECT(\s+DISTINCT)?\b(.*?)(?=\nFROM\b|;|\Z)", re.S)
SUBQUERY = re.compile(r"\(\s*(SELECT\b[^()]*?)\s*\)")
JOIN_COMMENT = "-- Joining tables"
AGGREGATE_COMMENT = "-- Query includes aggregations"


def _outside_literals(text: str, func: Callable[[str, bool], str]) -> str:
    """Apply ``func(part, at_start)`` to every segment outside literals and comments."""
    parts = LITERAL.split(text)
    for i in range(0, len(parts), 2):
        parts[i] = func(parts[i], i == 0)
    return "".join(parts)


def _uppercase(part: str, at_start: bool) -> str:
    part = KEYWORD.sub(lambda m: m.group(0).upper(), part)
    part = AGGREGATE.sub(lambda m: m.group(1).upper(), part)
    return GROUP_ORDER.sub(lambda m: f"{m.group(1).upper()} BY", part)


def _break_lines(part: str, at_start: bool) -> str:
    def clause(m: re.Match) -> str:
        if m.start() == 0 and at_start:
            return m.group(1)
        if m.string[: m.start()].endswith("("):
            return m.group(0)
        return "\n" + m.group(1)

    def join(m: re.Match) -> str:
        kind = " ".join(m.group(1).split()) + " " if m.group(1) else ""
        return f"\n  {kind}JOIN"

    return JOIN.sub(join, CLAUSE.sub(clause, part))


def split_top_level(segment: str) -> list[str]:
    """Split on commas that are outside parentheses and quotes."""
    parts, current, depth, quote = [], [], 0, ""
    for ch in segment:
        if quote:
            if ch == quote:
                quote = ""
        elif ch in "'\"`":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return parts


def _select_columns(m: re.Match) -> str:
    columns = [" ".join(c.split()) for c in split_top_level(m.group(2))]
    if len(columns) < 2 or not all(columns):
        return m.group(0)
    return f"SELECT{m.group(1) or ''} " + ",\n  ".join(columns)


def _subqueries(m: re.Match) -> str:
    inner = "\n".join("  " + line.strip() for line in m.group(1).split("\n"))
    return f"(\n{inner}\n)"


def _comments(text: str) -> str:
    comments = []
    if re.search(r"\bJOIN\b", text) and JOIN_COMMENT not in text:
        comments.append(JOIN_COMMENT)
    if re.search(rf"\b(?:{'|'.join(AGGREGATES)})\s*\(", text) and AGGREGATE_COMMENT not in text:
        comments.append(AGGREGATE_COMMENT)
    if not comments:
        return text
    return "\n".join(comments) + "\n" + text


def refactor_sql(text: str, options: RefactorOptions | None = None) -> str:
    result = _outside_literals(text, _uppercase)
    result = _outside_literals(result, _break_lines)
    result = SELECT_LIST.sub(_select_columns, result)

    if options is not None and options.aggressive:
        result = SUBQUERY.sub(_subqueries, result)
        if options.add_comments:
            result = _comments(result)

    result = "\n".join(line.rstrip() for line in result.split("\n")).lstrip("\n")
    if text.endswith("\n") and not result.endswith("\n"):
        result += "\n"
    return result
