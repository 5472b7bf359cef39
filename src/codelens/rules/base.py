"""Rule primitives shared by every language table.

A table is an ordered tuple of rules. Rules run strictly in sequence and
each one sees the output of the rule before it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Union

Replacement = Union[str, Callable[["re.Match[str]"], str]]


@dataclass(frozen=True)
class Rule:
    """A single regex substitution."""

    name: str
    pattern: re.Pattern
    replacement: Replacement

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


@dataclass(frozen=True)
class TextRule:
    """A whole-text transform, for passes a single substitution can't express."""

    name: str
    func: Callable[[str], str]

    def apply(self, text: str) -> str:
        return self.func(text)


def rule(name: str, pattern: str, replacement: Replacement, flags: int = 0) -> Rule:
    return Rule(name, re.compile(pattern, flags), replacement)


def apply_rules(text: str, table: Iterable[Rule | TextRule]) -> str:
    for step in table:
        text = step.apply(text)
    return text


def humanize(name: str) -> str:
    """``fetchUserData`` / ``fetch_user_data`` -> ``Fetch user data``."""
    words = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", name).replace("_", " ").split()
    if not words:
        return name
    sentence = " ".join(w.lower() for w in words)
    return sentence[0].upper() + sentence[1:]


def split_params(params: str) -> list[str]:
    """Split a parameter list on top-level commas."""
    parts, depth, current, quote = [], 0, [], ""
    for ch in params:
        if quote:
            current.append(ch)
            if ch == quote:
                quote = ""
            continue
        if ch in "\"'":
            quote = ch
        elif ch in "([{<":
            depth += 1
        elif ch in ")]}>":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return [p for p in parts if p]


def indent_of(line: str) -> str:
    return line[: len(line) - len(line.lstrip(" \t"))]


def insert_after_header(text: str, line: str, header: re.Pattern) -> str:
    """Insert ``line`` after the last line matching ``header``, else at the top."""
    lines = text.split("\n")
    last = -1
    for i, existing in enumerate(lines):
        if header.match(existing):
            last = i
    lines.insert(last + 1, line)
    return "\n".join(lines)


# String literals and comments, as one capturing group for ``re.split``.
C_LITERAL = re.compile(
    r"(/\*.*?\*/"
    r"|//[^\n]*"
    r'|"(?:[^"\\\n]|\\.)*"'
    r"|'(?:[^'\\\n]|\\.)*'"
    r"|`(?:[^`\\]|\\.)*`)",
    re.S,
)
PYTHON_LITERAL = re.compile(
    r'("""(?:[^\\]|\\.)*?"""'
    r"|'''(?:[^\\]|\\.)*?'''"
    r'|"(?:[^"\\\n]|\\.)*"'
    r"|'(?:[^'\\\n]|\\.)*'"
    r"|#[^\n]*)",
    re.S,
)


def sub_outside_literals(pattern: re.Pattern, repl: Replacement, text: str, literal: re.Pattern = C_LITERAL) -> str:
    """``pattern.sub`` that leaves matches starting inside strings and comments alone."""
    spans = [m.span() for m in literal.finditer(text)]

    def replace(m: re.Match) -> str:
        if any(start <= m.start() < end for start, end in spans):
            return m.group(0)
        return repl(m) if callable(repl) else m.expand(repl)

    return pattern.sub(replace, text)


def code_only(text: str, literal: re.Pattern = C_LITERAL) -> str:
    """``text`` with strings and comments blanked out, for counting."""
    return " ".join(literal.split(text)[::2])
