"""Java rule table."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from .base import Rule, TextRule, apply_rules, humanize, insert_after_header, rule, split_params

if TYPE_CHECKING:
    from ..engine import RefactorOptions

HEADER_LINE = re.compile(r"^\s*(?:package|import)\s")
COLLECTIONS = r"(?:ArrayList|LinkedList|HashMap|TreeMap|LinkedHashMap|HashSet|TreeSet|LinkedHashSet|ArrayDeque)"
TYPE = r"[\w.]+(?:<[^;=\n]*>)?"
TRY_BODY = r"((?:[^{}]|\{[^{}]*\})*)"
MIN_LOCAL_INDENT = 8


def _enhanced_for(m: re.Match) -> str:
    index, container, body = m.group(1), m.group(2), m.group(3)
    if re.search(r"\bitem\b", body):
        return m.group(0)
    c, i = re.escape(container), re.escape(index)
    element = rf"(?<![\w.])(?:{c}\.get\(\s*{i}\s*\)|{c}\[\s*{i}\s*\])"
    if re.search(element + r"\s*(?:[-+*/%&|^]?=(?!=)|\+\+|--)", body):
        return m.group(0)
    body = re.sub(element, "item", body)
    if re.search(rf"\b{i}\b", body):
        return m.group(0)
    return f"for (var item : {container}) {{{body}}}"


def _stream_pipeline(indent, element_type, result, variable, source, condition, expression) -> str:
    steps = [f"{source}.stream()"]
    if condition is not None:
        steps.append(f".filter({variable} -> {condition.strip()})")
    if expression.strip() != variable:
        steps.append(f".map({variable} -> {expression.strip()})")
    steps.append(".collect(Collectors.toList())")
    chain = f"\n{indent}        ".join(steps)
    return f"{indent}List<{element_type}> {result} = {chain};"


def _filter_loop(m: re.Match) -> str:
    indent, element_type, result, _loop_type, variable, source, condition, expression = m.groups()
    return _stream_pipeline(indent, element_type, result, variable, source, condition, expression)


def _map_loop(m: re.Match) -> str:
    indent, element_type, result, _loop_type, variable, source, expression = m.groups()
    if expression.strip() == variable:
        return m.group(0)
    return _stream_pipeline(indent, element_type, result, variable, source, None, expression)


def _local_var(m: re.Match) -> str:
    indent = m.group(1)
    if len(indent.expandtabs(4)) < MIN_LOCAL_INDENT:
        return m.group(0)
    return f"{indent}{m.group(2) or ''}var {m.group(4)} = new {m.group(3)}("


def _override(m: re.Match) -> str:
    if m.string[: m.start()].rstrip().endswith("@Override"):
        return m.group(0)
    return f"{m.group(1)}@Override\n{m.group(1)}{m.group(2)}"


def _javadoc(m: re.Match) -> str:
    if m.string[: m.start()].rstrip().endswith("*/"):
        return m.group(0)
    indent, return_type, name, params = m.group(1), m.group(3), m.group(4), m.group(5)
    lines = [f"{indent}/**", f"{indent} * {humanize(name)}."]
    names = [re.findall(r"\w+", p)[-1] for p in split_params(params) if re.findall(r"\w+", p)]
    if names or return_type.strip() != "void":
        lines.append(f"{indent} *")
    lines.extend(f"{indent} * @param {n} the {humanize(n).lower()}" for n in names)
    if return_type.strip() != "void":
        lines.append(f"{indent} * @return the result")
    lines.append(f"{indent} */")
    return "\n".join(lines) + "\n" + m.group(0)


def _collectors_import(text: str) -> str:
    if "Collectors." in text and not re.search(r"import\s+java\.util\.stream\.(?:Collectors|\*)\s*;", text):
        text = insert_after_header(text, "import java.util.stream.Collectors;", HEADER_LINE)
    return text


LOOP_HEAD = (
    r"^([ \t]*)List<([^;=\n]+)>\s+(\w+)\s*=\s*new\s+ArrayList<[^;=\n]*>\(\);[ \t]*\n[ \t]*"
    r"for\s*\(\s*(?:final\s+)?([\w<>?, ]+?)\s+(\w+)\s*:\s*([\w.()]+)\s*\)\s*\{\s*"
)

JAVA_RULES: tuple[Rule | TextRule, ...] = (
    rule(
        "index_loop_to_enhanced_for",
        r"for\s*\(\s*int\s+(\w+)\s*=\s*0\s*;\s*\1\s*<\s*([\w.]+?)(?:\.size\(\)|\.length)\s*;"
        r"\s*(?:\1\+\+|\+\+\1)\s*\)\s*\{([^{}]*)\}",
        _enhanced_for,
    ),
    rule(
        "filter_loop_to_stream",
        LOOP_HEAD + r"if\s*\(([^{}\n]+)\)\s*\{\s*\3\.add\(([^;{}]+)\);\s*\}\s*\}",
        _filter_loop,
        re.M,
    ),
    rule("map_loop_to_stream", LOOP_HEAD + r"\3\.add\(([^;{}]+)\);\s*\}", _map_loop, re.M),
    TextRule("collectors_import", _collectors_import),
    rule(
        "local_declaration_to_var",
        r"^([ \t]+)(final\s+)?([A-Z]\w*(?:<[^;=\n]*>)?)\s+(\w+)\s*=\s*new\s+\3\s*\(",
        _local_var,
        re.M,
    ),
    rule(
        "collection_to_diamond",
        rf"(\b\w+<[^;=\n]+>\s+\w+\s*=\s*new\s+{COLLECTIONS})(?:<[^;=\n()]*>)?\s*\(",
        r"\1<>(",
    ),
    rule(
        "try_finally_to_try_with_resources",
        rf"^([ \t]*)({TYPE})\s+(\w+)\s*=\s*(new\s[^;\n]+);[ \t]*\n\1try\s*\{{{TRY_BODY}\}}"
        r"\s*finally\s*\{\s*(?:if\s*\(\s*\3\s*!=\s*null\s*\)\s*)?\3\.close\(\);\s*\}",
        r"\1try (\2 \3 = \4) {\5}",
        re.M,
    ),
    rule(
        "null_initialized_try_to_try_with_resources",
        rf"^([ \t]*)({TYPE})\s+(\w+)\s*=\s*null;[ \t]*\n\1try\s*\{{\s*\3\s*=\s*(new\s[^;\n]+);{TRY_BODY}\}}"
        r"\s*finally\s*\{\s*if\s*\(\s*\3\s*!=\s*null\s*\)\s*\{?\s*\3\.close\(\);\s*\}?\s*\}",
        r"\1try (\2 \3 = \4) {\5}",
        re.M,
    ),
    rule(
        "override_annotation",
        r"^([ \t]*)(public\s+(?:final\s+)?(?:boolean|int|String)\s+(?:equals|hashCode|toString|compareTo)\s*\()",
        _override,
        re.M,
    ),
    rule(
        "javadoc_header",
        r"^([ \t]*)((?:@\w+(?:\([^)\n]*\))?[ \t]*\n[ \t]*)*)public\s+(?:(?:static|final|abstract|synchronized)\s+)*"
        r"(?!class\b|interface\b|enum\b|record\b)([\w<>\[\], ?]+?)\s+(\w+)\s*\(([^()]*)\)",
        _javadoc,
        re.M,
    ),
)


def refactor_java(text: str, options: RefactorOptions | None = None) -> str:
    return apply_rules(text, JAVA_RULES)
