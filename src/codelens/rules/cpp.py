"""C / C++ rule table."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from .base import Rule, TextRule, apply_rules, indent_of, insert_after_header, rule

if TYPE_CHECKING:
    from ..engine import RefactorOptions

INCLUDE_LINE = re.compile(r"^\s*#\s*include\b")
TEMPLATE_TYPES = r"(?:std::)?(?:vector|map|unordered_map|set|unordered_set|list|deque|array|pair|tuple|shared_ptr|unique_ptr)"
RAW_NEW = re.compile(
    r"^([ \t]*)([A-Za-z_]\w*(?:::\w+)*(?:<[^;\n]*>)?)\s*\*\s*(\w+)\s*=\s*new\s+\2\s*(?:\(([^;\n]*)\))?\s*;",
    re.M,
)


def _range_for(m: re.Match) -> str:
    index, container, body = m.group(1), m.group(2), m.group(3)
    if re.search(r"\belement\b", body):
        return m.group(0)
    element = rf"(?<![\w.]){re.escape(container)}\[\s*{re.escape(index)}\s*\]"
    mutated = re.search(element + r"\s*(?:[-+*/%&|^]?=(?!=)|\+\+|--)", body) or re.search(
        r"(?:\+\+|--)\s*" + element, body
    )
    body = re.sub(element, "element", body)
    if re.search(rf"\b{re.escape(index)}\b", body):
        return m.group(0)
    binding = "auto&" if mutated else "const auto&"
    return f"for ({binding} element : {container}) {{{body}}}"


def _smart_pointers(text: str) -> str:
    """Owning ``new`` with a matching ``delete`` -> ``std::make_unique``."""
    for m in list(RAW_NEW.finditer(text)):
        indent, type_name, name, args = m.group(1), m.group(2), m.group(3), m.group(4) or ""
        delete = re.compile(rf"^[ \t]*delete\s+{re.escape(name)}\s*;[ \t]*\n?", re.M)
        if not delete.search(text):
            continue
        text = text.replace(m.group(0), f"{indent}auto {name} = std::make_unique<{type_name}>({args});", 1)
        text = delete.sub("", text, count=1)
    return text


def _catch_handler(m: re.Match) -> str:
    line_start = m.string.rfind("\n", 0, m.start()) + 1
    indent = indent_of(m.string[line_start:m.start()])
    exception_type, name = m.group(1), m.group(2) or "e"
    if exception_type is None:
        header, message = "catch (...)", '"Unknown error"'
    else:
        header = f"catch (const {exception_type}& {name})"
        if re.search(r"exception|error", exception_type, re.I):
            message = f'"Error: " << {name}.what()'
        else:
            message = '"Error caught"'
    return f"{header} {{\n{indent}    std::cerr << {message} << std::endl;\n{indent}}}"


def _includes(text: str) -> str:
    for marker, header in (("std::make_unique", "<memory>"), ("std::cerr", "<iostream>")):
        if marker in text and not re.search(rf"#\s*include\s*{re.escape(header)}", text):
            text = insert_after_header(text, f"#include {header}", INCLUDE_LINE)
    return text


CPP_RULES: tuple[Rule | TextRule, ...] = (
    rule("null_to_nullptr", r"\bNULL\b", "nullptr"),
    rule(
        "template_declaration_to_auto",
        rf"^([ \t]*){TEMPLATE_TYPES}\s*<[^;=\n]*>(?:::\w+)*\s+(\w+)\s*=\s*(?![\s{{])",
        r"\1auto \2 = ",
        re.M,
    ),
    rule("typedef_to_using", r"\btypedef\s+([^;(){}\n]+?)\s+(\w+)\s*;", r"using \2 = \1;"),
    rule(
        "index_loop_to_range_for",
        r"for\s*\(\s*(?:int|size_t|std::size_t|unsigned(?:\s+int)?|auto)\s+(\w+)\s*=\s*0\s*;"
        r"\s*\1\s*<\s*([\w.]+)\.size\(\)\s*;\s*(?:\+\+\1|\1\+\+)\s*\)\s*\{([^{}]*)\}",
        _range_for,
    ),
    TextRule("raw_new_to_make_unique", _smart_pointers),
    rule("push_back_to_emplace_back", r"\b(\w+)\.push_back\(", r"\1.emplace_back("),
    rule(
        "pair_access_to_structured_binding",
        r"\bauto\s+(\w+)\s*=\s*(\w+)\.first;\s*auto\s+(\w+)\s*=\s*\2\.second;",
        r"auto [\1, \3] = \2;",
    ),
    rule(
        "empty_catch_to_logged",
        r"catch\s*\(\s*(?:const\s+)?(?:\.\.\.|([\w:]+)\s*&?\s*(\w+)?)\s*\)\s*\{\s*\}",
        _catch_handler,
    ),
    rule("catch_by_value_to_reference", r"catch\s*\(\s*(?!const\b)([\w:]+)\s+(\w+)\s*\)", r"catch (const \1& \2)"),
    TextRule("includes", _includes),
)


def refactor_cpp(text: str, options: RefactorOptions | None = None) -> str:
    return apply_rules(text, CPP_RULES)
