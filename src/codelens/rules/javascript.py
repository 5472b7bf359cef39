"""JavaScript / TypeScript rule table."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from .base import Rule, TextRule, apply_rules, humanize, rule, split_params

if TYPE_CHECKING:
    from ..engine import RefactorOptions

IDENT = r"[A-Za-z_$][\w$]*"
OPERAND = rf"{IDENT}(?:\.{IDENT}|\[[^\[\]\n]*\]|\([^()\n]*\))*"
PLAIN_STRING = r"""(['"])([^'"\\\n`$]*)\1"""
MAX_TEMPLATE_PASSES = 5
CONTROL_HEADER = re.compile(r"^\s*(?:\}\s*)?(?:(?:(?:else\s+)?if|for|while)\s*\(.*\)|else|do)\s*$")
IMPORT_STATEMENT = re.compile(r"""^\s*(?:import\b|(?:const|let|var)\s+[^=\n]+=\s*require\(|["']use strict["'])""")
IMPORT_COMPLETE = re.compile(r"""\bfrom\s*["']|^\s*import\s*["']|;\s*$""")


def _var_declarations(text: str) -> str:
    """``var`` -> ``const``, or ``let`` when any name it declares is assigned again."""
    pattern = re.compile(rf"\bvar\s+(?={IDENT})")

    def replace(m: re.Match) -> str:
        declarators = split_params(text[m.end():_statement_end(text, m.end())])
        for declarator in declarators:
            d = re.match(rf"({IDENT})\s*(=(?![=>]))?", declarator)
            if d is None or d.group(2) is None or _assignment_count(text, d.group(1)) > 1:
                return "let "
        return "const "

    return pattern.sub(replace, text)


def _statement_end(text: str, start: int) -> int:
    """Offset of the ``;``, ``)`` or line break that ends the statement at ``start``."""
    depth, quote = 0, ""
    for i in range(start, len(text)):
        ch = text[i]
        if quote:
            if ch == quote and text[i - 1] != "\\":
                quote = ""
            continue
        if ch in "\"'`":
            quote = ch
        elif ch in "([{":
            depth += 1
        elif ch in ")]}":
            if depth == 0:
                return i
            depth -= 1
        elif depth == 0 and (ch == ";" or (ch == "\n" and not text[start:i].rstrip().endswith(","))):
            return i
    return len(text)


def _assignment_count(text: str, name: str) -> int:
    escaped = re.escape(name)
    pattern = re.compile(
        rf"(?<![\w$.]){escaped}\s*(?:[-+*/%&|^]|\*\*|<<|>>>?)?=(?![=>])"
        rf"|(?:\+\+|--){escaped}\b"
        rf"|(?<![\w$.]){escaped}\s*(?:\+\+|--)"
    )
    return len(pattern.findall(text))


def _function_declaration(m: re.Match) -> str:
    name = m.group(2)
    # Capitalized functions are constructors; they need `new` and `this`.
    if name[0].isupper():
        return m.group(0)
    is_async = "async " if m.group(1) else ""
    return f"const {name} = {is_async}({m.group(3)}){m.group(4) or ''} => {{"


def _index_uses(expr: str, array: str, index: str) -> tuple[str, bool]:
    """Replace ``array[index]`` with ``item``; report whether index is still used."""
    expr = re.sub(rf"(?<![\w$.]){re.escape(array)}\[\s*{re.escape(index)}\s*\]", "item", expr)
    return expr, re.search(rf"(?<![\w$.]){re.escape(index)}\b", expr) is not None


def _callback_params(index: str, uses_index: bool) -> str:
    return f"(item, {index})" if uses_index else "(item)"


def _accumulate_map(m: re.Match) -> str:
    expr, uses_index = _index_uses(m.group(5), m.group(4), m.group(3))
    return f"{m.group(1)} {m.group(2)} = {m.group(4)}.map({_callback_params(m.group(3), uses_index)} => {expr.strip()});"


def _accumulate_filter(m: re.Match) -> str:
    cond, uses_index = _index_uses(m.group(5), m.group(4), m.group(3))
    return f"{m.group(1)} {m.group(2)} = {m.group(4)}.filter({_callback_params(m.group(3), uses_index)} => {cond.strip()});"


def _index_loop(m: re.Match) -> str:
    index, array, body = m.group(1), m.group(2), m.group(3)
    if re.search(r"\b(?:break|continue|return)\b", body):
        return m.group(0)
    body, uses_index = _index_uses(body, array, index)
    return f"{array}.forEach({_callback_params(index, uses_index)} => {{{body}}});"


def _string_then_operand(m: re.Match) -> str:
    return f"`{m.group(2)}${{{m.group(3)}}}`"


def _operand_then_string(m: re.Match) -> str:
    before = m.string[: m.start()].rstrip()
    if before.endswith(("*", "/", "%", "-")):
        return m.group(0)
    return f"`${{{m.group(1)}}}{m.group(3)}`"


def _operand_then_template(m: re.Match) -> str:
    before = m.string[: m.start()].rstrip()
    if before.endswith(("*", "/", "%", "-")):
        return m.group(0)
    return f"`${{{m.group(1)}}}{m.group(2)}`"


TEMPLATE_RULES = (
    rule("merge_string_literals", rf"{PLAIN_STRING}\s*\+\s*(['\"])([^'\"\\\n`$]*)\3", r"\1\2\4\1"),
    rule("string_then_operand", rf"{PLAIN_STRING}\s*\+\s*({OPERAND})(?![\w$.(\[]|\s*[*/%])", _string_then_operand),
    rule("template_then_string", r"`([^`]*)`\s*\+\s*(['\"])([^'\"\\\n`$]*)\2", r"`\1\3`"),
    rule(
        "operand_then_string",
        rf"(?<![\w$.\]\)'\"`])({OPERAND})\s*\+\s*(['\"])([^'\"\\\n`$]*)\2",
        _operand_then_string,
    ),
    rule("string_then_template", rf"{PLAIN_STRING}\s*\+\s*`([^`]*)`", r"`\2\3`"),
    rule("template_then_template", r"`([^`]*)`\s*\+\s*`([^`]*)`", r"`\1\2`"),
    rule("operand_then_template", rf"(?<![\w$.\]\)'\"`])({OPERAND})\s*\+\s*`([^`]*)`", _operand_then_template),
)


def _template_literals(text: str) -> str:
    """String concatenation -> template literals, repeated until stable."""
    for _ in range(MAX_TEMPLATE_PASSES):
        updated = text
        for step in TEMPLATE_RULES:
            updated = step.apply(updated)
        if updated == text:
            break
        text = updated
    return text


def _console_log(m: re.Match) -> str:
    # The only statement of a brace-less if/else/loop body stays.
    before = m.string[:m.start()].rstrip()
    if CONTROL_HEADER.match(before[before.rfind("\n") + 1:]):
        return m.group(0)
    return ""


def _destructure(m: re.Match) -> str:
    keyword, first, source, first_prop, _indent, second, second_prop = m.groups()
    parts = [
        name if prop == name else f"{prop}: {name}"
        for prop, name in ((first_prop, first), (second_prop, second))
    ]
    return f"{keyword} {{ {', '.join(parts)} }} = {source};"


def _named_require(m: re.Match) -> str:
    names = [re.sub(r"\s*:\s*", " as ", n) for n in split_params(m.group(1))]
    return f'import {{ {", ".join(names)} }} from "{m.group(3)}";'


def _named_export(m: re.Match) -> str:
    if m.group(1) == m.group(2):
        return f"export {{ {m.group(1)} }};"
    return f"export const {m.group(1)} = {m.group(2)};"


def _jsdoc(m: re.Match) -> str:
    if m.string[: m.start()].rstrip().endswith("*/"):
        return m.group(0)
    indent, name, params = m.group(1), m.group(3), m.group(4)
    lines = [f"{indent}/**", f"{indent} * {humanize(name)}."]
    for param in split_params(params):
        param_name = re.split(r"[=:]", param, maxsplit=1)[0].strip().lstrip(".")
        if param_name.startswith(("{", "[")):
            param_name = "options"
        lines.append(f"{indent} * @param {{*}} {param_name}")
    lines.append(f"{indent} */")
    return "\n".join(lines) + "\n" + m.group(0)


INDEX_LOOP_HEAD = (
    rf"for\s*\(\s*(?:let|const|var)\s+({IDENT})\s*=\s*0\s*;\s*\{{idx}}\s*<\s*({IDENT}(?:\.{IDENT})*)\.length\s*;"
    rf"\s*(?:\{{idx}}\+\+|\+\+\{{idx}})\s*\)\s*\{{"
)

JAVASCRIPT_RULES: tuple[Rule | TextRule, ...] = (
    TextRule("var_to_const_let", _var_declarations),
    rule(
        "function_to_arrow",
        rf"(?<!default )(?<![\w$.])(async\s+)?function\s+({IDENT})\s*\(([^()]*)\)(\s*:\s*[^{{}};=()]+?)?\s*\{{",
        _function_declaration,
    ),
    rule("anonymous_function_to_arrow", r"(?<![\w$.])function\s*\(([^()]*)\)\s*\{", r"(\1) => {"),
    rule(
        "accumulate_loop_to_map",
        rf"\b(const|let)\s+({IDENT})\s*=\s*\[\];?\s*"
        + INDEX_LOOP_HEAD.replace("{idx}", "3")
        + r"\s*\2\.push\(([^;{}]+)\);?\s*\}",
        _accumulate_map,
    ),
    rule(
        "accumulate_loop_to_filter",
        rf"\b(const|let)\s+({IDENT})\s*=\s*\[\];?\s*"
        + INDEX_LOOP_HEAD.replace("{idx}", "3")
        + r"\s*if\s*\(([^{}]+)\)\s*\{\s*\2\.push\(\s*\4\[\s*\3\s*\]\s*\);?\s*\}\s*\}",
        _accumulate_filter,
    ),
    rule("index_loop_to_foreach", INDEX_LOOP_HEAD.replace("{idx}", "1") + r"([^{}]*)\}", _index_loop),
    TextRule("concatenation_to_template", _template_literals),
    rule(
        "remove_console_log",
        r"^[ \t]*console\.log\((?![^\n]*(?:error|warn|important))[^\n]*\);?[ \t]*(?:\n|$)",
        _console_log,
        re.M | re.I,
    ),
    rule(
        "if_else_return_to_ternary",
        r"if\s*\(([^(){}\n]*(?:\([^()\n]*\)[^(){}\n]*)*)\)\s*\{\s*return\s+([^;{}\n]+);\s*\}"
        r"\s*else\s*\{\s*return\s+([^;{}\n]+);\s*\}",
        r"return \1 ? \2 : \3;",
    ),
    rule(
        "property_reads_to_destructuring",
        rf"\b(const|let)\s+({IDENT})\s*=\s*({IDENT})\.({IDENT});[ \t]*\n([ \t]*)\1\s+({IDENT})\s*=\s*\3\.({IDENT});",
        _destructure,
    ),
    rule("object_shorthand", rf"(?<=[{{,])(\s*)({IDENT})\s*:\s*\2(?=\s*[,}}])", r"\1\2"),
    rule(
        "require_to_import",
        rf"\b(?:const|let|var)\s+({IDENT})\s*=\s*require\((['\"])([^'\"]+)\2\);?",
        r'import \1 from "\3";',
    ),
    rule(
        "named_require_to_import",
        r"\b(?:const|let|var)\s*\{([^{}]+)\}\s*=\s*require\((['\"])([^'\"]+)\2\);?",
        _named_require,
    ),
    rule("bare_require_to_import", r"^([ \t]*)require\((['\"])([^'\"]+)\2\);?", r'\1import "\3";', re.M),
    rule("module_exports_to_export", rf"\bmodule\.exports\s*=\s*({IDENT});?", r"export default \1;"),
    rule("exports_to_named_export", rf"(?<![\w$.])exports\.({IDENT})\s*=\s*({IDENT});?", _named_export),
    rule(
        "concat_to_spread",
        rf"\b(const|let)\s+({IDENT})\s*=\s*({IDENT})\.concat\(({IDENT})\);",
        r"\1 \2 = [...\3, ...\4];",
    ),
    rule("optional_chaining", rf"(?<![\w$.?])({IDENT})\s*&&\s*\1\.({IDENT})", r"\1?.\2"),
    rule(
        "nested_optional_chaining",
        rf"(?<![\w$.?])({IDENT})\?\.({IDENT})\s*&&\s*\1\.\2\.({IDENT})",
        r"\1?.\2?.\3",
    ),
    rule(
        "jsdoc_header",
        rf"^([ \t]*)((?:export\s+)?const\s+({IDENT})\s*=\s*(?:async\s+)?\(([^()]*)\)(?:\s*:\s*[^=;{{}}()]+?)?\s*=>)",
        _jsdoc,
        re.M,
    ),
)


def import_block_end(lines: list[str]) -> int:
    """Index just past the leading imports, requires and directives."""
    position, i = 0, 0
    while i < len(lines):
        line = lines[i]
        if IMPORT_STATEMENT.match(line):
            if line.lstrip().startswith("import"):
                while i + 1 < len(lines) and not IMPORT_COMPLETE.search(lines[i]):
                    i += 1
            position = i + 1
        elif line.strip() and not line.lstrip().startswith("//"):
            break
        i += 1
    return position


def refactor_javascript(text: str, options: RefactorOptions | None = None) -> str:
    return apply_rules(text, JAVASCRIPT_RULES)
