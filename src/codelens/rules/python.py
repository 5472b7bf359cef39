"""Python rule table.

Flat source gets the full table. Jupyter notebooks are detected by content
and handed to :mod:`codelens.rules.notebook`, which applies ``CELL_RULES``
to each code cell.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from ..notebook import looks_like_notebook
from .base import Rule, TextRule, apply_rules, humanize, indent_of, rule, split_params

if TYPE_CHECKING:
    from ..engine import RefactorOptions

TARGET = r"\w+(?:\s*,\s*\w+)*"
DEF_LINE = re.compile(
    r"^(?P<indent>[ \t]*)(?:async\s+)?def\s+(?P<name>\w+)\s*"
    r"\((?P<params>[^()]*(?:\([^()]*\)[^()]*)*)\)"
    r"(?P<ret>\s*->\s*[^:]+)?\s*:\s*(?:#.*)?$"
)
CLASS_LINE = re.compile(r"^(?P<indent>[ \t]*)class\s+(?P<name>\w+)\s*(?:\([^()]*\))?\s*:\s*(?:#.*)?$")
MUTABLE_PARAM = re.compile(
    r"^(?P<name>\w+)\s*(?::\s*(?P<ann>[^=]+?))?\s*=\s*(?P<value>\[\]|\{\}|list\(\)|dict\(\)|set\(\))$"
)
DOCSTRING_START = re.compile(r"""^[ \t]*[rRuU]?(\"\"\"|''')""")
PERCENT_SPEC = re.compile(r"%[sdr]")
IMPORT_LINE = re.compile(r"^(?:import\s+\w|from\s+\S+\s+import\s)")
TYPING_IMPORT = re.compile(r"^from\s+typing\s+import\s+([^()\n]+)$", re.M)


def _percent_format(m: re.Match) -> str:
    quote, body, args = m.group(1), m.group(2), m.group(3)
    if "{" in body or "}" in body or re.search(r"%(?![sdr%])", body):
        return m.group(0)
    values = split_params(args[1:-1]) if args.startswith("(") else [args]
    if len(values) != len(PERCENT_SPEC.findall(body)) or any(quote in v for v in values):
        return m.group(0)
    remaining = iter(values)

    def fill(spec: re.Match) -> str:
        value = next(remaining)
        return f"{{{value}!r}}" if spec.group(0) == "%r" else f"{{{value}}}"

    return f"f{quote}{PERCENT_SPEC.sub(fill, body).replace('%%', '%')}{quote}"


def _format_call(m: re.Match) -> str:
    quote, body = m.group(1), m.group(2)
    if "{{" in body or "}}" in body:
        return m.group(0)
    positional, keywords = [], {}
    for arg in split_params(m.group(3)):
        if quote in arg or "\\" in arg or arg.startswith("*"):
            return m.group(0)
        key, sep, value = arg.partition("=")
        if sep and re.fullmatch(r"\w+", key.strip()) and not value.startswith("="):
            keywords[key.strip()] = value.strip()
        else:
            positional.append(arg)
    state = {"next": 0, "ok": True}

    def fill(field: re.Match) -> str:
        name, colon, spec = field.group(1).partition(":")
        name, conversion, flag = name.partition("!")
        if name == "":
            index = state["next"]
            state["next"] += 1
            value = positional[index] if index < len(positional) else None
        elif name.isdigit():
            value = positional[int(name)] if int(name) < len(positional) else None
        else:
            value = keywords.get(name)
        if value is None:
            state["ok"] = False
            return field.group(0)
        return "{" + value + (conversion + flag) + (colon + spec) + "}"

    converted = re.sub(r"\{([^{}]*)\}", fill, body)
    if not state["ok"]:
        return m.group(0)
    return f"f{quote}{converted}{quote}"


def _range_len_loop(m: re.Match) -> str:
    indent, index, sequence, body = m.group(1), m.group(2), m.group(3), m.group(4)
    element = rf"(?<![\w.]){re.escape(sequence)}\[\s*{re.escape(index)}\s*\]"
    if re.search(element + r"\s*(?:[-+*/%&|^]|//|\*\*)?=(?!=)", body):
        return m.group(0)
    item = _singular(sequence.split(".")[-1])
    if re.search(rf"\b{item}\b", body):
        item = "item"
        if re.search(r"\bitem\b", body):
            return m.group(0)
    body = re.sub(element, item, body)
    if re.search(rf"\b{re.escape(index)}\b", body):
        return f"{indent}for {index}, {item} in enumerate({sequence}):\n{body}"
    return f"{indent}for {item} in {sequence}:\n{body}"


def _singular(name: str) -> str:
    if name.endswith("ies") and len(name) > 3:
        return name[:-3] + "y"
    if name.endswith("s") and not name.endswith("ss") and len(name) > 1:
        return name[:-1]
    return "item"


def _open_to_with(m: re.Match) -> str:
    indent, handle, args, body, end = m.groups()
    lines = [line if not line.strip() else "    " + line for line in body.split("\n")]
    inner = "\n".join(lines).rstrip("\n") or f"{indent}    pass"
    return f"{indent}with open({args}) as {handle}:\n{inner}{end}"


def _mutable_defaults(text: str) -> str:
    """Replace mutable default arguments with ``None`` and a guard."""
    lines = text.split("\n")
    out: list[str] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        i += 1
        m = DEF_LINE.match(line)
        if not m:
            out.append(line)
            continue
        params, guards = [], []
        for param in split_params(m.group("params")):
            d = MUTABLE_PARAM.match(param)
            if d is None:
                params.append(param)
                continue
            ann = d.group("ann")
            params.append(f"{d.group('name')}: Optional[{ann}] = None" if ann else f"{d.group('name')}=None")
            guards.append((d.group("name"), d.group("value")))
        if not guards:
            out.append(line)
            continue
        out.append(line[: m.start("params")] + ", ".join(params) + line[m.end("params"):])

        body_indent = _body_indent(lines, i, m.group("indent"))
        docstring_end = _docstring_end(lines, i)
        out.extend(lines[i:docstring_end])
        i = docstring_end
        for name, value in guards:
            out.append(f"{body_indent}if {name} is None:")
            out.append(f"{body_indent}    {name} = {value}")
    return "\n".join(out)


def _body_indent(lines: list[str], start: int, header_indent: str) -> str:
    for line in lines[start:]:
        if line.strip():
            indent = indent_of(line)
            if len(indent) > len(header_indent):
                return indent
            break
    return header_indent + "    "


def _docstring_end(lines: list[str], start: int) -> int:
    """Index just past a docstring beginning at ``lines[start]``, or ``start``."""
    if start >= len(lines):
        return start
    m = DOCSTRING_START.match(lines[start])
    if m is None:
        return start
    quote = m.group(1)
    rest = lines[start][m.end():]
    if quote in rest:
        return start + 1
    for j in range(start + 1, len(lines)):
        if quote in lines[j]:
            return j + 1
    return start


def _infer_hint(default: str) -> str:
    if re.fullmatch(r"-?\d+", default):
        return "int"
    if re.fullmatch(r"-?\d*\.\d+(?:e-?\d+)?", default):
        return "float"
    if default in ("True", "False"):
        return "bool"
    if re.fullmatch(r"""[rbfu]?(['"]).*\1""", default):
        return "str"
    if default == "None":
        return "Optional[Any]"
    return "Any"


def _type_hints(text: str) -> str:
    """Annotate functions that carry no annotations at all."""
    lines = text.split("\n")
    for i, line in enumerate(lines):
        m = DEF_LINE.match(line)
        if not m or m.group("ret") or ":" in m.group("params"):
            continue
        params = []
        for param in split_params(m.group("params")):
            name, sep, default = param.partition("=")
            name = name.strip()
            if name in ("self", "cls", "/") or name.startswith("*"):
                params.append(param)
            elif sep:
                params.append(f"{name}: {_infer_hint(default.strip())} = {default.strip()}")
            else:
                params.append(f"{name}: Any")
        returns = "None" if m.group("name") == "__init__" else "Any"
        lines[i] = f"{line[: m.start('params')]}{', '.join(params)}) -> {returns}{line[m.end('params') + 1:]}"
        lines[i] = re.sub(r"\)\s*-> (\w+)\s*:", r") -> \1:", lines[i], count=1)
    return "\n".join(lines)


def _docstrings(text: str) -> str:
    """Insert a short docstring under undocumented functions and classes."""
    lines = text.split("\n")
    out: list[str] = []
    for i, line in enumerate(lines):
        out.append(line)
        m = DEF_LINE.match(line) or CLASS_LINE.match(line)
        if m is None or m.group("name").startswith("__"):
            continue
        following = next((j for j in range(i + 1, len(lines)) if lines[j].strip()), None)
        if following is None or len(indent_of(lines[following])) <= len(m.group("indent")):
            continue
        if DOCSTRING_START.match(lines[following]):
            continue
        indent = indent_of(lines[following])
        out.extend(_docstring_lines(m, indent))
    return "\n".join(out)


def _docstring_lines(m: re.Match, indent: str) -> list[str]:
    summary = f"{humanize(m.group('name').strip('_'))}."
    params = m.groupdict().get("params")
    names = []
    for param in split_params(params or ""):
        name = re.split(r"[:=]", param, maxsplit=1)[0].strip().lstrip("*")
        if name and name not in ("self", "cls", "/"):
            names.append(name)
    if not names:
        return [f'{indent}"""{summary}"""']
    lines = [f'{indent}"""{summary}', "", f"{indent}Args:"]
    lines.extend(f"{indent}    {name}: {humanize(name)}." for name in names)
    lines.append(f'{indent}"""')
    return lines


def _imports(text: str) -> str:
    """Add the ``typing`` names and ``ast`` module the table introduced."""
    needed = [
        name for name in ("Any", "Optional")
        if re.search(rf"(?:[:>\[]\s*){name}\b", text)
    ]
    existing = TYPING_IMPORT.search(text)
    if existing:
        have = {n.strip() for n in existing.group(1).split(",")}
        missing = [n for n in needed if n not in have]
        if missing:
            names = ", ".join(sorted(have | set(missing)))
            text = text[: existing.start()] + f"from typing import {names}" + text[existing.end():]
    elif needed:
        text = _insert_import(text, f"from typing import {', '.join(needed)}")

    if "ast.literal_eval(" in text and not re.search(r"^import ast\b", text, re.M):
        text = _insert_import(text, "import ast")
    return text


def _insert_import(text: str, statement: str) -> str:
    lines = text.split("\n")
    lines.insert(import_block_end(lines), statement)
    return "\n".join(lines)


def import_block_end(lines: list[str]) -> int:
    """Index just past the module docstring and the leading import block."""
    position = _docstring_end(lines, 0)
    i = position
    while i < len(lines):
        line = lines[i]
        if IMPORT_LINE.match(line):
            if "(" in line and ")" not in line:
                while i < len(lines) and ")" not in lines[i]:
                    i += 1
            position = i + 1
        elif line.strip() and not line.startswith("#"):
            break
        i += 1
    return position


PERCENT_RULE = rule(
    "percent_format_to_fstring",
    r"""(?<![\w])(['"])([^'"\n\\]*%[sdr][^'"\n\\]*)\1\s*%\s*(\([^()\n]*\)|[A-Za-z_][\w.]*(?:\[[^\]\n]*\])?)""",
    _percent_format,
)
FORMAT_RULE = rule(
    "format_call_to_fstring",
    r"""(?<![\w])(['"])([^'"\n\\]*\{[^'"\n\\]*)\1\.format\(([^()\n]*(?:\([^()\n]*\)[^()\n]*)*)\)""",
    _format_call,
)
STR_CONCAT_RULE = rule(
    "str_concatenation_to_fstring",
    r"""(?<![\w])(['"])([^'"\n\\{}]*)\1\s*\+\s*str\(([^()\n]+)\)""",
    r"f\1\2{\3}\1",
)
FILTERED_COMPREHENSION_RULE = rule(
    "filtered_loop_to_comprehension",
    rf"^([ \t]*)(\w+)\s*=\s*\[\][ \t]*\n\1for\s+({TARGET})\s+in\s+([^\n:]+):[ \t]*\n"
    r"\1([ \t]+)if\s+([^\n]+):[ \t]*\n\1\5[ \t]+\2\.append\((.+)\)[ \t]*(?=\n|\Z)(?!\n\1[ \t]+\S)",
    r"\1\2 = [\7 for \3 in \4 if \6]",
    re.M,
)
COMPREHENSION_RULE = rule(
    "loop_to_comprehension",
    rf"^([ \t]*)(\w+)\s*=\s*\[\][ \t]*\n\1for\s+({TARGET})\s+in\s+([^\n:]+):[ \t]*\n"
    r"\1[ \t]+\2\.append\((.+)\)[ \t]*(?=\n|\Z)(?!\n\1[ \t]+\S)",
    r"\1\2 = [\5 for \3 in \4]",
    re.M,
)
DICT_COMPREHENSION_RULE = rule(
    "loop_to_dict_comprehension",
    rf"^([ \t]*)(\w+)\s*=\s*\{{\}}[ \t]*\n\1for\s+({TARGET})\s+in\s+([^\n:]+):[ \t]*\n"
    r"\1[ \t]+\2\[([^\]\n]+)\]\s*=\s*([^\n]+?)[ \t]*(?=\n|\Z)(?!\n\1[ \t]+\S)",
    r"\1\2 = {\5: \6 for \3 in \4}",
    re.M,
)
RANGE_LEN_RULE = rule(
    "range_len_to_iteration",
    r"^([ \t]*)for\s+(\w+)\s+in\s+range\(\s*len\(\s*([\w.]+)\s*\)\s*\):[ \t]*\n((?:\1[ \t]+[^\n]*(?:\n|$)|[ \t]*\n)+)",
    _range_len_loop,
    re.M,
)
COMPARISON_RULES = (
    rule("true_comparison", r"^([ \t]*(?:if|elif|while)\b[^\n]*?)\s*==\s*True\b", r"\1", re.M),
    rule(
        "false_comparison",
        r"^([ \t]*(?:if|elif|while)\s+(?:not\s+)?)([\w.]+(?:\([^()\n]*\))?)\s*==\s*False\b",
        r"\1not \2",
        re.M,
    ),
    rule("none_comparison", r"\s*==\s*None\b", " is None"),
    rule("not_none_comparison", r"\s*!=\s*None\b", " is not None"),
)
OPEN_RULE = rule(
    "open_close_to_with",
    r"^([ \t]*)(\w+)\s*=\s*open\(([^\n]*)\)[ \t]*\n((?:\1[^\n]*\n|[ \t]*\n)*?)\1\2\.close\(\)[ \t]*(\n|$)",
    _open_to_with,
    re.M,
)
SHELL_RULE = rule("shell_true_to_false", r"\bshell\s*=\s*True\b", "shell=False")
EVAL_RULE = rule("eval_to_literal_eval", r"(?<![\w.])eval\(", "ast.literal_eval(")

CELL_RULES: tuple[Rule | TextRule, ...] = (
    PERCENT_RULE,
    FORMAT_RULE,
    STR_CONCAT_RULE,
    FILTERED_COMPREHENSION_RULE,
    COMPREHENSION_RULE,
    DICT_COMPREHENSION_RULE,
    RANGE_LEN_RULE,
    *COMPARISON_RULES,
    OPEN_RULE,
    SHELL_RULE,
)

PYTHON_RULES: tuple[Rule | TextRule, ...] = (
    *CELL_RULES,
    EVAL_RULE,
    TextRule("mutable_default_arguments", _mutable_defaults),
    TextRule("type_hints", _type_hints),
    TextRule("docstrings", _docstrings),
    TextRule("imports", _imports),
)


def refactor_python(text: str, options: RefactorOptions | None = None) -> str:
    if looks_like_notebook(text):
        from .notebook import refactor_notebook

        return refactor_notebook(text, options)
    return apply_rules(text, PYTHON_RULES)
