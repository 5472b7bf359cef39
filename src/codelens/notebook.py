"""Jupyter notebook helpers shared by metrics and the notebook rule table."""

from __future__ import annotations

import json
from typing import Any


def looks_like_notebook(text: str) -> bool:
    """Cheap pre-check before attempting a JSON parse."""
    stripped = text.lstrip()
    return stripped.startswith("{") and '"cells"' in text


def parse_notebook(text: str) -> dict[str, Any] | None:
    """Parse notebook JSON.

    Returns None when the text is not JSON, has no ``cells`` list, or has
    no code cell.
    """
    if not isinstance(text, str) or not looks_like_notebook(text):
        return None
    try:
        data = json.loads(text)
    except ValueError:
        return None
    if not isinstance(data, dict) or not isinstance(data.get("cells"), list):
        return None
    if not any(is_code_cell(cell) for cell in data["cells"]):
        return None
    return data


def is_code_cell(cell: Any) -> bool:
    return isinstance(cell, dict) and cell.get("cell_type") == "code"


def is_markdown_cell(cell: Any) -> bool:
    return isinstance(cell, dict) and cell.get("cell_type") == "markdown"


def cell_source(cell: dict[str, Any]) -> str:
    source = cell.get("source", "")
    if isinstance(source, list):
        return "".join(str(part) for part in source)
    return str(source)


def source_lines(text: str) -> list[str]:
    """Split text into the list-of-lines form notebooks store."""
    return text.splitlines(keepends=True)


def new_cell(cell_type: str, text: str) -> dict[str, Any]:
    cell: dict[str, Any] = {
        "cell_type": cell_type,
        "metadata": {},
        "source": source_lines(text),
    }
    if cell_type == "code":
        cell["execution_count"] = None
        cell["outputs"] = []
    return cell


def code_cell_sources(notebook: dict[str, Any]) -> list[str]:
    return [cell_source(c) for c in notebook.get("cells", []) if is_code_cell(c)]


def notebook_code(text: str) -> str | None:
    """Joined code-cell source of a notebook, or None for non-notebooks."""
    notebook = parse_notebook(text)
    if notebook is None:
        return None
    return "\n\n".join(code_cell_sources(notebook))


def dump_notebook(notebook: dict[str, Any]) -> str:
    return json.dumps(notebook, indent=1, ensure_ascii=False) + "\n"
