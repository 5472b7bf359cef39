"""Tests for notebook helpers and notebook restructuring."""

import json

import pytest

from codelens.engine import RefactorOptions, count_improvements, refactor
from codelens.languages import RuleFamily
from codelens.notebook import cell_source, looks_like_notebook, notebook_code, parse_notebook
from codelens.rules.notebook import (
    CONSTANTS_HEADER,
    HELPERS_HEADER,
    break_points,
    constant_name,
    find_duplicates,
    refactor_notebook,
)

LOAD_BLOCK = 'df = load_data("sales.csv")\ndf = df.dropna()\nsummary = df.describe()'


def _notebook(*sources, markdown=None):
    cells = []
    if markdown:
        cells.append({"cell_type": "markdown", "metadata": {}, "source": [markdown]})
    for source in sources:
        cells.append({
            "cell_type": "code",
            "execution_count": None,
            "metadata": {},
            "outputs": [],
            "source": source.splitlines(keepends=True),
        })
    return json.dumps({"cells": cells, "metadata": {}, "nbformat": 4, "nbformat_minor": 5})


def _code_cells(text):
    return [cell_source(c) for c in json.loads(text)["cells"] if c["cell_type"] == "code"]


class TestNotebookDetection:
    """Test notebook detection and parsing."""

    def test_detects_notebook(self):
        assert parse_notebook(_notebook("x = 1")) is not None

    def test_plain_python_is_not_notebook(self):
        assert parse_notebook("import json\ncells = []\n") is None

    def test_malformed_json(self):
        text = '{"cells": [ {"cell_type": "code"'
        assert looks_like_notebook(text)
        assert parse_notebook(text) is None

    def test_no_code_cells(self):
        text = json.dumps({"cells": [{"cell_type": "markdown", "source": ["# Notes"]}]})
        assert parse_notebook(text) is None

    def test_string_source(self):
        text = json.dumps({"cells": [{"cell_type": "code", "source": "x = 1\ny = 2"}]})
        assert notebook_code(text) == "x = 1\ny = 2"


class TestRefactorNotebook:
    """Test notebook restructuring through the Python family."""

    def test_malformed_notebook_unchanged(self):
        text = '{"cells": [ {"cell_type": "code"'
        assert refactor(text, "python") == text

    def test_cell_rules_applied(self):
        result = refactor(_notebook("if x == None:\n    x = 0"), "python")
        assert _code_cells(result) == ["if x is None:\n    x = 0"]

    def test_output_is_valid_json(self):
        result = refactor(_notebook("x = 1", markdown="# Title\n"), "python")
        data = json.loads(result)
        assert data["nbformat"] == 4
        assert data["cells"][0]["cell_type"] == "markdown"

    def test_constants_hoisted(self):
        result = refactor(_notebook("timeout = 86400", "cache_ttl = 2 * 86400"), "python")
        cells = _code_cells(result)
        assert cells[0] == f"{CONSTANTS_HEADER}\nSECONDS_PER_DAY = 86400"
        assert cells[1] == "timeout = SECONDS_PER_DAY"
        assert cells[2] == "cache_ttl = 2 * SECONDS_PER_DAY"

    def test_single_literal_not_hoisted(self):
        result = refactor(_notebook("timeout = 86400", "retries = 3"), "python")
        assert _code_cells(result) == ["timeout = 86400", "retries = 3"]

    def test_numbers_in_strings_untouched(self):
        text = _notebook('print("Error 404: not found")\ncode = 404', 'msg = "status 404"\nretry(404)')
        cells = _code_cells(refactor(text, "python"))
        assert cells[0] == f"{CONSTANTS_HEADER}\nCONSTANT_404 = 404"
        assert cells[1] == 'print("Error 404: not found")\ncode = CONSTANT_404'
        assert cells[2] == 'msg = "status 404"\nretry(CONSTANT_404)'

    def test_numbers_only_in_strings_not_hoisted(self):
        text = _notebook('print("Error 404: not found")  # 404 page', 'msg = "status 404"')
        assert _code_cells(refactor(text, "python")) == ['print("Error 404: not found")  # 404 page', 'msg = "status 404"']

    def test_no_restructure_keeps_cells(self):
        text = _notebook("timeout = 86400", "cache_ttl = 2 * 86400")
        result = refactor(text, "python", RefactorOptions(restructure_notebooks=False))
        assert len(json.loads(result)["cells"]) == 2

    def test_duplicates_extracted(self):
        text = _notebook(LOAD_BLOCK + "\nprint(summary)", LOAD_BLOCK + "\nplot(summary)")
        cells = _code_cells(refactor(text, "python"))
        helpers = next(c for c in cells if c.startswith(HELPERS_HEADER))
        assert "def helper_function_1():" in helpers
        assert "    global df, summary" in helpers
        assert "helper_function_1()\nprint(summary)" in cells
        assert "helper_function_1()\nplot(summary)" in cells

    def test_long_cell_split(self):
        sections = []
        for n in range(3):
            body = "\n".join(f"    total += {n} * {i}" for i in range(12))
            sections.append(f"def step_{n}():\n    total = 0\n{body}\n    return total\n")
        text = _notebook("\n".join(sections))
        result = refactor_notebook(text)
        cells = _code_cells(result)
        assert len(cells) == 3
        assert all(c.startswith("def step_") for c in cells)

    def test_added_cells_counted(self):
        original = _notebook("timeout = 86400", "cache_ttl = 2 * 86400")
        refactored = refactor(original, "python")
        count, improvements = count_improvements(original, refactored, RuleFamily.PYTHON)
        assert count >= 2
        assert any("notebook cell" in item for item in improvements)


class TestHelpers:
    """Test notebook rule helpers."""

    @pytest.mark.parametrize("number, name", [
        ("86400", "SECONDS_PER_DAY"),
        ("1024", "BYTES_PER_KB"),
        ("4242", "CONSTANT_4242"),
    ])
    def test_constant_name(self, number, name):
        assert constant_name(number) == name

    def test_break_points_short_cell(self):
        assert break_points(["x = 1", "y = 2"]) == [0, 2]

    def test_find_duplicates_ignores_short_blocks(self):
        assert find_duplicates(["a = 1\nb = 2\nc = 3", "a = 1\nb = 2\nc = 3"]) == []

    def test_find_duplicates_ignores_indented_blocks(self):
        block = "    df = load()\n    df = df.dropna()\n    summary = df.describe()"
        assert find_duplicates([f"def a():\n{block}", f"def b():\n{block}"]) == []
