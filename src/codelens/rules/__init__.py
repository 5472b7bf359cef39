"""Per-language rule tables."""

from .cpp import CPP_RULES, refactor_cpp
from .generic import GENERIC_RULES, refactor_generic
from .java import JAVA_RULES, refactor_java
from .javascript import JAVASCRIPT_RULES, refactor_javascript
from .notebook import refactor_notebook
from .python import CELL_RULES, PYTHON_RULES, refactor_python
from .sql import refactor_sql

__all__ = [
    "CELL_RULES",
    "CPP_RULES",
    "GENERIC_RULES",
    "JAVA_RULES",
    "JAVASCRIPT_RULES",
    "PYTHON_RULES",
    "refactor_cpp",
    "refactor_generic",
    "refactor_java",
    "refactor_javascript",
    "refactor_notebook",
    "refactor_python",
    "refactor_sql",
]
