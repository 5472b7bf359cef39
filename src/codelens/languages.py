"""Source units and language resolution.

Maps file extensions to language ids, and folds language ids and their
aliases onto the rule family that refactors them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

DEFAULT_LANGUAGE = "plaintext"


class RuleFamily(str, Enum):
    """Rule table a language is refactored with."""

    JAVASCRIPT = "javascript"
    PYTHON = "python"
    CPP = "cpp"
    JAVA = "java"
    SQL = "sql"
    GENERIC = "generic"


# Extension -> language id
EXT_LANG = {
    ".py": "python", ".pyw": "python", ".ipynb": "python",
    ".js": "javascript", ".jsx": "javascript", ".mjs": "javascript", ".cjs": "javascript",
    ".ts": "typescript", ".tsx": "typescript",
    ".java": "java",
    ".c": "c", ".h": "c",
    ".cpp": "cpp", ".cc": "cpp", ".cxx": "cpp", ".hpp": "cpp", ".hh": "cpp", ".hxx": "cpp",
    ".cs": "csharp",
    ".go": "go",
    ".rb": "ruby",
    ".rs": "rust",
    ".php": "php",
    ".sh": "shell", ".bash": "shell", ".zsh": "shell",
    ".sql": "sql",
    ".html": "html", ".htm": "html",
    ".css": "css", ".scss": "css",
    ".json": "json",
    ".md": "markdown", ".markdown": "markdown",
    ".xml": "xml",
    ".yaml": "yaml", ".yml": "yaml",
}

# Language id or alias -> rule family. Anything missing is GENERIC.
FAMILY_ALIASES = {
    "js": RuleFamily.JAVASCRIPT, "jsx": RuleFamily.JAVASCRIPT,
    "ts": RuleFamily.JAVASCRIPT, "tsx": RuleFamily.JAVASCRIPT,
    "mjs": RuleFamily.JAVASCRIPT, "cjs": RuleFamily.JAVASCRIPT,
    "javascript": RuleFamily.JAVASCRIPT, "typescript": RuleFamily.JAVASCRIPT,
    "py": RuleFamily.PYTHON, "python": RuleFamily.PYTHON,
    "ipynb": RuleFamily.PYTHON, "jupyter": RuleFamily.PYTHON,
    "c": RuleFamily.CPP, "h": RuleFamily.CPP, "cpp": RuleFamily.CPP,
    "cc": RuleFamily.CPP, "cxx": RuleFamily.CPP, "hpp": RuleFamily.CPP,
    "c++": RuleFamily.CPP,
    "java": RuleFamily.JAVA,
    "sql": RuleFamily.SQL, "mysql": RuleFamily.SQL, "postgresql": RuleFamily.SQL,
    "postgres": RuleFamily.SQL, "sqlite": RuleFamily.SQL,
}


@dataclass(frozen=True)
class SourceUnit:
    """A piece of source text and the language it is written in."""

    text: str
    language_id: str = DEFAULT_LANGUAGE

    @property
    def family(self) -> RuleFamily:
        return family_for(self.language_id)

    def to_dict(self) -> dict:
        return {"language_id": self.language_id, "length": len(self.text or "")}


def normalize_language(language_id: str | None) -> str:
    """Lower-case a language id and drop a leading dot (".py" -> "py")."""
    if not isinstance(language_id, str):
        return ""
    return language_id.strip().lower().lstrip(".")


def family_for(language_id: str | None) -> RuleFamily:
    """Resolve a language id or alias to its rule family."""
    return FAMILY_ALIASES.get(normalize_language(language_id), RuleFamily.GENERIC)


def language_for_filename(filename: str | Path) -> str:
    """Infer a language id from a file name's extension."""
    suffix = Path(str(filename)).suffix.lower()
    return EXT_LANG.get(suffix, DEFAULT_LANGUAGE)


def load_source(path: str | Path, language: str | None = None) -> SourceUnit:
    """Read a file into a SourceUnit, inferring the language unless given."""
    path = Path(path)
    text = path.read_text(errors="replace")
    return SourceUnit(text=text, language_id=language or language_for_filename(path.name))
