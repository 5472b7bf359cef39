"""codelens - heuristic code quality analyzer and rule-based refactorer."""

__version__ = "0.3.0"
