"""Prompt templates for model-backed analysis and refactoring.

Each template embeds the source and the response shape the assistant
parses. Source is truncated so prompts stay within a local model's context.
"""

from __future__ import annotations

MAX_SOURCE_CHARS = 12000

SYSTEM_PROMPT = """You are a senior software engineer reviewing code quality.
Judge readability, maintainability, performance, security and code smells.
Be specific: cite lines and constructs from the provided code.
Never invent code that is not in the input."""


def _source_block(language: str, code: str) -> str:
    if len(code) > MAX_SOURCE_CHARS:
        code = code[:MAX_SOURCE_CHARS] + "\n... (truncated)"
    return f"LANGUAGE: {language}\n\nCODE:\n```{language}\n{code}\n```"


def analysis_prompt(language: str, code: str) -> str:
    """Prompt asking for a JSON quality report."""
    return f"""Review the following code and rate its quality.

{_source_block(language, code)}

Respond with a single JSON object with EXACTLY these keys:

{{
  "readability_score": <integer 0-100>,
  "maintainability_score": <integer 0-100>,
  "performance_score": <integer 0-100>,
  "security_score": <integer 0-100>,
  "code_smell_score": <integer 0-100>,
  "issues": [<short strings, "Line N: problem" where a line is known>],
  "recommendations": [<up to 3 short, actionable strings>],
  "summary": "<one sentence>"
}}

Higher scores are better. Do not include any text outside the JSON."""


def refactor_prompt(language: str, code: str, instructions: str = "") -> str:
    """Prompt asking for the complete refactored source."""
    extra = f"\nADDITIONAL INSTRUCTIONS:\n{instructions.strip()}\n" if instructions.strip() else ""
    return f"""Refactor the following code to modern, idiomatic {language}.

{_source_block(language, code)}
{extra}
Rules:
- Preserve behavior exactly; do not add features.
- Keep public names and signatures unchanged.
- Prefer clear names, small functions and the language's standard idioms.

Return ONLY the complete refactored code in a single fenced code block."""
