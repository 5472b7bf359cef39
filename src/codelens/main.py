"""codelens CLI - code quality analysis and rule-based refactoring.

Usage:
    codelens analyze <file> [options]
    codelens refactor <file> [options]
    codelens analyze - -l python < script.py
"""

from __future__ import annotations

import dataclasses
import difflib
import json
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from . import __version__
from .assistant import CodeAssistant
from .engine import REGISTRY, RefactorOptions
from .languages import DEFAULT_LANGUAGE, EXT_LANG, FAMILY_ALIASES, RuleFamily, SourceUnit, family_for, language_for_filename
from .logging_config import setup_logging
from .model import OllamaClient, ProviderConfig

console = Console()

STDIN = "-"


def _read_unit(target: str, language: str | None) -> SourceUnit:
    """Read FILE (or stdin for "-") into a SourceUnit."""
    if target == STDIN:
        text = click.get_text_stream("stdin").read()
        return SourceUnit(text=text, language_id=language or DEFAULT_LANGUAGE)

    path = Path(target)
    if not path.is_file():
        raise click.ClickException(f"Not a file: {target}")
    try:
        text = path.read_text(errors="replace")
    except OSError as e:
        raise click.ClickException(f"Cannot read {target}: {e.strerror or e}")
    return SourceUnit(text=text, language_id=language or language_for_filename(path.name))


def _assistant(use_model: bool, model: str | None, host: str | None) -> CodeAssistant:
    if not use_model:
        return CodeAssistant()
    return CodeAssistant(OllamaClient(_provider_config(model, host)))


def _provider_config(model: str | None, host: str | None) -> ProviderConfig:
    """Environment defaults, overridden by command-line options."""
    config = ProviderConfig.from_env()
    return dataclasses.replace(
        config,
        model=model or config.model,
        base_url=host or config.base_url,
    )


def _lexer(language_id: str) -> str:
    return "text" if language_id == DEFAULT_LANGUAGE else language_id


def model_options(func):
    """Options shared by commands that can call a local model."""
    func = click.option("--host", default=None, help="Ollama base URL (default: $OLLAMA_HOST or localhost)")(func)
    func = click.option("--model", "-m", default=None, help="Ollama model name (default: $CODELENS_MODEL)")(func)
    func = click.option("--use-model", is_flag=True, help="Ask a local Ollama model, falling back to heuristics")(func)
    return func


@click.group()
@click.version_option(version=__version__)
def cli():
    """codelens - deterministic code quality analysis and refactoring.

    Scores source files on readability, maintainability, performance,
    security and code smells, and rewrites them with per-language rules.
    No network access unless --use-model is given.
    """
    pass


@cli.command()
@click.argument("file")
@click.option("--language", "-l", default=None, help="Language id (default: inferred from the file extension)")
@click.option("--json-only", is_flag=True, help="Output raw JSON to stdout (for piping)")
@click.option("--refactored", is_flag=True, help="Include the refactored code in the report")
@model_options
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging on stderr")
def analyze(
    file: str,
    language: str | None,
    json_only: bool,
    refactored: bool,
    use_model: bool,
    model: str | None,
    host: str | None,
    verbose: bool,
):
    """Score a source file and list its issues.

    FILE may be "-" to read from stdin.

    Examples:

        codelens analyze app.js

        codelens analyze notebook.ipynb --json-only

        cat query.sql | codelens analyze - -l sql
    """
    setup_logging(verbose)
    unit = _read_unit(file, language)
    assistant = _assistant(use_model, model, host)

    if json_only:
        result = assistant.analyze(unit, include_refactor=refactored)
        click.echo(json.dumps(result.to_dict(), indent=2))
        return

    with console.status("Analyzing...", spinner="dots"):
        result = assistant.analyze(unit, include_refactor=refactored)
    _print_quality_result(result, file)


@cli.command()
@click.argument("file")
@click.option("--language", "-l", default=None, help="Language id (default: inferred from the file extension)")
@click.option("--output", "-o", default=None, help="Write the refactored code to this file")
@click.option("--aggressive", is_flag=True, help="Enable aggressive rules (SQL subqueries and comments)")
@click.option("--no-restructure", is_flag=True, help="Do not split notebook cells or add helper cells")
@click.option("--instructions", "-i", default="", help='Free-text instructions, e.g. "remove comments"')
@click.option("--diff", "show_diff", is_flag=True, help="Show a unified diff instead of the full code")
@click.option("--json-only", is_flag=True, help="Output raw JSON to stdout (for piping)")
@model_options
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging on stderr")
def refactor(
    file: str,
    language: str | None,
    output: str | None,
    aggressive: bool,
    no_restructure: bool,
    instructions: str,
    show_diff: bool,
    json_only: bool,
    use_model: bool,
    model: str | None,
    host: str | None,
    verbose: bool,
):
    """Rewrite a source file with its language's refactoring rules.

    FILE may be "-" to read from stdin.

    Examples:

        codelens refactor legacy.js --diff

        codelens refactor report.sql --aggressive -o report.formatted.sql

        codelens refactor utils.py -i "remove comments"
    """
    setup_logging(verbose)
    unit = _read_unit(file, language)
    assistant = _assistant(use_model, model, host)
    options = RefactorOptions(
        aggressive=aggressive,
        restructure_notebooks=not no_restructure,
        instructions=instructions,
    )

    if json_only:
        result = assistant.refactor(unit, options)
        click.echo(json.dumps(result.to_dict(), indent=2))
    else:
        with console.status("Refactoring...", spinner="dots"):
            result = assistant.refactor(unit, options)

    if output:
        try:
            Path(output).write_text(result.refactored_code)
        except OSError as e:
            raise click.ClickException(f"Cannot write {output}: {e.strerror or e}")

    if json_only:
        return

    _print_refactoring_result(result, file)
    if show_diff:
        _print_diff(unit.text, result.refactored_code, file)
    elif output:
        console.print(f"\n[green]Refactored code written to {output}[/]")
    else:
        console.print()
        console.print(Syntax(result.refactored_code, _lexer(unit.language_id), line_numbers=True))


@cli.command()
def languages():
    """List supported languages and their rule tables."""
    console.print()
    table = Table(title="Rule Tables", show_header=True)
    table.add_column("Family", style="bold")
    table.add_column("Language ids")
    table.add_column("Extensions")

    for family in REGISTRY:
        aliases = sorted(alias for alias, f in FAMILY_ALIASES.items() if f == family)
        if family == RuleFamily.GENERIC:
            aliases = ["anything else"]
        exts = sorted(ext for ext, lang in EXT_LANG.items() if family_for(lang) == family)
        table.add_row(family.value, ", ".join(aliases), " ".join(exts))

    console.print(table)
    console.print()
    console.print("Override detection with: [bold]codelens analyze <file> -l <language>[/]")


@cli.command()
def version():
    """Show version information."""
    console.print(f"codelens-cli v{__version__}")
    console.print("Deterministic code quality analysis and rule-based refactoring")


@cli.command()
@click.option("--model", "-m", default=None, help="Ollama model name (default: $CODELENS_MODEL)")
@click.option("--host", default=None, help="Ollama base URL (default: $OLLAMA_HOST or localhost)")
def status(model: str | None, host: str | None):
    """Check whether the configured Ollama model is reachable."""
    client = OllamaClient(_provider_config(model, host))
    if not client.is_running():
        raise click.ClickException(f"Ollama is not running at {client.base_url}. Start with: ollama serve")
    console.print(f"[green]Ollama is running at {client.base_url}[/]")
    if client.is_model_available():
        console.print(f"[green]Model available: {client.model}[/]")
    else:
        console.print(f"[yellow]Model not installed. Run: ollama pull {client.model}[/]")


def _score_style(score: int) -> str:
    if score >= 80:
        return "green"
    if score >= 60:
        return "yellow"
    return "red"


def _print_quality_result(result, target: str) -> None:
    """Print scores, findings and recommendations."""
    style = _score_style(result.score)
    console.print()
    console.print(Panel.fit(
        f"[bold {style}]Quality score: {result.score}/100[/]\n{result.summary}",
        border_style=style,
        title=f"{target} ({result.language})",
        subtitle=f"provider: {result.provider}",
    ))

    table = Table(title="Categories", show_header=True, border_style="dim")
    table.add_column("Category", style="bold")
    table.add_column("Score", justify="right")
    for c in result.categories:
        table.add_row(c.name, f"[{_score_style(c.score)}]{c.score}[/]")
    console.print(table)

    if result.issues:
        console.print()
        console.print("[bold]Issues:[/]")
        for issue in result.issues:
            console.print(f"  - {issue}", markup=False)

    if result.recommendations:
        console.print()
        console.print("[bold]Recommendations:[/]")
        for r in result.recommendations:
            console.print(f"  - {r}", markup=False)

    _print_errors(result.errors)

    if result.refactored_code is not None:
        console.print()
        console.print("[bold]Refactored code:[/]")
        console.print(Syntax(result.refactored_code, _lexer(result.language), line_numbers=True))


def _print_refactoring_result(result, target: str) -> None:
    style = _score_style(result.quality_score)
    console.print()
    console.print(Panel.fit(
        f"[bold {style}]{result.improvement_count} improvement(s), quality {result.quality_score}/100[/]",
        border_style=style,
        title=f"{target} ({result.language})",
        subtitle=f"provider: {result.provider}",
    ))
    for item in result.improvements:
        console.print(f"  [cyan]-[/] {item}")
    _print_errors(result.errors)


def _print_errors(errors: list[str]) -> None:
    if errors:
        console.print()
        console.print("[bold red]Errors (fell back to heuristics):[/]")
        for e in errors:
            console.print(f"  [red]{escape(e)}[/]")


def _print_diff(before: str, after: str, target: str) -> None:
    diff = "".join(difflib.unified_diff(
        before.splitlines(keepends=True),
        after.splitlines(keepends=True),
        fromfile=f"a/{target}",
        tofile=f"b/{target}",
    ))
    console.print()
    if not diff:
        console.print("[dim]No changes.[/]")
        return
    console.print(Syntax(diff, "diff"))


if __name__ == "__main__":
    cli()
