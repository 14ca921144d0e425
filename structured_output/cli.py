"""Command-line interface for Structured Output.

``TARGET`` arguments name a structured type or tool as
``package.module:Attribute``; the module is imported so its decorators
run.
"""

import importlib
import json
import logging
from pathlib import Path

import typer
import yaml
from rich.console import Console
from rich.table import Table

from . import __version__, config
from ._util import load_target, to_json
from .errors import StructuredOutputError
from .formats import anthropic_tool, openai_tool, response_format, tool_definition
from .logging_config import setup_logging
from .schemas.generator import infer_fragment_from_example, write_fragment
from .structured_type import StructuredType, as_structured_type

app = typer.Typer(
    help="Structured Output — schemas, validation and hydration for model replies",
    no_args_is_help=True,
)
console = Console()

_FORMATS = ("raw", "response-format", "openai", "anthropic")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit log records as JSON lines"),
):
    """Structured Output developer tools."""
    setup_logging(
        level=logging.DEBUG if verbose else config.LOG_LEVEL,
        json_format=json_logs or config.LOG_JSON,
    )


def _structured_target(target: str) -> StructuredType:
    try:
        obj = load_target(target)
    except (ValueError, ImportError, AttributeError) as e:
        console.print(f"[red]Cannot load {target}: {e}[/red]")
        raise typer.Exit(1)
    structured = as_structured_type(obj)
    if structured is None:
        console.print(f"[red]{target} is not a structured type[/red]")
        raise typer.Exit(1)
    return structured


def _read_reply(path_arg: str) -> str:
    path = Path(path_arg)
    if not path.exists():
        console.print(f"[red]File not found: {path_arg}[/red]")
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8")


def _plain(value):
    """Hydrated instances as JSON-friendly data."""
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if hasattr(value, "__dict__") and not isinstance(value, type):
        return {k: _plain(v) for k, v in vars(value).items() if not k.startswith("_")}
    return value


@app.command()
def schema(
    target: str = typer.Argument(..., help="module:Attribute of a structured type"),
    fmt: str = typer.Option("raw", "--format", "-f", help=f"One of: {', '.join(_FORMATS)}"),
):
    """Print the compiled schema, optionally in a provider envelope."""
    if fmt not in _FORMATS:
        console.print(f"[red]Unknown format {fmt!r}; expected one of {', '.join(_FORMATS)}[/red]")
        raise typer.Exit(2)
    structured = _structured_target(target)
    try:
        compiled = structured.get_schema()
    except StructuredOutputError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    if compiled is None:
        console.print(f"[yellow]{structured.name} declares no properties; it has no schema[/yellow]")
        raise typer.Exit(1)

    if fmt == "raw":
        document = compiled
    elif fmt == "response-format":
        document = response_format(compiled)
    else:
        definition = tool_definition(compiled, name=structured.name)
        document = openai_tool(definition) if fmt == "openai" else anthropic_tool(definition)
    console.print_json(to_json(document))


@app.command()
def validate(
    target: str = typer.Argument(..., help="module:Attribute of a structured type"),
    reply: str = typer.Argument(..., help="File holding the model reply"),
    repair: bool = typer.Option(False, "--repair", "-r", help="Strip code fences and repair broken JSON first"),
):
    """Check a saved reply against a structured type's schema."""
    structured = _structured_target(target)
    outcome = structured.validate(_read_reply(reply), repair=repair)

    for step in outcome.repairs:
        detail = f" (still invalid: {step.error})" if step.error else ""
        console.print(f"[dim]repair: {step.attempt}{detail}[/dim]", highlight=False)

    if outcome.valid:
        console.print(f"[green]Valid {structured.name}[/green]")
        return

    table = Table(title=f"{len(outcome.errors)} violation(s) for {structured.name}")
    table.add_column("Path")
    table.add_column("Keyword")
    table.add_column("Message")
    for violation in outcome.errors:
        table.add_row(violation.path or "<root>", violation.keyword, violation.message)
    console.print(table)
    raise typer.Exit(1)


@app.command()
def hydrate(
    target: str = typer.Argument(..., help="module:Attribute of a structured type"),
    reply: str = typer.Argument(..., help="File holding the model reply"),
):
    """Build an instance from a saved reply and print its fields."""
    structured = _structured_target(target)
    try:
        instance = structured.hydrate(_read_reply(reply))
    except StructuredOutputError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    if instance is None:
        console.print(f"[red]Could not hydrate {structured.name} from {reply}[/red]")
        raise typer.Exit(1)
    console.print(f"[bold]{type(instance).__name__}[/bold]")
    console.print_json(to_json(_plain(instance), default=repr))


@app.command()
def types(
    module: str = typer.Argument(..., help="Module to import and scan"),
):
    """List the structured types and tools a module declares."""
    try:
        mod = importlib.import_module(module)
    except ImportError as e:
        console.print(f"[red]Cannot import {module}: {e}[/red]")
        raise typer.Exit(1)

    found: dict[str, StructuredType] = {}
    for value in vars(mod).values():
        structured = as_structured_type(value)
        if structured is not None:
            found.setdefault(structured.name, structured)

    if not found:
        console.print(f"[yellow]No structured types in {module}[/yellow]")
        return

    table = Table(title=f"Structured types in {module}")
    table.add_column("Name", style="bold", no_wrap=True)
    table.add_column("Kind", no_wrap=True)
    table.add_column("Properties", justify="right")
    table.add_column("Required")
    for name in sorted(found):
        structured = found[name]
        kind = "tool" if hasattr(structured, "get_definition") else "type"
        props = structured.fragment.properties
        table.add_row(
            name,
            kind,
            "-" if props is None else str(len(props)),
            ", ".join(structured.fragment.required),
        )
    console.print(table)


@app.command()
def scaffold(
    example: str = typer.Argument(..., help="JSON file with an example reply"),
    name: str = typer.Argument(..., help="Name for the new structured type"),
    out: str = typer.Option(None, "--out", "-o", help="Write the YAML fragment here"),
):
    """Draft a YAML schema fragment from an example reply."""
    try:
        data = json.loads(_read_reply(example))
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON: {e}[/red]")
        raise typer.Exit(1)
    if not isinstance(data, dict):
        console.print("[red]The example must be a JSON object[/red]")
        raise typer.Exit(1)

    fragment = infer_fragment_from_example(data, name)
    if out:
        write_fragment(fragment, out)
        console.print(f"[green]Wrote {out}[/green]")
    else:
        console.print(yaml.dump(fragment, default_flow_style=False, sort_keys=False), markup=False, emoji=False, highlight=False)


@app.command()
def version():
    """Print the installed version."""
    console.print(__version__)


if __name__ == "__main__":
    app()
