"""
CLI entry point for apitools.

Commands:
    list        Show the tools defined in an agent directory
    validate    Report loaded and rejected tool files
    schema      Print the JSON parameter schema of one tool
    call        Execute one tool call and print the result

Architecture Note:
    The CLI is intentionally thin - it parses arguments and delegates to the
    definitions and tools modules, which can be used without the CLI.
"""

import json
import logging
import traceback
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from apitools import __version__
from apitools.definitions import DefinitionLoader
from apitools.errors import ToolNotFoundError
from apitools.schema import ExecutorSettings, load_settings
from apitools.tools.api import ApiTool, register_api_tools
from apitools.tools.http import ApiToolExecutor, execute_api_tool_sync
from apitools.tools.registry import ToolRegistry

app = typer.Typer(
    name="apitools",
    help="Load, inspect and call declarative HTTP API tools.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]apitools[/bold] version {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
) -> None:
    """
    apitools - Declarative HTTP API tools with guarded egress.
    """
    _configure_logging(verbose)


AgentDirArgument = Annotated[
    Path,
    typer.Argument(
        help="Agent directory containing the api-tools/ subdirectory.",
        resolve_path=True,
    ),
]

SettingsOption = Annotated[
    Optional[Path],
    typer.Option(
        "--settings",
        "-s",
        help="Path to an executor settings YAML file.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]


def _load_settings_or_exit(path: Path | None) -> ExecutorSettings:
    if path is None:
        return ExecutorSettings()
    try:
        return load_settings(path)
    except (OSError, ValidationError, ValueError) as e:
        console.print(f"[red]Error loading settings: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)


def _load_registry(agent_dir: Path, settings: ExecutorSettings) -> ToolRegistry:
    registry = ToolRegistry()
    register_api_tools(registry, agent_dir, ApiToolExecutor(settings=settings))
    return registry


def _get_tool_or_exit(registry: ToolRegistry, tool_name: str) -> ApiTool:
    try:
        return registry.get(tool_name)
    except ToolNotFoundError as e:
        console.print(f"[red]{escape(e.message)}[/red]")
        raise typer.Exit(code=1)


@app.command("list")
def list_tools(
    agent_dir: AgentDirArgument,
    settings_path: SettingsOption = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output the tool specs a host would advertise."),
    ] = False,
) -> None:
    """
    List the valid tools in an agent directory.

    Example:
        $ apitools list ./agent
    """
    settings = _load_settings_or_exit(settings_path)
    if json_output:
        print(json.dumps(_load_registry(agent_dir, settings).specs(), indent=2))
        raise typer.Exit(code=0)

    report = DefinitionLoader(agent_dir, settings.tools_dirname).load()

    if not report.definitions:
        console.print(f"[dim]No tools found in {agent_dir / settings.tools_dirname}[/dim]")
        raise typer.Exit(code=0)

    table = Table(title="API Tools", show_header=True, header_style="bold")
    table.add_column("Name", style="cyan")
    table.add_column("Method", width=7)
    table.add_column("Allowed hosts")
    table.add_column("Description")

    for definition in report.definitions:
        description = definition.description
        if len(description) > 60:
            description = description[:57] + "..."
        table.add_row(
            definition.name,
            definition.request.method,
            ", ".join(definition.allowed_hosts),
            description,
        )

    console.print(table)
    if report.rejected:
        console.print(
            f"[yellow]{len(report.rejected)} file(s) rejected; "
            f"run `apitools validate` for details[/yellow]"
        )


@app.command()
def validate(
    agent_dir: AgentDirArgument,
    settings_path: SettingsOption = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results in JSON format."),
    ] = False,
) -> None:
    """
    Validate every tool file and report rejections.

    Exits with code 1 if any file was rejected.

    Example:
        $ apitools validate ./agent
    """
    settings = _load_settings_or_exit(settings_path)
    report = DefinitionLoader(agent_dir, settings.tools_dirname).load()

    if json_output:
        output = {
            "loaded": report.names,
            "rejected": [
                {
                    "source": invalid.source,
                    "violations": [
                        {"field": v.field, "message": v.message} for v in invalid.violations
                    ],
                }
                for invalid in report.rejected
            ],
        }
        print(json.dumps(output, indent=2))
    else:
        for name in report.names:
            console.print(f"[green]✓[/green] {name}")
        for invalid in report.rejected:
            console.print(f"[red]✗[/red] {invalid.source}")
            for violation in invalid.violations:
                console.print(f"    [dim]{escape(str(violation))}[/dim]")
        console.print()
        console.print(
            f"[dim]Loaded: {len(report.definitions)} | Rejected: {len(report.rejected)}[/dim]"
        )

    raise typer.Exit(code=1 if report.rejected else 0)


@app.command()
def schema(
    agent_dir: AgentDirArgument,
    tool_name: Annotated[str, typer.Argument(help="Name of the tool.")],
    settings_path: SettingsOption = None,
) -> None:
    """
    Print the JSON parameter schema advertised for a tool.

    Example:
        $ apitools schema ./agent create_issue
    """
    settings = _load_settings_or_exit(settings_path)
    tool = _get_tool_or_exit(_load_registry(agent_dir, settings), tool_name)
    print(json.dumps(tool.parameters_schema, indent=2))


def _parse_pairs(pairs: list[str], option: str) -> dict[str, str]:
    parsed = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            console.print(f"[red]Invalid {option} value (expected KEY=VALUE): {escape(pair)}[/red]")
            raise typer.Exit(code=2)
        parsed[key] = value
    return parsed


def _coerce_arg(value: str, param_type: str | None) -> Any:
    """Convert a command-line string to the declared parameter type."""
    try:
        if param_type == "integer":
            return int(value)
        if param_type == "number":
            return float(value)
    except ValueError:
        return value
    if param_type == "boolean":
        return value.lower() in ("1", "true", "yes", "on")
    return value


@app.command()
def call(
    agent_dir: AgentDirArgument,
    tool_name: Annotated[str, typer.Argument(help="Name of the tool to call.")],
    arg: Annotated[
        Optional[list[str]],
        typer.Option("--arg", "-a", help="Call argument as KEY=VALUE (repeatable)."),
    ] = None,
    args_json: Annotated[
        Optional[str],
        typer.Option("--args-json", help="Call arguments as a JSON object."),
    ] = None,
    env: Annotated[
        Optional[list[str]],
        typer.Option("--env", "-e", help="Call-scoped environment override KEY=VALUE (repeatable)."),
    ] = None,
    settings_path: SettingsOption = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output the raw result as JSON."),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Show full error tracebacks."),
    ] = False,
) -> None:
    """
    Execute one tool call.

    Exits with code 0 on a 2xx response, 1 otherwise.

    Example:
        $ apitools call ./agent send_message --arg text="hello" --env API_TOKEN=abc
    """
    settings = _load_settings_or_exit(settings_path)
    tool = _get_tool_or_exit(_load_registry(agent_dir, settings), tool_name)
    definition = tool.definition

    call_args: dict[str, Any] = {}
    if args_json:
        try:
            loaded = json.loads(args_json)
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid --args-json: {escape(str(e))}[/red]")
            raise typer.Exit(code=2)
        if not isinstance(loaded, dict):
            console.print("[red]Invalid --args-json: expected a JSON object[/red]")
            raise typer.Exit(code=2)
        call_args.update(loaded)

    for key, value in _parse_pairs(arg or [], "--arg").items():
        declared = definition.parameters.get(key)
        call_args[key] = _coerce_arg(value, declared.type if declared else None)

    extra_env = _parse_pairs(env or [], "--env")

    try:
        result = execute_api_tool_sync(
            definition,
            call_args,
            extra_env,
            executor=tool.executor,
        )
    except Exception as e:
        console.print(f"[red]Execution error: {escape(str(e))}[/red]")
        if debug:
            console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
        raise typer.Exit(code=1)

    if json_output:
        print(json.dumps(result.to_dict(), indent=2, default=str))
    else:
        _display_result(tool_name, result)

    raise typer.Exit(code=0 if result.success else 1)


def _display_result(tool_name: str, result) -> None:
    """Display a call result in a formatted way."""
    if result.success:
        console.print(f"[green]✓[/green] [bold]{tool_name}[/bold]: [green]{result.status}[/green]")
    elif result.status is not None:
        console.print(f"[red]✗[/red] [bold]{tool_name}[/bold]: [red]{result.status}[/red]")
    else:
        console.print(f"[red]✗[/red] [bold]{tool_name}[/bold]: [red]not sent[/red]")

    if result.summary:
        console.print(escape(result.summary))
    if result.error:
        console.print(f"[red]{escape(result.error)}[/red]")
    if result.data is not None:
        if isinstance(result.data, (dict, list)):
            console.print_json(json.dumps(result.data, default=str))
        else:
            console.print(escape(str(result.data)))
