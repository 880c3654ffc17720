"""CLI interface for awsguard using Typer framework."""

import json as jsonlib
import logging
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from awsguard import __description__, __version__
from awsguard.config import GuardConfig, LogLevel, load_config
from awsguard.enforcement import EnforcementLevel
from awsguard.errors import ConfigurationError
from awsguard.policy.pack import AwsGuard
from awsguard.policy.registry import ALL_KEY

app = typer.Typer(
    name="awsguard",
    help=__description__,
    add_completion=False,
    rich_markup_mode="rich"
)

console = Console()
err_console = Console(stderr=True)

VALID_FORMATS = ["table", "json"]

_LEVEL_COLORS = {
    EnforcementLevel.MANDATORY.value: "red",
    EnforcementLevel.ADVISORY.value: "yellow",
    EnforcementLevel.DISABLED.value: "dim",
}


def version_callback(value: bool) -> None:
    """Show version information and exit."""
    if value:
        console.print(f"awsguard version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", callback=version_callback, help="Show version and exit")
    ] = False,
) -> None:
    """awsguard - AWS best-practice policies for declared infrastructure."""


def _setup_logging(config: GuardConfig, verbose: bool) -> None:
    level = LogLevel.DEBUG if verbose else config.logging.level
    logging.basicConfig(
        level=level.to_logging(),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _build_guard(config_path: Optional[Path], all_level: Optional[str], verbose: bool) -> AwsGuard:
    guard_config = load_config(config_path)
    _setup_logging(guard_config, verbose)

    args = dict(guard_config.policies)
    if all_level:
        args[ALL_KEY] = all_level
    return AwsGuard(guard_config.name, args)


def _load_stack(path: Path) -> list[dict[str, Any]]:
    with open(path, encoding="utf-8") as f:
        data = jsonlib.load(f)
    if isinstance(data, dict):
        data = data.get("resources", [])
    if not isinstance(data, list):
        raise ConfigurationError(f"{path} must contain a list of resources or an object with 'resources'")
    return data


def _check_format(format: str) -> None:
    if format not in VALID_FORMATS:
        console.print(f"[red]Error:[/red] Invalid format '{format}'. Must be one of: {', '.join(VALID_FORMATS)}")
        raise typer.Exit(1)


ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Configuration file path (default: search for .awsguard.json)")
]
AllOption = Annotated[
    Optional[str],
    typer.Option("--all", "-a", help="Global enforcement level: mandatory, advisory, disabled")
]
FormatOption = Annotated[
    str,
    typer.Option("--format", "-f", help="Output format: table, json (default: table)")
]
VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", help="Enable debug logging")
]


@app.command("list")
def list_policies(
    config: ConfigOption = None,
    all_level: AllOption = None,
    format: FormatOption = "table",
    verbose: VerboseOption = False,
) -> None:
    """List the active policies and their effective settings."""
    _check_format(format)

    try:
        guard = _build_guard(config, all_level, verbose)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if format == "json":
        console.print_json(jsonlib.dumps(guard.pack.to_dict()))
        return

    table = Table(title=f"{guard.name} ({len(guard.pack)} of {len(guard.registry)} policies active)")
    table.add_column("Id", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Kind", style="dim")
    table.add_column("Enforcement", style="white")
    table.add_column("Default", style="dim")
    table.add_column("Config", style="dim")

    for policy in guard.pack:
        level = policy.enforcement_level.value
        color = _LEVEL_COLORS[level]
        config_text = ", ".join(f"{key}={value!r}" for key, value in policy.config.items())
        table.add_row(
            policy.id,
            policy.name,
            policy.descriptor.kind,
            f"[{color}]{level}[/{color}]",
            policy.descriptor.default_enforcement_level.value,
            config_text,
        )

    console.print(table)


@app.command()
def validate(
    stack: Annotated[
        Path,
        typer.Argument(help="JSON file with the declared resources of a stack")
    ],
    config: ConfigOption = None,
    all_level: AllOption = None,
    format: FormatOption = "table",
    verbose: VerboseOption = False,
) -> None:
    """Validate declared resources against the policy pack."""
    _check_format(format)

    if not stack.exists():
        console.print(f"[red]Error:[/red] Stack file not found: {stack}")
        raise typer.Exit(1)

    try:
        guard = _build_guard(config, all_level, verbose)
        resources = _load_stack(stack)
        result = guard.validate(resources)
    except (ConfigurationError, ValidationError, jsonlib.JSONDecodeError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if format == "json":
        console.print_json(jsonlib.dumps(result.to_dict()))
        raise typer.Exit(result.exit_code)

    status_color = "green" if result.status.value == "pass" else "yellow" if result.status.value == "warn" else "red"
    console.print(f"[{status_color}]Validation Status: {result.status.value.upper()}[/{status_color}]")
    console.print(f"Exit Code: {result.exit_code}")

    if result.issues:
        console.print("\n[blue]Violations Found:[/blue]")
        issues_table = Table()
        issues_table.add_column("Policy", style="cyan")
        issues_table.add_column("Enforcement", style="white")
        issues_table.add_column("Message", style="white")
        issues_table.add_column("Resource", style="dim")

        for issue in result.issues:
            level = issue.enforcement_level.value
            color = _LEVEL_COLORS[level]
            issues_table.add_row(issue.policy, f"[{color}]{level.upper()}[/{color}]", escape(issue.message), issue.urn or "")

        console.print(issues_table)
    else:
        console.print("\n[green]No violations found![/green]")

    raise typer.Exit(result.exit_code)


if __name__ == "__main__":
    app()
