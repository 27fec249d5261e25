"""Command-line interface for the Planning Poker App infrastructure.

Provides commands to check deployment settings before synth and to inspect
the deployed delivery pipeline.
"""

from __future__ import annotations

import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import configure_logging
from .config import REQUIRED_VARIABLES, PipelineConfig, load_config
from .exceptions import ConfigurationError, PlanningPokerInfraError
from .status import pipeline_status

app = typer.Typer(
    name="planning-poker-infra",
    help="Planning Poker App delivery pipeline CLI",
    rich_markup_mode="rich",
)
console = Console()


@app.command("check-env")
def check_env(
    env: str = typer.Option("dev", help="Environment (dev/staging/prod)"),
    config_path: Path | None = typer.Option(None, help="Custom config file path"),
) -> None:
    """Check that every variable the stack needs is set."""
    try:
        load_config(env, config_path)
    except ConfigurationError as e:
        _display_variables(set(e.missing))
        console.print(f"[bold red]❌ {escape(str(e))}[/bold red]")
        sys.exit(1)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]❌ Invalid configuration: {escape(str(e))}[/bold red]")
        sys.exit(1)

    _display_variables(set())
    console.print(f"[bold green]✅ Environment ready for {env}[/bold green]")


@app.command("show-config")
def show_config(
    env: str = typer.Option("dev", help="Environment (dev/staging/prod)"),
    config_path: Path | None = typer.Option(None, help="Custom config file path"),
) -> None:
    """Show the resolved stack configuration."""
    try:
        config = load_config(env, config_path)
    except (PlanningPokerInfraError, FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]❌ {escape(str(e))}[/bold red]")
        sys.exit(1)

    _display_config(config)


@app.command()
def status(
    pipeline_name: str | None = typer.Option(None, help="Override the pipeline name"),
    region: str | None = typer.Option(None, help="AWS region"),
) -> None:
    """Show the latest status of each pipeline stage."""
    configure_logging("WARNING")

    name = pipeline_name or PipelineConfig().pipeline_name
    console.print(f"[bold blue]📊 Checking pipeline {name}...[/bold blue]")

    try:
        stages = pipeline_status(name, region_name=region)
    except PlanningPokerInfraError as e:
        console.print(f"[bold red]❌ Status check failed: {escape(str(e))}[/bold red]")
        sys.exit(1)

    table = Table(title=f"{name} Stages")
    table.add_column("Stage", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Last Change", style="yellow")

    for stage in stages:
        icon = "✅" if stage["status"] == "Succeeded" else "❌" if stage["status"] == "Failed" else "⏳"
        table.add_row(stage["stage"], f"{icon} {stage['status']}", stage["last_change"])

    console.print(table)


def _display_variables(missing: set[str]) -> None:
    """Display required variable table."""
    table = Table(title="Required Environment Variables")
    table.add_column("Variable", style="cyan")
    table.add_column("Status", style="green")

    for name in REQUIRED_VARIABLES:
        table.add_row(name, "❌ missing" if name in missing else "✅ set")

    console.print(table)


def _display_config(config: PipelineConfig) -> None:
    """Display resolved configuration table."""
    table = Table(title=f"Pipeline Configuration ({config.environment})")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Region", config.aws_region)
    table.add_row("Pipeline", config.pipeline_name)
    table.add_row("Repository", f"{config.source.owner}/{config.source.repo}@{config.source.branch}")
    table.add_row("Trigger", config.source.trigger)
    table.add_row("Token secret", _mask(config.source.secret_id))
    table.add_row("Build project", config.build.project_name)
    table.add_row("Build image", config.build.build_image)
    table.add_row("Web socket URL", config.build.web_socket_url)
    table.add_row("API URL", config.build.api_url)
    table.add_row("Error page", f"{config.hosting.error_page_path} ({config.hosting.error_ttl_seconds}s)")
    table.add_row("Invalidate cache", str(config.hosting.invalidate_cache))

    console.print(table)


def _mask(value: str) -> str:
    if len(value) <= 4:
        return "****"
    return f"{value[:4]}{'*' * (len(value) - 4)}"


def main() -> None:
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
