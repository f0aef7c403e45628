"""Run command implementation."""

from typing import Optional

import typer
from rich.console import Console

from ..config import Config
from ..db import validate_connection
from ..pipeline import PipelineOrchestrator

console = Console()


def run_command(
    source: Optional[str] = typer.Option(
        None,
        "--source",
        "-s",
        help="Run a single source by name",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Run sources even if they are not due",
    ),
) -> None:
    """Discover, extract and store articles for due sources."""
    try:
        config = Config()

        console.print("[dim]Checking database connection...[/dim]")
        if not validate_connection(config.get_db_config()):
            console.print("[red]❌ Database connection failed![/red]")
            console.print("Please check your database configuration and ensure Postgres is running.")
            raise typer.Exit(1)

        orchestrator = PipelineOrchestrator(config)
        success = orchestrator.run(source_name=source, force=force)

        if not success:
            raise typer.Exit(1)

    except typer.Exit:
        raise
    except KeyboardInterrupt:
        console.print("\n[yellow]Pipeline interrupted by user[/yellow]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Pipeline failed: {e}[/red]")
        raise typer.Exit(1)
