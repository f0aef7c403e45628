"""Init command implementation."""

from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.panel import Panel

from ..config import Config, ConfigModel, ScrapingConfig, SourceConfig, TopicConfig, save_config, save_sources
from ..db import init_database, validate_connection

console = Console()


def create_default_topics() -> List[TopicConfig]:
    """Create a starter topic."""
    return [
        TopicConfig(
            name="Local News",
            keywords=["council", "planning", "school", "transport", "community", "police"],
        ),
    ]


def create_default_sources() -> List[SourceConfig]:
    """Create starter local news sources."""
    return [
        SourceConfig(
            name="Bourne Free",
            url="https://www.bournefree.co.uk",
            scraping_method="auto",
            topics=["Local News"],
            scraping_config=ScrapingConfig(trusted_max_age_days=14),
        ),
        SourceConfig(
            name="Eastbourne Reporter",
            url="https://www.eastbournereporter.co.uk",
            scraping_method="auto",
            topics=["Local News"],
            scraping_config=ScrapingConfig(trusted_max_age_days=14),
        ),
    ]


def init_command(
    config_dir: Path = typer.Option(
        Path.home() / ".config" / "curator",
        "--config-dir",
        "-c",
        help="Configuration directory",
    ),
    db_host: str = typer.Option("localhost", "--db-host", help="Postgres host"),
    db_port: int = typer.Option(5432, "--db-port", help="Postgres port"),
    db_name: str = typer.Option("curator", "--db-name", help="Database name"),
    db_user: str = typer.Option("curator", "--db-user", help="Database user"),
    seed_sources: bool = typer.Option(
        True,
        "--seed-sources/--no-seed-sources",
        help="Seed starter topics and sources",
    ),
) -> None:
    """Initialize curator configuration and database."""
    console.print(Panel.fit("📰 Topic Curator - Initialization", style="bold blue"))

    config_dir.mkdir(parents=True, exist_ok=True)
    config_path = config_dir / "config.yaml"
    sources_path = config_dir / "sources.yaml"

    config = ConfigModel(
        postgres={
            "host": db_host,
            "port": db_port,
            "database": db_name,
            "user": db_user,
            "password_env": "CURATOR_DB_PASSWORD",
        },
    )

    save_config(config, config_path)
    console.print(f"✅ Created config: {config_path}")

    if sources_path.exists():
        console.print(f"✅ Keeping existing sources: {sources_path}")
    elif seed_sources:
        sources = create_default_sources()
        save_sources(sources, sources_path, topics=create_default_topics())
        console.print(f"✅ Created sources: {sources_path} (seeded with {len(sources)} sources)")
    else:
        save_sources([], sources_path, topics=[])
        console.print(f"✅ Created sources: {sources_path} (empty)")

    console.print("\n[bold]Testing database connection...[/bold]")
    db_config = Config(config_path).get_db_config()

    if not validate_connection(db_config):
        console.print(
            "[red]❌ Database connection failed![/red]\n"
            "Please ensure Postgres is running and credentials are correct.\n"
            "Set the password via environment variable: "
            "[bold]export CURATOR_DB_PASSWORD=your_password[/bold]"
        )
        raise typer.Exit(1)

    console.print("✅ Database connection successful")

    console.print("\n[bold]Initializing database schema...[/bold]")
    try:
        init_database(db_config)
        console.print("✅ Database schema initialized")
    except Exception as e:
        console.print(f"[red]❌ Failed to initialize database: {e}[/red]")
        raise typer.Exit(1)

    console.print(
        Panel(
            f"[green]✅ Topic Curator initialized successfully![/green]\n\n"
            f"Configuration: {config_path}\n"
            f"Sources: {sources_path}\n\n"
            f"Next steps:\n"
            f"1. Set database password: [bold]export CURATOR_DB_PASSWORD=your_password[/bold]\n"
            f"2. Edit topics and sources in {sources_path}\n"
            f"3. Run: [bold]curator run[/bold]",
            style="green",
        )
    )
