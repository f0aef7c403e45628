"""Helpers shared by CLI commands."""

from typing import List

import typer
from rich.console import Console

from ..config import Config, SourceConfig, load_sources
from ..ingestion.url_utils import extract_domain
from ..models import ContentSource

console = Console()


def load_config_or_exit() -> Config:
    """Load the config, or print an error and exit."""
    config = Config()
    try:
        config.config
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]{e}[/red]")
        console.print("Run [bold]curator init[/bold] first.")
        raise typer.Exit(1)
    return config


def load_source_configs(config: Config) -> List[SourceConfig]:
    try:
        return load_sources(config.sources_path)
    except FileNotFoundError:
        console.print("[red]Sources file not found. Run 'curator init' first.[/red]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def source_from_config(source: SourceConfig) -> ContentSource:
    """Unsaved ContentSource for a configured source (no id, no topics)."""
    return ContentSource(
        name=source.name,
        canonical_domain=extract_domain(source.url),
        homepage_url=source.url,
        feed_url=source.feed_url,
        scraping_method=source.scraping_method,
        is_active=source.enabled,
        is_blacklisted=source.blacklisted,
        is_whitelisted=source.whitelisted,
        scrape_frequency_hours=source.scrape_frequency_hours,
        scraping_config=source.scraping_config,
    )


def find_source_config(config: Config, name: str) -> SourceConfig:
    for source in load_source_configs(config):
        if source.name == name:
            return source
    console.print(f"[red]Source '{name}' not found.[/red]")
    raise typer.Exit(1)
