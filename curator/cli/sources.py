"""Sources management commands."""

import asyncio
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..config import ScrapingConfig, SourceConfig, save_sources
from ..db import RunManager, SourceManager, get_connection
from ..errors import SourceDeleteBlocked
from ..health import HealthLevel, assess_health
from ..ingestion.url_utils import normalize_url
from .common import (
    find_source_config,
    load_config_or_exit,
    load_source_configs,
    source_from_config,
)
from .inspect import discover_candidates, print_discovery_report

console = Console()
sources_app = typer.Typer(help="Manage content sources")

METHODS = ("auto", "rss", "html", "sitemap", "heuristic")

LEVEL_STYLES = {
    HealthLevel.HEALTHY: "green",
    HealthLevel.WATCH: "yellow",
    HealthLevel.FAILING: "red",
    HealthLevel.OFFLINE: "dim",
}


@sources_app.command("list")
def sources_list() -> None:
    """List all configured sources."""
    config = load_config_or_exit()
    sources = load_source_configs(config)

    if not sources:
        console.print("[yellow]No sources configured.[/yellow]")
        return

    table = Table(title="Configured Sources")
    table.add_column("Name", style="cyan")
    table.add_column("Method", style="magenta")
    table.add_column("Topics", style="green")
    table.add_column("Every", justify="right")
    table.add_column("Enabled", style="yellow")
    table.add_column("URL", style="blue")

    for source in sources:
        table.add_row(
            source.name,
            source.scraping_method,
            ", ".join(source.topics) or "-",
            f"{source.scrape_frequency_hours}h",
            "✓" if source.enabled else "✗",
            source.url,
        )

    console.print(table)


@sources_app.command("add")
def sources_add(
    name: str = typer.Option(..., "--name", "-n", help="Source name"),
    url: str = typer.Option(..., "--url", "-u", help="Homepage URL"),
    feed_url: Optional[str] = typer.Option(None, "--feed-url", help="RSS/Atom feed URL"),
    method: str = typer.Option("auto", "--method", "-m", help=f"Discovery method ({', '.join(METHODS)})"),
    topics: Optional[List[str]] = typer.Option(None, "--topic", "-t", help="Topic name (repeatable)"),
    frequency: int = typer.Option(12, "--every", help="Scrape frequency in hours", min=1),
    max_age_days: Optional[int] = typer.Option(
        None, "--max-age-days", help="Drop feed items older than this many days"
    ),
) -> None:
    """Add a new content source to sources.yaml."""
    config = load_config_or_exit()
    try:
        sources = load_source_configs(config)
    except typer.Exit:
        sources = []

    if method not in METHODS:
        console.print(f"[red]Unknown method '{method}'. Use one of: {', '.join(METHODS)}[/red]")
        raise typer.Exit(1)

    try:
        new_url = normalize_url(url)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    if any(s.name == name or normalize_url(s.url) == new_url for s in sources):
        console.print(f"[red]Source '{name}' or URL already exists.[/red]")
        raise typer.Exit(1)

    sources.append(
        SourceConfig(
            name=name,
            url=url,
            feed_url=feed_url,
            scraping_method=method,
            topics=topics or [],
            scrape_frequency_hours=frequency,
            scraping_config=ScrapingConfig(trusted_max_age_days=max_age_days),
        )
    )
    save_sources(sources, config.sources_path)

    console.print(f"[green]✅ Added source: {name}[/green]")
    console.print("[dim]It is synced to the database on the next 'curator run'.[/dim]")


@sources_app.command("remove")
def sources_remove(
    name: str = typer.Argument(..., help="Source name to remove"),
) -> None:
    """Remove a source from sources.yaml and the database."""
    config = load_config_or_exit()
    sources = load_source_configs(config)

    remaining = [s for s in sources if s.name != name]
    if len(remaining) == len(sources):
        console.print(f"[red]Source '{name}' not found.[/red]")
        raise typer.Exit(1)

    try:
        with get_connection(config.get_db_config()) as conn:
            manager = SourceManager()
            stored = manager.get_source_by_name(conn, name)
            if stored is not None:
                manager.delete_source(conn, stored.id)
    except SourceDeleteBlocked as e:
        console.print(f"[red]❌ {e}[/red]")
        console.print("Remove the source from those topics (or deactivate the topics) first.")
        raise typer.Exit(1)

    save_sources(remaining, config.sources_path)
    console.print(f"[green]✅ Removed source: {name}[/green]")


@sources_app.command("test")
def sources_test(
    name: Optional[str] = typer.Argument(None, help="Source name to test (or test all)"),
) -> None:
    """Run discovery against sources and report what was found."""
    config = load_config_or_exit()
    if name:
        sources = [find_source_config(config, name)]
    else:
        sources = load_source_configs(config)

    failed = 0
    for source_config in sources:
        if not source_config.enabled:
            console.print(f"[yellow]⚠️  {source_config.name}: Disabled[/yellow]")
            continue

        source = source_from_config(source_config)
        try:
            candidates, report = asyncio.run(discover_candidates(config, source))
        except Exception as e:
            console.print(f"[red]❌ {source.name}: Error - {e}[/red]")
            failed += 1
            continue

        print_discovery_report(source, report)
        if candidates:
            console.print(f"[green]✅ {source.name}: {len(candidates)} candidate(s)[/green]")
        else:
            console.print(f"[red]❌ {source.name}: no candidates[/red]")
            failed += 1

    if failed:
        raise typer.Exit(1)


@sources_app.command("health")
def sources_health(
    name: Optional[str] = typer.Argument(None, help="Show details for one source"),
) -> None:
    """Show health of sources stored in the database."""
    config = load_config_or_exit()
    health_config = config.config.health

    with get_connection(config.get_db_config()) as conn:
        manager = SourceManager()
        if name:
            source = manager.get_source_by_name(conn, name)
            if source is None:
                console.print(f"[red]Source '{name}' not found in database.[/red]")
                raise typer.Exit(1)
            sources = [source]
        else:
            sources = manager.get_sources(conn)

    if not sources:
        console.print("[yellow]No sources in database. Run 'curator run' to sync them.[/yellow]")
        return

    table = Table(title="Source Health")
    table.add_column("Source", style="cyan")
    table.add_column("Health", style="bold")
    table.add_column("Fails", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Avg ms", justify="right")
    table.add_column("Last success", style="dim")
    table.add_column("Summary")

    snapshots = []
    for source in sources:
        snapshot = assess_health(source, config=health_config)
        snapshots.append((source, snapshot))
        style = LEVEL_STYLES[snapshot.level]
        last_success = (
            f"{snapshot.hours_since_success:.0f}h ago" if snapshot.hours_since_success is not None else "never"
        )
        table.add_row(
            source.name,
            f"[{style}]{snapshot.label}[/{style}]",
            str(source.consecutive_failures),
            f"{source.success_rate:.0f}%",
            str(source.avg_response_time_ms),
            last_success,
            snapshot.summary,
        )

    console.print(table)

    if name:
        source, snapshot = snapshots[0]
        if snapshot.last_failure_reason:
            console.print(f"\n[bold]Last failure:[/bold] {snapshot.last_failure_reason}")
        if snapshot.next_steps:
            console.print("\n[bold]Next steps:[/bold]")
            for step in snapshot.next_steps:
                console.print(f"  • {step}")


def _set_active(name: str, active: bool) -> None:
    config = load_config_or_exit()
    with get_connection(config.get_db_config()) as conn:
        manager = SourceManager()
        source = manager.get_source_by_name(conn, name)
        if source is None:
            console.print(f"[red]Source '{name}' not found in database.[/red]")
            raise typer.Exit(1)
        manager.set_active(conn, source.id, active)

    state = "activated" if active else "deactivated"
    console.print(f"[green]✅ Source {name} {state}[/green]")


@sources_app.command("activate")
def sources_activate(name: str = typer.Argument(..., help="Source name")) -> None:
    """Bring a source back online and reset its failure streak."""
    _set_active(name, True)


@sources_app.command("deactivate")
def sources_deactivate(name: str = typer.Argument(..., help="Source name")) -> None:
    """Take a source offline; it is skipped by 'curator run'."""
    _set_active(name, False)


@sources_app.command("runs")
def sources_runs(
    name: str = typer.Argument(..., help="Source name"),
    limit: int = typer.Option(10, "--limit", "-n", min=1, max=100),
) -> None:
    """Show recent pipeline runs for a source."""
    config = load_config_or_exit()

    with get_connection(config.get_db_config()) as conn:
        source = SourceManager().get_source_by_name(conn, name)
        if source is None:
            console.print(f"[red]Source '{name}' not found in database.[/red]")
            raise typer.Exit(1)
        runs = RunManager().get_recent_runs(conn, source.id, limit=limit)

    if not runs:
        console.print(f"[yellow]No runs recorded for {name}.[/yellow]")
        return

    table = Table(title=f"Recent runs: {name}")
    table.add_column("Started", style="dim")
    table.add_column("Status")
    table.add_column("Strategy", style="magenta")
    table.add_column("Found", justify="right")
    table.add_column("Stored", justify="right")
    table.add_column("Degraded", justify="right")
    table.add_column("Failed", justify="right")

    for run in runs:
        stats = run.stats_json or {}
        style = "green" if run.status == "success" else "red" if run.status == "failed" else "yellow"
        table.add_row(
            run.started_at.strftime("%Y-%m-%d %H:%M"),
            f"[{style}]{run.status}[/{style}]",
            stats.get("strategy") or "-",
            str(stats.get("discovered", 0)),
            str(stats.get("stored", 0)),
            str(stats.get("degraded", 0)),
            str(stats.get("fetch_failed", 0) + stats.get("extraction_failed", 0)),
        )

    console.print(table)


@sources_app.command("topics")
def sources_topics() -> None:
    """List topics synced to the database and their keywords."""
    config = load_config_or_exit()

    with get_connection(config.get_db_config()) as conn:
        topics = SourceManager().get_topics(conn)

    if not topics:
        console.print("[yellow]No topics in database. Run 'curator run' to sync them.[/yellow]")
        return

    table = Table(title="Topics")
    table.add_column("Name", style="cyan")
    table.add_column("Slug", style="dim")
    table.add_column("Active", style="yellow")
    table.add_column("Keywords")
    for topic in topics:
        table.add_row(topic.name, topic.slug, "✓" if topic.is_active else "✗", ", ".join(topic.keywords) or "-")

    console.print(table)
