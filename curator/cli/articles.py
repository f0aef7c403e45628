"""Article review commands."""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..db import ArticleStorage, SourceManager, UrlHistoryStore, get_connection
from .common import load_config_or_exit

console = Console()
articles_app = typer.Typer(help="Review stored articles")

STATUS_STYLES = {
    "new": "green",
    "needs_review": "yellow",
    "degraded": "yellow",
    "approved": "bold green",
    "discarded": "dim",
}


@articles_app.command("list")
def articles_list(
    status: Optional[str] = typer.Option(None, "--status", help="Filter by status"),
    source: Optional[str] = typer.Option(None, "--source", "-s", help="Filter by source name"),
    limit: int = typer.Option(30, "--limit", "-n", min=1, max=500),
) -> None:
    """List recently stored articles."""
    config = load_config_or_exit()

    with get_connection(config.get_db_config()) as conn:
        source_id = None
        if source:
            stored = SourceManager().get_source_by_name(conn, source)
            if stored is None:
                console.print(f"[red]Source '{source}' not found in database.[/red]")
                raise typer.Exit(1)
            source_id = stored.id
        rows = ArticleStorage().list_articles(conn, status=status, source_id=source_id, limit=limit)

    if not rows:
        console.print("[yellow]No articles found.[/yellow]")
        return

    table = Table(title="Articles")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Source", style="cyan")
    table.add_column("Title")
    table.add_column("Words", justify="right")
    table.add_column("Quality", justify="right")
    table.add_column("Relevance", justify="right")
    table.add_column("Status")

    for row in rows:
        style = STATUS_STYLES.get(row["status"], "white")
        table.add_row(
            str(row["id"]),
            row["source_name"],
            row["title"][:70],
            str(row["word_count"]),
            str(row["quality_score"]),
            f"{row['relevance_score']:.2f}",
            f"[{style}]{row['status']}[/{style}]",
        )

    console.print(table)


@articles_app.command("approve")
def articles_approve(article_id: int = typer.Argument(..., help="Article ID")) -> None:
    """Approve an article and queue it for content generation."""
    config = load_config_or_exit()

    with get_connection(config.get_db_config()) as conn:
        queue_id = ArticleStorage().approve_article(conn, article_id)

    if queue_id is None:
        console.print(f"[red]Article {article_id} not found.[/red]")
        raise typer.Exit(1)
    console.print(f"[green]✅ Article {article_id} approved (queue entry {queue_id})[/green]")


@articles_app.command("discard")
def articles_discard(article_id: int = typer.Argument(..., help="Article ID")) -> None:
    """Discard an article; its URL is not rediscovered for the same topic."""
    config = load_config_or_exit()

    with get_connection(config.get_db_config()) as conn:
        article = ArticleStorage().get_article(conn, article_id)
        if article is None:
            console.print(f"[red]Article {article_id} not found.[/red]")
            raise typer.Exit(1)
        entry = UrlHistoryStore(conn).discard(article.normalized_url, article.topic_id)

    console.print(f"[green]✅ Article {article_id} discarded[/green]")
    if entry is not None:
        console.print(f"[dim]{entry.normalized_url} is suppressed for topic {entry.topic_id}[/dim]")


@articles_app.command("duplicates")
def articles_duplicates(
    status: str = typer.Option("pending", "--status", help="pending, merged or dismissed"),
    limit: int = typer.Option(30, "--limit", "-n", min=1, max=500),
) -> None:
    """List duplicate pairs recorded for review."""
    config = load_config_or_exit()

    with get_connection(config.get_db_config()) as conn:
        pairs = ArticleStorage().get_duplicate_pairs(conn, status=status, limit=limit)

    if not pairs:
        console.print(f"[yellow]No {status} duplicate pairs.[/yellow]")
        return

    table = Table(title="Duplicate pairs")
    table.add_column("Article", justify="right", style="cyan")
    table.add_column("Duplicate of", justify="right", style="cyan")
    table.add_column("Method", style="magenta")
    table.add_column("Similarity", justify="right")
    table.add_column("Status")

    for pair in pairs:
        table.add_row(
            str(pair.article_id),
            str(pair.duplicate_id),
            pair.method,
            f"{pair.similarity_score:.2f}",
            pair.status,
        )

    console.print(table)
