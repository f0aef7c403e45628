"""Dry-run commands: discover candidates for a source, extract a single URL."""

import asyncio
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import Config
from ..db import SourceManager, UrlHistoryStore, get_connection
from ..ingestion import (
    ArticleFetcher,
    CandidateURL,
    DiscoveryChain,
    DiscoveryReport,
    SelectorExtractor,
    SourceThrottle,
    resolve_selectors,
)
from ..ingestion.url_utils import extract_domain
from ..models import ContentSource
from ..quality import ContentValidator
from .common import find_source_config, load_config_or_exit, source_from_config

console = Console()


async def discover_candidates(
    config: Config,
    source: ContentSource,
    history: Optional[UrlHistoryStore] = None,
) -> Tuple[List[CandidateURL], DiscoveryReport]:
    """Run one discovery pass for a source without fetching articles."""
    settings = config.config
    async with ArticleFetcher(settings.fetcher) as fetcher:
        run = DiscoveryChain(fetcher, settings.discovery, history).discover(
            source, SourceThrottle(settings.fetcher.min_request_interval)
        )
        candidates = await run.collect()
    return candidates, run.report


def print_discovery_report(source: ContentSource, report: DiscoveryReport) -> None:
    status = "[green]reachable[/green]" if report.reachable else "[red]unreachable[/red]"
    lines = [
        f"Status: {status}",
        f"Strategies tried: {', '.join(report.strategies_tried) or '-'}",
        f"Productive strategy: {report.productive_strategy or 'none'}",
        f"Pages fetched: {report.pages_fetched}",
        f"Candidates: {report.yielded} (filtered {report.filtered})",
    ]
    if report.fetch_failures:
        lines.append("Fetch failures:")
        lines.extend(f"  • {failure}" for failure in report.fetch_failures[:10])
    console.print(Panel("\n".join(lines), title=source.name, style="blue"))


def discover_command(
    source_name: str = typer.Argument(..., help="Source name from sources.yaml"),
    use_history: bool = typer.Option(
        False,
        "--history",
        help="Filter candidates against the database URL history",
    ),
) -> None:
    """List candidate article URLs for a source (dry run, nothing is stored)."""
    config = load_config_or_exit()
    source = source_from_config(find_source_config(config, source_name))

    try:
        if use_history:
            with get_connection(config.get_db_config()) as conn:
                stored = SourceManager().get_source_by_name(conn, source_name)
                if stored is None:
                    console.print("[yellow]Source not in database yet; history filter skipped[/yellow]")
                else:
                    source = stored
                candidates, report = asyncio.run(discover_candidates(config, source, UrlHistoryStore(conn)))
        else:
            candidates, report = asyncio.run(discover_candidates(config, source))
    except Exception as e:
        console.print(f"[red]Discovery failed: {e}[/red]")
        raise typer.Exit(1)

    print_discovery_report(source, report)
    if not candidates:
        raise typer.Exit(1)

    table = Table(title=f"Candidates for {source.name}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Via", style="magenta")
    table.add_column("Title", style="cyan")
    table.add_column("Published", style="green")
    table.add_column("URL", style="blue")
    for i, candidate in enumerate(candidates, 1):
        table.add_row(
            str(i),
            candidate.strategy.value,
            (candidate.title or "-")[:60],
            candidate.published.strftime("%Y-%m-%d") if candidate.published else "-",
            candidate.normalized_url,
        )
    console.print(table)


async def _fetch(config: Config, url: str):
    async with ArticleFetcher(config.config.fetcher) as fetcher:
        return await fetcher.fetch(url)


def extract_command(
    url: str = typer.Argument(..., help="Article URL"),
    source_name: Optional[str] = typer.Option(
        None, "--source", "-s", help="Use this source's selector overrides"
    ),
    show_body: bool = typer.Option(False, "--body", help="Print the extracted body"),
) -> None:
    """Fetch, extract and validate a single article URL (dry run)."""
    config = load_config_or_exit()
    settings = config.config

    overrides = None
    min_paragraphs = None
    if source_name:
        source = find_source_config(config, source_name)
        overrides = source.scraping_config.selectors
        min_paragraphs = source.scraping_config.min_paragraphs

    result = asyncio.run(_fetch(config, url))
    if not result.success:
        console.print(f"[red]❌ Fetch failed ({result.kind.value}) after {result.attempts} attempt(s)[/red]")
        if result.message:
            console.print(f"[dim]{result.message}[/dim]")
        raise typer.Exit(1)

    extractor = SelectorExtractor(
        resolve_selectors(extract_domain(result.final_url), overrides),
        substantial_words=settings.extraction.substantial_words,
    )
    article = extractor.extract(result.html, result.final_url)
    if not article.success:
        console.print(f"[red]❌ Extraction failed: {article.reason}[/red]")
        console.print(f"[dim]Tried: {', '.join(article.tried) or '-'}[/dim]")
        raise typer.Exit(1)

    validation = ContentValidator(settings.validation).validate(article, min_paragraphs=min_paragraphs)

    table = Table(title="Extraction", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("URL", result.final_url)
    table.add_row("Title", article.title or "[dim]-[/dim]")
    table.add_row("Author", article.author or "[dim]-[/dim]")
    table.add_row("Published", article.published_at.isoformat() if article.published_at else "[dim]-[/dim]")
    table.add_row("Method", article.extraction_method)
    table.add_row("Confidence", f"{article.confidence:.2f}" + (" (low)" if article.low_confidence else ""))
    table.add_row("Words / paragraphs", f"{article.word_count} / {article.paragraph_count}")
    table.add_row("Quality score", str(validation.quality_score))
    table.add_row("Verdict", f"{validation.verdict.value} ({validation.describe()})")
    table.add_row("Fetch", f"{result.status_code} in {result.elapsed_ms} ms, {result.attempts} attempt(s)")
    console.print(table)

    if show_body:
        console.print(Panel(article.body, title=article.title or url))

    if not validation.passed:
        raise typer.Exit(1)
