"""Pipeline orchestrator that runs due sources concurrently."""

import asyncio
import logging
import signal
import time
from datetime import datetime, timezone
from typing import List, Optional

from psycopg import Connection
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from ..config import Config, load_sources, load_topics
from ..db import (
    ArticleStorage,
    ErrorLog,
    RunManager,
    SourceManager,
    UrlHistoryStore,
    get_connection,
)
from ..errors import SourceBusyError
from ..health import is_due
from ..ingestion.fetcher import ArticleFetcher
from ..models import ContentSource
from .runner import SourceRunner, SourceRunResult

logger = logging.getLogger(__name__)
console = Console()

STATUS_STYLES = {
    "success": "[green]✓ success[/green]",
    "failed": "[red]✗ failed[/red]",
    "busy": "[yellow]… busy[/yellow]",
    "cancelled": "[yellow]cancelled[/yellow]",
}


class PipelineOrchestrator:
    """Select due sources and run them through the pipeline."""

    def __init__(self, config: Config):
        """Initialize pipeline orchestrator."""
        self.config = config
        self.results: List[SourceRunResult] = []
        self.cancel_event: Optional[asyncio.Event] = None

    def sync_sources(self, conn: Connection) -> None:
        """Sync topics and sources from sources.yaml when it exists."""
        sources_path = self.config.sources_path
        if not sources_path.exists():
            logger.debug("No sources file at %s; using database sources", sources_path)
            return

        manager = SourceManager()
        topic_map = manager.sync_topics(conn, load_topics(sources_path))
        source_map = manager.sync_sources(conn, load_sources(sources_path), topic_map)
        logger.info("Synced %d topics and %d sources", len(topic_map), len(source_map))

    def select_sources(
        self,
        conn: Connection,
        source_name: Optional[str] = None,
        force: bool = False,
        now: Optional[datetime] = None,
    ) -> List[ContentSource]:
        """Sources to run: one named source, or every active source that is due."""
        manager = SourceManager()
        if source_name:
            source = manager.get_source_by_name(conn, source_name)
            if source is None:
                raise ValueError(f"Source '{source_name}' not found")
            if not source.is_active and not force:
                raise ValueError(f"Source '{source_name}' is offline; activate it or use --force")
            return [source]

        now = now or datetime.now(timezone.utc)
        sources = manager.get_sources(conn, active_only=True)
        if not force:
            sources = [s for s in sources if is_due(s, now, self.config.config.health)]
        return sources[: self.config.config.pipeline.max_sources_per_run]

    async def run_sources(
        self,
        runner: SourceRunner,
        sources: List[ContentSource],
        progress: Optional[Progress] = None,
    ) -> List[SourceRunResult]:
        """Run sources concurrently; busy sources are reported, not raced."""
        task = progress.add_task("Scraping sources", total=len(sources)) if progress else None

        async def run_one(source: ContentSource) -> SourceRunResult:
            try:
                return await runner.run_source(source, self.cancel_event)
            except SourceBusyError:
                logger.info("Source %s is busy; skipping", source.name)
                return SourceRunResult(source_id=source.id, source_name=source.name, status="busy")
            except Exception as e:
                runner.rollback()
                logger.exception("Run for %s failed", source.name)
                runner.error_log.log_error("source_run_error", {"source_id": source.id, "error": str(e)}, "high")
                return SourceRunResult(
                    source_id=source.id, source_name=source.name, status="failed", error=str(e)
                )
            finally:
                if progress is not None:
                    progress.advance(task, 1)

        return list(await asyncio.gather(*(run_one(s) for s in sources)))

    async def _run_async(self, conn: Connection, sources: List[ContentSource]) -> List[SourceRunResult]:
        self.cancel_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, self.cancel_event.set)
        except (NotImplementedError, RuntimeError):
            pass

        fetcher_config = self.config.config.fetcher
        try:
            async with ArticleFetcher(fetcher_config) as fetcher:
                runner = SourceRunner(
                    config=self.config.config,
                    fetcher=fetcher,
                    conn=conn,
                    source_manager=SourceManager(),
                    article_storage=ArticleStorage(),
                    run_manager=RunManager(),
                    history=UrlHistoryStore(conn),
                    error_log=ErrorLog(conn),
                )
                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    BarColumn(),
                    TextColumn("{task.completed}/{task.total}"),
                    TimeElapsedColumn(),
                    console=console,
                ) as progress:
                    return await self.run_sources(runner, sources, progress)
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except (NotImplementedError, RuntimeError):
                pass

    def run(self, source_name: Optional[str] = None, force: bool = False) -> bool:
        """
        Run the pipeline for due sources.

        Returns:
            True if no source run failed, False otherwise
        """
        start_time = time.time()
        console.print(Panel.fit("📰 Topic Curator Pipeline", style="bold blue"))

        db_config = self.config.get_db_config()
        with get_connection(db_config) as conn:
            self.sync_sources(conn)
            sources = self.select_sources(conn, source_name, force)
            if not sources:
                console.print("[yellow]No sources are due. Use --force to run anyway.[/yellow]")
                return True

            console.print(f"Running {len(sources)} source(s)")
            self.results = asyncio.run(self._run_async(conn, sources))

        print_run_summary(self.results, time.time() - start_time)
        return not any(r.status == "failed" for r in self.results)


def print_run_summary(results: List[SourceRunResult], duration: float) -> None:
    """Print per-source results."""
    table = Table(title="Pipeline Summary")
    table.add_column("Source", style="cyan")
    table.add_column("Status", style="bold")
    table.add_column("Strategy", style="dim")
    table.add_column("Found", justify="right")
    table.add_column("Stored", justify="right", style="green")
    table.add_column("Degraded", justify="right", style="yellow")
    table.add_column("Dupes", justify="right")
    table.add_column("Rejected", justify="right")
    table.add_column("Fetch fail", justify="right", style="red")
    table.add_column("Details", style="dim")

    for r in results:
        table.add_row(
            r.source_name,
            STATUS_STYLES.get(r.status, r.status),
            r.strategy or "-",
            str(r.discovered),
            str(r.stored),
            str(r.degraded),
            str(r.duplicates),
            str(r.rejected + r.extraction_failed),
            str(r.fetch_failed),
            r.error or "",
        )

    console.print("\n")
    console.print(table)

    failed = [r.source_name for r in results if r.status == "failed"]
    stored = sum(r.stored for r in results)
    review = sum(r.flagged_for_review for r in results)
    if failed:
        console.print(
            Panel(
                f"[red]❌ {len(failed)} source(s) failed: {', '.join(failed)}[/red]\n\n"
                f"Stored: {stored} • Flagged for review: {review}\n"
                f"Duration: {duration:.1f} seconds\n"
                f"Check logs and `curator sources health` for details.",
                style="red",
            )
        )
    else:
        console.print(
            Panel(
                f"[green]✅ Pipeline completed[/green]\n\n"
                f"Stored: {stored} • Flagged for review: {review}\n"
                f"Duration: {duration:.1f} seconds",
                style="green",
            )
        )
