"""Per-source run: discover, fetch, extract, validate, dedupe, store."""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Tuple

import psycopg

from ..config.models import ConfigModel
from ..db.articles import DuplicateConflict
from ..dedup import ArticleFingerprint, DuplicateDetector, DuplicateMethod
from ..errors import SourceBusyError
from ..ingestion.discovery import DiscoveryChain
from ..ingestion.extractor import SelectorExtractor, calculate_quality_score
from ..ingestion.fetcher import ArticleFetcher
from ..ingestion.models import CandidateURL, ExtractedArticle, FetchedPage
from ..ingestion.site_patterns import resolve_selectors
from ..ingestion.throttle import SourceThrottle
from ..models import Article, ContentSource
from ..quality import ContentValidator, ValidationResult, Verdict
from ..scoring import RelevanceScorer

logger = logging.getLogger(__name__)

RSS_SUMMARY_METHOD = "rss_summary"
EXACT_METHODS = {DuplicateMethod.CHECKSUM}


@dataclass
class SourceRunResult:
    """Statistics for one source run."""

    source_id: Optional[int]
    source_name: str
    status: str = "running"
    discovered: int = 0
    fetched: int = 0
    fetch_failed: int = 0
    stored: int = 0
    degraded: int = 0
    duplicates: int = 0
    near_duplicates: int = 0
    rejected: int = 0
    flagged_for_review: int = 0
    extraction_failed: int = 0
    errors: int = 0
    strategy: Optional[str] = None
    error: Optional[str] = None
    duration: float = 0.0
    response_times_ms: List[int] = field(default_factory=list, repr=False)

    @property
    def avg_response_time_ms(self) -> Optional[int]:
        if not self.response_times_ms:
            return None
        return int(sum(self.response_times_ms) / len(self.response_times_ms))

    def stats(self) -> Dict:
        data = asdict(self)
        data.pop("response_times_ms")
        data["avg_response_time_ms"] = self.avg_response_time_ms
        return data


@dataclass
class _RunContext:
    source: ContentSource
    result: SourceRunResult
    extractor: SelectorExtractor
    throttle: SourceThrottle
    relevance: RelevanceScorer
    corpus: List[ArticleFingerprint]


class SourceRunner:
    """Run the per-source pipeline against injected collaborators.

    Storage collaborators follow the database managers' interface and are
    called with ``conn`` as their first argument; ``history`` and
    ``error_log`` are bound to their connection.
    """

    def __init__(
        self,
        config: ConfigModel,
        fetcher: ArticleFetcher,
        conn,
        source_manager,
        article_storage,
        run_manager,
        history,
        error_log,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.conn = conn
        self.source_manager = source_manager
        self.article_storage = article_storage
        self.run_manager = run_manager
        self.history = history
        self.error_log = error_log

        self.discovery = DiscoveryChain(fetcher, config.discovery, history)
        self.validator = ContentValidator(config.validation)
        self.detector = DuplicateDetector(config.duplicates)
        self._locks: Dict[int, asyncio.Lock] = {}

    def rollback(self) -> None:
        """Clear a failed transaction on the shared connection."""
        if self.conn is None:
            return
        try:
            self.conn.rollback()
        except psycopg.Error:
            logger.exception("Rollback failed")

    # Extraction

    async def _extract_validated(
        self,
        ctx: _RunContext,
        page: FetchedPage,
        candidate: CandidateURL,
    ) -> Tuple[Optional[ExtractedArticle], Optional[ValidationResult]]:
        """Extract and validate, retrying alternate strategies on RETRY."""
        skip: List[str] = []
        article = None
        validation = None

        for _ in range(self.config.extraction.max_retries + 1):
            extracted = await asyncio.to_thread(ctx.extractor.extract, page.html, page.final_url, skip=skip)
            if not extracted.success:
                logger.info("Extraction failed for %s: %s", candidate.url, extracted.reason)
                return article, validation

            if not extracted.title and candidate.title:
                extracted = extracted.model_copy(update={"title": candidate.title})
            if extracted.published_at is None and candidate.published is not None:
                extracted = extracted.model_copy(update={"published_at": candidate.published})

            article = extracted
            validation = self.validator.validate(
                extracted, min_paragraphs=ctx.source.scraping_config.min_paragraphs
            )
            if validation.verdict != Verdict.RETRY:
                break
            skip.append(extracted.extraction_method)
            logger.debug(
                "Re-extracting %s without %s (%s)",
                candidate.url,
                extracted.extraction_method,
                validation.describe(),
            )

        return article, validation

    def summary_fallback(self, candidate: CandidateURL) -> Optional[ExtractedArticle]:
        """Degraded article from the feed summary, if the feed carried one."""
        if not self.config.pipeline.rss_summary_fallback or not candidate.summary:
            return None
        title = candidate.title or ""
        return ExtractedArticle(
            url=candidate.url,
            title=title,
            body=candidate.summary,
            author=candidate.author,
            published_at=candidate.published,
            extraction_method=RSS_SUMMARY_METHOD,
            confidence=0.2,
            low_confidence=True,
            quality_score=calculate_quality_score(candidate.summary, title),
            degraded=True,
        )

    # Storage

    def _store(self, ctx: _RunContext, candidate: CandidateURL, extracted: ExtractedArticle, status: str) -> str:
        """Dedupe and persist; returns the URL history status."""
        source = ctx.source
        result = ctx.result

        fingerprint = ArticleFingerprint(
            article_id=None,
            normalized_url=candidate.normalized_url,
            body=extracted.body,
        )
        matches = self.detector.find_duplicates(fingerprint, ctx.corpus)
        exact = [m for m in matches if m.method in EXACT_METHODS]
        if exact:
            result.duplicates += 1
            logger.info("Skipping %s: same content as article %s", candidate.url, exact[0].duplicate_id)
            return "duplicate"

        article = Article(
            source_id=source.id,
            topic_id=source.topic_ids[0] if source.topic_ids else None,
            url=candidate.url,
            normalized_url=candidate.normalized_url,
            title=extracted.title or candidate.normalized_url,
            body=extracted.body,
            author=extracted.author,
            published_at=extracted.published_at,
            word_count=extracted.word_count,
            extraction_method=extracted.extraction_method,
            quality_score=extracted.quality_score,
            relevance_score=ctx.relevance.score(extracted.title, extracted.body, extracted.published_at),
            content_checksum=fingerprint.checksum,
            status=status,
        )

        saved = self.article_storage.save_article(self.conn, article)
        if isinstance(saved, DuplicateConflict):
            result.duplicates += 1
            logger.info("Skipping %s: %s conflict with article %s", candidate.url, saved.method, saved.existing_id)
            return "duplicate"

        fingerprint.article_id = saved
        ctx.corpus.append(fingerprint)
        near = [m for m in matches if m.method not in EXACT_METHODS]
        if near:
            result.near_duplicates += self.article_storage.record_duplicates(self.conn, saved, near)

        result.stored += 1
        if status != "new":
            result.flagged_for_review += 1
        if extracted.degraded:
            result.degraded += 1
            return "degraded"
        return "stored"

    # Candidate processing

    async def _process_candidate(self, ctx: _RunContext, candidate: CandidateURL) -> None:
        result = ctx.result
        source = ctx.source

        page = await self.fetcher.fetch(candidate.url, ctx.throttle)
        if not page.success:
            result.fetch_failed += 1
            self.error_log.log_error(
                "fetch_failed",
                {
                    "url": candidate.url,
                    "source_id": source.id,
                    "kind": page.kind.value,
                    "message": page.message,
                    "attempts": page.attempts,
                },
                "low",
            )
            extracted = self.summary_fallback(candidate)
            if extracted is None:
                self.history.mark_seen(candidate.normalized_url, source.id, "failed")
                return
            status = self._store(ctx, candidate, extracted, "degraded")
            self.history.mark_seen(candidate.normalized_url, source.id, status)
            return

        result.fetched += 1
        result.response_times_ms.append(page.elapsed_ms)

        extracted, validation = await self._extract_validated(ctx, page, candidate)
        if validation is None or not validation.passed:
            if extracted is None:
                result.extraction_failed += 1
                reason = "no_content"
            else:
                result.rejected += 1
                reason = validation.describe()
            self.error_log.log_error(
                "extraction_rejected",
                {"url": candidate.url, "source_id": source.id, "reason": reason},
                "low",
            )

            fallback = self.summary_fallback(candidate)
            if fallback is None:
                self.history.mark_seen(candidate.normalized_url, source.id, "rejected")
                return
            status = self._store(ctx, candidate, fallback, "degraded")
            self.history.mark_seen(candidate.normalized_url, source.id, status)
            return

        status = "needs_review" if extracted.low_confidence else "new"
        history_status = self._store(ctx, candidate, extracted, status)
        self.history.mark_seen(candidate.normalized_url, source.id, history_status)

    # Source run

    async def run_source(
        self,
        source: ContentSource,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> SourceRunResult:
        """
        Run the pipeline for one source.

        Raises:
            SourceBusyError: if a run for this source is already in progress
        """
        lock = self._locks.setdefault(source.id, asyncio.Lock())
        if lock.locked():
            raise SourceBusyError(source.id)
        async with lock:
            # other processes sharing the database
            if not self.source_manager.try_lock_source(self.conn, source.id):
                raise SourceBusyError(source.id)
            try:
                return await self._run_locked(source, cancel_event or asyncio.Event())
            except Exception:
                self.rollback()
                raise
            finally:
                self.source_manager.unlock_source(self.conn, source.id)

    async def _run_locked(self, source: ContentSource, cancel_event: asyncio.Event) -> SourceRunResult:
        started = time.monotonic()
        result = SourceRunResult(source_id=source.id, source_name=source.name)
        run_id = self.run_manager.create_run(self.conn, source.id)

        ctx = _RunContext(
            source=source,
            result=result,
            extractor=SelectorExtractor(
                resolve_selectors(source.canonical_domain, source.scraping_config.selectors),
                substantial_words=self.config.extraction.substantial_words,
            ),
            throttle=SourceThrottle(self.config.fetcher.min_request_interval),
            relevance=RelevanceScorer(self.config.relevance, source.topic_keywords),
            corpus=self.article_storage.get_recent_fingerprints(
                self.conn, self.config.duplicates.corpus_days, self.config.duplicates.corpus_limit
            ),
        )

        run = self.discovery.discover(source, ctx.throttle, cancel_event)
        try:
            async for candidate in run:
                if cancel_event.is_set():
                    break
                result.discovered += 1
                try:
                    await self._process_candidate(ctx, candidate)
                except Exception as e:
                    result.errors += 1
                    self.rollback()
                    logger.exception("Failed to process %s for %s", candidate.url, source.name)
                    self.error_log.log_error(
                        "candidate_error",
                        {"url": candidate.url, "source_id": source.id, "error": str(e)},
                        "medium",
                    )
        except Exception as e:
            result.error = f"Discovery failed: {e}"
            self.rollback()
            logger.exception("Discovery failed for %s", source.name)
            self.error_log.log_error(
                "discovery_error", {"source_id": source.id, "error": str(e)}, "high"
            )

        cancelled = cancel_event.is_set()
        report = run.report
        result.strategy = report.productive_strategy

        success, error_message = self._assess_run(result, report.reachable, report.fetch_failures)
        if cancelled and not result.fetched and not result.fetch_failed:
            logger.info("Run for %s cancelled before any fetch", source.name)
        else:
            self.source_manager.update_source_health(
                self.conn, source.id, success, result.avg_response_time_ms, error_message
            )

        if cancelled:
            result.status = "cancelled"
        else:
            result.status = "success" if success else "failed"
        if error_message and not result.error:
            result.error = error_message
        result.duration = round(time.monotonic() - started, 2)

        self.run_manager.update_run_status(self.conn, run_id, result.status, result.stats())
        logger.info(
            "Source %s: %s (%d discovered, %d stored, %d failed)",
            source.name,
            result.status,
            result.discovered,
            result.stored,
            result.fetch_failed,
        )
        return result

    def _assess_run(self, result: SourceRunResult, reachable: bool, failures: List[str]) -> Tuple[bool, Optional[str]]:
        """Whether the run counts as a successful scrape for health tracking."""
        if result.error:
            return False, result.error
        if not reachable and not result.fetched:
            detail = "; ".join(failures[:3]) or "no pages fetched"
            return False, f"Could not reach source: {detail}"
        if result.fetch_failed and not result.fetched:
            return False, f"All {result.fetch_failed} article fetches failed"
        return True, None
