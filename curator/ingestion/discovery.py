"""Candidate URL discovery: RSS, listing links, sitemaps, semantic HTML."""

import asyncio
import logging
from contextlib import aclosing
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Callable, Dict, Iterable, List, Optional, Protocol, Sequence

from bs4 import BeautifulSoup

from ..config.models import DiscoveryConfig
from ..errors import InvalidUrlError
from ..models.source import ContentSource
from .fetcher import ArticleFetcher
from .models import CandidateURL, DiscoveryStrategy
from .rss_fetcher import find_feed_links, parse_feed
from .text_utils import normalize_whitespace, parse_datetime
from .throttle import SourceThrottle
from .url_utils import is_likely_article_url, is_same_site, normalize_url

logger = logging.getLogger(__name__)

LISTING_LINK_SELECTORS = (
    'a[href*="/article/"]',
    'a[href*="/news/"]',
    ".entry-title a",
    "h2 a",
    "h3 a",
    "h1 a",
)

SEMANTIC_BLOCK_SELECTORS = (
    "article",
    "[itemtype*=Article]",
    "[role=article]",
)

STRATEGY_ORDER = (
    DiscoveryStrategy.RSS,
    DiscoveryStrategy.HTML,
    DiscoveryStrategy.SITEMAP,
    DiscoveryStrategy.HEURISTIC,
)

MAX_CHILD_SITEMAPS = 5


class HistoryFilter(Protocol):
    """Lookups discovery uses to avoid re-yielding known URLs."""

    def is_recently_seen(self, normalized_url: str, source_id: int, window_hours: int) -> bool: ...

    def is_discarded(self, normalized_url: str, topic_ids: Sequence[int]) -> bool: ...


@dataclass
class SitemapEntry:
    loc: str
    lastmod: Optional[datetime] = None


@dataclass
class SitemapDocument:
    """Parsed sitemap: either page URLs or child sitemaps (index)."""

    urls: List[SitemapEntry] = field(default_factory=list)
    sitemaps: List[SitemapEntry] = field(default_factory=list)

    @property
    def is_index(self) -> bool:
        return bool(self.sitemaps)


@dataclass
class DiscoveryReport:
    """What a discovery run did, available after iteration."""

    strategies_tried: List[str] = field(default_factory=list)
    productive_strategy: Optional[str] = None
    pages_fetched: int = 0
    fetch_failures: List[str] = field(default_factory=list)
    filtered: int = 0
    yielded: int = 0

    @property
    def reachable(self) -> bool:
        """Whether any page of the source could be fetched."""
        return self.pages_fetched > 0


# Pure parsers


def _candidate(
    href: str,
    base_url: str,
    strategy: DiscoveryStrategy,
    title: Optional[str] = None,
    published: Optional[datetime] = None,
) -> Optional[CandidateURL]:
    try:
        normalized = normalize_url(href, base_url)
    except InvalidUrlError as e:
        logger.debug("Skipping link on %s: %s", base_url, e)
        return None
    return CandidateURL(
        url=href,
        normalized_url=normalized,
        strategy=strategy,
        title=title or None,
        published=published,
    )


def _base_href(soup: BeautifulSoup, page_url: str) -> str:
    base = soup.find("base", href=True)
    if base:
        try:
            return normalize_url(base["href"], page_url)
        except InvalidUrlError:
            pass
    return page_url


def parse_listing_links(
    html: str,
    page_url: str,
    selectors: Iterable[str] = LISTING_LINK_SELECTORS,
) -> List[CandidateURL]:
    """Same-site article links from a listing page, in selector priority order."""
    if not html:
        return []
    soup = BeautifulSoup(html, "lxml")
    base_url = _base_href(soup, page_url)

    results: List[CandidateURL] = []
    seen = set()
    for selector in selectors:
        for anchor in soup.select(selector):
            href = anchor.get("href")
            if not href or href.startswith(("#", "mailto:", "javascript:", "tel:")):
                continue
            candidate = _candidate(
                href, base_url, DiscoveryStrategy.HTML, normalize_whitespace(anchor.get_text(" "))
            )
            if candidate is None or candidate.normalized_url in seen:
                continue
            if not is_same_site(candidate.normalized_url, page_url):
                continue
            if not is_likely_article_url(candidate.normalized_url):
                continue
            seen.add(candidate.normalized_url)
            results.append(candidate)
    return results


def find_semantic_article_links(html: str, page_url: str) -> List[CandidateURL]:
    """Links out of ``<article>``-like blocks: the heading link, else the first link."""
    if not html:
        return []
    soup = BeautifulSoup(html, "lxml")
    base_url = _base_href(soup, page_url)

    results: List[CandidateURL] = []
    seen = set()
    for selector in SEMANTIC_BLOCK_SELECTORS:
        for block in soup.select(selector):
            anchor = None
            heading = block.find(["h1", "h2", "h3", "h4"])
            if heading is not None:
                anchor = heading.find("a", href=True)
            if anchor is None:
                anchor = block.find("a", href=True)
            if anchor is None:
                continue

            title = normalize_whitespace((heading or anchor).get_text(" "))
            candidate = _candidate(anchor["href"], base_url, DiscoveryStrategy.HEURISTIC, title)
            if candidate is None or candidate.normalized_url in seen:
                continue
            if not is_same_site(candidate.normalized_url, page_url):
                continue
            time_tag = block.find("time", datetime=True)
            if time_tag is not None:
                candidate.published = parse_datetime(time_tag["datetime"])
            seen.add(candidate.normalized_url)
            results.append(candidate)
    return results


def _sitemap_entries(soup: BeautifulSoup, tag: str) -> List[SitemapEntry]:
    entries = []
    for node in soup.find_all(tag):
        loc = node.find("loc")
        if loc is None or not loc.get_text(strip=True):
            continue
        lastmod = node.find("lastmod")
        entries.append(
            SitemapEntry(
                loc=loc.get_text(strip=True),
                lastmod=parse_datetime(lastmod.get_text(strip=True)) if lastmod else None,
            )
        )
    return entries


def parse_sitemap(text: str) -> SitemapDocument:
    """Parse a sitemap or sitemap index.

    Raises:
        ValueError: if the document is not a sitemap
    """
    soup = BeautifulSoup(text or "", "xml")
    document = SitemapDocument(
        urls=_sitemap_entries(soup, "url"),
        sitemaps=_sitemap_entries(soup, "sitemap"),
    )

    if not document.urls and not document.sitemaps and not soup.find(["urlset", "sitemapindex"]):
        raise ValueError("Not a sitemap document")
    return document


def parse_robots_sitemaps(text: str) -> List[str]:
    """``Sitemap:`` directives from robots.txt."""
    sitemaps = []
    for line in (text or "").splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip().lower() == "sitemap" and value.strip():
            sitemaps.append(value.strip())
    return sitemaps


def recent_sitemap_entries(
    entries: Iterable[SitemapEntry],
    recency_days: int,
    now: Optional[datetime] = None,
) -> List[SitemapEntry]:
    """Entries modified within the window, newest first; undated entries last."""
    entries = list(entries)
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=recency_days)
    dated = sorted(
        (e for e in entries if e.lastmod is not None and e.lastmod >= cutoff),
        key=lambda e: e.lastmod,
        reverse=True,
    )
    undated = [e for e in entries if e.lastmod is None]
    return dated + undated


# Chain


class DiscoveryRun:
    """One lazy, bounded pass over a source's discovery strategies.

    Iterate with ``async for``; ``report`` describes the pass afterwards.
    Pages are only fetched as candidates are consumed.
    """

    def __init__(
        self,
        chain: "DiscoveryChain",
        source: ContentSource,
        throttle: Optional[SourceThrottle],
        cancel_event: Optional[asyncio.Event] = None,
    ):
        self.chain = chain
        self.source = source
        self.throttle = throttle
        self.cancel_event = cancel_event
        self.report = DiscoveryReport()
        self._pages: Dict[str, Optional[str]] = {}

    @property
    def cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()

    @property
    def homepage(self) -> str:
        return self.source.homepage_url

    @property
    def cap(self) -> int:
        return self.source.scraping_config.max_candidates or self.chain.config.max_candidates

    @property
    def recheck_window_hours(self) -> int:
        window = self.source.scraping_config.recheck_window_hours
        return self.chain.config.recheck_window_hours if window is None else window

    def strategy_order(self) -> List[DiscoveryStrategy]:
        method = self.source.scraping_method
        if method in (None, "", "auto"):
            return list(STRATEGY_ORDER)
        preferred = DiscoveryStrategy(method)
        return [preferred] + [s for s in STRATEGY_ORDER if s != preferred]

    async def _get(self, url: str) -> Optional[str]:
        """Fetch a page once per run; None on failure or once cancelled."""
        if url in self._pages:
            return self._pages[url]
        if self.cancelled:
            return None
        result = await self.chain.fetcher.fetch(url, self.throttle, check_paywall=False)
        if result.success:
            self.report.pages_fetched += 1
            self._pages[url] = result.html
        else:
            self.report.fetch_failures.append(f"{url}: {result.kind.value}")
            self._pages[url] = None
        return self._pages[url]

    def _join(self, path: str) -> Optional[str]:
        try:
            return normalize_url(path, self.homepage)
        except InvalidUrlError:
            return None

    def _listing_pages(self) -> List[str]:
        paths = self.source.scraping_config.listing_paths
        pages = [self._join(p) for p in paths] if paths else [self._join(self.homepage)]
        return [p for p in pages if p]

    async def _rss(self) -> AsyncIterator[CandidateURL]:
        feed_urls: List[str] = []
        if self.source.feed_url:
            feed_urls.append(self.source.feed_url)
        else:
            homepage_html = await self._get(self.homepage)
            if homepage_html:
                feed_urls.extend(find_feed_links(homepage_html, self.homepage))
            feed_urls.extend(u for u in map(self._join, self.chain.config.feed_paths) if u)

        max_age = self.source.scraping_config.trusted_max_age_days
        tried = set()
        for feed_url in feed_urls:
            if feed_url in tried:
                continue
            tried.add(feed_url)
            text = await self._get(feed_url)
            if not text:
                continue
            result = parse_feed(text, feed_url, max_age_days=max_age)
            if not result.success:
                logger.info("Feed %s for %s unusable: %s", feed_url, self.source.name, result.error)
                continue
            if result.skipped_old:
                logger.debug("Skipped %d old entries in %s", result.skipped_old, feed_url)
            if result.items:
                for item in result.items:
                    yield item
                return

    async def _html(self) -> AsyncIterator[CandidateURL]:
        for page_url in self._listing_pages():
            html = await self._get(page_url)
            if not html:
                continue
            for candidate in parse_listing_links(html, page_url):
                yield candidate

    async def _sitemap_urls(self) -> List[str]:
        urls: List[str] = []
        robots_url = self._join("/robots.txt")
        if robots_url:
            robots = await self._get(robots_url)
            if robots:
                urls.extend(parse_robots_sitemaps(robots))
        urls.extend(u for u in map(self._join, self.chain.config.sitemap_paths) if u)
        return list(dict.fromkeys(urls))

    async def _load_sitemap(self, url: str) -> Optional[SitemapDocument]:
        text = await self._get(url)
        if not text:
            return None
        try:
            return parse_sitemap(text)
        except ValueError as e:
            logger.info("Sitemap %s for %s unusable: %s", url, self.source.name, e)
            return None

    async def _sitemap(self) -> AsyncIterator[CandidateURL]:
        days = self.chain.config.sitemap_recency_days
        for sitemap_url in await self._sitemap_urls():
            document = await self._load_sitemap(sitemap_url)
            if document is None:
                continue

            entries = list(document.urls)
            # one level of recursion into index files
            for child in recent_sitemap_entries(document.sitemaps, days)[:MAX_CHILD_SITEMAPS]:
                child_document = await self._load_sitemap(child.loc)
                if child_document is not None:
                    entries.extend(child_document.urls)

            found = False
            for entry in recent_sitemap_entries(entries, days):
                candidate = _candidate(entry.loc, sitemap_url, DiscoveryStrategy.SITEMAP, published=entry.lastmod)
                if candidate is None:
                    continue
                if not is_same_site(candidate.normalized_url, self.homepage):
                    continue
                if not is_likely_article_url(candidate.normalized_url):
                    continue
                found = True
                yield candidate
            if found:
                return

    async def _heuristic(self) -> AsyncIterator[CandidateURL]:
        for page_url in self._listing_pages():
            html = await self._get(page_url)
            if not html:
                continue
            for candidate in find_semantic_article_links(html, page_url):
                yield candidate

    def _is_filtered(self, candidate: CandidateURL) -> bool:
        history = self.chain.history
        if history is None or self.source.id is None:
            return False
        if history.is_recently_seen(candidate.normalized_url, self.source.id, self.recheck_window_hours):
            return True
        return bool(self.source.topic_ids) and history.is_discarded(
            candidate.normalized_url, self.source.topic_ids
        )

    def _strategy(self, strategy: DiscoveryStrategy) -> Callable[[], AsyncIterator[CandidateURL]]:
        return {
            DiscoveryStrategy.RSS: self._rss,
            DiscoveryStrategy.HTML: self._html,
            DiscoveryStrategy.SITEMAP: self._sitemap,
            DiscoveryStrategy.HEURISTIC: self._heuristic,
        }[strategy]

    async def _iterate(self) -> AsyncIterator[CandidateURL]:
        self.report = DiscoveryReport()
        seen = set()

        for strategy in self.strategy_order():
            if self.cancelled:
                logger.info("Discovery for %s cancelled", self.source.name)
                return
            self.report.strategies_tried.append(strategy.value)
            produced = 0
            async with aclosing(self._strategy(strategy)()) as candidates:
                async for candidate in candidates:
                    if self.cancelled:
                        return
                    if candidate.normalized_url in seen:
                        continue
                    seen.add(candidate.normalized_url)
                    if self._is_filtered(candidate):
                        self.report.filtered += 1
                        continue
                    produced += 1
                    self.report.yielded += 1
                    yield candidate
                    if produced >= self.cap:
                        break

            if produced:
                self.report.productive_strategy = strategy.value
                logger.info(
                    "Discovered %d candidates for %s via %s", produced, self.source.name, strategy.value
                )
                return
            logger.debug("Strategy %s found nothing for %s", strategy.value, self.source.name)

        logger.info("No candidates found for %s (tried %s)", self.source.name, ", ".join(self.report.strategies_tried))

    def __aiter__(self) -> AsyncIterator[CandidateURL]:
        return self._iterate()

    async def collect(self) -> List[CandidateURL]:
        """Drain the run into a list."""
        return [candidate async for candidate in self]


class DiscoveryChain:
    """Ordered discovery strategies for content sources."""

    def __init__(
        self,
        fetcher: ArticleFetcher,
        config: Optional[DiscoveryConfig] = None,
        history: Optional[HistoryFilter] = None,
    ) -> None:
        self.fetcher = fetcher
        self.config = config or DiscoveryConfig()
        self.history = history

    def discover(
        self,
        source: ContentSource,
        throttle: Optional[SourceThrottle] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> DiscoveryRun:
        """Start a fresh discovery run for a source.

        Once ``cancel_event`` is set the run issues no further page fetches.
        """
        return DiscoveryRun(self, source, throttle, cancel_event)
