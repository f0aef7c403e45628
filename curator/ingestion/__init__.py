"""Discovery, fetching and extraction."""

from .discovery import (
    DiscoveryChain,
    DiscoveryReport,
    DiscoveryRun,
    find_semantic_article_links,
    parse_listing_links,
    parse_robots_sitemaps,
    parse_sitemap,
)
from .extractor import SelectorExtractor
from .fetcher import ArticleFetcher
from .models import (
    CandidateURL,
    DiscoveryStrategy,
    ExtractedArticle,
    ExtractionFailure,
    FeedResult,
    FetchedPage,
    FetchFailure,
    FetchFailureKind,
)
from .rss_fetcher import find_feed_links, parse_feed
from .site_patterns import SelectorSet, resolve_selectors
from .throttle import SourceThrottle
from .url_utils import normalize_url

__all__ = [
    "ArticleFetcher",
    "CandidateURL",
    "DiscoveryChain",
    "DiscoveryReport",
    "DiscoveryRun",
    "DiscoveryStrategy",
    "ExtractedArticle",
    "ExtractionFailure",
    "FeedResult",
    "FetchedPage",
    "FetchFailure",
    "FetchFailureKind",
    "SelectorExtractor",
    "SelectorSet",
    "SourceThrottle",
    "find_feed_links",
    "find_semantic_article_links",
    "normalize_url",
    "parse_feed",
    "parse_listing_links",
    "parse_robots_sitemaps",
    "parse_sitemap",
    "resolve_selectors",
]
