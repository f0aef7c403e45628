"""Configuration models."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:109.0) Gecko/20100101 Firefox/121.0",
]

DEFAULT_BLACKLIST_PHRASES = [
    "we use cookies",
    "accept all cookies",
    "cookie policy",
    "cookie settings",
    "your privacy choices",
    "gdpr",
    "consent to the use",
    "advertisement",
    "sponsored content",
    "subscribe to our newsletter",
    "sign up for our newsletter",
    "enable javascript",
    "please turn off your ad blocker",
]


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("curator", description="Database name")
    user: str = Field("curator", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")


class FetcherConfig(BaseModel):
    """HTTP fetch behaviour."""

    timeout: float = Field(15.0, description="Hard per-request timeout in seconds", gt=0)
    max_attempts: int = Field(3, description="Attempts per URL including the first", ge=1, le=10)
    retry_delays: List[float] = Field(
        default_factory=lambda: [1.0, 3.0, 5.0],
        description="Backoff delays between attempts, in seconds",
    )
    min_request_interval: float = Field(
        2.0, description="Minimum seconds between requests to the same source", ge=0
    )
    max_body_bytes: int = Field(5 * 1024 * 1024, description="Response size cap", gt=0)
    max_concurrent: int = Field(3, description="In-flight fetches system-wide", ge=1)
    user_agents: List[str] = Field(default_factory=lambda: list(DEFAULT_USER_AGENTS))
    paywall_indicators: List[str] = Field(
        default_factory=lambda: [
            "subscribe to read",
            "subscribe to continue reading",
            "members only",
            "this article is for subscribers",
            "already a subscriber?",
        ]
    )

    @field_validator("retry_delays")
    @classmethod
    def validate_delays(cls, v: List[float]) -> List[float]:
        """Require at least one non-negative delay."""
        if not v:
            raise ValueError("retry_delays must not be empty")
        if any(d < 0 for d in v):
            raise ValueError("retry_delays must be non-negative")
        return v

    @field_validator("user_agents")
    @classmethod
    def validate_user_agents(cls, v: List[str]) -> List[str]:
        """Require a non-empty user agent pool."""
        if not v:
            raise ValueError("user_agents must not be empty")
        return v


class DiscoveryConfig(BaseModel):
    """Candidate discovery limits."""

    max_candidates: int = Field(20, description="Candidate cap per strategy per run", ge=1, le=500)
    sitemap_recency_days: int = Field(30, ge=1)
    recheck_window_hours: int = Field(
        168, description="Skip URLs seen more recently than this", ge=0
    )
    feed_paths: List[str] = Field(
        default_factory=lambda: ["/feed", "/rss.xml", "/atom.xml", "/feed.xml", "/rss"]
    )
    sitemap_paths: List[str] = Field(
        default_factory=lambda: ["/sitemap.xml", "/sitemap_index.xml"]
    )


class ExtractionConfig(BaseModel):
    """Selector extraction thresholds."""

    substantial_words: int = Field(
        100, description="Word count that marks a selector match as real content", ge=1
    )
    max_retries: int = Field(
        2, description="Alternate extraction attempts after a RETRY verdict", ge=0
    )


class ValidationConfig(BaseModel):
    """Quality gate thresholds."""

    min_word_count_hard_fail: int = Field(50, ge=0)
    min_word_count_quality_target: int = Field(200, ge=0)
    max_word_count: int = Field(10_000, ge=1)
    min_paragraphs: int = Field(2, ge=0)
    title_min_length: int = Field(10, ge=0)
    title_max_length: int = Field(200, ge=1)
    max_markup_ratio: float = Field(0.30, ge=0.0, le=1.0)
    blacklist_phrases: List[str] = Field(default_factory=lambda: list(DEFAULT_BLACKLIST_PHRASES))


class DuplicateConfig(BaseModel):
    """Duplicate detection settings."""

    near_duplicate_threshold: float = Field(0.8, ge=0.0, le=1.0)
    shingle_size: int = Field(3, ge=1, le=10)
    corpus_days: int = Field(14, description="Days of stored articles to compare against", ge=1)
    corpus_limit: int = Field(500, ge=1)


class HealthConfig(BaseModel):
    """Source health thresholds and backoff."""

    failing_threshold: int = Field(3, ge=1)
    stale_hours: int = Field(48, ge=1)
    backoff_factor: float = Field(2.0, ge=1.0)
    max_backoff_hours: int = Field(168, ge=1)


class RelevanceConfig(BaseModel):
    """Relevance scoring weights."""

    keyword_weight: float = Field(0.7, ge=0.0, le=1.0)
    recency_weight: float = Field(0.3, ge=0.0, le=1.0)
    recency_half_life_hours: float = Field(48.0, gt=0)

    @field_validator("recency_weight")
    @classmethod
    def validate_weights(cls, v: float, info) -> float:
        """Validate that weights sum to 1.0."""
        total = info.data.get("keyword_weight", 0.7) + v
        if abs(total - 1.0) > 0.001:
            raise ValueError(f"Weights must sum to 1.0, got {total}")
        return v


class PipelineConfig(BaseModel):
    """Pipeline behaviour."""

    rss_summary_fallback: bool = Field(
        True, description="Store RSS summaries as degraded content when extraction fails"
    )
    max_sources_per_run: int = Field(50, ge=1)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field("INFO", description="Log level")
    file: Optional[str] = Field(None, description="Optional rotating log file")


class ConfigModel(BaseModel):
    """Main configuration model."""

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    duplicates: DuplicateConfig = Field(default_factory=DuplicateConfig)
    health: HealthConfig = Field(default_factory=HealthConfig)
    relevance: RelevanceConfig = Field(default_factory=RelevanceConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class SelectorOverrides(BaseModel):
    """Per-source CSS selector overrides, tried before built-in selectors."""

    title: List[str] = Field(default_factory=list)
    body: List[str] = Field(default_factory=list)
    date: List[str] = Field(default_factory=list)
    author: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)


class ScrapingConfig(BaseModel):
    """Per-source scraping configuration."""

    selectors: SelectorOverrides = Field(default_factory=SelectorOverrides)
    trusted_max_age_days: Optional[int] = Field(
        None, description="Skip feed entries older than this many days", ge=1
    )
    max_candidates: Optional[int] = Field(None, ge=1, le=500)
    listing_paths: List[str] = Field(
        default_factory=list, description="Listing pages for HTML discovery"
    )
    min_paragraphs: Optional[int] = Field(
        None, description="Lower paragraph floor for snippet-style sources", ge=0
    )
    recheck_window_hours: Optional[int] = Field(None, ge=0)


class SourceConfig(BaseModel):
    """Source configuration from sources.yaml."""

    name: str = Field(..., description="Source name")
    url: str = Field(..., description="Homepage URL")
    feed_url: Optional[str] = Field(None, description="RSS/Atom feed URL")
    scraping_method: str = Field("auto", description="auto, rss, html, sitemap")
    topics: List[str] = Field(default_factory=list, description="Topic names")
    enabled: bool = Field(True, description="Whether source is active")
    whitelisted: bool = Field(False)
    blacklisted: bool = Field(False)
    scrape_frequency_hours: int = Field(12, ge=1, le=24 * 30)
    scraping_config: ScrapingConfig = Field(default_factory=ScrapingConfig)

    @field_validator("scraping_method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Restrict scraping method to known strategies."""
        allowed = {"auto", "rss", "html", "sitemap", "heuristic"}
        if v not in allowed:
            raise ValueError(f"scraping_method must be one of {sorted(allowed)}")
        return v


class TopicConfig(BaseModel):
    """Topic configuration from sources.yaml."""

    name: str = Field(..., description="Topic name")
    keywords: List[str] = Field(default_factory=list)
    active: bool = Field(True)

    @property
    def slug(self) -> str:
        """URL-safe topic identifier."""
        return "-".join(self.name.lower().split())


