"""Content source model."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..config.models import ScrapingConfig
from .base import DBModel


class ContentSource(DBModel):
    """A scrapeable origin (feed or site) and its health counters."""

    name: str = Field(..., description="Source name")
    canonical_domain: str = Field(..., description="Domain without www.")
    homepage_url: str = Field(..., description="Homepage or listing URL")
    feed_url: Optional[str] = Field(None, description="RSS/Atom feed URL")
    scraping_method: str = Field("auto", description="auto, rss, html, sitemap, heuristic")
    is_active: bool = Field(True)
    is_blacklisted: bool = Field(False)
    is_whitelisted: bool = Field(False)
    consecutive_failures: int = Field(0, ge=0)
    total_failures: int = Field(0, ge=0)
    last_failure_at: Optional[datetime] = None
    last_failure_reason: Optional[str] = None
    last_scraped_at: Optional[datetime] = None
    last_successful_scrape: Optional[datetime] = None
    success_rate: float = Field(100.0, ge=0.0, le=100.0, description="Rolling success rate (%)")
    total_scrapes: int = Field(0, ge=0)
    avg_response_time_ms: int = Field(0, ge=0)
    scrape_frequency_hours: int = Field(12, ge=1)
    scraping_config: ScrapingConfig = Field(default_factory=ScrapingConfig)
    topic_ids: List[int] = Field(default_factory=list, description="Linked topics")
    topic_keywords: List[str] = Field(
        default_factory=list, description="Keywords of all linked active topics"
    )
