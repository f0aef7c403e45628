"""Data models for discovery, fetching and extraction."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from .text_utils import count_words, split_paragraphs


class DiscoveryStrategy(str, Enum):
    """Strategy that discovered a candidate URL."""

    RSS = "rss"
    HTML = "html"
    SITEMAP = "sitemap"
    HEURISTIC = "heuristic"


class CandidateURL(BaseModel):
    """A discovered article URL, not yet fetched.

    Feed metadata is carried as a placeholder only; the summary is used as
    degraded content when full extraction fails, never as the article body.
    """

    url: str = Field(..., description="URL as discovered")
    normalized_url: str = Field(..., description="Normalized URL")
    strategy: DiscoveryStrategy = Field(..., description="Strategy that found the URL")
    title: Optional[str] = Field(None, description="Feed/listing title")
    published: Optional[datetime] = Field(None, description="Feed publication date")
    author: Optional[str] = Field(None, description="Feed author")
    summary: Optional[str] = Field(None, description="Feed description/summary")


class FetchFailureKind(str, Enum):
    """Terminal fetch failure categories."""

    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    HTTP_5XX = "http_5xx"
    RATE_LIMITED = "rate_limited"
    ACCESS_DENIED = "access_denied"
    PAYWALL_DETECTED = "paywall_detected"
    TOO_LARGE = "too_large"
    HTTP_ERROR = "http_error"

    @property
    def retryable(self) -> bool:
        """Whether another attempt may succeed."""
        return self in RETRYABLE_KINDS


RETRYABLE_KINDS = frozenset(
    {
        FetchFailureKind.TIMEOUT,
        FetchFailureKind.NETWORK_ERROR,
        FetchFailureKind.HTTP_5XX,
        FetchFailureKind.RATE_LIMITED,
    }
)


class FetchedPage(BaseModel):
    """Successful fetch of a page."""

    url: str = Field(..., description="Requested URL")
    final_url: str = Field(..., description="URL after redirects")
    status_code: int = Field(...)
    html: str = Field(..., description="Decoded response body")
    elapsed_ms: int = Field(0, description="Time spent on the successful attempt")
    attempts: int = Field(1, description="Attempts used")

    @property
    def success(self) -> bool:
        return True


class FetchFailure(BaseModel):
    """Terminal fetch failure after the retry policy was applied."""

    url: str = Field(...)
    kind: FetchFailureKind = Field(...)
    message: str = Field("", description="Human-readable detail")
    status_code: Optional[int] = Field(None)
    attempts: int = Field(1)
    elapsed_ms: int = Field(0)

    @property
    def success(self) -> bool:
        return False


class ExtractionFailure(BaseModel):
    """No usable body could be extracted from the page."""

    url: str = Field(...)
    reason: str = Field(..., description="Why extraction failed")
    tried: list[str] = Field(default_factory=list, description="Methods attempted")

    @property
    def success(self) -> bool:
        return False


class ExtractedArticle(BaseModel):
    """Structured article fields extracted from a page.

    ``word_count`` and ``paragraph_count`` are always derived from ``body``;
    an empty body is rejected.
    """

    url: str = Field(..., description="Source URL")
    title: str = Field("", description="Article title")
    body: str = Field(..., description="Plain text, paragraphs separated by blank lines")
    author: Optional[str] = Field(None)
    published_at: Optional[datetime] = Field(None)
    word_count: int = Field(0, ge=0)
    paragraph_count: int = Field(0, ge=0)
    extraction_method: str = Field(..., description="Selector or strategy used")
    confidence: float = Field(1.0, ge=0.0, le=1.0)
    low_confidence: bool = Field(False)
    quality_score: int = Field(0, ge=0, le=100)
    page_title: Optional[str] = Field(None, description="Raw <title> of the page")
    degraded: bool = Field(False, description="Built from a fallback such as the RSS summary")

    @model_validator(mode="after")
    def derive_counts(self) -> "ExtractedArticle":
        """Keep counts consistent with the body and refuse empty bodies."""
        words = count_words(self.body)
        if words == 0:
            raise ValueError("ExtractedArticle body must not be empty")
        self.word_count = words
        self.paragraph_count = len(split_paragraphs(self.body))
        return self

    @property
    def success(self) -> bool:
        return True


class FeedResult(BaseModel):
    """Result of parsing one RSS/Atom feed."""

    feed_url: str = Field(..., description="Feed URL")
    success: bool = Field(..., description="Whether the feed parsed")
    error: Optional[str] = Field(None, description="Error message if failed")
    title: Optional[str] = Field(None, description="Feed title")
    items: list[CandidateURL] = Field(default_factory=list)
    skipped_old: int = Field(0, description="Entries older than the trusted age")
    skipped_invalid: int = Field(0, description="Entries without a usable link")

    @property
    def item_count(self) -> int:
        return len(self.items)
