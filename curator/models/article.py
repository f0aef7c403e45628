"""Article model for stored, extracted articles."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import DBModel


class Article(DBModel):
    """Article row as persisted by the pipeline."""

    source_id: int = Field(..., description="Foreign key to content_sources")
    topic_id: Optional[int] = Field(None, description="Topic the article was curated for")
    url: str = Field(..., description="URL as discovered")
    normalized_url: str = Field(..., description="Normalized URL used for dedup")
    title: str = Field(..., description="Article title")
    body: str = Field(..., description="Extracted body text")
    author: Optional[str] = Field(None)
    published_at: Optional[datetime] = Field(None)
    word_count: int = Field(0, ge=0)
    extraction_method: str = Field(..., description="Selector or strategy that produced the body")
    quality_score: int = Field(0, ge=0, le=100)
    relevance_score: float = Field(0.0, ge=0.0, le=1.0)
    content_checksum: str = Field(..., description="Hash of normalized body text")
    status: str = Field("new", description="new, degraded, needs_review, approved, discarded")
