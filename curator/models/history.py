"""URL history and suppression models."""

from datetime import datetime

from pydantic import Field

from .base import DBModel


class ScrapedUrl(DBModel):
    """A URL seen by discovery; upserted every time it is seen again."""

    normalized_url: str = Field(..., description="Normalized URL")
    source_id: int = Field(..., description="Source that discovered the URL")
    first_seen_at: datetime = Field(...)
    last_seen_at: datetime = Field(...)
    status: str = Field("seen", description="seen, stored, duplicate, failed, degraded, rejected")


class DiscardedArticle(DBModel):
    """Permanent per-topic suppression entry created when a user discards an article."""

    normalized_url: str = Field(...)
    topic_id: int = Field(...)
