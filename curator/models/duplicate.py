"""Duplicate pair model."""

from pydantic import Field

from .base import DBModel


class DuplicatePair(DBModel):
    """Two articles flagged as duplicates, awaiting a review decision."""

    article_id: int = Field(...)
    duplicate_id: int = Field(...)
    method: str = Field(..., description="checksum, url, similarity")
    similarity_score: float = Field(..., ge=0.0, le=1.0)
    status: str = Field("pending", description="pending, merged, dismissed")
