"""Topic model."""

from typing import List

from pydantic import Field

from .base import DBModel


class Topic(DBModel):
    """A curated topic that owns a set of content sources."""

    name: str = Field(..., description="Topic name")
    slug: str = Field(..., description="URL-safe identifier")
    keywords: List[str] = Field(default_factory=list, description="Relevance keywords")
    is_active: bool = Field(True, description="Whether the topic is live")
