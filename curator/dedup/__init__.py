"""Duplicate detection."""

from .detector import (
    ArticleFingerprint,
    DuplicateDetector,
    DuplicateMatch,
    DuplicateMethod,
    content_checksum,
    jaccard,
    shingles,
)

__all__ = [
    "ArticleFingerprint",
    "DuplicateDetector",
    "DuplicateMatch",
    "DuplicateMethod",
    "content_checksum",
    "jaccard",
    "shingles",
]
