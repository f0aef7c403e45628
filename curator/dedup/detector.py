"""Exact and near-duplicate detection for articles."""

import hashlib
import logging
import re
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional

from ..config.models import DuplicateConfig

logger = logging.getLogger(__name__)

_WORD = re.compile(r"\w+", re.UNICODE)


class DuplicateMethod:
    CHECKSUM = "checksum"
    URL = "url"
    SIMILARITY = "similarity"


def normalize_text(text: str) -> str:
    """Normalize text for hashing: lowercase, whitespace collapsed."""
    return " ".join((text or "").lower().split())


def content_checksum(text: str) -> str:
    """Compute hash of normalized text."""
    return hashlib.sha256(normalize_text(text).encode("utf-8")).hexdigest()


def shingles(text: str, size: int = 3) -> FrozenSet[str]:
    """Word n-gram shingles; the word set itself for bodies shorter than ``size``."""
    words = _WORD.findall(normalize_text(text))
    if len(words) < size:
        return frozenset(words)
    return frozenset(" ".join(words[i : i + size]) for i in range(len(words) - size + 1))


def jaccard(a: FrozenSet[str], b: FrozenSet[str]) -> float:
    """Jaccard similarity of two sets, 0.0 when both are empty."""
    if not a and not b:
        return 0.0
    return len(a & b) / len(a | b)


@dataclass
class ArticleFingerprint:
    """What duplicate detection needs to know about an article."""

    article_id: Optional[int]
    normalized_url: str
    body: str = ""
    checksum: str = ""
    _shingles: Optional[FrozenSet[str]] = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.checksum:
            self.checksum = content_checksum(self.body)

    def shingle_set(self, size: int) -> FrozenSet[str]:
        if self._shingles is None:
            self._shingles = shingles(self.body, size)
        return self._shingles


@dataclass(frozen=True)
class DuplicateMatch:
    duplicate_id: int
    method: str
    similarity_score: float


class DuplicateDetector:
    """Compare an article against a corpus of stored fingerprints.

    A checksum match is exact. A normalized-URL match scores 1.0 but is a
    near duplicate, as is shingle similarity at or above the configured
    threshold; near duplicates go to merge review. An article is never
    reported as a duplicate of itself.
    """

    def __init__(self, config: Optional[DuplicateConfig] = None) -> None:
        self.config = config or DuplicateConfig()

    def compare(self, article: ArticleFingerprint, other: ArticleFingerprint) -> Optional[DuplicateMatch]:
        """Match between two fingerprints, or None. Symmetric in its arguments."""
        if other.article_id is None:
            return None
        if article.article_id is not None and article.article_id == other.article_id:
            return None

        if article.checksum and article.checksum == other.checksum:
            return DuplicateMatch(other.article_id, DuplicateMethod.CHECKSUM, 1.0)
        if article.normalized_url and article.normalized_url == other.normalized_url:
            return DuplicateMatch(other.article_id, DuplicateMethod.URL, 1.0)

        size = self.config.shingle_size
        score = jaccard(article.shingle_set(size), other.shingle_set(size))
        score = max(0.0, min(1.0, round(score, 4)))
        if score >= self.config.near_duplicate_threshold:
            return DuplicateMatch(other.article_id, DuplicateMethod.SIMILARITY, score)
        return None

    def find_duplicates(
        self,
        article: ArticleFingerprint,
        corpus: Iterable[ArticleFingerprint],
    ) -> List[DuplicateMatch]:
        """All matches in the corpus, strongest first."""
        matches = []
        for other in corpus:
            match = self.compare(article, other)
            if match is not None:
                matches.append(match)

        matches.sort(key=lambda m: (-m.similarity_score, m.duplicate_id))
        if matches:
            logger.debug(
                "Found %d duplicate(s) for %s (best: %s %.2f)",
                len(matches),
                article.normalized_url,
                matches[0].method,
                matches[0].similarity_score,
            )
        return matches
