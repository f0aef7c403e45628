"""Topic relevance scoring for extracted articles."""

import math
import re
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import pendulum

from ..config.models import RelevanceConfig


class BaseScorer(ABC):
    """Base class for scoring components."""

    @abstractmethod
    def score(self, article: Dict, context: Optional[Dict] = None) -> float:
        """
        Score an article from 0.0 to 1.0.

        Args:
            article: Article fields (title, published_at, ...)
            context: Additional context (e.g., body content)

        Returns:
            Score between 0.0 and 1.0
        """


class RecencyScorer(BaseScorer):
    """Score based on article recency with exponential decay."""

    def __init__(self, half_life_hours: float = 48.0) -> None:
        """
        Initialize recency scorer.

        Args:
            half_life_hours: Hours for score to decay by 50%
        """
        self.half_life_hours = half_life_hours

    def score(self, article: Dict, context: Optional[Dict] = None) -> float:
        """Score based on publication date recency."""
        if not article.get("published_at"):
            return 0.5  # Neutral score for missing date

        published = article["published_at"]
        if isinstance(published, str):
            published = pendulum.parse(published)
        elif published.tzinfo is None:
            published = pendulum.instance(published, tz="UTC")

        now = (context or {}).get("now") or pendulum.now("UTC")
        age_hours = max(0.0, (now - published).total_seconds() / 3600)

        decay_rate = math.log(2) / self.half_life_hours
        return max(0.0, min(1.0, math.exp(-decay_rate * age_hours)))


class KeywordScorer(BaseScorer):
    """Score based on topic keyword matches in title and body."""

    def __init__(
        self,
        keywords: Optional[List[str]] = None,
        title_weight: float = 2.0,
        saturation: float = 6.0,
    ) -> None:
        """
        Initialize keyword scorer.

        Args:
            keywords: Topic keywords
            title_weight: How much more to weight title matches
            saturation: Weighted match count that earns a full score
        """
        self.keywords = [k.lower() for k in (keywords or []) if k.strip()]
        self.title_weight = title_weight
        self.saturation = saturation

    def _count_matches(self, text: str) -> Dict[str, int]:
        """Count keyword matches in text."""
        text_lower = text.lower()
        matches = {}
        for keyword in self.keywords:
            pattern = r"\b" + re.escape(keyword) + r"\b"
            count = len(re.findall(pattern, text_lower))
            if count > 0:
                matches[keyword] = count
        return matches

    def score(self, article: Dict, context: Optional[Dict] = None) -> float:
        """Score based on keyword matches."""
        if not self.keywords:
            return 0.5  # No topic keywords to judge by

        title_matches = self._count_matches(article.get("title") or "")
        content_matches = self._count_matches((context or {}).get("content") or "")

        weighted = sum(title_matches.values()) * self.title_weight + sum(content_matches.values())
        if weighted == 0:
            return 0.0

        # Reward breadth: several distinct keywords beat one keyword repeated
        distinct = len(set(title_matches) | set(content_matches))
        coverage = distinct / len(self.keywords)
        volume = min(1.0, weighted / self.saturation)
        return max(0.0, min(1.0, 0.6 * volume + 0.4 * coverage))


class RelevanceScorer:
    """Combine keyword and recency scores into a relevance score."""

    def __init__(self, config: Optional[RelevanceConfig] = None, keywords: Optional[List[str]] = None) -> None:
        self.config = config or RelevanceConfig()
        self.keyword_scorer = KeywordScorer(keywords)
        self.recency_scorer = RecencyScorer(half_life_hours=self.config.recency_half_life_hours)

    def score(self, title: str, body: str, published_at=None, now=None) -> float:
        """Weighted relevance in [0, 1]."""
        article = {"title": title, "published_at": published_at}
        context = {"content": body, "now": now}

        combined = (
            self.config.keyword_weight * self.keyword_scorer.score(article, context)
            + self.config.recency_weight * self.recency_scorer.score(article, context)
        )
        return round(max(0.0, min(1.0, combined)), 4)
