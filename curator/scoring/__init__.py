"""Article relevance scoring."""

from .relevance import BaseScorer, KeywordScorer, RecencyScorer, RelevanceScorer

__all__ = ["BaseScorer", "KeywordScorer", "RecencyScorer", "RelevanceScorer"]
