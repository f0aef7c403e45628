"""Data models for the topic curator."""

from .article import Article
from .duplicate import DuplicatePair
from .history import DiscardedArticle, ScrapedUrl
from .run import SourceRun
from .source import ContentSource
from .topic import Topic

__all__ = [
    "Article",
    "ContentSource",
    "DiscardedArticle",
    "DuplicatePair",
    "ScrapedUrl",
    "SourceRun",
    "Topic",
]
