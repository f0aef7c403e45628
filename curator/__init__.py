"""Topic curator: discovery, extraction and source health for news sources."""

__version__ = "0.1.0"
