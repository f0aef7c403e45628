"""Exceptions raised by the curation core.

Per-candidate problems (fetch, extraction, validation, duplicates) are
returned as result models instead; these exceptions cover bad input and
operator-level conflicts.
"""


class CuratorError(Exception):
    """Base class for curator errors."""


class InvalidUrlError(CuratorError, ValueError):
    """URL could not be parsed or is not an http(s) URL with a host."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL {url!r}: {reason}")


class SourceBusyError(CuratorError):
    """Another run for the same source is already in progress."""

    def __init__(self, source_id: int) -> None:
        self.source_id = source_id
        super().__init__(f"Source {source_id} already has a run in progress")


class SourceDeleteBlocked(CuratorError):
    """Source is still linked to at least one active topic."""

    def __init__(self, source_id: int, topics: list) -> None:
        self.source_id = source_id
        self.topics = topics
        super().__init__(
            f"Source {source_id} is linked to active topics: {', '.join(topics)}"
        )
