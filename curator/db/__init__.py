"""Database management for the topic curator."""

from .articles import ArticleStorage, DuplicateConflict
from .connection import close_connection_pool, get_connection, get_connection_pool
from .events import ErrorLog
from .history import UrlHistoryStore
from .init import init_database, validate_connection
from .runs import RunManager
from .sources import SourceManager

__all__ = [
    "ArticleStorage",
    "DuplicateConflict",
    "ErrorLog",
    "RunManager",
    "SourceManager",
    "UrlHistoryStore",
    "close_connection_pool",
    "get_connection",
    "get_connection_pool",
    "init_database",
    "validate_connection",
]
