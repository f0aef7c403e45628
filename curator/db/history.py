"""Scraped URL history and per-topic suppression."""

from typing import Optional, Sequence

from psycopg import Connection

from ..models import DiscardedArticle, ScrapedUrl


class UrlHistoryStore:
    """URL history bound to one connection.

    Discovery asks it whether a URL was seen recently or discarded; the
    pipeline marks every processed URL as seen.
    """

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def is_recently_seen(self, normalized_url: str, source_id: int, window_hours: int) -> bool:
        if window_hours <= 0:
            return False
        with self.conn.cursor() as cur:
            cur.execute(
                """
                SELECT 1 FROM scraped_urls
                WHERE normalized_url = %s AND source_id = %s
                  AND last_seen_at >= CURRENT_TIMESTAMP - make_interval(hours => %s)
                """,
                (normalized_url, source_id, window_hours),
            )
            return cur.fetchone() is not None

    def is_discarded(self, normalized_url: str, topic_ids: Sequence[int]) -> bool:
        if not topic_ids:
            return False
        with self.conn.cursor() as cur:
            cur.execute(
                "SELECT 1 FROM discarded_articles WHERE normalized_url = %s AND topic_id = ANY(%s)",
                (normalized_url, list(topic_ids)),
            )
            return cur.fetchone() is not None

    def mark_seen(self, normalized_url: str, source_id: int, status: str = "seen") -> ScrapedUrl:
        """Insert or refresh a history entry."""
        with self.conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO scraped_urls (normalized_url, source_id, status)
                VALUES (%s, %s, %s)
                ON CONFLICT (normalized_url, source_id) DO UPDATE SET
                    last_seen_at = CURRENT_TIMESTAMP,
                    status = EXCLUDED.status
                RETURNING *
                """,
                (normalized_url, source_id, status),
            )
            entry = ScrapedUrl.from_row(cur.fetchone())
        self.conn.commit()
        return entry

    def discard(self, normalized_url: str, topic_id: Optional[int]) -> Optional[DiscardedArticle]:
        """Suppress a URL for a topic and mark any stored copy discarded.

        Returns the suppression entry, or None when there is no topic to suppress for.
        """
        entry = None
        with self.conn.cursor() as cur:
            if topic_id is not None:
                cur.execute(
                    """
                    INSERT INTO discarded_articles (normalized_url, topic_id)
                    VALUES (%s, %s)
                    ON CONFLICT (normalized_url, topic_id) DO UPDATE SET topic_id = EXCLUDED.topic_id
                    RETURNING *
                    """,
                    (normalized_url, topic_id),
                )
                entry = DiscardedArticle.from_row(cur.fetchone())
            cur.execute(
                "UPDATE articles SET status = 'discarded' WHERE normalized_url = %s",
                (normalized_url,),
            )
        self.conn.commit()
        return entry
