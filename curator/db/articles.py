"""Article storage, duplicate pairs and review actions."""

import logging
from typing import Dict, List, Optional, Union

from psycopg import Connection
from pydantic import BaseModel, Field

from ..dedup import ArticleFingerprint, DuplicateMatch
from ..models import Article, DuplicatePair

logger = logging.getLogger(__name__)


class DuplicateConflict(BaseModel):
    """An article was not stored because an exact duplicate already exists."""

    existing_id: int = Field(..., description="ID of the stored article")
    method: str = Field("checksum", description="Match method")

    @property
    def success(self) -> bool:
        return False


SaveResult = Union[int, DuplicateConflict]


class ArticleStorage:
    """Handle article storage and deduplication."""

    def find_exact(self, conn: Connection, checksum: str) -> Optional[DuplicateConflict]:
        """Stored article with the same content checksum."""
        with conn.cursor() as cur:
            cur.execute(
                "SELECT id FROM articles WHERE content_checksum = %s ORDER BY id LIMIT 1",
                (checksum,),
            )
            existing = cur.fetchone()
        if existing is None:
            return None
        return DuplicateConflict(existing_id=existing["id"], method="checksum")

    def save_article(self, conn: Connection, article: Article) -> SaveResult:
        """
        Insert an article unless its content is already stored.

        A new version of a stored URL is inserted as its own row; callers
        pair the two for review.

        Returns:
            The new article ID, or DuplicateConflict naming the existing row
        """
        conflict = self.find_exact(conn, article.content_checksum)
        if conflict is not None:
            return conflict

        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO articles (
                    source_id, topic_id, url, normalized_url, title, body, author,
                    published_at, word_count, extraction_method, quality_score,
                    relevance_score, content_checksum, status
                ) VALUES (
                    %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s
                )
                ON CONFLICT (normalized_url, content_checksum) DO NOTHING
                RETURNING id
                """,
                (
                    article.source_id,
                    article.topic_id,
                    article.url,
                    article.normalized_url,
                    article.title,
                    article.body,
                    article.author,
                    article.published_at,
                    article.word_count,
                    article.extraction_method,
                    article.quality_score,
                    article.relevance_score,
                    article.content_checksum,
                    article.status,
                ),
            )
            row = cur.fetchone()
        conn.commit()

        if row is None:
            # Lost a race with a concurrent insert of the same version
            return self.find_exact(conn, article.content_checksum)
        return row["id"]

    def get_article(self, conn: Connection, article_id: int) -> Optional[Article]:
        """Get article by ID."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM articles WHERE id = %s", (article_id,))
            row = cur.fetchone()
            return Article.from_row(row)

    def list_articles(
        self,
        conn: Connection,
        status: Optional[str] = None,
        source_id: Optional[int] = None,
        limit: int = 50,
    ) -> List[Dict]:
        """List recent articles with their source name."""
        query = """
            SELECT a.id, a.title, a.normalized_url, a.status, a.word_count,
                   a.quality_score, a.relevance_score, a.created_at,
                   s.name AS source_name
            FROM articles a
            JOIN content_sources s ON s.id = a.source_id
            WHERE 1 = 1
        """
        params: list = []
        if status:
            query += " AND a.status = %s"
            params.append(status)
        if source_id:
            query += " AND a.source_id = %s"
            params.append(source_id)
        query += " ORDER BY a.created_at DESC LIMIT %s"
        params.append(limit)

        with conn.cursor() as cur:
            cur.execute(query, params)
            return cur.fetchall()

    def get_recent_fingerprints(
        self,
        conn: Connection,
        days: int = 14,
        limit: int = 500,
    ) -> List[ArticleFingerprint]:
        """Recent articles to compare new content against."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT id, normalized_url, body, content_checksum
                FROM articles
                WHERE created_at >= CURRENT_TIMESTAMP - make_interval(days => %s)
                  AND status <> 'discarded'
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (days, limit),
            )
            return [
                ArticleFingerprint(
                    article_id=row["id"],
                    normalized_url=row["normalized_url"],
                    body=row["body"],
                    checksum=row["content_checksum"],
                )
                for row in cur.fetchall()
            ]

    def record_duplicates(self, conn: Connection, article_id: int, matches: List[DuplicateMatch]) -> int:
        """Store duplicate pairs for review. Returns the number of new pairs."""
        created = 0
        with conn.cursor() as cur:
            for match in matches:
                if match.duplicate_id == article_id:
                    continue
                cur.execute(
                    """
                    INSERT INTO duplicate_pairs (article_id, duplicate_id, method, similarity_score)
                    VALUES (%s, %s, %s, %s)
                    ON CONFLICT (article_id, duplicate_id) DO NOTHING
                    """,
                    (article_id, match.duplicate_id, match.method, match.similarity_score),
                )
                created += cur.rowcount
        conn.commit()
        return created

    def get_duplicate_pairs(self, conn: Connection, status: str = "pending", limit: int = 50) -> List[DuplicatePair]:
        """Duplicate pairs awaiting a review decision, strongest first."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT * FROM duplicate_pairs
                WHERE status = %s
                ORDER BY similarity_score DESC, created_at DESC
                LIMIT %s
                """,
                (status, limit),
            )
            return [DuplicatePair.from_row(row) for row in cur.fetchall()]

    def approve_article(self, conn: Connection, article_id: int) -> Optional[int]:
        """
        Approve an article and queue it for content generation.

        Returns:
            Queue entry ID, or None if the article does not exist
        """
        with conn.cursor() as cur:
            cur.execute(
                "UPDATE articles SET status = 'approved' WHERE id = %s RETURNING topic_id",
                (article_id,),
            )
            row = cur.fetchone()
            if row is None:
                conn.rollback()
                return None

            cur.execute(
                """
                INSERT INTO content_generation_queue (article_id, topic_id)
                VALUES (%s, %s)
                ON CONFLICT (article_id) DO UPDATE SET status = 'queued'
                RETURNING id
                """,
                (article_id, row["topic_id"]),
            )
            queue_id = cur.fetchone()["id"]
        conn.commit()
        logger.info("Article %s approved and queued (%s)", article_id, queue_id)
        return queue_id
