"""Source and topic management in database."""

import logging
from typing import Dict, List, Optional

from psycopg import Connection
from psycopg.types.json import Jsonb

from ..config import SourceConfig, TopicConfig
from ..errors import SourceDeleteBlocked
from ..health import record_attempt
from ..ingestion.url_utils import extract_domain
from ..models import ContentSource, Topic

logger = logging.getLogger(__name__)

# first key of the two-key advisory locks taken per source run
SOURCE_LOCK_NAMESPACE = 0x6375

SOURCE_SELECT = """
    SELECT
        s.*,
        COALESCE(
            (SELECT array_agg(ts.topic_id ORDER BY ts.topic_id)
             FROM topic_sources ts JOIN topics t ON t.id = ts.topic_id
             WHERE ts.source_id = s.id AND t.is_active),
            '{}'
        ) AS topic_ids,
        COALESCE(
            (SELECT array_agg(DISTINCT kw)
             FROM topic_sources ts JOIN topics t ON t.id = ts.topic_id,
                  unnest(t.keywords) AS kw
             WHERE ts.source_id = s.id AND t.is_active),
            '{}'
        ) AS topic_keywords
    FROM content_sources s
"""


class SourceManager:
    """Manage content sources, topics and source health in database."""

    def sync_topics(self, conn: Connection, topics: List[TopicConfig]) -> Dict[str, int]:
        """
        Sync topics from config to database.

        Returns:
            Mapping of topic name to database ID
        """
        topic_map = {}
        with conn.cursor() as cur:
            for topic in topics:
                cur.execute(
                    """
                    INSERT INTO topics (name, slug, keywords, is_active)
                    VALUES (%s, %s, %s, %s)
                    ON CONFLICT (name) DO UPDATE SET
                        slug = EXCLUDED.slug,
                        keywords = EXCLUDED.keywords,
                        is_active = EXCLUDED.is_active
                    RETURNING id
                    """,
                    (topic.name, topic.slug, topic.keywords, topic.active),
                )
                topic_map[topic.name] = cur.fetchone()["id"]
        conn.commit()
        return topic_map

    def sync_sources(
        self,
        conn: Connection,
        sources: List[SourceConfig],
        topic_map: Optional[Dict[str, int]] = None,
    ) -> Dict[str, int]:
        """
        Sync sources from config to database.

        Health counters are left untouched; ``is_active`` is only set on
        insert so a source deactivated by an operator stays offline.

        Returns:
            Mapping of source name to database ID
        """
        topic_map = topic_map or {}
        source_map = {}

        with conn.cursor() as cur:
            for source in sources:
                cur.execute(
                    """
                    INSERT INTO content_sources (
                        name, canonical_domain, homepage_url, feed_url, scraping_method,
                        is_active, is_blacklisted, is_whitelisted,
                        scrape_frequency_hours, scraping_config
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    ON CONFLICT (name) DO UPDATE SET
                        canonical_domain = EXCLUDED.canonical_domain,
                        homepage_url = EXCLUDED.homepage_url,
                        feed_url = EXCLUDED.feed_url,
                        scraping_method = EXCLUDED.scraping_method,
                        is_blacklisted = EXCLUDED.is_blacklisted,
                        is_whitelisted = EXCLUDED.is_whitelisted,
                        scrape_frequency_hours = EXCLUDED.scrape_frequency_hours,
                        scraping_config = EXCLUDED.scraping_config
                    RETURNING id
                    """,
                    (
                        source.name,
                        extract_domain(source.url),
                        source.url,
                        source.feed_url,
                        source.scraping_method,
                        source.enabled,
                        source.blacklisted,
                        source.whitelisted,
                        source.scrape_frequency_hours,
                        Jsonb(source.scraping_config.model_dump()),
                    ),
                )
                source_id = cur.fetchone()["id"]
                source_map[source.name] = source_id

                topic_ids = [topic_map[name] for name in source.topics if name in topic_map]
                unknown = [name for name in source.topics if name not in topic_map]
                if unknown:
                    logger.warning("Source %s references unknown topics: %s", source.name, unknown)

                cur.execute(
                    "DELETE FROM topic_sources WHERE source_id = %s AND NOT (topic_id = ANY(%s))",
                    (source_id, topic_ids),
                )
                for topic_id in topic_ids:
                    cur.execute(
                        """
                        INSERT INTO topic_sources (topic_id, source_id)
                        VALUES (%s, %s)
                        ON CONFLICT DO NOTHING
                        """,
                        (topic_id, source_id),
                    )

        conn.commit()
        return source_map

    def get_topics(self, conn: Connection) -> List[Topic]:
        """Get all topics from database."""
        with conn.cursor() as cur:
            cur.execute("SELECT * FROM topics ORDER BY name")
            return [Topic.from_row(row) for row in cur.fetchall()]

    def get_sources(self, conn: Connection, active_only: bool = False) -> List[ContentSource]:
        """Get sources from database."""
        query = SOURCE_SELECT
        if active_only:
            query += " WHERE s.is_active AND NOT s.is_blacklisted"
        query += " ORDER BY s.name"
        with conn.cursor() as cur:
            cur.execute(query)
            return [ContentSource.from_row(row) for row in cur.fetchall()]

    def get_source(self, conn: Connection, source_id: int) -> Optional[ContentSource]:
        """Get source by ID."""
        with conn.cursor() as cur:
            cur.execute(SOURCE_SELECT + " WHERE s.id = %s", (source_id,))
            row = cur.fetchone()
            return ContentSource.from_row(row)

    def get_source_by_name(self, conn: Connection, name: str) -> Optional[ContentSource]:
        """Get source by name."""
        with conn.cursor() as cur:
            cur.execute(SOURCE_SELECT + " WHERE s.name = %s", (name,))
            row = cur.fetchone()
            return ContentSource.from_row(row)

    def try_lock_source(self, conn: Connection, source_id: int) -> bool:
        """Take the session advisory lock for a source's run; False if another session holds it."""
        with conn.cursor() as cur:
            cur.execute(
                "SELECT pg_try_advisory_lock(%s::integer, %s::integer) AS locked",
                (SOURCE_LOCK_NAMESPACE, source_id),
            )
            row = cur.fetchone()
        conn.commit()
        return bool(row["locked"])

    def unlock_source(self, conn: Connection, source_id: int) -> None:
        """Release the advisory lock taken by try_lock_source."""
        with conn.cursor() as cur:
            cur.execute(
                "SELECT pg_advisory_unlock(%s::integer, %s::integer)",
                (SOURCE_LOCK_NAMESPACE, source_id),
            )
        conn.commit()

    def update_source_health(
        self,
        conn: Connection,
        source_id: int,
        success: bool,
        response_time_ms: Optional[int] = None,
        error_message: Optional[str] = None,
    ) -> Optional[ContentSource]:
        """Record one scrape outcome and persist the updated counters."""
        with conn.cursor() as cur:
            # row stays locked until commit
            cur.execute(SOURCE_SELECT + " WHERE s.id = %s FOR UPDATE OF s", (source_id,))
            source = ContentSource.from_row(cur.fetchone())
        if source is None:
            logger.warning("Cannot update health of unknown source %s", source_id)
            return None

        updated = record_attempt(source, success, response_time_ms, error_message)
        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE content_sources
                SET
                    consecutive_failures = %s,
                    total_failures = %s,
                    last_failure_at = %s,
                    last_failure_reason = %s,
                    last_scraped_at = %s,
                    last_successful_scrape = %s,
                    success_rate = %s,
                    total_scrapes = %s,
                    avg_response_time_ms = %s
                WHERE id = %s
                """,
                (
                    updated.consecutive_failures,
                    updated.total_failures,
                    updated.last_failure_at,
                    updated.last_failure_reason,
                    updated.last_scraped_at,
                    updated.last_successful_scrape,
                    updated.success_rate,
                    updated.total_scrapes,
                    updated.avg_response_time_ms,
                    source_id,
                ),
            )
        conn.commit()
        return updated

    def set_active(self, conn: Connection, source_id: int, active: bool) -> None:
        """Activate or deactivate a source; activation clears the failure streak."""
        with conn.cursor() as cur:
            if active:
                cur.execute(
                    "UPDATE content_sources SET is_active = TRUE, consecutive_failures = 0 WHERE id = %s",
                    (source_id,),
                )
            else:
                cur.execute("UPDATE content_sources SET is_active = FALSE WHERE id = %s", (source_id,))
        conn.commit()

    def delete_source(self, conn: Connection, source_id: int) -> None:
        """
        Delete a source.

        Raises:
            SourceDeleteBlocked: if the source is linked to an active topic
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT t.name
                FROM topic_sources ts JOIN topics t ON t.id = ts.topic_id
                WHERE ts.source_id = %s AND t.is_active
                ORDER BY t.name
                """,
                (source_id,),
            )
            active_topics = [row["name"] for row in cur.fetchall()]
            if active_topics:
                raise SourceDeleteBlocked(source_id, active_topics)

            cur.execute("DELETE FROM content_sources WHERE id = %s", (source_id,))
        conn.commit()
