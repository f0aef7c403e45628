"""Source run management in database."""

from datetime import datetime, timezone
from typing import Dict, List, Optional

from psycopg import Connection
from psycopg.types.json import Jsonb

from ..models import SourceRun


class RunManager:
    """Manage per-source pipeline runs in database."""

    def create_run(
        self,
        conn: Connection,
        source_id: int,
        started_at: Optional[datetime] = None,
        status: str = "running",
    ) -> int:
        """
        Create a new run record.

        Returns:
            Run ID
        """
        if started_at is None:
            started_at = datetime.now(timezone.utc)

        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO source_runs (source_id, started_at, status)
                VALUES (%s, %s, %s)
                RETURNING id
                """,
                (source_id, started_at, status),
            )
            run_id = cur.fetchone()["id"]

        conn.commit()
        return run_id

    def update_run_status(
        self,
        conn: Connection,
        run_id: int,
        status: str,
        stats_json: Optional[Dict] = None,
        finished_at: Optional[datetime] = None,
    ) -> None:
        """Update run status and statistics."""
        if finished_at is None and status != "running":
            finished_at = datetime.now(timezone.utc)

        with conn.cursor() as cur:
            cur.execute(
                """
                UPDATE source_runs
                SET
                    status = %s,
                    finished_at = %s,
                    stats_json = %s
                WHERE id = %s
                """,
                (status, finished_at, Jsonb(stats_json) if stats_json else None, run_id),
            )

        conn.commit()

    def get_recent_runs(self, conn: Connection, source_id: int, limit: int = 10) -> List[SourceRun]:
        """Get the most recent runs of a source, newest first."""
        with conn.cursor() as cur:
            cur.execute(
                """
                SELECT * FROM source_runs
                WHERE source_id = %s
                ORDER BY started_at DESC
                LIMIT %s
                """,
                (source_id, limit),
            )
            return [SourceRun.from_row(row) for row in cur.fetchall()]
