"""Operational error tickets."""

import logging
from typing import Any, Dict, Optional

import psycopg
from psycopg import Connection
from psycopg.types.json import Jsonb

logger = logging.getLogger(__name__)

SEVERITY_LEVELS = {
    "low": logging.INFO,
    "medium": logging.WARNING,
    "high": logging.ERROR,
    "critical": logging.CRITICAL,
}


class ErrorLog:
    """Write error tickets to the ``error_logs`` table and the logger."""

    def __init__(self, conn: Optional[Connection] = None) -> None:
        self.conn = conn

    def log_error(self, ticket_type: str, details: Dict[str, Any], severity: str = "medium") -> None:
        if severity not in SEVERITY_LEVELS:
            severity = "medium"
        logger.log(SEVERITY_LEVELS[severity], "[%s] %s", ticket_type, details)

        if self.conn is None:
            return
        try:
            with self.conn.cursor() as cur:
                cur.execute(
                    "INSERT INTO error_logs (ticket_type, severity, details) VALUES (%s, %s, %s)",
                    (ticket_type, severity, Jsonb(details)),
                )
            self.conn.commit()
        except psycopg.Error:
            logger.exception("Could not store %s ticket", ticket_type)
            self.conn.rollback()
