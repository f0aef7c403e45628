"""Run models for tracking per-source pipeline executions."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field

from .base import DBModel


class SourceRun(DBModel):
    """One discovery/extraction pass over a single source."""

    source_id: int = Field(..., description="Foreign key to content_sources")
    started_at: datetime = Field(..., description="When the run started")
    finished_at: Optional[datetime] = Field(None, description="When the run finished")
    status: str = Field("running", description="running, success, failed, cancelled, busy")
    stats_json: Optional[Dict[str, Any]] = Field(None, description="Run statistics")
