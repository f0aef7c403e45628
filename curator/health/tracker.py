"""Source health: classification, counter updates and scheduling.

Everything here is a pure function of a source's counters and the current
time. Nothing in this module touches the database.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from ..config.models import HealthConfig
from ..models.source import ContentSource


class HealthLevel(str, Enum):
    HEALTHY = "healthy"
    WATCH = "watch"
    FAILING = "failing"
    OFFLINE = "offline"


class SourceHealthSnapshot(BaseModel):
    """Derived health view of a source. Never persisted."""

    source_id: Optional[int] = None
    level: HealthLevel
    label: str
    summary: str
    next_steps: List[str] = Field(default_factory=list)
    last_failure_reason: Optional[str] = None
    consecutive_failures: int = 0
    hours_since_success: Optional[float] = None


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _now(now: Optional[datetime]) -> datetime:
    return _utc(now) or datetime.now(timezone.utc)


def assess_health(
    source: ContentSource,
    now: Optional[datetime] = None,
    config: Optional[HealthConfig] = None,
) -> SourceHealthSnapshot:
    """Classify a source from its counters."""
    config = config or HealthConfig()
    now = _now(now)
    failures = source.consecutive_failures

    last_success = _utc(source.last_successful_scrape)
    hours_since = None
    stale = False
    if last_success is not None:
        hours_since = (now - last_success).total_seconds() / 3600
        stale = hours_since > config.stale_hours

    common = dict(
        source_id=source.id,
        last_failure_reason=source.last_failure_reason,
        consecutive_failures=failures,
        hours_since_success=round(hours_since, 1) if hours_since is not None else None,
    )

    if not source.is_active:
        return SourceHealthSnapshot(
            level=HealthLevel.OFFLINE,
            label="Offline",
            summary="Source is deactivated and will not be scraped.",
            next_steps=[
                "Check the site manually",
                f"Reactivate with: curator sources activate {source.name!r}",
            ],
            **common,
        )

    if failures >= config.failing_threshold:
        return SourceHealthSnapshot(
            level=HealthLevel.FAILING,
            label="Failing",
            summary=f"{failures} consecutive failed scrapes.",
            next_steps=[
                "Review the last failure reason",
                "Check selectors and the feed URL",
                "Deactivate the source if the site is gone",
            ],
            **common,
        )

    if failures == config.failing_threshold - 1 and failures > 0:
        return SourceHealthSnapshot(
            level=HealthLevel.FAILING,
            label="At risk",
            summary=f"{failures} consecutive failed scrapes; one more marks it failing.",
            next_steps=["Run: curator sources test", "Review the last failure reason"],
            **common,
        )

    if failures >= 1 or stale:
        if failures:
            summary = "Last scrape failed."
        else:
            summary = f"No successful scrape in {hours_since:.0f} hours."
        return SourceHealthSnapshot(
            level=HealthLevel.WATCH,
            label="Watch",
            summary=summary,
            next_steps=["No action needed unless the next scrape fails"],
            **common,
        )

    return SourceHealthSnapshot(
        level=HealthLevel.HEALTHY,
        label="Healthy",
        summary="Scraping normally.",
        **common,
    )


def record_attempt(
    source: ContentSource,
    success: bool,
    response_time_ms: Optional[int] = None,
    error_message: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ContentSource:
    """Return a copy of the source with counters updated for one scrape."""
    now = _now(now)
    total = source.total_scrapes + 1
    updates = {
        "total_scrapes": total,
        "last_scraped_at": now,
        # cumulative mean of 100/0 outcomes
        "success_rate": round(
            (source.success_rate * source.total_scrapes + (100.0 if success else 0.0)) / total, 2
        ),
    }

    if response_time_ms is not None:
        updates["avg_response_time_ms"] = int(
            round((source.avg_response_time_ms * source.total_scrapes + response_time_ms) / total)
        )

    if success:
        updates["consecutive_failures"] = 0
        updates["last_successful_scrape"] = now
    else:
        updates["consecutive_failures"] = source.consecutive_failures + 1
        updates["total_failures"] = source.total_failures + 1
        updates["last_failure_at"] = now
        updates["last_failure_reason"] = error_message or "Unknown error"

    return source.model_copy(update=updates)


def scrape_interval(source: ContentSource, config: Optional[HealthConfig] = None) -> Optional[timedelta]:
    """Time between scrapes for a source; None when it is never scheduled."""
    config = config or HealthConfig()
    if not source.is_active or source.is_blacklisted:
        return None

    hours = float(source.scrape_frequency_hours)
    if source.consecutive_failures >= config.failing_threshold - 1 and source.consecutive_failures > 0:
        hours *= config.backoff_factor ** (source.consecutive_failures - 1)
        hours = min(hours, float(config.max_backoff_hours))
    return timedelta(hours=hours)


def is_due(source: ContentSource, now: Optional[datetime] = None, config: Optional[HealthConfig] = None) -> bool:
    """Whether the source should be scraped now."""
    interval = scrape_interval(source, config)
    if interval is None:
        return False
    last = _utc(source.last_scraped_at)
    if last is None:
        return True
    return _now(now) - last >= interval
