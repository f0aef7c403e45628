"""Source health tracking."""

from .tracker import (
    HealthLevel,
    SourceHealthSnapshot,
    assess_health,
    is_due,
    record_attempt,
    scrape_interval,
)

__all__ = [
    "HealthLevel",
    "SourceHealthSnapshot",
    "assess_health",
    "is_due",
    "record_attempt",
    "scrape_interval",
]
