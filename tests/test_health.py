"""Tests for source health classification, counters and scheduling."""

from datetime import timedelta

import pytest
from helpers import make_source, utc

from curator.config import HealthConfig
from curator.health import HealthLevel, assess_health, is_due, record_attempt, scrape_interval

NOW = utc(2024, 5, 10, 12, 0)


class TestAssessHealth:
    @pytest.mark.parametrize(
        "failures,level,label",
        [
            (0, HealthLevel.HEALTHY, "Healthy"),
            (1, HealthLevel.WATCH, "Watch"),
            (2, HealthLevel.FAILING, "At risk"),
            (3, HealthLevel.FAILING, "Failing"),
            (4, HealthLevel.FAILING, "Failing"),
        ],
    )
    def test_levels_follow_failure_streak(self, failures, level, label):
        source = make_source(consecutive_failures=failures, last_successful_scrape=NOW - timedelta(hours=1))
        snapshot = assess_health(source, NOW)

        assert snapshot.level == level
        assert snapshot.label == label
        assert snapshot.consecutive_failures == failures

    def test_inactive_source_is_offline(self):
        snapshot = assess_health(make_source(is_active=False, consecutive_failures=5), NOW)

        assert snapshot.level == HealthLevel.OFFLINE
        assert any("activate" in step for step in snapshot.next_steps)

    def test_stale_source_is_watched(self):
        source = make_source(last_successful_scrape=NOW - timedelta(hours=72))
        snapshot = assess_health(source, NOW)

        assert snapshot.level == HealthLevel.WATCH
        assert snapshot.hours_since_success == 72.0
        assert "72 hours" in snapshot.summary

    def test_threshold_is_configurable(self):
        source = make_source(consecutive_failures=3)
        snapshot = assess_health(source, NOW, HealthConfig(failing_threshold=5))

        assert snapshot.level == HealthLevel.WATCH

    def test_failure_reason_is_surfaced(self):
        source = make_source(consecutive_failures=3, last_failure_reason="No candidates found")
        assert assess_health(source, NOW).last_failure_reason == "No candidates found"


class TestRecordAttempt:
    def test_success_resets_streak(self):
        source = make_source(consecutive_failures=2, total_scrapes=2, success_rate=0.0)
        updated = record_attempt(source, True, response_time_ms=300, now=NOW)

        assert updated.consecutive_failures == 0
        assert updated.last_successful_scrape == NOW
        assert updated.last_scraped_at == NOW
        assert updated.total_scrapes == 3
        assert updated.success_rate == pytest.approx(33.33)
        assert updated.avg_response_time_ms == 100
        assert source.consecutive_failures == 2

    def test_failure_increments_counters(self):
        source = make_source(total_scrapes=1, success_rate=100.0, avg_response_time_ms=200)
        updated = record_attempt(source, False, error_message="timeout", now=NOW)

        assert updated.consecutive_failures == 1
        assert updated.total_failures == 1
        assert updated.last_failure_reason == "timeout"
        assert updated.last_failure_at == NOW
        assert updated.success_rate == 50.0
        assert updated.avg_response_time_ms == 200

    def test_repeated_failures_reach_failing(self):
        source = make_source()
        levels = []
        for _ in range(4):
            source = record_attempt(source, False, error_message="http_5xx", now=NOW)
            levels.append(assess_health(source, NOW).label)

        assert levels == ["Watch", "At risk", "Failing", "Failing"]


class TestScheduling:
    def test_never_scraped_is_due(self):
        assert is_due(make_source(), NOW)

    def test_due_after_frequency(self):
        source = make_source(scrape_frequency_hours=12, last_scraped_at=NOW - timedelta(hours=11))
        assert not is_due(source, NOW)
        assert is_due(source, NOW + timedelta(hours=1))

    def test_failing_sources_back_off(self):
        config = HealthConfig(failing_threshold=3, backoff_factor=2.0, max_backoff_hours=48)

        assert scrape_interval(make_source(consecutive_failures=1), config) == timedelta(hours=12)
        assert scrape_interval(make_source(consecutive_failures=2), config) == timedelta(hours=24)
        assert scrape_interval(make_source(consecutive_failures=3), config) == timedelta(hours=48)
        assert scrape_interval(make_source(consecutive_failures=6), config) == timedelta(hours=48)

    def test_inactive_and_blacklisted_are_never_due(self):
        assert scrape_interval(make_source(is_active=False)) is None
        assert not is_due(make_source(is_blacklisted=True), NOW)
