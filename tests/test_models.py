"""Tests for building models from database rows."""

from helpers import utc

from curator.models import ContentSource, Topic


class TestFromRow:
    def test_missing_row_is_none(self):
        assert ContentSource.from_row(None) is None

    def test_unknown_columns_are_dropped(self):
        row = {
            "id": 4,
            "name": "Bourne Free",
            "canonical_domain": "bournefree.co.uk",
            "homepage_url": "https://www.bournefree.co.uk/",
            "scraping_config": {"trusted_max_age_days": 14},
            "topic_ids": [1, 2],
            "last_scraped_at": utc(2024, 5, 1),
            "extra_join_column": "ignored",
        }
        source = ContentSource.from_row(row)

        assert source.id == 4
        assert source.scraping_config.trusted_max_age_days == 14
        assert source.topic_ids == [1, 2]
        assert not hasattr(source, "extra_join_column")

    def test_topic_row(self):
        topic = Topic.from_row({"id": 10, "name": "Local News", "keywords": ["council"], "slug": "local-news"})
        assert topic.keywords == ["council"]
