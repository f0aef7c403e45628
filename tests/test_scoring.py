"""Tests for relevance scoring."""

from datetime import timedelta

import pytest
from helpers import utc

from curator.config import RelevanceConfig
from curator.scoring import KeywordScorer, RecencyScorer, RelevanceScorer

NOW = utc(2024, 5, 10, 12, 0)


class TestRecencyScorer:
    def test_half_life(self):
        scorer = RecencyScorer(half_life_hours=48)
        article = {"published_at": NOW - timedelta(hours=48)}

        assert scorer.score(article, {"now": NOW}) == pytest.approx(0.5)

    def test_fresh_article_scores_one(self):
        assert RecencyScorer().score({"published_at": NOW}, {"now": NOW}) == pytest.approx(1.0)

    def test_missing_date_is_neutral(self):
        assert RecencyScorer().score({}) == 0.5

    def test_naive_dates_are_utc(self):
        naive = (NOW - timedelta(hours=24)).replace(tzinfo=None)
        score = RecencyScorer(half_life_hours=24).score({"published_at": naive}, {"now": NOW})
        assert score == pytest.approx(0.5)


class TestKeywordScorer:
    def test_no_keywords_is_neutral(self):
        assert KeywordScorer([]).score({"title": "Anything"}) == 0.5

    def test_no_matches_scores_zero(self):
        scorer = KeywordScorer(["harbour", "council"])
        assert scorer.score({"title": "Museum reopens"}, {"content": "Galleries are open again."}) == 0.0

    def test_whole_words_only(self):
        scorer = KeywordScorer(["port"])
        assert scorer.score({"title": "Airport report"}, {"content": "support"}) == 0.0

    def test_breadth_beats_repetition(self):
        scorer = KeywordScorer(["harbour", "council", "budget"])
        repeated = scorer.score({"title": "Harbour"}, {"content": "harbour harbour harbour harbour"})
        broad = scorer.score({"title": "Council"}, {"content": "harbour budget council"})

        assert broad > repeated

    def test_score_is_bounded(self):
        scorer = KeywordScorer(["harbour"])
        score = scorer.score({"title": "Harbour harbour"}, {"content": "harbour " * 50})
        assert score == 1.0


class TestRelevanceScorer:
    def test_weighted_combination(self):
        scorer = RelevanceScorer(RelevanceConfig(keyword_weight=0.7, recency_weight=0.3), ["harbour"])
        score = scorer.score("Harbour harbour", "harbour " * 10, published_at=NOW, now=NOW)

        assert score == pytest.approx(1.0)

    def test_irrelevant_old_article_scores_low(self):
        scorer = RelevanceScorer(keywords=["harbour"])
        score = scorer.score("Museum reopens", "Galleries", published_at=NOW - timedelta(days=30), now=NOW)

        assert score < 0.05
